"""Custom exceptions for the STRATA package."""


class StrataError(Exception):
    """Base exception for strata package."""

    pass


class PolygonError(StrataError):
    """Invalid polygon geometry."""

    pass


class ElementError(StrataError):
    """Invalid mesh element definition."""

    pass


class MeshError(StrataError):
    """Inconsistent mesh topology."""

    pass


class MeshGenerationError(StrataError):
    """Mesh generation failed."""

    pass


class InterpolationError(StrataError):
    """Raster interpolation failed."""

    pass


class DataLoadError(StrataError):
    """Failed to load data from file."""

    pass


class RasterError(StrataError):
    """Raster data accessed after it was released."""

    pass
