"""STRATA - layered mesh extrusion and terrain mapping.

A package for extruding 2D surface meshes into layered 3D meshes and fitting
mesh layers to digital elevation models.

Example:
    >>> from strata import LayerMapper
    >>> volume = LayerMapper.create_layers(surface_mesh, n_layers=4, thickness=25.0)
    >>> result = LayerMapper.layer_mapping(volume, "dem.asc", n_layers=4, layer_index=0)
    >>> result.status
    <MappingStatus.SUCCESS: 'success'>
"""

from strata.exceptions import (
    DataLoadError,
    ElementError,
    InterpolationError,
    MeshError,
    MeshGenerationError,
    PolygonError,
    RasterError,
    StrataError,
)
from strata.geometry import Element, ElementType, Polygon
from strata.io import NO_DATA_VALUE, Raster, load_raster
from strata.mesh import (
    ExtrusionConfig,
    LayerMapper,
    MappingResult,
    MappingStatus,
    Mesh,
    MeshBuilder,
    MeshEditor,
    Node,
)

__version__ = "0.1.0"

__all__ = [
    # Main API
    "LayerMapper",
    "MappingResult",
    "MappingStatus",
    "MeshBuilder",
    "MeshEditor",
    "ExtrusionConfig",
    "Mesh",
    "Node",
    "Element",
    "ElementType",
    "Polygon",
    "Raster",
    "load_raster",
    "NO_DATA_VALUE",
    # Exceptions
    "StrataError",
    "PolygonError",
    "ElementError",
    "MeshError",
    "MeshGenerationError",
    "InterpolationError",
    "DataLoadError",
    "RasterError",
]
