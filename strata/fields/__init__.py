"""Field interpolation utilities."""

from strata.fields.interpolation import RasterInterpolator

__all__ = ["RasterInterpolator"]
