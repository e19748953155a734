"""I/O utilities for reading raster data files."""

from strata.io.readers import (
    NO_DATA_VALUE,
    DemReader,
    Raster,
    load_raster,
)

__all__ = [
    "NO_DATA_VALUE",
    "DemReader",
    "Raster",
    "load_raster",
]
