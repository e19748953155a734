"""Raster data container and DEM file readers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

import numpy as np
import rasterio

from strata.exceptions import DataLoadError, RasterError

logger = logging.getLogger(__name__)

#: Elevation value marking a raster cell without data.
NO_DATA_VALUE = -9999.0


class Raster:
    """Elevation grid with geo-referencing.

    The grid is stored row-major with shape (height, width). Row 0 is the
    southernmost row, so cell (row, col) covers
    ``[x0 + col*delta, x0 + (col+1)*delta] x [y0 + row*delta, y0 + (row+1)*delta]``.
    Cells without data hold ``NO_DATA_VALUE``.

    The elevation array is a scoped resource: ``release()`` drops it, and a
    raster used as a context manager is released when the block exits.

    Args:
        elevation: Elevation grid, shape (height, width).
        x0: x-coordinate of the lower-left raster corner.
        y0: y-coordinate of the lower-left raster corner.
        delta: Cell size.

    Example:
        >>> with Raster(np.zeros((2, 3)), x0=0.0, y0=0.0, delta=10.0) as raster:
        ...     raster.x_extent
        (0.0, 30.0)
    """

    def __init__(
        self,
        elevation: np.ndarray,
        x0: float,
        y0: float,
        delta: float,
    ):
        elevation = np.array(elevation, dtype=float)
        if elevation.ndim != 2 or elevation.size == 0:
            raise ValueError("elevation must be a non-empty 2D array")
        if delta <= 0:
            raise ValueError(f"Cell size must be positive, got {delta}")

        self._elevation: np.ndarray | None = elevation
        self.x0 = float(x0)
        self.y0 = float(y0)
        self.delta = float(delta)
        self.height, self.width = elevation.shape

    @property
    def elevation(self) -> np.ndarray:
        """Elevation grid, shape (height, width).

        Raises:
            RasterError: If the raster has been released.
        """
        if self._elevation is None:
            raise RasterError("Raster data has already been released")
        return self._elevation

    @property
    def is_released(self) -> bool:
        return self._elevation is None

    @property
    def x_extent(self) -> tuple[float, float]:
        return (self.x0, self.x0 + self.width * self.delta)

    @property
    def y_extent(self) -> tuple[float, float]:
        return (self.y0, self.y0 + self.height * self.delta)

    @property
    def nodata_mask(self) -> np.ndarray:
        return self.elevation == NO_DATA_VALUE

    def release(self) -> None:
        """Drop the elevation grid."""
        if self._elevation is not None:
            logger.debug("Releasing raster data (%d x %d)", self.width, self.height)
            self._elevation = None

    def __enter__(self) -> Raster:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        return (
            f"Raster(width={self.width}, height={self.height}, "
            f"x0={self.x0}, y0={self.y0}, delta={self.delta})"
        )


class RasterReader(Protocol):
    """Protocol for raster readers."""

    def read(self, path: str | Path) -> Raster:
        """Read a raster from file."""
        ...


class DemReader:
    """Reader for single-band DEM files opened through rasterio.

    Any format GDAL can read works, notably ESRI ASCII grids (.asc) and
    GeoTIFF. The raster must be north-up with square cells; band 1 holds the
    elevation.
    """

    def read(self, path: str | Path) -> Raster:
        """Read a DEM from file.

        Args:
            path: Path to the raster file.

        Returns:
            Raster with rows ordered south to north and NoData cells set to
            ``NO_DATA_VALUE``.

        Raises:
            DataLoadError: If file cannot be read or is not a usable DEM.
        """
        path = Path(path)

        if not path.exists():
            raise DataLoadError(f"File not found: {path}")

        try:
            with rasterio.open(path) as src:
                if src.count < 1:
                    raise DataLoadError(f"{path} has no raster bands")
                transform = src.transform
                if transform.b != 0.0 or transform.d != 0.0 or transform.e > 0.0:
                    raise DataLoadError(f"{path} is not a north-up raster")
                x_res, y_res = src.res
                if not np.isclose(x_res, y_res):
                    raise DataLoadError(
                        f"{path} has non-square cells ({x_res} x {y_res})"
                    )
                data = src.read(1).astype(float)
                nodata = src.nodata
                bounds = src.bounds

        except DataLoadError:
            raise
        except Exception as e:
            raise DataLoadError(f"Failed to read raster file {path}: {e}") from e

        if nodata is not None:
            missing = np.isnan(data) if np.isnan(nodata) else data == nodata
            data[missing] = NO_DATA_VALUE

        height, width = data.shape
        logger.info(
            "Loaded raster %s (%d x %d cells, cell size %g)",
            path.name,
            width,
            height,
            x_res,
        )
        # rasterio returns the northernmost row first
        return Raster(
            np.flipud(data), x0=bounds.left, y0=bounds.bottom, delta=x_res
        )


def load_raster(path: str | Path) -> Raster:
    """Convenience function to read a DEM with ``DemReader``.

    Args:
        path: Path to the raster file.

    Returns:
        Raster object.
    """
    return DemReader().read(path)
