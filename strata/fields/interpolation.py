"""Bilinear interpolation of raster elevation at arbitrary points."""

from __future__ import annotations

import numpy as np

from strata.exceptions import InterpolationError
from strata.io.readers import NO_DATA_VALUE, Raster


class RasterInterpolator:
    """Interpolator for gridded elevation data.

    Each query point is assigned to the raster cell containing it. The point's
    offset from the cell centre selects a 2 x 2 stencil made of the cell
    itself, its neighbour in x, its neighbour in y and the diagonal neighbour
    towards which the point is shifted. The stencil values are combined with
    bilinear weights, so the result always lies between the smallest and the
    largest stencil value.

    A point whose own cell holds NoData gets no value. A neighbour holding
    NoData is replaced by the value of the point's own cell. Along the
    raster border, a neighbour beyond the grid is taken from the nearest
    cell inside it, which keeps the surface continuous across cell edges.

    Args:
        raster: Raster to sample.

    Example:
        >>> interpolator = RasterInterpolator(raster)
        >>> values, nodata = interpolator.interpolate(mesh.coords[:, :2])
    """

    def __init__(self, raster: Raster):
        self._raster = raster

    @property
    def raster(self) -> Raster:
        return self._raster

    def cell_indices(self, points: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Return (column, row) of the cell containing each point.

        Points on the upper or right raster edge belong to the last cell.
        """
        pos = self._positions(points)
        return self._cells(pos)

    def interpolate(self, points: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Interpolate elevation at the given points.

        Args:
            points: Query coordinates, shape (m, 2). Extra columns are ignored.

        Returns:
            Tuple ``(values, nodata)``: interpolated elevations, shape (m,),
            and a boolean mask of points whose own cell holds NoData. Values
            of NoData points are 0.
        """
        raster = self._raster
        grid = raster.elevation

        pos = self._positions(points)
        col, row = self._cells(pos)

        # Offset from the cell centre normalised to [-1, 1]
        shift_x = (pos[:, 0] - col - 0.5) / 0.5
        shift_y = (pos[:, 1] - row - 0.5) / 0.5
        step_x = np.sign(shift_x).astype(int)
        step_y = np.sign(shift_y).astype(int)

        own = grid[row, col]
        nodata = own == NO_DATA_VALUE

        z_x = self._neighbour(grid, own, col + step_x, row)
        z_xy = self._neighbour(grid, own, col + step_x, row + step_y)
        z_y = self._neighbour(grid, own, col, row + step_y)

        # Distance to the stencil neighbours in cell units
        u = 0.5 * np.abs(shift_x)
        v = 0.5 * np.abs(shift_y)
        values = (
            (1 - u) * (1 - v) * own
            + u * (1 - v) * z_x
            + u * v * z_xy
            + (1 - u) * v * z_y
        )
        values[nodata] = 0.0

        return values, nodata

    def __call__(self, points: np.ndarray) -> np.ndarray:
        """Interpolate and return values with NaN at NoData points."""
        values, nodata = self.interpolate(points)
        values[nodata] = np.nan
        return values

    def _positions(self, points: np.ndarray) -> np.ndarray:
        points = np.asarray(points, dtype=float)
        if points.ndim == 1:
            points = points.reshape(1, -1)
        if points.ndim != 2 or points.shape[1] < 2:
            raise InterpolationError("points must have shape (m, 2)")

        raster = self._raster
        origin = np.array([raster.x0, raster.y0])
        return (points[:, :2] - origin) / raster.delta

    def _cells(self, pos: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        raster = self._raster
        col = np.clip(np.floor(pos[:, 0]).astype(int), 0, raster.width - 1)
        row = np.clip(np.floor(pos[:, 1]).astype(int), 0, raster.height - 1)
        return col, row

    def _neighbour(
        self,
        grid: np.ndarray,
        own: np.ndarray,
        col: np.ndarray,
        row: np.ndarray,
    ) -> np.ndarray:
        height, width = grid.shape
        values = grid[np.clip(row, 0, height - 1), np.clip(col, 0, width - 1)]
        return np.where(values == NO_DATA_VALUE, own, values)
