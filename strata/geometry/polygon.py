"""Domain boundary polygon for surface mesh generation."""

from __future__ import annotations

from typing import Sequence

import numpy as np
from shapely.geometry import Polygon as ShapelyPolygon
from shapely.geometry import box
from shapely.geometry.polygon import orient
from shapely.validation import make_valid

from strata.exceptions import PolygonError


class Polygon:
    """Outline of the area to mesh.

    A thin layer over ``shapely.geometry.Polygon``. Self-intersecting input
    is repaired when the repair gives a single polygon, and the exterior ring
    is kept counter-clockwise so generated surface elements wind the same way.

    Args:
        coords: Boundary vertices as (x, y) pairs. Repeating the first vertex
            at the end is allowed but not needed.

    Raises:
        PolygonError: On fewer than 3 vertices, zero area, or geometry that
            cannot be repaired into one polygon.
    """

    def __init__(self, coords: Sequence[tuple[float, float]]):
        if len(coords) < 3:
            raise PolygonError(
                f"Polygon needs at least 3 vertices, got {len(coords)}"
            )

        shape = ShapelyPolygon(list(coords))
        if not shape.is_valid:
            shape = make_valid(shape)
            # A bow tie comes back as a MultiPolygon
            if shape.geom_type != "Polygon" or not shape.is_valid:
                raise PolygonError(
                    f"Cannot repair polygon, repair gave a {shape.geom_type}"
                )
        if shape.area == 0.0:
            raise PolygonError("Polygon has zero area")

        self._polygon = orient(shape, sign=1.0)

    @classmethod
    def from_shapely(cls, polygon: ShapelyPolygon) -> Polygon:
        """Wrap the exterior ring of a shapely polygon (holes are dropped)."""
        return cls(polygon.exterior.coords[:-1])

    @classmethod
    def from_bounds(
        cls, xmin: float, ymin: float, xmax: float, ymax: float
    ) -> Polygon:
        return cls.from_shapely(box(xmin, ymin, xmax, ymax))

    @property
    def coords(self) -> list[tuple[float, float]]:
        """Open ring of (x, y) vertices, counter-clockwise."""
        return [(c[0], c[1]) for c in self._polygon.exterior.coords[:-1]]

    @property
    def coords_array(self) -> np.ndarray:
        return np.asarray(self.coords, dtype=float).reshape(-1, 2)

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """(xmin, ymin, xmax, ymax)"""
        return tuple(self._polygon.bounds)

    @property
    def area(self) -> float:
        return self._polygon.area

    @property
    def n_vertices(self) -> int:
        return len(self._polygon.exterior.coords) - 1

    @property
    def shapely(self) -> ShapelyPolygon:
        return self._polygon

    def __repr__(self) -> str:
        return f"Polygon(n_vertices={self.n_vertices}, bounds={self.bounds})"
