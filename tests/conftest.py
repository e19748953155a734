"""Shared fixtures for strata tests."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from strata.geometry.elements import Element, ElementType
from strata.mesh.mesh import Mesh


def write_ascii_grid(
    path: Path,
    grid: np.ndarray,
    x0: float = 0.0,
    y0: float = 0.0,
    delta: float = 1.0,
    nodata: float | None = -9999,
    center: bool = False,
) -> Path:
    """Write ``grid`` (rows north to south) as an ESRI ASCII grid."""
    grid = np.asarray(grid, dtype=float)
    height, width = grid.shape
    if center:
        origin = f"xllcenter {x0 + delta / 2}\nyllcenter {y0 + delta / 2}\n"
    else:
        origin = f"xllcorner {x0}\nyllcorner {y0}\n"
    lines = [f"ncols {width}\n", f"nrows {height}\n", origin, f"cellsize {delta}\n"]
    if nodata is not None:
        lines.append(f"NODATA_value {nodata}\n")
    for row in grid:
        lines.append(" ".join(f"{v:g}" for v in row) + "\n")
    path.write_text("".join(lines))
    return path


@pytest.fixture
def unit_quad_mesh() -> Mesh:
    """Single unit quad at z = 0."""
    coords = [(0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 1, 0)]
    return Mesh("unit_quad", coords, [Element(ElementType.QUAD, (0, 1, 2, 3))])


@pytest.fixture
def two_triangle_mesh() -> Mesh:
    """Unit square split into two counter-clockwise triangles."""
    coords = [(0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 1, 0)]
    elements = [
        Element(ElementType.TRIANGLE, (0, 1, 2)),
        Element(ElementType.TRIANGLE, (0, 2, 3)),
    ]
    return Mesh("two_triangles", coords, elements)


@pytest.fixture
def grid_surface_mesh() -> Mesh:
    """3 x 2 quad surface covering [0.5, 3.5] x [0.5, 2.5] at z = 10."""
    xs = np.linspace(0.5, 3.5, 4)
    ys = np.linspace(0.5, 2.5, 3)
    coords = [(x, y, 10.0) for y in ys for x in xs]
    elements = []
    for j in range(2):
        for i in range(3):
            n0 = j * 4 + i
            elements.append(
                Element(ElementType.QUAD, (n0, n0 + 1, n0 + 5, n0 + 4))
            )
    return Mesh("grid", coords, elements)


@pytest.fixture
def mixed_surface_mesh() -> Mesh:
    """One quad, one triangle and one boundary line element."""
    coords = [(0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 1, 0), (2, 0, 0)]
    elements = [
        Element(ElementType.QUAD, (0, 1, 2, 3)),
        Element(ElementType.TRIANGLE, (1, 4, 2)),
        Element(ElementType.LINE, (0, 3)),
    ]
    return Mesh("mixed", coords, elements)


@pytest.fixture
def ascii_grid(tmp_path):
    """Factory writing an ASCII grid file into ``tmp_path``."""

    def _write(grid, name="dem.asc", **kwargs) -> Path:
        return write_ascii_grid(tmp_path / name, grid, **kwargs)

    return _write
