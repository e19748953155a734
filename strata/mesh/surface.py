"""Triangle and quad meshing of a domain polygon with gmsh."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np

from strata.exceptions import MeshGenerationError
from strata.geometry.elements import Element, ElementType
from strata.mesh.mesh import Mesh

if TYPE_CHECKING:
    from strata.geometry.polygon import Polygon

logger = logging.getLogger(__name__)

# gmsh element type ids of linear triangles and quadrangles
_GMSH_TYPES = {
    2: ElementType.TRIANGLE,
    3: ElementType.QUAD,
}


class SurfaceMesh:
    """2D mesh generator from a polygon boundary.

    Uses the gmsh Python API to mesh the polygon with triangles or, when
    ``quads`` is set, with recombined quadrilaterals. The result is a
    ``Mesh`` in the polygon's xy-plane at z = 0, ready for extrusion.

    Args:
        polygon: Domain boundary polygon.
        resolution: Target element size in polygon coordinate units.
        quads: Recombine triangles into quadrilaterals.

    Example:
        >>> from strata.geometry import Polygon
        >>> polygon = Polygon.from_bounds(0, 0, 100, 100)
        >>> mesh = SurfaceMesh(polygon, resolution=10.0).generate()
        >>> mesh.dimension
        2
    """

    def __init__(self, polygon: Polygon, resolution: float, quads: bool = False):
        if resolution <= 0:
            raise ValueError(f"Resolution must be positive, got {resolution}")
        self._polygon = polygon
        self._resolution = resolution
        self._quads = quads

    @property
    def polygon(self) -> Polygon:
        return self._polygon

    @property
    def resolution(self) -> float:
        return self._resolution

    def generate(self, output_path: str | Path | None = None) -> Mesh:
        """Generate the 2D mesh.

        Args:
            output_path: Optional path to also write the gmsh model to
                (format chosen by gmsh from the file extension).

        Returns:
            Surface mesh named "surface".

        Raises:
            MeshGenerationError: If mesh generation fails.
        """
        # Import gmsh here to allow module import without the gmsh library
        try:
            import gmsh
        except (ImportError, OSError) as e:
            raise MeshGenerationError(f"gmsh is not available: {e}") from e

        try:
            coords, elements = self._generate_mesh(gmsh, output_path)
        except Exception as e:
            raise MeshGenerationError(
                f"gmsh failed to mesh {self._polygon!r}: {e}"
            ) from e

        if not elements:
            raise MeshGenerationError("gmsh produced no surface elements")

        logger.info(
            "Generated surface mesh with %d nodes and %d elements",
            len(coords),
            len(elements),
        )
        return Mesh("surface", coords, elements)

    def _generate_mesh(
        self, gmsh, output_path: str | Path | None
    ) -> tuple[np.ndarray, list[Element]]:
        """Run gmsh and convert its nodes and 2D elements."""
        gmsh.initialize()

        try:
            # Keep gmsh quiet, progress goes through logging
            gmsh.option.setNumber("General.Terminal", 0)
            gmsh.model.add("strata_surface")

            points = [
                gmsh.model.geo.addPoint(x, y, 0, self._resolution)
                for x, y in self._polygon.coords
            ]
            n = len(points)
            lines = [
                gmsh.model.geo.addLine(points[i], points[(i + 1) % n])
                for i in range(n)
            ]
            curve_loop = gmsh.model.geo.addCurveLoop(lines)
            surface = gmsh.model.geo.addPlaneSurface([curve_loop])

            if self._quads:
                gmsh.model.geo.mesh.setRecombine(2, surface)

            gmsh.model.geo.synchronize()
            gmsh.model.mesh.generate(2)

            if output_path is not None:
                gmsh.write(str(output_path))

            node_tags, node_coords, _ = gmsh.model.mesh.getNodes()
            coords = np.asarray(node_coords, dtype=float).reshape(-1, 3)
            index_of = {int(tag): i for i, tag in enumerate(node_tags)}

            elements = []
            elem_types, _, elem_node_tags = gmsh.model.mesh.getElements(dim=2)
            for gmsh_type, tags in zip(elem_types, elem_node_tags):
                element_type = _GMSH_TYPES.get(int(gmsh_type))
                if element_type is None:
                    logger.warning("Ignoring gmsh elements of type %d", gmsh_type)
                    continue
                n_nodes = 3 if element_type is ElementType.TRIANGLE else 4
                for conn in np.asarray(tags, dtype=int).reshape(-1, n_nodes):
                    elements.append(
                        Element(element_type, [index_of[int(t)] for t in conn])
                    )

            return coords, elements

        finally:
            gmsh.finalize()


def generate_surface_mesh(
    polygon: Polygon,
    resolution: float,
    quads: bool = False,
) -> Mesh:
    """Convenience function to generate a 2D surface mesh.

    Args:
        polygon: Domain boundary polygon.
        resolution: Target element size.
        quads: Recombine triangles into quadrilaterals.

    Returns:
        Surface mesh.
    """
    return SurfaceMesh(polygon, resolution, quads=quads).generate()
