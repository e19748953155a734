r"""Mesh element types, per-type topology tables and geometric content.

Elements form a closed set of variants distinguished by an ``ElementType``
discriminator. Everything that depends on the variant (node count, edge and
face tables, the content formula) is looked up in module-level tables rather
than spread over subclasses.

Node numbering per type::

    LINE         0-----1

    TRIANGLE         2          QUAD      3-----2
                    / \                   |     |
                   /   \                  |     |
                  0-----1                 0-----1

    PRISM        nodes 0, 1, 2 form one triangle, 3, 4, 5 the opposite one
                 (node i + 3 lies above or below node i)

    HEXAHEDRON   nodes 0..3 form one quad, 4..7 the opposite one
                 (node i + 4 lies above or below node i)

Elements reference nodes by their integer index in the owning mesh's
coordinate array, so a cloned element shares its node references with the
source without holding on to any coordinate data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Sequence

import numpy as np

from strata.exceptions import ElementError

logger = logging.getLogger(__name__)


class ElementType(IntEnum):
    """Discriminator of the supported element variants."""

    LINE = 1
    TRIANGLE = 2
    QUAD = 3
    TETRAHEDRON = 4
    HEXAHEDRON = 5
    PRISM = 6

    @property
    def label(self) -> str:
        """Lower-case name used in diagnostics."""
        return self.name.lower()


@dataclass(frozen=True)
class ElementTopology:
    """Fixed topology of one element type.

    Args:
        n_nodes: Number of nodes.
        dimension: Topological dimension (1, 2 or 3).
        edges: Node-index pairs of each edge.
        faces: Node-index tuples of each face (3D types only).
    """

    n_nodes: int
    dimension: int
    edges: tuple[tuple[int, int], ...]
    faces: tuple[tuple[int, ...], ...] = ()

    @property
    def n_edges(self) -> int:
        return len(self.edges)

    @property
    def n_faces(self) -> int:
        return len(self.faces)

    @property
    def sides(self) -> tuple[tuple[int, ...], ...]:
        """Node-index tuples shared with a neighbour of the same dimension."""
        if self.dimension == 3:
            return self.faces
        if self.dimension == 2:
            return self.edges
        return tuple((i,) for i in range(self.n_nodes))

    @property
    def n_neighbors(self) -> int:
        return len(self.sides)


TOPOLOGY: dict[ElementType, ElementTopology] = {
    ElementType.LINE: ElementTopology(
        n_nodes=2,
        dimension=1,
        edges=((0, 1),),
    ),
    ElementType.TRIANGLE: ElementTopology(
        n_nodes=3,
        dimension=2,
        edges=((0, 1), (1, 2), (2, 0)),
    ),
    ElementType.QUAD: ElementTopology(
        n_nodes=4,
        dimension=2,
        edges=((0, 1), (1, 2), (2, 3), (0, 3)),
    ),
    ElementType.TETRAHEDRON: ElementTopology(
        n_nodes=4,
        dimension=3,
        edges=((0, 1), (1, 2), (0, 2), (0, 3), (1, 3), (2, 3)),
        faces=((0, 2, 1), (0, 1, 3), (1, 2, 3), (2, 0, 3)),
    ),
    ElementType.HEXAHEDRON: ElementTopology(
        n_nodes=8,
        dimension=3,
        edges=(
            (0, 1), (1, 2), (2, 3), (0, 3),
            (4, 5), (5, 6), (6, 7), (4, 7),
            (0, 4), (1, 5), (2, 6), (3, 7),
        ),
        faces=(
            (0, 3, 2, 1),
            (0, 1, 5, 4),
            (1, 2, 6, 5),
            (2, 3, 7, 6),
            (3, 0, 4, 7),
            (4, 5, 6, 7),
        ),
    ),
    ElementType.PRISM: ElementTopology(
        n_nodes=6,
        dimension=3,
        edges=(
            (0, 1), (1, 2), (0, 2),
            (0, 3), (1, 4), (2, 5),
            (3, 4), (4, 5), (3, 5),
        ),
        faces=(
            (0, 2, 1),
            (0, 1, 4, 3),
            (1, 2, 5, 4),
            (2, 0, 3, 5),
            (3, 4, 5),
        ),
    ),
}

# Cell type ids of the VTK unstructured grid format.
VTK_CELL_TYPES: dict[ElementType, int] = {
    ElementType.LINE: 3,
    ElementType.TRIANGLE: 5,
    ElementType.QUAD: 9,
    ElementType.TETRAHEDRON: 10,
    ElementType.HEXAHEDRON: 12,
    ElementType.PRISM: 13,
}

# Lower-dimension type produced when exactly one edge has collapsed.
_REDUCTIONS: dict[ElementType, ElementType] = {
    ElementType.TRIANGLE: ElementType.LINE,
    ElementType.QUAD: ElementType.TRIANGLE,
    ElementType.TETRAHEDRON: ElementType.TRIANGLE,
}

_PRISM_TETRAHEDRA = ((0, 1, 2, 3), (1, 4, 2, 3), (2, 4, 5, 3))
_HEX_TETRAHEDRA = (
    (4, 7, 5, 0),
    (5, 3, 1, 0),
    (5, 7, 3, 0),
    (5, 7, 6, 2),
    (1, 3, 5, 2),
    (3, 7, 5, 2),
)


def element_type_from_vtk(vtk_id: int) -> ElementType:
    """Return the element type for a VTK cell type id.

    Raises:
        ElementError: If the id has no matching element type.
    """
    for element_type, type_id in VTK_CELL_TYPES.items():
        if type_id == vtk_id:
            return element_type
    raise ElementError(f"Unsupported VTK cell type: {vtk_id}")


def triangle_area(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> float:
    """Area of a triangle as half the parallelogram spanned by two edges."""
    return 0.5 * float(np.linalg.norm(np.cross(b - a, c - a)))


def tetrahedron_volume(
    a: np.ndarray, b: np.ndarray, c: np.ndarray, d: np.ndarray
) -> float:
    """Volume of a tetrahedron from the scalar triple product."""
    return abs(float(np.dot(a - d, np.cross(b - d, c - d)))) / 6.0


def _line_length(pts: np.ndarray) -> float:
    return float(np.linalg.norm(pts[1] - pts[0]))


def _triangle_content(pts: np.ndarray) -> float:
    return triangle_area(pts[0], pts[1], pts[2])


def _quad_content(pts: np.ndarray) -> float:
    return triangle_area(pts[0], pts[1], pts[2]) + triangle_area(
        pts[0], pts[2], pts[3]
    )


def _tetrahedron_content(pts: np.ndarray) -> float:
    return tetrahedron_volume(pts[0], pts[1], pts[2], pts[3])


def _prism_content(pts: np.ndarray) -> float:
    return sum(tetrahedron_volume(*pts[list(t)]) for t in _PRISM_TETRAHEDRA)


def _hexahedron_content(pts: np.ndarray) -> float:
    return sum(tetrahedron_volume(*pts[list(t)]) for t in _HEX_TETRAHEDRA)


_CONTENT = {
    ElementType.LINE: _line_length,
    ElementType.TRIANGLE: _triangle_content,
    ElementType.QUAD: _quad_content,
    ElementType.TETRAHEDRON: _tetrahedron_content,
    ElementType.HEXAHEDRON: _hexahedron_content,
    ElementType.PRISM: _prism_content,
}


class Element:
    """A mesh element of any supported type.

    Args:
        element_type: Element variant.
        nodes: Indices of the element's nodes in the owning mesh, ordered as
            documented for the element type.
        value: Material or region tag (non-negative).

    Raises:
        ElementError: If the number of nodes does not match the element type
            or the material tag is negative.

    Example:
        >>> tri = Element(ElementType.TRIANGLE, (0, 1, 2), value=3)
        >>> tri.edge_count
        3
        >>> tri.get_edge(1).nodes
        (1, 2)
    """

    __slots__ = ("_type", "_nodes", "value", "neighbors", "_content")

    def __init__(
        self,
        element_type: ElementType | int,
        nodes: Sequence[int],
        value: int = 0,
    ):
        self._type = ElementType(element_type)
        self._nodes = tuple(int(n) for n in nodes)

        topology = TOPOLOGY[self._type]
        if len(self._nodes) != topology.n_nodes:
            raise ElementError(
                f"{self._type.label} requires {topology.n_nodes} nodes, "
                f"got {len(self._nodes)}"
            )
        if value < 0:
            raise ElementError(f"Material value must be non-negative, got {value}")

        self.value = int(value)
        # One slot per side; None marks a side on the mesh boundary.
        self.neighbors: list[int | None] = [None] * topology.n_neighbors
        self._content: float | None = None

    @property
    def element_type(self) -> ElementType:
        return self._type

    @property
    def topology(self) -> ElementTopology:
        return TOPOLOGY[self._type]

    @property
    def nodes(self) -> tuple[int, ...]:
        """Node indices in element order."""
        return self._nodes

    @property
    def dimension(self) -> int:
        return self.topology.dimension

    @property
    def node_count(self) -> int:
        return self.topology.n_nodes

    @property
    def edge_count(self) -> int:
        return self.topology.n_edges

    @property
    def face_count(self) -> int:
        """Number of faces; zero for 1D and 2D elements."""
        return self.topology.n_faces

    @property
    def neighbor_count(self) -> int:
        return self.topology.n_neighbors

    @property
    def is_face(self) -> bool:
        return self.dimension == 2

    @property
    def is_cell(self) -> bool:
        return self.dimension == 3

    @property
    def vtk_cell_type(self) -> int:
        return VTK_CELL_TYPES[self._type]

    @property
    def content(self) -> float:
        """Length, area or volume of the element.

        Raises:
            ElementError: If the content has not been computed yet.
        """
        if self._content is None:
            raise ElementError(
                "Element content is unknown; call compute_content() or add "
                "the element to a Mesh first"
            )
        return self._content

    @property
    def area(self) -> float:
        """Area of a 2D element."""
        if not self.is_face:
            raise ElementError(f"{self._type.label} has no area")
        return self.content

    @property
    def volume(self) -> float:
        """Volume of a 3D element."""
        if not self.is_cell:
            raise ElementError(f"{self._type.label} has no volume")
        return self.content

    def compute_content(self, coords: np.ndarray) -> float:
        """Compute and cache the element content.

        Args:
            coords: Node coordinate array of the owning mesh, shape (n, 3).

        Returns:
            Length, area or volume depending on the element dimension.
        """
        pts = np.asarray(coords, dtype=float)[list(self._nodes)]
        self._content = _CONTENT[self._type](pts)
        return self._content

    def has_distinct_nodes(self) -> bool:
        return len(set(self._nodes)) == len(self._nodes)

    def get_edge(self, i: int) -> Element:
        """Return edge ``i`` as a new line element over the edge's nodes."""
        if not 0 <= i < self.edge_count:
            raise IndexError(
                f"Edge index {i} out of range for {self._type.label}"
            )
        a, b = self.topology.edges[i]
        return Element(ElementType.LINE, (self._nodes[a], self._nodes[b]), self.value)

    def get_face(self, i: int) -> Element:
        """Return face ``i`` as a new element.

        The faces of a 2D element are its edges. Faces of 3D elements are
        returned as triangles or quads.
        """
        if self.dimension < 3:
            return self.get_edge(i)
        if not 0 <= i < self.face_count:
            raise IndexError(
                f"Face index {i} out of range for {self._type.label}"
            )
        local = self.topology.faces[i]
        face_type = ElementType.TRIANGLE if len(local) == 3 else ElementType.QUAD
        return Element(face_type, [self._nodes[j] for j in local], self.value)

    def is_on_surface(self) -> bool:
        """Return True if at least one side has no neighbouring element."""
        return any(n is None for n in self.neighbors)

    def surface_normal(self, coords: np.ndarray) -> np.ndarray:
        """Unit normal of a 2D element following the node winding.

        Args:
            coords: Node coordinate array of the owning mesh.
        """
        if not self.is_face:
            raise ElementError(f"{self._type.label} has no surface normal")
        pts = np.asarray(coords, dtype=float)[list(self._nodes[:3])]
        normal = np.cross(pts[1] - pts[0], pts[2] - pts[1])
        length = np.linalg.norm(normal)
        if length == 0.0:
            raise ElementError("Degenerate element has no surface normal")
        return normal / length

    def clone(self) -> Element:
        """Return a copy sharing the same node references."""
        copy = Element(self._type, self._nodes, self.value)
        copy.neighbors = list(self.neighbors)
        copy._content = self._content
        return copy

    def revise(self) -> Element | None:
        """Reduce the element after some of its nodes have been collapsed.

        Intended to be called once two or more nodes of the element share the
        same index. If exactly one edge has degenerated and the element type
        has a lower-dimension counterpart, that element is built from the
        remaining distinct nodes in their original order.

        Returns:
            The reduced element, or None if the collapse pattern does not map
            to a single well-formed reduction.
        """
        collapsed = [
            (a, b)
            for a, b in self.topology.edges
            if self._nodes[a] == self._nodes[b]
        ]
        if len(collapsed) != 1:
            return None

        target = _REDUCTIONS.get(self._type)
        if target is None:
            logger.debug(
                "No reduction for %s with one collapsed edge", self._type.label
            )
            return None

        distinct = tuple(dict.fromkeys(self._nodes))
        if len(distinct) != TOPOLOGY[target].n_nodes:
            return None
        return Element(target, distinct, self.value)

    def __repr__(self) -> str:
        return (
            f"Element(type={self._type.label}, nodes={self._nodes}, "
            f"value={self.value})"
        )
