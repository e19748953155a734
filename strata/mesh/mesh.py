"""Node and Mesh containers."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

import numpy as np

from strata.exceptions import MeshError
from strata.geometry.elements import Element

logger = logging.getLogger(__name__)


class Node:
    """A mesh node.

    The node does not hold its own coordinates; it reads and writes one row
    of the coordinate array owned by its mesh.

    Args:
        coords: Coordinate array of the owning mesh, shape (n_nodes, 3).
        index: Row of this node in ``coords``.
        node_id: Stable node identifier.
    """

    __slots__ = ("_coords", "_index", "id")

    def __init__(self, coords: np.ndarray, index: int, node_id: int):
        self._coords = coords
        self._index = index
        self.id = node_id

    @property
    def index(self) -> int:
        return self._index

    @property
    def x(self) -> float:
        return float(self._coords[self._index, 0])

    @x.setter
    def x(self, value: float) -> None:
        self._coords[self._index, 0] = value

    @property
    def y(self) -> float:
        return float(self._coords[self._index, 1])

    @y.setter
    def y(self, value: float) -> None:
        self._coords[self._index, 1] = value

    @property
    def z(self) -> float:
        return float(self._coords[self._index, 2])

    @z.setter
    def z(self, value: float) -> None:
        self._coords[self._index, 2] = value

    @property
    def coords(self) -> np.ndarray:
        """Copy of the node coordinates as array of shape (3,)."""
        return self._coords[self._index].copy()

    def update_coordinates(self, x: float, y: float, z: float) -> None:
        self._coords[self._index] = (x, y, z)

    def __repr__(self) -> str:
        return f"Node(id={self.id}, x={self.x}, y={self.y}, z={self.z})"


class Mesh:
    """Node and element set of one geometric model.

    The mesh owns a coordinate array with one row per node; elements refer
    to nodes by row index. On construction the content (length, area or
    volume) of every element is computed and neighbouring elements of equal
    dimension are linked through their shared sides.

    Args:
        name: Mesh name.
        coords: Node coordinates, shape (n_nodes, 3). Arrays of shape
            (n_nodes, 2) are padded with z = 0.
        elements: Elements referencing rows of ``coords``.
        node_ids: Optional node identifiers. Defaults to the row indices.

    Raises:
        MeshError: If an element references a missing node, repeats a node,
            or the node identifiers are not unique.

    Example:
        >>> coords = [(0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 1, 0)]
        >>> quad = Element(ElementType.QUAD, (0, 1, 2, 3))
        >>> mesh = Mesh("square", coords, [quad])
        >>> mesh.dimension
        2
    """

    def __init__(
        self,
        name: str,
        coords: np.ndarray | Sequence[Sequence[float]],
        elements: Iterable[Element],
        node_ids: Sequence[int] | None = None,
    ):
        self.name = name

        coords = np.array(coords, dtype=float)
        if coords.size == 0:
            coords = coords.reshape(0, 3)
        if coords.ndim != 2 or coords.shape[1] not in (2, 3):
            raise MeshError("coords must have shape (n_nodes, 2) or (n_nodes, 3)")
        if coords.shape[1] == 2:
            coords = np.column_stack([coords, np.zeros(len(coords))])
        self._coords = coords

        if node_ids is None:
            self._node_ids = np.arange(len(coords))
        else:
            self._node_ids = np.asarray(node_ids, dtype=int)
            if len(self._node_ids) != len(coords):
                raise MeshError(
                    f"node_ids length ({len(self._node_ids)}) must match "
                    f"number of nodes ({len(coords)})"
                )
            if len(np.unique(self._node_ids)) != len(self._node_ids):
                raise MeshError("node_ids must be unique")
        self._id_to_index = {
            int(node_id): i for i, node_id in enumerate(self._node_ids)
        }

        self._elements = list(elements)
        self._nodes = [
            Node(self._coords, i, int(node_id))
            for i, node_id in enumerate(self._node_ids)
        ]

        self._validate_elements()
        for element in self._elements:
            element.compute_content(self._coords)
        self._set_element_neighbors()
        logger.debug(
            "Built mesh %r with %d nodes and %d elements",
            name,
            len(self._coords),
            len(self._elements),
        )

    def _validate_elements(self) -> None:
        n_nodes = len(self._coords)
        for i, element in enumerate(self._elements):
            if any(n < 0 or n >= n_nodes for n in element.nodes):
                raise MeshError(
                    f"Element {i} references a node outside [0, {n_nodes})"
                )
            if not element.has_distinct_nodes():
                raise MeshError(
                    f"Element {i} ({element.element_type.label}) has repeated "
                    f"nodes {element.nodes}"
                )

    def _set_element_neighbors(self) -> None:
        """Link elements of equal dimension that share a side."""
        sides: dict[tuple, tuple[int, int]] = {}
        for i, element in enumerate(self._elements):
            element.neighbors = [None] * element.neighbor_count
            for side_idx, local in enumerate(element.topology.sides):
                key = (
                    element.dimension,
                    tuple(sorted(element.nodes[j] for j in local)),
                )
                other = sides.pop(key, None)
                if other is None:
                    sides[key] = (i, side_idx)
                    continue
                j, other_side = other
                element.neighbors[side_idx] = j
                self._elements[j].neighbors[other_side] = i

    @property
    def coords(self) -> np.ndarray:
        """Node coordinate array, shape (n_nodes, 3). Writes update the mesh."""
        return self._coords

    @property
    def node_ids(self) -> np.ndarray:
        return self._node_ids.copy()

    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes)

    @property
    def elements(self) -> list[Element]:
        return list(self._elements)

    @property
    def n_nodes(self) -> int:
        return len(self._coords)

    @property
    def n_elements(self) -> int:
        return len(self._elements)

    @property
    def dimension(self) -> int:
        """Largest element dimension in the mesh (0 if it has no elements)."""
        return max((e.dimension for e in self._elements), default=0)

    @property
    def bounds(self) -> tuple[np.ndarray, np.ndarray]:
        """Return (min, max) corners of the node bounding box."""
        if self.n_nodes == 0:
            raise MeshError("Mesh has no nodes")
        return self._coords.min(axis=0), self._coords.max(axis=0)

    def get_node(self, index: int) -> Node:
        return self._nodes[index]

    def get_node_by_id(self, node_id: int) -> Node:
        try:
            return self._nodes[self._id_to_index[node_id]]
        except KeyError:
            raise MeshError(
                f"No node with id {node_id} in mesh {self.name!r}"
            ) from None

    def get_element(self, index: int) -> Element:
        return self._elements[index]

    def element_coords(self, index: int) -> np.ndarray:
        """Coordinates of the nodes of element ``index``, shape (k, 3)."""
        return self._coords[list(self._elements[index].nodes)]

    def copy(self, name: str | None = None) -> Mesh:
        """Return an independent copy with its own coordinates and elements."""
        elements = [
            Element(e.element_type, e.nodes, e.value) for e in self._elements
        ]
        return Mesh(
            name or self.name,
            self._coords.copy(),
            elements,
            node_ids=self._node_ids.copy(),
        )

    def __repr__(self) -> str:
        return (
            f"Mesh(name={self.name!r}, n_nodes={self.n_nodes}, "
            f"n_elements={self.n_elements}, dimension={self.dimension})"
        )
