"""Operations that derive a reduced mesh from an existing one."""

from __future__ import annotations

import logging
from typing import Iterable

import numpy as np
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components
from scipy.spatial import cKDTree

from strata.geometry.elements import Element
from strata.mesh.mesh import Mesh

logger = logging.getLogger(__name__)


class MeshEditor:
    """Node removal and node merging.

    Both operations leave the input mesh untouched and return a new mesh
    with consecutively renumbered nodes.
    """

    def remove_nodes(self, mesh: Mesh, node_indices: Iterable[int]) -> Mesh:
        """Remove nodes and every element referencing one of them.

        Args:
            mesh: Source mesh.
            node_indices: Indices of the nodes to remove.

        Returns:
            New mesh with the remaining nodes and elements.
        """
        remove = np.zeros(mesh.n_nodes, dtype=bool)
        remove[np.fromiter(node_indices, dtype=int)] = True
        keep = ~remove

        mapping = np.full(mesh.n_nodes, -1, dtype=int)
        mapping[keep] = np.arange(np.count_nonzero(keep))

        elements = []
        for element in mesh.elements:
            nodes = mapping[list(element.nodes)]
            if np.any(nodes < 0):
                continue
            elements.append(Element(element.element_type, nodes, element.value))

        logger.info(
            "Removed %d nodes and %d elements from mesh %r",
            np.count_nonzero(remove),
            mesh.n_elements - len(elements),
            mesh.name,
        )
        return Mesh(mesh.name, mesh.coords[keep], elements)

    def collapse_nodes(self, mesh: Mesh, tolerance: float = 1e-10) -> Mesh:
        """Merge nodes closer than ``tolerance`` to each other.

        Elements that lose a node to the merge are revised: an element with
        exactly one collapsed edge becomes the corresponding lower-dimension
        element, any other collapsed element is dropped.

        Args:
            mesh: Source mesh.
            tolerance: Maximum distance between merged nodes.

        Returns:
            New mesh without duplicate nodes.
        """
        n_nodes = mesh.n_nodes
        if n_nodes == 0:
            return mesh.copy()

        pairs = cKDTree(mesh.coords).query_pairs(tolerance, output_type="ndarray")
        pairs = pairs.reshape(-1, 2)
        graph = coo_matrix(
            (np.ones(len(pairs)), (pairs[:, 0], pairs[:, 1])),
            shape=(n_nodes, n_nodes),
        )
        n_clusters, labels = connected_components(graph, directed=False)

        # Every cluster collapses onto its smallest node index
        root_of_cluster = np.full(n_clusters, n_nodes)
        np.minimum.at(root_of_cluster, labels, np.arange(n_nodes))
        roots = root_of_cluster[labels]

        keep = roots == np.arange(n_nodes)
        mapping = np.cumsum(keep) - 1
        index_of = mapping[roots]

        elements = []
        for element in mesh.elements:
            merged = Element(
                element.element_type, index_of[list(element.nodes)], element.value
            )
            if merged.has_distinct_nodes():
                elements.append(merged)
                continue
            revised = merged.revise()
            if revised is None:
                logger.debug("Dropping collapsed element %r", element)
                continue
            logger.debug("Reduced %r to %r", element, revised)
            elements.append(revised)

        logger.info(
            "Merged %d nodes of mesh %r, %d elements remain",
            mesh.n_nodes - np.count_nonzero(keep),
            mesh.name,
            len(elements),
        )
        return Mesh(mesh.name, mesh.coords[keep], elements)
