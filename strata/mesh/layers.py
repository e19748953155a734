"""Layered extrusion of surface meshes and mapping of raster elevation onto layers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

import numpy as np

from strata.exceptions import DataLoadError
from strata.fields.interpolation import RasterInterpolator
from strata.geometry.elements import Element, ElementType
from strata.io.readers import Raster, load_raster
from strata.mesh.editor import MeshEditor
from strata.mesh.extrusion import ExtrusionConfig
from strata.mesh.mesh import Mesh

logger = logging.getLogger(__name__)

DEFAULT_MESH_NAME = "NewMesh"

# Volumetric element built from each supported surface element type
_EXTRUDED_TYPES = {
    ElementType.TRIANGLE: ElementType.PRISM,
    ElementType.QUAD: ElementType.HEXAHEDRON,
}


class MappingStatus(Enum):
    """Outcome of ``LayerMapper.layer_mapping``."""

    SUCCESS = "success"
    PRECONDITION_FAILED = "precondition_failed"
    RASTER_LOAD_FAILED = "raster_load_failed"
    EXTENT_MISMATCH = "extent_mismatch"


@dataclass
class MappingResult:
    """Result of mapping raster elevation onto a mesh layer.

    Attributes:
        status: Outcome of the mapping.
        mesh: The mapped mesh. This is a reduced copy when NoData nodes were
            removed, otherwise the input mesh itself.
        nodata_nodes: Indices (in the input mesh) of target-layer nodes that
            fell on NoData cells.
    """

    status: MappingStatus
    mesh: Mesh | None = None
    nodata_nodes: list[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is MappingStatus.SUCCESS


class LayerMapper:
    """Build layered 3D meshes from surface meshes and fit layers to DEMs.

    All methods are static; the class only groups the algorithms.

    Example:
        >>> volume = LayerMapper.create_layers(surface, n_layers=5, thickness=10.0)
        >>> result = LayerMapper.layer_mapping(volume, "dem.asc", 5, 0)
        >>> result.ok
        True
    """

    @staticmethod
    def create_layers(mesh: Mesh, n_layers: int, thickness: float) -> Mesh | None:
        """Extrude a 2D mesh downwards into ``n_layers`` layers of equal thickness.

        Args:
            mesh: 2D surface mesh.
            n_layers: Number of layers, at least 1.
            thickness: Thickness of each layer, positive.

        Returns:
            New mesh named "NewMesh", or None if the input is not a 2D mesh
            or the layer parameters are invalid.
        """
        if n_layers < 1 or thickness <= 0:
            logger.error(
                "create_layers() requires n_layers > 0 and thickness > 0 "
                "(got n_layers=%s, thickness=%s)",
                n_layers,
                thickness,
            )
            return None
        return LayerMapper.extrude(mesh, ExtrusionConfig.uniform(thickness, n_layers))

    @staticmethod
    def extrude(mesh: Mesh, config: ExtrusionConfig) -> Mesh | None:
        """Extrude a 2D mesh downwards following a layer configuration.

        Node copies of layer ``k`` are shifted by ``-config.layer_depths[k]``
        in z and numbered ``k * n_nodes + i``. Triangles become prisms and
        quads become hexahedra; the first ``n`` nodes of each new element lie
        on the upper layer. Elements of layer ``k`` (counted from 1) get the
        material value ``n_layers - k``. Surface elements of other types are
        skipped.

        Args:
            mesh: 2D surface mesh. It is not modified.
            config: Layer configuration.

        Returns:
            New mesh named "NewMesh", or None if ``mesh`` is not 2D.
        """
        if mesh is None or mesh.dimension != 2:
            logger.error(
                "extrude() requires a 2D mesh as input (got dimension %s)",
                None if mesh is None else mesh.dimension,
            )
            return None

        n_layers = config.n_layers
        n_nodes = mesh.n_nodes
        depths = config.layer_depths

        coords = np.concatenate(
            [mesh.coords - np.array([0.0, 0.0, depth]) for depth in depths]
        )

        surface_elements = []
        for i, element in enumerate(mesh.elements):
            if element.element_type in _EXTRUDED_TYPES:
                surface_elements.append(element)
            else:
                logger.warning(
                    "Skipping element %d of type %r, only triangles and quads "
                    "can be extruded",
                    i,
                    element.element_type.label,
                )

        elements = []
        for layer in range(1, n_layers + 1):
            upper_offset = (layer - 1) * n_nodes
            value = n_layers - layer
            for element in surface_elements:
                upper = [n + upper_offset for n in element.nodes]
                lower = [n + n_nodes for n in upper]
                elements.append(
                    Element(
                        _EXTRUDED_TYPES[element.element_type], upper + lower, value
                    )
                )

        logger.info(
            "Extruded mesh %r into %d layers: %d nodes, %d elements",
            mesh.name,
            n_layers,
            len(coords),
            len(elements),
        )
        return Mesh(DEFAULT_MESH_NAME, coords, elements)

    @staticmethod
    def layer_mapping(
        mesh: Mesh,
        raster_path: str | Path,
        n_layers: int,
        layer_index: int,
        remove_nodata: bool = False,
        loader: Callable[[str | Path], Raster] = load_raster,
        editor: MeshEditor | None = None,
    ) -> MappingResult:
        """Set the z-coordinates of one mesh layer from a DEM.

        Nodes of layer ``layer_index`` (0 is the top) get the elevation
        interpolated from the raster. Nodes over NoData cells are set to
        z = 0 and reported in the result. For a single-layer surface mesh
        (``n_layers == 0``) the NoData nodes can be removed, provided enough
        of the mesh survives.

        Args:
            mesh: Layered mesh as produced by ``create_layers``. Node
                coordinates are updated in place.
            raster_path: Path of the DEM file.
            n_layers: Number of layers of the mesh (0 for a surface mesh).
            layer_index: Layer to map, 0 <= layer_index <= n_layers.
            remove_nodata: Remove nodes over NoData cells (surface meshes only).
            loader: Callable returning a Raster for a path and raising
                DataLoadError on failure.
            editor: Mesh editor used for node removal.

        Returns:
            MappingResult with the outcome, the resulting mesh and the
            NoData node indices.
        """
        if mesh is None:
            logger.error("layer_mapping() was called without a mesh")
            return MappingResult(MappingStatus.PRECONDITION_FAILED)
        if layer_index < 0 or n_layers < 0 or layer_index > n_layers:
            logger.error(
                "Mesh has only %d layers, cannot assign layer %d",
                n_layers,
                layer_index,
            )
            return MappingResult(MappingStatus.PRECONDITION_FAILED, mesh)

        try:
            raster = loader(raster_path)
        except DataLoadError as e:
            logger.error("Could not load raster %s: %s", raster_path, e)
            return MappingResult(MappingStatus.RASTER_LOAD_FAILED, mesh)
        if raster is None:
            logger.error("Could not load raster %s", raster_path)
            return MappingResult(MappingStatus.RASTER_LOAD_FAILED, mesh)

        with raster:
            if not LayerMapper.mesh_fits_image(
                mesh, raster.x_extent, raster.y_extent
            ):
                return MappingResult(MappingStatus.EXTENT_MISMATCH, mesh)

            n_per_layer = mesh.n_nodes // (n_layers + 1)
            first = layer_index * n_per_layer
            last = first + n_per_layer

            coords = mesh.coords
            values, nodata = RasterInterpolator(raster).interpolate(
                coords[first:last, :2]
            )
            coords[first:last, 2] = values
            nodata_nodes = [int(i) for i in np.flatnonzero(nodata) + first]

        if nodata_nodes:
            logger.info(
                "%d nodes of layer %d lie on NoData cells and were set to z = 0",
                len(nodata_nodes),
                layer_index,
            )

        result_mesh = mesh
        if remove_nodata and nodata_nodes:
            if n_layers == 0:
                result_mesh = LayerMapper._remove_nodata_nodes(
                    mesh, nodata_nodes, editor or MeshEditor()
                )
            else:
                logger.warning(
                    "NoData nodes are only removed from single-layer surface "
                    "meshes; keeping all nodes of the %d-layer mesh",
                    n_layers,
                )

        return MappingResult(MappingStatus.SUCCESS, result_mesh, nodata_nodes)

    @staticmethod
    def _remove_nodata_nodes(
        mesh: Mesh, nodata_nodes: list[int], editor: MeshEditor
    ) -> Mesh:
        if len(nodata_nodes) >= mesh.n_nodes - 2:
            logger.warning("Too many NoData values, keeping the original mesh")
            return mesh

        logger.warning("Removing %d mesh nodes at NoData values", len(nodata_nodes))
        reduced = editor.remove_nodes(mesh, nodata_nodes)
        if reduced.n_elements == 0:
            logger.warning(
                "Too many NoData values, no elements would remain; keeping "
                "the original mesh"
            )
            return mesh
        return reduced

    @staticmethod
    def mesh_fits_image(
        mesh: Mesh,
        x_extent: tuple[float, float],
        y_extent: tuple[float, float],
    ) -> bool:
        """Return True if all mesh nodes lie within the raster extent.

        Args:
            mesh: Mesh to check.
            x_extent: (xmin, xmax) of the raster.
            y_extent: (ymin, ymax) of the raster.
        """
        if mesh.n_nodes == 0:
            return True

        coords = mesh.coords
        x_min, x_max = coords[:, 0].min(), coords[:, 0].max()
        y_min, y_max = coords[:, 1].min(), coords[:, 1].max()

        if (
            x_min < x_extent[0]
            or x_max > x_extent[1]
            or y_min < y_extent[0]
            or y_max > y_extent[1]
        ):
            logger.warning(
                "Mesh %r (x: [%g, %g], y: [%g, %g]) does not fit into raster "
                "(x: [%g, %g], y: [%g, %g])",
                mesh.name,
                x_min,
                x_max,
                y_min,
                y_max,
                *x_extent,
                *y_extent,
            )
            return False
        return True
