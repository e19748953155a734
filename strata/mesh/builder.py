"""High-level MeshBuilder API for layered, DEM-fitted mesh generation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import numpy as np

from strata.exceptions import MeshGenerationError, StrataError
from strata.geometry.polygon import Polygon
from strata.mesh.extrusion import ExtrusionConfig
from strata.mesh.layers import LayerMapper
from strata.mesh.mesh import Mesh
from strata.mesh.surface import SurfaceMesh

logger = logging.getLogger(__name__)


class MeshBuilder:
    """Fluent front end from a domain outline to a DEM-fitted layered mesh.

    ``build`` runs these steps in order:

    - mesh the polygon with gmsh at the horizontal resolution, unless the
      builder was started from an existing surface mesh;
    - extrude the surface downwards following the layer configuration;
    - fit each registered layer to its elevation raster.

    Args:
        polygon: Domain outline as a Polygon or a sequence of (x, y)
            vertices. None is only used by ``from_surface``.

    Example:
        >>> from strata import MeshBuilder
        >>> mesh = (
        ...     MeshBuilder([(0, 0), (1000, 0), (1000, 800), (0, 800)])
        ...     .set_horizontal_resolution(50)
        ...     .set_layers(n_layers=10, thickness=5.0)
        ...     .add_layer_raster(0, "surface_dem.asc")
        ...     .build()
        ... )
    """

    def __init__(self, polygon: Polygon | Sequence[tuple[float, float]] | None):
        if polygon is None or isinstance(polygon, Polygon):
            self._polygon = polygon
        else:
            self._polygon = Polygon(list(polygon))

        # Filled in by the fluent setters
        self._horizontal_resolution: float | None = None
        self._extrusion_config: ExtrusionConfig | None = None
        self._quads = False
        self._layer_rasters: list[tuple[int, Path]] = []

        # Results of build()
        self._surface_mesh: Mesh | None = None
        self._mesh: Mesh | None = None

    @classmethod
    def from_surface(cls, surface: Mesh) -> MeshBuilder:
        """Start from an existing 2D mesh instead of a polygon.

        Args:
            surface: 2D surface mesh to extrude. It is not modified.

        Returns:
            New MeshBuilder.
        """
        if surface.dimension != 2:
            raise StrataError(
                f"Surface mesh must be 2D, got dimension {surface.dimension}"
            )
        builder = cls(None)
        builder._surface_mesh = surface
        return builder

    @property
    def polygon(self) -> Polygon | None:
        return self._polygon

    @property
    def is_configured(self) -> bool:
        """Whether build() has everything it needs."""
        has_surface = self._surface_mesh is not None or (
            self._polygon is not None and self._horizontal_resolution is not None
        )
        return has_surface and self._extrusion_config is not None

    def set_horizontal_resolution(self, dx: float) -> MeshBuilder:
        """Target edge length of the gmsh surface elements, in map units."""
        if dx <= 0:
            raise ValueError(f"Resolution must be positive, got {dx}")
        self._horizontal_resolution = dx
        return self

    def use_quads(self, quads: bool = True) -> MeshBuilder:
        """Mesh the surface with quadrilaterals (extruded to hexahedra)."""
        self._quads = quads
        return self

    def set_layers(
        self,
        n_layers: int,
        thickness: float | list[float] | np.ndarray,
    ) -> MeshBuilder:
        """Extrude into ``n_layers`` layers below the surface.

        Args:
            n_layers: Layer count.
            thickness: One thickness for every layer, or one per layer from
                the top down.
        """
        self._extrusion_config = ExtrusionConfig(
            layer_heights=thickness,
            n_layers=n_layers,
        )
        return self

    def set_extrusion_config(self, config: ExtrusionConfig) -> MeshBuilder:
        """Use a prepared ExtrusionConfig, e.g. a graded one."""
        self._extrusion_config = config
        return self

    def add_layer_raster(self, layer_index: int, path: str | Path) -> MeshBuilder:
        """Fit a layer of the extruded mesh to a DEM.

        Rasters are applied in the order they were added.

        Args:
            layer_index: Layer boundary to map, 0 is the top surface.
            path: Path of the DEM raster file.

        Returns:
            Self for method chaining.
        """
        self._layer_rasters.append((layer_index, Path(path)))
        return self

    def _validate_configuration(self) -> None:
        """Raise StrataError when build() would lack an input."""
        if self._surface_mesh is None and self._horizontal_resolution is None:
            raise StrataError(
                "No horizontal resolution for meshing the polygon, "
                "use set_horizontal_resolution()"
            )
        if self._extrusion_config is None:
            raise StrataError(
                "Layer configuration not set, use set_layers() or "
                "set_extrusion_config()"
            )
        for layer_index, _ in self._layer_rasters:
            if not 0 <= layer_index <= self._extrusion_config.n_layers:
                raise StrataError(
                    f"Raster layer index {layer_index} outside "
                    f"[0, {self._extrusion_config.n_layers}]"
                )

    def build(self, name: str | None = None) -> Mesh:
        """Build the layered mesh.

        Args:
            name: Optional name of the resulting mesh.

        Returns:
            Layered 3D mesh.

        Raises:
            StrataError: If required parameters are not set.
            MeshGenerationError: If mesh generation or raster mapping fails.
        """
        self._validate_configuration()

        if self._surface_mesh is None:
            self._surface_mesh = SurfaceMesh(
                self._polygon, self._horizontal_resolution, quads=self._quads
            ).generate()

        mesh = LayerMapper.extrude(self._surface_mesh, self._extrusion_config)
        if mesh is None:
            raise MeshGenerationError("Extrusion of the surface mesh failed")

        n_layers = self._extrusion_config.n_layers
        for layer_index, path in self._layer_rasters:
            result = LayerMapper.layer_mapping(mesh, path, n_layers, layer_index)
            if not result.ok:
                raise MeshGenerationError(
                    f"Mapping {path} onto layer {layer_index} failed: "
                    f"{result.status.value}"
                )
            if result.nodata_nodes:
                logger.warning(
                    "%d nodes of layer %d have no elevation data in %s",
                    len(result.nodata_nodes),
                    layer_index,
                    path.name,
                )
            mesh = result.mesh

        if name is not None:
            mesh.name = name
        self._mesh = mesh
        return mesh

    def get_surface_mesh(self) -> Mesh | None:
        """Return the 2D surface mesh (available after build)."""
        return self._surface_mesh

    def get_mesh_info(self) -> dict:
        """Return information about the configuration and the built mesh."""
        info = {
            "horizontal_resolution": self._horizontal_resolution,
            "quads": self._quads,
            "layer_rasters": [(i, str(p)) for i, p in self._layer_rasters],
        }

        if self._polygon is not None:
            info["polygon_vertices"] = self._polygon.n_vertices
            info["polygon_bounds"] = self._polygon.bounds

        if self._extrusion_config:
            info["n_layers"] = self._extrusion_config.n_layers
            info["uniform_layers"] = self._extrusion_config.is_uniform

        if self._mesh is not None:
            info["n_nodes"] = self._mesh.n_nodes
            info["n_elements"] = self._mesh.n_elements

        return info
