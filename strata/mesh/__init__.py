"""Mesh containers and mesh generation."""

from strata.mesh.builder import MeshBuilder
from strata.mesh.editor import MeshEditor
from strata.mesh.extrusion import ExtrusionConfig
from strata.mesh.layers import (
    DEFAULT_MESH_NAME,
    LayerMapper,
    MappingResult,
    MappingStatus,
)
from strata.mesh.mesh import Mesh, Node
from strata.mesh.surface import SurfaceMesh, generate_surface_mesh

__all__ = [
    "MeshBuilder",
    "MeshEditor",
    "ExtrusionConfig",
    "DEFAULT_MESH_NAME",
    "LayerMapper",
    "MappingResult",
    "MappingStatus",
    "Mesh",
    "Node",
    "SurfaceMesh",
    "generate_surface_mesh",
]
