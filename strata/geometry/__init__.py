"""Element model and domain geometry."""

from strata.geometry.elements import (
    TOPOLOGY,
    VTK_CELL_TYPES,
    Element,
    ElementTopology,
    ElementType,
    element_type_from_vtk,
)
from strata.geometry.polygon import Polygon

__all__ = [
    "TOPOLOGY",
    "VTK_CELL_TYPES",
    "Element",
    "ElementTopology",
    "ElementType",
    "element_type_from_vtk",
    "Polygon",
]
