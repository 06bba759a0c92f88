"""Bin data model and 2D geometry.

Outlines, grid area calculation and spline fitting. Nothing in this
package touches the solid-modeling kernel.
"""

from .grid import calculate_minimal_grid_area, outline_world_bounds
from .schema import (
    BinParameterError,
    BinParameters,
    Bounds,
    GridArea,
    MalformedOutlineError,
    Point,
    RoundedRectOutline,
    SplineOutline,
)
from .serialize import OutlineDocument, load_document, outline_from_dict, outline_to_dict

__version__ = "0.1.0"
__all__ = [
    "BinParameterError", "BinParameters", "Bounds", "GridArea", "MalformedOutlineError",
    "Point", "RoundedRectOutline", "SplineOutline",
    "calculate_minimal_grid_area", "outline_world_bounds",
    "OutlineDocument", "load_document", "outline_from_dict", "outline_to_dict",
]
