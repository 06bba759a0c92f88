"""Solid analysis and summary generation.

This module measures assembled solids: bounds, mass properties,
topology counts and validity. The CLI prints these after a build and
the integration tests check bin heights and cutout volumes with them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from .protocol import BoundingBox3D, KernelError

logger = structlog.get_logger(__name__)


@dataclass
class SolidSummary:
    """Summary of geometric properties and topology."""

    # Topological counts
    solids: int = 0
    shells: int = 0
    faces: int = 0
    edges: int = 0
    vertices: int = 0

    # Geometric properties
    bounding_box: BoundingBox3D | None = None
    surface_area: float | None = None
    volume: float | None = None

    is_valid: bool = False
    analysis_warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        bbox = None
        if self.bounding_box is not None:
            box = self.bounding_box
            bbox = {
                "min": [box.min_x, box.min_y, box.min_z],
                "max": [box.max_x, box.max_y, box.max_z],
                "size": list(box.size),
            }
        return {
            "topology": {
                "solids": self.solids,
                "shells": self.shells,
                "faces": self.faces,
                "edges": self.edges,
                "vertices": self.vertices,
            },
            "bounding_box": bbox,
            "surface_area": self.surface_area,
            "volume": self.volume,
            "is_valid": self.is_valid,
            "warnings": list(self.analysis_warnings),
        }


def count_topology(shape: Any) -> dict[str, int]:
    """Count topological entities of a shape.

    Args:
        shape: TopoDS_Shape

    Returns:
        Dictionary with entity counts
    """
    from OCP.TopAbs import TopAbs_EDGE, TopAbs_FACE, TopAbs_SHELL, TopAbs_SOLID, TopAbs_VERTEX
    from OCP.TopExp import TopExp
    from OCP.TopTools import TopTools_IndexedMapOfShape

    type_mappings = [
        (TopAbs_SOLID, "solids"),
        (TopAbs_SHELL, "shells"),
        (TopAbs_FACE, "faces"),
        (TopAbs_EDGE, "edges"),
        (TopAbs_VERTEX, "vertices"),
    ]

    # Indexed maps count shared sub-shapes once
    counts = {}
    for topo_type, count_key in type_mappings:
        shape_map = TopTools_IndexedMapOfShape()
        TopExp.MapShapes_s(shape, topo_type, shape_map)
        counts[count_key] = shape_map.Extent()

    return counts


def compute_bounding_box(shape: Any) -> BoundingBox3D:
    """Compute the tight axis-aligned bounding box of a shape.

    Raises:
        KernelError: If the shape is empty
    """
    from OCP.Bnd import Bnd_Box
    from OCP.BRepBndLib import BRepBndLib

    bbox = Bnd_Box()
    BRepBndLib.AddOptimal_s(shape, bbox, False, False)

    if bbox.IsVoid():
        raise KernelError("Cannot compute the bounding box of an empty shape")

    xmin, ymin, zmin, xmax, ymax, zmax = bbox.Get()
    return BoundingBox3D(
        min_x=float(xmin),
        min_y=float(ymin),
        min_z=float(zmin),
        max_x=float(xmax),
        max_y=float(ymax),
        max_z=float(zmax),
    )


def compute_volume(shape: Any) -> float:
    from OCP.BRepGProp import BRepGProp
    from OCP.GProp import GProp_GProps

    props = GProp_GProps()
    BRepGProp.VolumeProperties_s(shape, props)
    return float(props.Mass())


def compute_surface_area(shape: Any) -> float:
    from OCP.BRepGProp import BRepGProp
    from OCP.GProp import GProp_GProps

    props = GProp_GProps()
    BRepGProp.SurfaceProperties_s(shape, props)
    return float(props.Mass())


def check_validity(shape: Any) -> bool:
    from OCP.BRepCheck import BRepCheck_Analyzer

    return bool(BRepCheck_Analyzer(shape).IsValid())


def summarize_solid(shape: Any) -> SolidSummary:
    """Generate a summary of an assembled solid.

    Each measurement is taken independently; one that fails is recorded
    as a warning and left unset so the rest of the summary still prints.

    Args:
        shape: TopoDS_Shape to analyze

    Returns:
        SolidSummary with topology, bounds and mass properties
    """
    summary = SolidSummary()

    try:
        counts = count_topology(shape)
        summary.solids = counts["solids"]
        summary.shells = counts["shells"]
        summary.faces = counts["faces"]
        summary.edges = counts["edges"]
        summary.vertices = counts["vertices"]
    except Exception as e:
        logger.warning("Failed to count topology", error=str(e))
        summary.analysis_warnings.append(f"Topology counting failed: {e}")

    try:
        summary.bounding_box = compute_bounding_box(shape)
    except Exception as e:
        logger.warning("Failed to compute bounding box", error=str(e))
        summary.analysis_warnings.append(f"Bounding box failed: {e}")

    try:
        summary.volume = compute_volume(shape)
        summary.surface_area = compute_surface_area(shape)
    except Exception as e:
        logger.warning("Failed to compute mass properties", error=str(e))
        summary.analysis_warnings.append(f"Mass properties failed: {e}")

    try:
        summary.is_valid = check_validity(shape)
    except Exception as e:
        logger.warning("Failed to check validity", error=str(e))
        summary.analysis_warnings.append(f"Validity check failed: {e}")

    if summary.solids != 1:
        summary.analysis_warnings.append(f"Expected one solid, found {summary.solids}")

    logger.info(
        "Solid summary complete",
        faces=summary.faces,
        volume=summary.volume,
        is_valid=summary.is_valid,
        warnings=len(summary.analysis_warnings),
    )
    return summary
