"""Kernel package for solid modeling.

This package defines the capability interface the bin pipeline uses and
its Open CASCADE implementation: profiles, extrusion, lofting, booleans,
mesh tessellation and STEP export.
"""

from .protocol import (
    BoundingBox3D, GeometryKernel, KernelError, MeshEdges, MeshFaces, ModelMesh,
)
from .occt import OCCTNotAvailableError, OcctKernel, get_occt_info
from .summary import SolidSummary, summarize_solid
from .export import ExportError, export_step_bytes, mesh_to_json_bytes, tessellate

__version__ = "0.1.0"
__all__ = [
    "BoundingBox3D", "GeometryKernel", "KernelError", "MeshEdges", "MeshFaces", "ModelMesh",
    "OCCTNotAvailableError", "OcctKernel", "get_occt_info",
    "SolidSummary", "summarize_solid",
    "ExportError", "export_step_bytes", "mesh_to_json_bytes", "tessellate",
]
