"""Capability interface of the solid-modeling kernel.

The bin pipeline talks to the kernel only through ``GeometryKernel``.
Profiles are closed planar curves lying in the XY plane at Z = 0;
solids are opaque kernel handles. Every operation returns a new handle
and leaves its inputs untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np

Profile = Any  # closed planar wire
Solid = Any  # kernel solid handle

Point2 = Tuple[float, float]


class KernelError(Exception):
    """Raised when a kernel construction or boolean operation fails."""

    pass


@dataclass
class MeshFaces:
    """Triangle buffers for preview rendering."""

    vertices: np.ndarray  # float32, flat xyz
    triangles: np.ndarray  # uint32, flat vertex indices
    normals: np.ndarray  # float32, flat xyz per vertex
    face_groups: List[Dict[str, int]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vertices": self.vertices.tolist(),
            "triangles": self.triangles.tolist(),
            "normals": self.normals.tolist(),
            "faceGroups": [dict(group) for group in self.face_groups],
        }


@dataclass
class MeshEdges:
    """Polyline buffers for the outline edges of a solid."""

    vertices: np.ndarray  # float32, flat xyz
    lines: np.ndarray  # uint32, flat index pairs
    edge_groups: List[Dict[str, int]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vertices": self.vertices.tolist(),
            "lines": self.lines.tolist(),
            "edgeGroups": [dict(group) for group in self.edge_groups],
        }


@dataclass
class ModelMesh:
    """Faces and edges of one tessellated solid."""

    faces: MeshFaces
    edges: MeshEdges

    def to_dict(self) -> Dict[str, Any]:
        return {"faces": self.faces.to_dict(), "edges": self.edges.to_dict()}


@dataclass(frozen=True)
class BoundingBox3D:
    """Axis-aligned 3D bounds of a solid."""

    min_x: float
    min_y: float
    min_z: float
    max_x: float
    max_y: float
    max_z: float

    @property
    def size(self) -> Tuple[float, float, float]:
        return (self.max_x - self.min_x, self.max_y - self.min_y, self.max_z - self.min_z)


@runtime_checkable
class GeometryKernel(Protocol):
    """Operations the bin pipeline needs from a solid-modeling kernel."""

    name: str

    # Profiles
    def rounded_rectangle(self, width: float, height: float, radius: float) -> Profile: ...

    def circle(self, radius: float) -> Profile: ...

    def bezier_loop(self, start: Point2, segments: Sequence[Tuple[Point2, Point2, Point2]]) -> Profile:
        """Closed curve from ``start`` through ``(control1, control2, end)`` spans."""
        ...

    def place_profile(self, profile: Profile, rotation: float, dx: float, dy: float) -> Profile:
        """Rotate by ``rotation`` degrees about the origin, then translate."""
        ...

    # Solids
    def extrude(self, profile: Profile, height: float, z: float = 0.0) -> Solid: ...

    def loft(self, sections: Sequence[Tuple[Profile, float]], ruled: bool = True) -> Solid:
        """Solid through ``(profile, z)`` sections in order."""
        ...

    def translate(self, solid: Solid, dx: float, dy: float, dz: float) -> Solid: ...

    def copy(self, solid: Solid) -> Solid: ...

    def fuse(self, base: Solid, others: Sequence[Solid]) -> Solid: ...

    def cut(self, base: Solid, tools: Sequence[Solid]) -> Solid:
        """Subtract the union of ``tools`` from ``base``."""
        ...

    # Read-only queries
    def mesh(self, solid: Solid, tolerance: float, angular_tolerance: float) -> ModelMesh: ...

    def export_step(self, solid: Solid) -> bytes: ...

    def bounding_box(self, solid: Solid) -> BoundingBox3D: ...

    def volume(self, solid: Solid) -> float: ...
