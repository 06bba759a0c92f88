"""Pytest configuration and shared fixtures.

Provides common test fixtures for the gridbin test suite, including a
recording fake kernel that stands in for Open CASCADE.
"""

from __future__ import annotations

import math
import tempfile
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Sequence, Tuple

import numpy as np
import pytest
import structlog

from binmodel.schema import RoundedRectOutline, SplineOutline, create_rounded_rect, create_spline
from kernel.protocol import BoundingBox3D, KernelError, MeshEdges, MeshFaces, ModelMesh


# Configure test logging
structlog.configure(
    processors=[
        structlog.testing.LogCapture(),
    ],
    logger_factory=structlog.testing.ReturnLoggerFactory(),
    cache_logger_on_first_use=True,
)


class FakeProfile:
    """2D outline stand-in: a point cloud plus its enclosed area."""

    def __init__(self, kind: str, points: Sequence[Tuple[float, float]], area: float):
        self.kind = kind
        self.points = [tuple(p) for p in points]
        self.area = area


class FakeSolid:
    """Solid stand-in tracking bounds and volume."""

    def __init__(self, label: str, bounds: Tuple[float, ...], volume: float, parts: Tuple = ()):
        self.label = label
        self.bounds = bounds
        self.volume = volume
        self.parts = parts


def _profile_bounds(profile: FakeProfile) -> Tuple[float, float, float, float]:
    xs = [p[0] for p in profile.points]
    ys = [p[1] for p in profile.points]
    return min(xs), min(ys), max(xs), max(ys)


class RecordingKernel:
    """GeometryKernel fake that records every call.

    Volumes are exact for prisms; booleans assume disjoint tools, which
    is all the builder tests need.
    """

    name = "recording"

    def __init__(self, fail_on: Optional[Sequence[str]] = None):
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.fail_on = set(fail_on or ())

    def _record(self, op: str, **kwargs: Any) -> None:
        self.calls.append((op, kwargs))
        if op in self.fail_on:
            raise KernelError(f"{op} failed")

    def count(self, op: str) -> int:
        return sum(1 for name, _ in self.calls if name == op)

    def ops(self, op: str) -> List[Dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == op]

    # Profiles
    def rounded_rectangle(self, width, height, radius):
        self._record("rounded_rectangle", width=width, height=height, radius=radius)
        hw, hh = width / 2, height / 2
        area = width * height - (4 - math.pi) * radius * radius
        return FakeProfile("rounded_rectangle", [(hw, hh), (-hw, hh), (-hw, -hh), (hw, -hh)], area)

    def circle(self, radius):
        self._record("circle", radius=radius)
        return FakeProfile(
            "circle",
            [(radius, radius), (-radius, radius), (-radius, -radius), (radius, -radius)],
            math.pi * radius * radius,
        )

    def bezier_loop(self, start, segments):
        self._record("bezier_loop", start=start, segments=list(segments))
        knots = [start] + [end for _, _, end in segments][:-1]
        area = 0.0
        for (x0, y0), (x1, y1) in zip(knots, knots[1:] + knots[:1]):
            area += x0 * y1 - x1 * y0
        points = [start] + [p for segment in segments for p in segment]
        return FakeProfile("bezier_loop", points, abs(area) / 2)

    def place_profile(self, profile, rotation, dx, dy):
        self._record("place_profile", rotation=rotation, dx=dx, dy=dy)
        angle = math.radians(rotation)
        cos, sin = math.cos(angle), math.sin(angle)
        points = [(x * cos - y * sin + dx, x * sin + y * cos + dy) for x, y in profile.points]
        return FakeProfile(profile.kind, points, profile.area)

    # Solids
    def extrude(self, profile, height, z=0.0):
        self._record("extrude", kind=profile.kind, height=height, z=z)
        if height <= 0:
            raise KernelError("Extrusion height must be positive")
        x0, y0, x1, y1 = _profile_bounds(profile)
        return FakeSolid("extrude", (x0, y0, z, x1, y1, z + height), profile.area * height)

    def loft(self, sections, ruled=True):
        self._record("loft", sections=[(p.kind, z) for p, z in sections], ruled=ruled)
        zs = [z for _, z in sections]
        bounds = [_profile_bounds(p) for p, _ in sections]
        volume = 0.0
        for (a, za), (b, zb) in zip(sections, sections[1:]):
            # Prismatoid approximation per slab
            volume += abs(za - zb) * (a.area + b.area) / 2
        return FakeSolid(
            "loft",
            (
                min(b[0] for b in bounds), min(b[1] for b in bounds), min(zs),
                max(b[2] for b in bounds), max(b[3] for b in bounds), max(zs),
            ),
            volume,
        )

    def translate(self, solid, dx, dy, dz):
        self._record("translate", dx=dx, dy=dy, dz=dz)
        x0, y0, z0, x1, y1, z1 = solid.bounds
        return FakeSolid(
            solid.label, (x0 + dx, y0 + dy, z0 + dz, x1 + dx, y1 + dy, z1 + dz), solid.volume
        )

    def copy(self, solid):
        self._record("copy")
        return FakeSolid(solid.label, solid.bounds, solid.volume, solid.parts)

    def fuse(self, base, others):
        self._record("fuse", tools=len(others))
        bounds = [base.bounds] + [o.bounds for o in others]
        merged = tuple(min(b[i] for b in bounds) for i in range(3)) + tuple(
            max(b[i] for b in bounds) for i in range(3, 6)
        )
        return FakeSolid("fuse", merged, base.volume + sum(o.volume for o in others), (base, *others))

    def cut(self, base, tools):
        self._record("cut", tools=len(tools))
        return FakeSolid("cut", base.bounds, base.volume - sum(t.volume for t in tools), (base, *tools))

    # Read-only queries
    def mesh(self, solid, tolerance, angular_tolerance):
        self._record("mesh", tolerance=tolerance, angular_tolerance=angular_tolerance)
        x0, y0, z0, x1, y1, z1 = solid.bounds
        faces = MeshFaces(
            vertices=np.array([x0, y0, z0, x1, y0, z0, x1, y1, z1], dtype=np.float32),
            triangles=np.array([0, 1, 2], dtype=np.uint32),
            normals=np.array([0, 0, 1] * 3, dtype=np.float32),
            face_groups=[{"start": 0, "count": 3, "faceId": 0}],
        )
        edges = MeshEdges(
            vertices=np.array([x0, y0, z0, x1, y1, z1], dtype=np.float32),
            lines=np.array([0, 1], dtype=np.uint32),
            edge_groups=[{"start": 0, "count": 2, "edgeId": 0}],
        )
        return ModelMesh(faces=faces, edges=edges)

    def export_step(self, solid):
        self._record("export_step")
        return f"ISO-10303-21;\n/* {solid.label} */\nEND-ISO-10303-21;\n".encode()

    def bounding_box(self, solid):
        return BoundingBox3D(*solid.bounds)

    def volume(self, solid):
        return solid.volume


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_kernel() -> RecordingKernel:
    return RecordingKernel()


@pytest.fixture
def kernel_class():
    """The fake kernel class, for tests that construct their own."""
    return RecordingKernel


@pytest.fixture
def rect_outline() -> RoundedRectOutline:
    """80 x 60 rounded rectangle at the origin."""
    return create_rounded_rect("rect", 80.0, 60.0, radius=15.0, depth=20.0)


@pytest.fixture
def circle_outline() -> RoundedRectOutline:
    return create_rounded_rect("circle", 30.0, 30.0, radius=15.0, position=(50.0, 0.0), depth=10.0)


@pytest.fixture
def square_spline() -> SplineOutline:
    return create_spline(
        "square",
        [(-10.0, -10.0), (10.0, -10.0), (10.0, 10.0), (-10.0, 10.0)],
        position=(-30.0, 0.0),
        depth=12.0,
    )


@pytest.fixture
def sample_document_data() -> Dict[str, Any]:
    """Outline document as saved by the editor, display fields included."""
    return {
        "totalHeight": 28,
        "baseHeight": 4.75,
        "outlines": [
            {
                "id": "rect-1",
                "type": "roundedRect",
                "position": {"x": 10, "y": -5},
                "rotation": 30,
                "depth": 15,
                "width": 40,
                "height": 20,
                "radius": 5,
                "selected": True,
                "editMode": False,
                "color": "#ff0000",
            },
            {
                "id": "spline-1",
                "type": "spline",
                "position": {"x": -20, "y": 0},
                "rotation": 0,
                "points": [{"x": 0, "y": 0}, {"x": 10, "y": 0}, {"x": 5, "y": 8}],
                "bounds": {"minX": 0, "minY": 0, "maxX": 10, "maxY": 8},
            },
        ],
    }
