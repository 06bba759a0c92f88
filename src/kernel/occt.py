"""Open CASCADE implementation of the geometry kernel.

This module builds profiles and solids with the OCP bindings to Open
CASCADE Technology. Profiles are ``TopoDS_Wire`` loops in the XY plane,
solids are ``TopoDS_Shape`` handles.
"""

from __future__ import annotations

import math
from contextlib import contextmanager
from typing import Any, Iterator, Sequence, Tuple

import structlog

from .protocol import BoundingBox3D, KernelError, ModelMesh, Point2

logger = structlog.get_logger(__name__)

# Lengths below this are treated as coincident points
_LINEAR_EPSILON = 1e-9


class OCCTNotAvailableError(Exception):
    """Raised when the OCP binding cannot be imported."""

    pass


def get_occt_info() -> dict[str, Any]:
    """Get information about the OCCT binding.

    Returns:
        Dictionary with binding availability and version info
    """
    info = {
        "ocp_available": False,
        "binding": None,
        "occt_version": None,
    }

    try:
        import OCP

        info["ocp_available"] = True
        info["binding"] = "OCP"
        info["occt_version"] = getattr(OCP, "__version__", "unknown")
        logger.info("OCP binding detected", version=info["occt_version"])
    except ImportError:
        logger.debug("OCP not available")

    return info


@contextmanager
def _occt_step(action: str) -> Iterator[None]:
    """Re-raise OCCT construction failures as ``KernelError``."""
    try:
        yield
    except KernelError:
        raise
    except Exception as e:
        logger.error("OCCT construction failed", action=action, error=str(e))
        raise KernelError(f"Failed to {action}: {e}") from e


def _pnt(x: float, y: float, z: float = 0.0):
    from OCP.gp import gp_Pnt

    return gp_Pnt(x, y, z)


def _segment(a: Point2, b: Point2):
    from OCP.BRepBuilderAPI import BRepBuilderAPI_MakeEdge

    with _occt_step("build line segment"):
        return BRepBuilderAPI_MakeEdge(_pnt(*a), _pnt(*b)).Edge()


def _arc(start: Point2, mid: Point2, end: Point2):
    from OCP.BRepBuilderAPI import BRepBuilderAPI_MakeEdge
    from OCP.GC import GC_MakeArcOfCircle

    with _occt_step("build arc"):
        curve = GC_MakeArcOfCircle(_pnt(*start), _pnt(*mid), _pnt(*end)).Value()
        return BRepBuilderAPI_MakeEdge(curve).Edge()


def _bezier(start: Point2, control1: Point2, control2: Point2, end: Point2):
    from OCP.BRepBuilderAPI import BRepBuilderAPI_MakeEdge
    from OCP.Geom import Geom_BezierCurve
    from OCP.TColgp import TColgp_Array1OfPnt

    poles = TColgp_Array1OfPnt(1, 4)
    for index, point in enumerate((start, control1, control2, end), start=1):
        poles.SetValue(index, _pnt(*point))
    with _occt_step("build bezier span"):
        return BRepBuilderAPI_MakeEdge(Geom_BezierCurve(poles)).Edge()


def _wire(edges: Sequence[Any]):
    from OCP.BRepBuilderAPI import BRepBuilderAPI_MakeWire

    builder = BRepBuilderAPI_MakeWire()
    for edge in edges:
        builder.Add(edge)
    if not builder.IsDone():
        raise KernelError(f"Failed to connect {len(edges)} edges into a wire")
    return builder.Wire()


def _distance(a: Point2, b: Point2) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


class OcctKernel:
    """``GeometryKernel`` backed by Open CASCADE through OCP."""

    name = "occt"

    def __init__(self, unify_faces: bool = True) -> None:
        """Bootstrap the kernel.

        Args:
            unify_faces: Merge coplanar faces after every boolean

        Raises:
            OCCTNotAvailableError: If OCP is not installed
        """
        try:
            import OCP
        except ImportError as e:
            raise OCCTNotAvailableError(
                "OCP binding not available. Install it with:\n"
                "  pip install cadquery-ocp"
            ) from e

        self.version = getattr(OCP, "__version__", "unknown")
        self._unify_faces = unify_faces
        logger.info("OCCT kernel initialized", binding="OCP", version=self.version)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def rounded_rectangle(self, width: float, height: float, radius: float):
        if width <= 0 or height <= 0:
            raise KernelError(f"Rectangle needs positive size, got {width} x {height}")

        hw, hh = width / 2, height / 2
        r = max(0.0, min(radius, hw, hh))

        if r <= _LINEAR_EPSILON:
            from OCP.BRepBuilderAPI import BRepBuilderAPI_MakePolygon

            polygon = BRepBuilderAPI_MakePolygon(
                _pnt(hw, hh), _pnt(-hw, hh), _pnt(-hw, -hh), _pnt(hw, -hh), True
            )
            return polygon.Wire()

        if math.isclose(r, hw) and math.isclose(r, hh):
            return self.circle(r)

        # (center, start, end, start angle) per corner, counter-clockwise from top right
        corners = (
            ((hw - r, hh - r), (hw, hh - r), (hw - r, hh), 0.0),
            ((-hw + r, hh - r), (-hw + r, hh), (-hw, hh - r), 90.0),
            ((-hw + r, -hh + r), (-hw, -hh + r), (-hw + r, -hh), 180.0),
            ((hw - r, -hh + r), (hw - r, -hh), (hw, -hh + r), 270.0),
        )

        edges = []
        for index, (center, start, end, angle) in enumerate(corners):
            mid_angle = math.radians(angle + 45.0)
            mid = (center[0] + r * math.cos(mid_angle), center[1] + r * math.sin(mid_angle))
            edges.append(_arc(start, mid, end))

            next_start = corners[(index + 1) % len(corners)][1]
            if _distance(end, next_start) > _LINEAR_EPSILON:
                edges.append(_segment(end, next_start))

        return _wire(edges)

    def circle(self, radius: float):
        from OCP.BRepBuilderAPI import BRepBuilderAPI_MakeEdge
        from OCP.gp import gp_Ax2, gp_Circ, gp_Dir

        if radius <= 0:
            raise KernelError(f"Circle needs a positive radius, got {radius}")

        circle = gp_Circ(gp_Ax2(_pnt(0.0, 0.0), gp_Dir(0.0, 0.0, 1.0)), radius)
        return _wire([BRepBuilderAPI_MakeEdge(circle).Edge()])

    def bezier_loop(self, start: Point2, segments: Sequence[Tuple[Point2, Point2, Point2]]):
        edges = []
        current = start
        for control1, control2, end in segments:
            if _distance(current, end) <= _LINEAR_EPSILON:
                # Repeated point, nothing to span
                continue
            edges.append(_bezier(current, control1, control2, end))
            current = end

        if not edges:
            raise KernelError("Bezier loop has no non-degenerate segments")
        if _distance(current, start) > _LINEAR_EPSILON:
            raise KernelError("Bezier loop does not close on its start point")

        return _wire(edges)

    def place_profile(self, profile, rotation: float, dx: float, dy: float):
        from OCP.TopoDS import TopoDS

        return TopoDS.Wire_s(self._transform(profile, rotation, dx, dy, 0.0))

    # ------------------------------------------------------------------
    # Solids
    # ------------------------------------------------------------------

    def extrude(self, profile, height: float, z: float = 0.0):
        from OCP.BRepBuilderAPI import BRepBuilderAPI_MakeFace
        from OCP.BRepLib import BRepLib
        from OCP.BRepPrimAPI import BRepPrimAPI_MakePrism
        from OCP.TopoDS import TopoDS
        from OCP.gp import gp_Vec

        if height <= 0:
            raise KernelError(f"Extrusion height must be positive, got {height}")

        with _occt_step("extrude profile"):
            wire = TopoDS.Wire_s(self._transform(profile, 0.0, 0.0, 0.0, z))
            face = BRepBuilderAPI_MakeFace(wire, True)
            if not face.IsDone():
                raise KernelError("Profile is not a closed planar wire")

            prism = BRepPrimAPI_MakePrism(face.Face(), gp_Vec(0.0, 0.0, height))
            if not prism.IsDone():
                raise KernelError("Extrusion failed")

            # Clockwise profiles give an inside-out prism
            solid = TopoDS.Solid_s(prism.Shape())
            BRepLib.OrientClosedSolid_s(solid)
        return solid

    def loft(self, sections: Sequence[Tuple[Any, float]], ruled: bool = True):
        from OCP.BRepOffsetAPI import BRepOffsetAPI_ThruSections
        from OCP.TopoDS import TopoDS

        if len(sections) < 2:
            raise KernelError("Loft needs at least two sections")

        builder = BRepOffsetAPI_ThruSections(True, ruled)
        with _occt_step(f"loft {len(sections)} sections"):
            for profile, z in sections:
                builder.AddWire(TopoDS.Wire_s(self._transform(profile, 0.0, 0.0, 0.0, z)))

            builder.Build()
            if not builder.IsDone():
                raise KernelError(f"Loft through {len(sections)} sections failed")
            return builder.Shape()

    def translate(self, solid, dx: float, dy: float, dz: float):
        return self._transform(solid, 0.0, dx, dy, dz)

    def copy(self, solid):
        from OCP.BRepBuilderAPI import BRepBuilderAPI_Copy

        return BRepBuilderAPI_Copy(solid).Shape()

    def fuse(self, base, others: Sequence[Any]):
        from OCP.BRepAlgoAPI import BRepAlgoAPI_Fuse

        return self._boolean(BRepAlgoAPI_Fuse(), "fuse", base, others)

    def cut(self, base, tools: Sequence[Any]):
        from OCP.BRepAlgoAPI import BRepAlgoAPI_Cut

        return self._boolean(BRepAlgoAPI_Cut(), "cut", base, tools)

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def mesh(self, solid, tolerance: float, angular_tolerance: float) -> ModelMesh:
        from .export import tessellate

        return tessellate(solid, tolerance=tolerance, angular_tolerance=angular_tolerance)

    def export_step(self, solid) -> bytes:
        from .export import export_step_bytes

        return export_step_bytes(solid)

    def bounding_box(self, solid) -> BoundingBox3D:
        from .summary import compute_bounding_box

        return compute_bounding_box(solid)

    def volume(self, solid) -> float:
        from .summary import compute_volume

        return compute_volume(solid)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transform(self, shape, rotation: float, dx: float, dy: float, dz: float):
        from OCP.BRepBuilderAPI import BRepBuilderAPI_Transform
        from OCP.gp import gp_Ax1, gp_Dir, gp_Trsf, gp_Vec

        rotate = gp_Trsf()
        if rotation:
            rotate.SetRotation(gp_Ax1(_pnt(0.0, 0.0), gp_Dir(0.0, 0.0, 1.0)), math.radians(rotation))

        move = gp_Trsf()
        move.SetTranslation(gp_Vec(dx, dy, dz))

        # Rotation is applied first
        return BRepBuilderAPI_Transform(shape, move.Multiplied(rotate), True).Shape()

    def _boolean(self, op, label: str, base, others: Sequence[Any]):
        from OCP.TopTools import TopTools_ListOfShape

        if not others:
            return base

        arguments = TopTools_ListOfShape()
        arguments.Append(base)
        tools = TopTools_ListOfShape()
        for shape in others:
            tools.Append(shape)

        op.SetArguments(arguments)
        op.SetTools(tools)
        with _occt_step(f"run boolean {label}"):
            op.Build()

        if not op.IsDone():
            logger.error("Boolean operation failed", operation=label, tools=len(others))
            raise KernelError(f"Boolean {label} with {len(others)} tool(s) failed")

        result = op.Shape()
        if self._unify_faces:
            result = self._unify(result)
        return result

    def _unify(self, shape):
        from OCP.ShapeUpgrade import ShapeUpgrade_UnifySameDomain

        upgrader = ShapeUpgrade_UnifySameDomain(shape, True, True, True)
        upgrader.Build()
        return upgrader.Shape()
