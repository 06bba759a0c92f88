"""Mesh tessellation and STEP export.

Both operations read a solid without modifying it: tessellation works on
a geometry copy so the source shape never carries a cached triangulation.
"""

from __future__ import annotations

import math
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

import numpy as np
import orjson
import structlog

from .protocol import MeshEdges, MeshFaces, ModelMesh

logger = structlog.get_logger(__name__)


class ExportError(Exception):
    """Raised when export operations fail."""
    pass


def _vertex_normals(vertices: np.ndarray, triangles: np.ndarray) -> np.ndarray:
    """Area-weighted per-vertex normals."""
    normals = np.zeros_like(vertices)
    if len(triangles) == 0:
        return normals

    v0 = vertices[triangles[:, 0]]
    v1 = vertices[triangles[:, 1]]
    v2 = vertices[triangles[:, 2]]
    face_normals = np.cross(v1 - v0, v2 - v0)

    for corner in range(3):
        np.add.at(normals, triangles[:, corner], face_normals)

    lengths = np.linalg.norm(normals, axis=1, keepdims=True)
    np.divide(normals, lengths, out=normals, where=lengths > 0)
    return normals


def _mesh_faces(shape: Any) -> MeshFaces:
    from OCP.BRep import BRep_Tool
    from OCP.TopAbs import TopAbs_FACE, TopAbs_REVERSED
    from OCP.TopExp import TopExp_Explorer
    from OCP.TopLoc import TopLoc_Location
    from OCP.TopoDS import TopoDS

    vertices: List[Tuple[float, float, float]] = []
    triangles: List[Tuple[int, int, int]] = []
    face_groups: List[Dict[str, int]] = []

    explorer = TopExp_Explorer(shape, TopAbs_FACE)
    face_id = 0
    while explorer.More():
        face = TopoDS.Face_s(explorer.Current())
        explorer.Next()

        location = TopLoc_Location()
        triangulation = BRep_Tool.Triangulation_s(face, location)
        if triangulation is None:
            logger.warning("Face has no triangulation", face_id=face_id)
            face_id += 1
            continue

        transform = location.Transformation()
        offset = len(vertices)
        for i in range(1, triangulation.NbNodes() + 1):
            pnt = triangulation.Node(i).Transformed(transform)
            vertices.append((pnt.X(), pnt.Y(), pnt.Z()))

        reversed_face = face.Orientation() == TopAbs_REVERSED
        first_triangle = len(triangles)
        for i in range(1, triangulation.NbTriangles() + 1):
            a, b, c = triangulation.Triangle(i).Get()
            if reversed_face:
                b, c = c, b
            triangles.append((offset + a - 1, offset + b - 1, offset + c - 1))

        face_groups.append({
            "start": first_triangle * 3,
            "count": (len(triangles) - first_triangle) * 3,
            "faceId": face_id,
        })
        face_id += 1

    vertex_array = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
    triangle_array = np.asarray(triangles, dtype=np.int64).reshape(-1, 3)
    normals = _vertex_normals(vertex_array, triangle_array)

    return MeshFaces(
        vertices=vertex_array.astype(np.float32).ravel(),
        triangles=triangle_array.astype(np.uint32).ravel(),
        normals=normals.astype(np.float32).ravel(),
        face_groups=face_groups,
    )


def _mesh_edges(shape: Any, tolerance: float, angular_tolerance: float) -> MeshEdges:
    from OCP.BRep import BRep_Tool
    from OCP.BRepAdaptor import BRepAdaptor_Curve
    from OCP.GCPnts import GCPnts_TangentialDeflection
    from OCP.TopAbs import TopAbs_EDGE
    from OCP.TopExp import TopExp
    from OCP.TopTools import TopTools_IndexedMapOfShape
    from OCP.TopoDS import TopoDS

    edge_map = TopTools_IndexedMapOfShape()
    TopExp.MapShapes_s(shape, TopAbs_EDGE, edge_map)

    vertices: List[Tuple[float, float, float]] = []
    lines: List[int] = []
    edge_groups: List[Dict[str, int]] = []

    for index in range(1, edge_map.Extent() + 1):
        edge = TopoDS.Edge_s(edge_map.FindKey(index))
        if BRep_Tool.Degenerated_s(edge):
            continue

        sampler = GCPnts_TangentialDeflection(
            BRepAdaptor_Curve(edge), math.radians(angular_tolerance), tolerance
        )
        count = sampler.NbPoints()
        if count < 2:
            continue

        first_vertex = len(vertices)
        for i in range(1, count + 1):
            pnt = sampler.Value(i)
            vertices.append((pnt.X(), pnt.Y(), pnt.Z()))

        first_line = len(lines)
        for i in range(count - 1):
            lines.extend((first_vertex + i, first_vertex + i + 1))

        edge_groups.append({
            "start": first_line,
            "count": len(lines) - first_line,
            "edgeId": index - 1,
        })

    return MeshEdges(
        vertices=np.asarray(vertices, dtype=np.float32).ravel(),
        lines=np.asarray(lines, dtype=np.uint32),
        edge_groups=edge_groups,
    )


def tessellate(shape: Any, tolerance: float, angular_tolerance: float) -> ModelMesh:
    """Triangulate a solid for preview.

    Args:
        shape: TopoDS_Shape to tessellate
        tolerance: Linear deflection in mm
        angular_tolerance: Angular deflection in degrees

    Returns:
        ModelMesh with face triangles and edge polylines

    Raises:
        ExportError: If meshing fails
    """
    from OCP.BRepBuilderAPI import BRepBuilderAPI_Copy
    from OCP.BRepMesh import BRepMesh_IncrementalMesh

    logger.debug("Tessellating shape", tolerance=tolerance, angular_tolerance=angular_tolerance)

    try:
        work = BRepBuilderAPI_Copy(shape, True, False).Shape()
        mesher = BRepMesh_IncrementalMesh(
            work, tolerance, False, math.radians(angular_tolerance), False
        )
        if not mesher.IsDone():
            raise ExportError("Incremental mesher did not complete")

        faces = _mesh_faces(work)
        edges = _mesh_edges(work, tolerance, angular_tolerance)

    except ExportError:
        raise
    except Exception as e:
        logger.error("Tessellation failed", error=str(e))
        raise ExportError(f"Failed to tessellate shape: {e}") from e

    logger.debug(
        "Tessellation complete",
        vertices=len(faces.vertices) // 3,
        triangles=len(faces.triangles) // 3,
        edges=len(edges.edge_groups),
    )
    return ModelMesh(faces=faces, edges=edges)


def export_step_bytes(shape: Any) -> bytes:
    """Serialize a solid as a STEP file in millimetres.

    Raises:
        ExportError: If transfer or writing fails
    """
    from OCP.IFSelect import IFSelect_RetDone
    from OCP.Interface import Interface_Static
    from OCP.STEPControl import STEPControl_AsIs, STEPControl_Writer

    try:
        writer = STEPControl_Writer()
        Interface_Static.SetCVal_s("write.step.unit", "MM")

        status = writer.Transfer(shape, STEPControl_AsIs)
        if status != IFSelect_RetDone:
            raise ExportError(f"STEP transfer failed with status: {status}")

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "bin.step"
            status = writer.Write(str(path))
            if status != IFSelect_RetDone:
                raise ExportError(f"STEP write failed with status: {status}")
            data = path.read_bytes()

    except ExportError:
        raise
    except Exception as e:
        logger.error("STEP export failed", error=str(e))
        raise ExportError(f"Failed to export STEP: {e}") from e

    logger.info("STEP export complete", size_bytes=len(data))
    return data


def mesh_to_json_bytes(mesh: ModelMesh) -> bytes:
    """Compact JSON with the editor's buffer field names."""
    payload = {
        "faces": {
            "vertices": mesh.faces.vertices,
            "triangles": mesh.faces.triangles,
            "normals": mesh.faces.normals,
            "faceGroups": mesh.faces.face_groups,
        },
        "edges": {
            "vertices": mesh.edges.vertices,
            "lines": mesh.edges.lines,
            "edgeGroups": mesh.edges.edge_groups,
        },
    }
    return orjson.dumps(payload, option=orjson.OPT_SERIALIZE_NUMPY)


def write_output(data: bytes, output_path: Union[str, Path]) -> str:
    """Write export bytes to disk and return a file URI."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return f"file://{path.resolve()}"
