"""Outline document serialization.

Documents use the editor's camelCase field names so files saved by the
editor load unchanged. Display-only fields are accepted and ignored.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import orjson

from .dimensions import DEFAULT_BASE_HEIGHT
from .schema import (
    AnyOutline,
    MalformedOutlineError,
    Point,
    RoundedRectOutline,
    SplineOutline,
)


@dataclass
class OutlineDocument:
    """Outlines plus the bin heights they were designed for."""

    outlines: List[AnyOutline]
    total_height: Optional[float] = None
    base_height: float = DEFAULT_BASE_HEIGHT


def _sort_dict_recursive(obj: Any) -> Any:
    """Recursively sort dictionaries for deterministic output."""
    if isinstance(obj, dict):
        return {k: _sort_dict_recursive(v) for k, v in sorted(obj.items())}
    elif isinstance(obj, list):
        return [_sort_dict_recursive(item) for item in obj]
    else:
        return obj


def _point_from_dict(data: Any, context: str) -> Point:
    try:
        return Point(float(data["x"]), float(data["y"]))
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedOutlineError(f"Invalid point in {context}: {data!r}") from e


def _point_to_dict(point: Point) -> Dict[str, float]:
    return {"x": point.x, "y": point.y}


def outline_from_dict(data: Dict[str, Any]) -> AnyOutline:
    """Build an outline from its editor dictionary form.

    Raises:
        MalformedOutlineError: If the type is unknown or a field is invalid
    """
    outline_type = data.get("type")
    outline_id = str(data.get("id", ""))
    if not outline_id:
        raise MalformedOutlineError("Outline is missing an id")

    common = {
        "id": outline_id,
        "position": _point_from_dict(data.get("position", {"x": 0, "y": 0}), outline_id),
        "rotation": float(data.get("rotation", 0.0)),
        "depth": None if data.get("depth") is None else float(data["depth"]),
    }

    if outline_type == "roundedRect":
        try:
            outline: AnyOutline = RoundedRectOutline(
                width=float(data["width"]),
                height=float(data["height"]),
                radius=float(data.get("radius", 0.0)),
                **common,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedOutlineError(f"Invalid rounded rectangle {outline_id!r}: {e}") from e
    elif outline_type == "spline":
        points = tuple(_point_from_dict(p, outline_id) for p in data.get("points", []))
        outline = SplineOutline(points=points, **common)
    else:
        raise MalformedOutlineError(f"Unknown outline type {outline_type!r} for {outline_id!r}")

    outline.validate()
    return outline


def outline_to_dict(outline: AnyOutline, include_id: bool = True) -> Dict[str, Any]:
    """Editor dictionary form with geometry fields only."""
    data: Dict[str, Any] = {
        "type": outline.type,
        "position": _point_to_dict(outline.position),
        "rotation": outline.rotation,
        "depth": outline.depth,
    }
    if include_id:
        data["id"] = outline.id

    if isinstance(outline, RoundedRectOutline):
        data.update(width=outline.width, height=outline.height, radius=outline.radius)
    else:
        data["points"] = [_point_to_dict(p) for p in outline.points]

    return data


def document_from_dict(data: Dict[str, Any]) -> OutlineDocument:
    outlines = [outline_from_dict(item) for item in data.get("outlines", [])]
    total_height = data.get("totalHeight")
    return OutlineDocument(
        outlines=outlines,
        total_height=None if total_height is None else float(total_height),
        base_height=float(data.get("baseHeight", DEFAULT_BASE_HEIGHT)),
    )


def document_to_dict(document: OutlineDocument, deterministic: bool = True) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        "outlines": [outline_to_dict(o) for o in document.outlines],
        "baseHeight": document.base_height,
    }
    if document.total_height is not None:
        result["totalHeight"] = document.total_height
    return _sort_dict_recursive(result) if deterministic else result


def load_document(path: Union[str, Path]) -> OutlineDocument:
    """Load an outline document from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If JSON parsing fails or an outline is invalid
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Outline document not found: {path}")

    try:
        data = orjson.loads(path.read_bytes())
    except orjson.JSONDecodeError as e:
        raise ValueError(f"Failed to parse {path}: {e}") from e

    if isinstance(data, list):
        # Bare outline list as exported by the editor store
        data = {"outlines": data}

    return document_from_dict(data)


def dump_document(document: OutlineDocument, path: Union[str, Path], pretty: bool = True) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = document_to_dict(document)
    if pretty:
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    else:
        path.write_bytes(orjson.dumps(data))
