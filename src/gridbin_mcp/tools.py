"""MCP tools implementation around a shared bin worker.

This module provides the request/response operations of the gridbin
MCP server. Every tool validates its parameters, runs on the process's
``BinWorker`` and answers with a ``success`` flag.
"""

from __future__ import annotations

import base64
from typing import Any, Dict, List, Optional

import structlog

from binmodel.dimensions import DEFAULT_BASE_HEIGHT
from binmodel.schema import AnyOutline, BinParameterError, MalformedOutlineError
from binmodel.serialize import outline_from_dict
from gridbin.assembler import EmptyModelError
from gridbin.config import Settings
from gridbin.worker import BinWorker, KernelInitError, StaleRequestError
from kernel.export import ExportError
from kernel.protocol import KernelError

logger = structlog.get_logger(__name__)

# Failures reported to the caller as tool errors
TOOL_ERRORS = (
    BinParameterError,
    MalformedOutlineError,
    EmptyModelError,
    KernelError,
    ExportError,
    KernelInitError,
    StaleRequestError,
)

_worker: Optional[BinWorker] = None


def get_worker() -> BinWorker:
    """Return the process-wide worker, creating it on first use."""
    global _worker
    if _worker is None:
        _worker = BinWorker(settings=Settings.from_env())
    return _worker


def set_worker(worker: Optional[BinWorker]) -> None:
    """Replace the process-wide worker (None drops it)."""
    global _worker
    _worker = worker


def _parse_outlines(params: Dict[str, Any]) -> List[AnyOutline]:
    if "outlines" not in params:
        raise ValueError("Missing required parameter: outlines")

    raw = params["outlines"]
    if not isinstance(raw, list):
        raise ValueError("Parameter 'outlines' must be a list")

    return [outline_from_dict(item) for item in raw]


def _parse_heights(params: Dict[str, Any]) -> tuple[float, float]:
    if params.get("total_height") is None:
        raise ValueError("Missing required parameter: total_height")
    try:
        total_height = float(params["total_height"])
        base_height = params.get("base_height")
        base_height = DEFAULT_BASE_HEIGHT if base_height is None else float(base_height)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Heights must be numbers: {e}") from e
    return total_height, base_height


async def tool_initialize(params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """MCP tool: Bootstrap the geometry kernel.

    Returns:
        Dictionary with the kernel state
    """
    worker = get_worker()
    try:
        await worker.initialize()
    except KernelInitError as e:
        logger.error("initialize tool failed", error=str(e))
        return {"success": False, "error": str(e), "state": worker.state.value}

    return {"success": True, "state": worker.state.value}


async def tool_is_ready(params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    worker = get_worker()
    return {"success": True, "ready": worker.is_ready(), "state": worker.state.value}


async def tool_generate_model(params: Dict[str, Any]) -> Dict[str, Any]:
    """MCP tool: Build a bin and return its preview mesh.

    Args:
        params: Tool parameters containing 'outlines', 'total_height'
            and optional 'base_height'

    Returns:
        Dictionary with ``model`` holding faces and edges, or None for
        an empty outline list

    Raises:
        ValueError: If parameters are invalid
    """
    outlines = _parse_outlines(params)
    total_height, base_height = _parse_heights(params)

    try:
        mesh = await get_worker().generate_model(outlines, total_height, base_height)
    except TOOL_ERRORS as e:
        logger.error("generate_model tool failed", error=str(e), error_type=type(e).__name__)
        return {
            "success": False,
            "error": str(e),
            "error_type": type(e).__name__,
            "model": None,
        }

    return {
        "success": True,
        "model": None if mesh is None else mesh.to_dict(),
    }


async def tool_export_step(params: Dict[str, Any]) -> Dict[str, Any]:
    """MCP tool: Export a bin as STEP.

    Args:
        params: Tool parameters containing 'outlines', 'total_height'
            and optional 'base_height'

    Returns:
        Dictionary with base64 STEP data

    Raises:
        ValueError: If parameters are invalid
    """
    outlines = _parse_outlines(params)
    total_height, base_height = _parse_heights(params)

    try:
        data = await get_worker().export_step(outlines, total_height, base_height)
    except TOOL_ERRORS as e:
        logger.error("export_step tool failed", error=str(e), error_type=type(e).__name__)
        return {
            "success": False,
            "error": str(e),
            "error_type": type(e).__name__,
            "data_base64": None,
        }

    return {
        "success": True,
        "format": "step",
        "mime_type": "model/step",
        "size_bytes": len(data),
        "data_base64": base64.b64encode(data).decode("ascii"),
    }


async def tool_cache_info(params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """MCP tool: Cache statistics per builder.

    Args:
        params: Optional parameters; ``clear`` empties the cache first
    """
    worker = get_worker()
    if params and params.get("clear"):
        await worker.clear_cache()

    info = await worker.cache_info()
    return {"success": True, **info}
