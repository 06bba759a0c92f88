"""gridbin MCP server implementation.

Provides a stdio-based MCP server exposing bin generation and STEP
export with error handling and logging.
"""

from __future__ import annotations

import sys
from typing import Any, Dict, List, Optional

import structlog
from mcp.server.fastmcp import FastMCP

from gridbin.logging_setup import configure_logging

from .tools import (
    get_worker,
    tool_cache_info,
    tool_export_step,
    tool_generate_model,
    tool_initialize,
    tool_is_ready,
)

logger = structlog.get_logger(__name__)

# Create FastMCP app
app = FastMCP("gridbin")


@app.tool()
async def initialize() -> Dict[str, Any]:
    """Bootstrap the geometry kernel.

    Idempotent; concurrent calls share one bootstrap. Must succeed before
    models can be generated (the model tools also call it implicitly).

    Returns:
        Dictionary with the kernel state
    """
    try:
        logger.info("MCP tool: initialize")
        result = await tool_initialize()
        logger.info("MCP tool: initialize completed", success=result.get("success", False))
        return result
    except Exception as e:
        logger.error("MCP tool: initialize failed", error=str(e))
        return {"success": False, "error": f"Tool execution failed: {e}", "state": None}


@app.tool()
async def is_ready() -> Dict[str, Any]:
    """Report whether the geometry kernel is bootstrapped."""
    return await tool_is_ready()


@app.tool()
async def generate_model(
    outlines: List[Dict[str, Any]],
    total_height: float,
    base_height: Optional[float] = None,
) -> Dict[str, Any]:
    """Build a bin from outlines and return its preview mesh.

    Args:
        outlines: Outline dictionaries in editor form (``type`` is
            ``"spline"`` or ``"roundedRect"``)
        total_height: Overall bin height in mm
        base_height: Gridded base height in mm (default 4.75)

    Returns:
        Dictionary with ``model`` = ``{faces, edges}`` mesh buffers, or
        ``model`` = None when ``outlines`` is empty

    Example:
        >>> generate_model([{"id": "a", "type": "roundedRect", "width": 80,
        ...                  "height": 60, "radius": 15}], 20)
        {
            "success": True,
            "model": {
                "faces": {"vertices": [...], "triangles": [...], "normals": [...],
                          "faceGroups": [{"start": 0, "count": 6, "faceId": 0}]},
                "edges": {"vertices": [...], "lines": [...],
                          "edgeGroups": [{"start": 0, "count": 2, "edgeId": 0}]}
            }
        }
    """
    try:
        logger.info("MCP tool: generate_model", outlines=len(outlines), total_height=total_height)
        result = await tool_generate_model({
            "outlines": outlines,
            "total_height": total_height,
            "base_height": base_height,
        })
        logger.info("MCP tool: generate_model completed", success=result.get("success", False))
        return result
    except Exception as e:
        logger.error("MCP tool: generate_model failed", error=str(e))
        return {"success": False, "error": f"Tool execution failed: {e}", "model": None}


@app.tool()
async def export_step(
    outlines: List[Dict[str, Any]],
    total_height: float,
    base_height: Optional[float] = None,
) -> Dict[str, Any]:
    """Export a bin as a STEP file.

    Args:
        outlines: Outline dictionaries in editor form
        total_height: Overall bin height in mm
        base_height: Gridded base height in mm (default 4.75)

    Returns:
        Dictionary with base64-encoded STEP data; fails for an empty
        outline list
    """
    try:
        logger.info("MCP tool: export_step", outlines=len(outlines), total_height=total_height)
        result = await tool_export_step({
            "outlines": outlines,
            "total_height": total_height,
            "base_height": base_height,
        })
        logger.info("MCP tool: export_step completed",
                    success=result.get("success", False), size_bytes=result.get("size_bytes"))
        return result
    except Exception as e:
        logger.error("MCP tool: export_step failed", error=str(e))
        return {"success": False, "error": f"Tool execution failed: {e}", "data_base64": None}


@app.tool()
async def cache_info(clear: bool = False) -> Dict[str, Any]:
    """Result cache statistics per builder.

    Args:
        clear: Empty the cache before reporting
    """
    try:
        return await tool_cache_info({"clear": clear})
    except Exception as e:
        logger.error("MCP tool: cache_info failed", error=str(e))
        return {"success": False, "error": f"Tool execution failed: {e}"}


def main() -> None:
    """Main entry point for the MCP server.

    Runs the server in stdio mode.
    """
    # stdout carries the protocol; logs go to stderr without colours
    configure_logging(level="INFO", enable_colors=False, stream=sys.stderr)

    try:
        logger.info("Starting gridbin MCP server")

        from kernel.occt import get_occt_info
        occt_info = get_occt_info()
        logger.info("OCCT binding status", **occt_info)

        if not occt_info["ocp_available"]:
            logger.warning(
                "No OCCT binding available - model generation will fail. "
                "Install cadquery-ocp to enable bin assembly."
            )

        logger.info("gridbin MCP server ready")
        app.run()

    except KeyboardInterrupt:
        logger.info("MCP server shutting down (keyboard interrupt)")
        sys.exit(0)
    except Exception as e:
        logger.error("MCP server startup failed", error=str(e))
        sys.exit(1)
    finally:
        get_worker().close()


if __name__ == "__main__":
    main()
