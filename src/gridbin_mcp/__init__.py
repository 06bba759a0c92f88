"""gridbin MCP server package.

Provides an MCP (Model Context Protocol) server that generates bin
preview meshes and STEP files from 2D outlines.
"""

from .server import main as server_main
from .tools import get_worker, set_worker

__version__ = "0.1.0"
__all__ = ["server_main", "get_worker", "set_worker"]
