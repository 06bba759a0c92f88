"""Gridded storage-bin assembly.

Turns positioned 2D outlines into one solid: a tiled stepped base, a
bottom plate and walls with a pocket cut for every outline.
"""

from .assembler import BinAssembler, EmptyModelError
from .cache import ResultCache
from .config import Settings
from .worker import BinWorker, KernelInitError, KernelState, StaleRequestError

__version__ = "0.1.0"
__all__ = [
    "BinAssembler", "EmptyModelError",
    "ResultCache", "Settings",
    "BinWorker", "KernelInitError", "KernelState", "StaleRequestError",
]
