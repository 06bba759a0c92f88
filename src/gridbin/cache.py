"""Memoization of the expensive bin builders.

Each builder gets its own bounded LRU store. Keys are signatures: the
builder's geometric inputs normalized (every number as a float, ``-0.0``
folded into ``0.0``, outlines reduced to their geometry fields) and
serialized with sorted keys, so equal inputs always produce the same
bytes.

Kernel operations never modify their inputs, so a cached solid handle is
returned as is and stays valid for every later hit.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, TypeVar

import orjson
import structlog

from binmodel.schema import Outline, Point
from binmodel.serialize import outline_to_dict

from .config import DEFAULT_CACHE_SIZE

logger = structlog.get_logger(__name__)

T = TypeVar("T")

BASE_UNIT = "base_unit"
BASE = "base"
CUTOUT = "cutout"
BIN = "bin"

NAMESPACES = (BASE_UNIT, BASE, CUTOUT, BIN)


@dataclass
class CacheStats:
    """Counters for one namespace."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    size: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "size": self.size,
        }


def normalize_key_part(value: Any, include_identity: bool = True) -> Any:
    """Reduce a builder input to plain JSON values with canonical numbers."""
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, (int, float)):
        number = float(value)
        return 0.0 if number == 0 else number
    if isinstance(value, Outline):
        return normalize_key_part(outline_to_dict(value, include_id=include_identity))
    if isinstance(value, Point):
        return {"x": normalize_key_part(value.x), "y": normalize_key_part(value.y)}
    if isinstance(value, dict):
        return {str(k): normalize_key_part(v, include_identity) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_key_part(item, include_identity) for item in value]
    raise TypeError(f"Cannot build a cache key from {type(value).__name__}")


class ResultCache:
    """Bounded per-builder LRU stores keyed by input signatures."""

    def __init__(self, max_entries: int = DEFAULT_CACHE_SIZE, include_identity: bool = True):
        """Initialize the cache.

        Args:
            max_entries: Entries kept per namespace before the least
                recently used one is evicted
            include_identity: Include outline ids in signatures; with it
                off, geometrically identical outlines share entries
        """
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")

        self.max_entries = max_entries
        self.include_identity = include_identity
        self._stores: Dict[str, OrderedDict[bytes, Any]] = {
            namespace: OrderedDict() for namespace in NAMESPACES
        }
        self._stats: Dict[str, CacheStats] = {namespace: CacheStats() for namespace in NAMESPACES}

        logger.debug(
            "Result cache initialized",
            max_entries=max_entries,
            include_identity=include_identity,
        )

    def signature(self, key_parts: Iterable[Any]) -> bytes:
        normalized = normalize_key_part(list(key_parts), self.include_identity)
        return orjson.dumps(normalized, option=orjson.OPT_SORT_KEYS)

    def _store(self, namespace: str) -> OrderedDict[bytes, Any]:
        try:
            return self._stores[namespace]
        except KeyError:
            raise KeyError(f"Unknown cache namespace: {namespace!r}") from None

    def get(self, namespace: str, key: bytes) -> Optional[Any]:
        """Return a cached result and mark it most recently used."""
        store = self._store(namespace)
        if key not in store:
            return None
        store.move_to_end(key)
        return store[key]

    def put(self, namespace: str, key: bytes, value: Any) -> None:
        store = self._store(namespace)
        store[key] = value
        store.move_to_end(key)

        stats = self._stats[namespace]
        while len(store) > self.max_entries:
            store.popitem(last=False)
            stats.evictions += 1
        stats.size = len(store)

    def get_or_build(self, namespace: str, key_parts: Iterable[Any], builder: Callable[[], T]) -> T:
        """Return the cached result for ``key_parts`` or build and store it.

        A builder that raises stores nothing.
        """
        key = self.signature(key_parts)
        store = self._store(namespace)
        stats = self._stats[namespace]

        if key in store:
            stats.hits += 1
            logger.debug("Cache hit", namespace=namespace)
            return self.get(namespace, key)

        stats.misses += 1
        logger.debug("Cache miss", namespace=namespace)
        value = builder()
        self.put(namespace, key, value)
        return value

    def stats(self) -> Dict[str, Dict[str, int]]:
        return {namespace: self._stats[namespace].to_dict() for namespace in NAMESPACES}

    def clear(self, namespace: Optional[str] = None) -> None:
        """Drop cached results, of one namespace or all of them.

        Counters other than size are kept.
        """
        namespaces = NAMESPACES if namespace is None else (namespace,)
        for name in namespaces:
            self._store(name).clear()
            self._stats[name].size = 0
        logger.debug("Cache cleared", namespaces=list(namespaces))

    def __len__(self) -> int:
        return sum(len(store) for store in self._stores.values())
