"""Runtime settings for the bin pipeline.

Defaults come from the fixed bin dimensions; each value can be
overridden with a ``GRIDBIN_*`` environment variable.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from binmodel.dimensions import MESH_ANGULAR_TOLERANCE, MESH_TOLERANCE

DEFAULT_CACHE_SIZE = 20

ENV_PREFIX = "GRIDBIN_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _parse_positive(name: str, raw: str, kind=float):
    try:
        value = kind(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    """Cache, mesh and logging settings."""

    cache_size: int = DEFAULT_CACHE_SIZE
    cache_identity: bool = True
    mesh_tolerance: float = MESH_TOLERANCE
    mesh_angular_tolerance: float = MESH_ANGULAR_TOLERANCE
    log_env: str = "development"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        """Build settings from ``GRIDBIN_*`` variables, falling back to defaults.

        Raises:
            ValueError: If a variable is set to an unparseable value
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def lookup(key: str) -> Optional[str]:
            raw = env.get(ENV_PREFIX + key)
            return raw if raw not in (None, "") else None

        raw = lookup("CACHE_SIZE")
        cache_size = defaults.cache_size if raw is None else _parse_positive(
            "GRIDBIN_CACHE_SIZE", raw, int
        )

        raw = lookup("CACHE_IDENTITY")
        cache_identity = defaults.cache_identity if raw is None else _parse_bool(
            "GRIDBIN_CACHE_IDENTITY", raw
        )

        raw = lookup("MESH_TOLERANCE")
        mesh_tolerance = defaults.mesh_tolerance if raw is None else _parse_positive(
            "GRIDBIN_MESH_TOLERANCE", raw
        )

        raw = lookup("MESH_ANGULAR_TOLERANCE")
        mesh_angular_tolerance = (
            defaults.mesh_angular_tolerance
            if raw is None
            else _parse_positive("GRIDBIN_MESH_ANGULAR_TOLERANCE", raw)
        )

        log_env = lookup("LOG_ENV") or defaults.log_env

        return cls(
            cache_size=cache_size,
            cache_identity=cache_identity,
            mesh_tolerance=mesh_tolerance,
            mesh_angular_tolerance=mesh_angular_tolerance,
            log_env=log_env,
        )
