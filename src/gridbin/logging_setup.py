"""Logging configuration for gridbin.

Provides consistent structured logging setup for the CLI, the worker and
the MCP server.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict, List

import structlog


def configure_logging(
    level: str = "INFO",
    enable_colors: bool = True,
    enable_json: bool = False,
    extra_processors: List[Any] | None = None,
    stream: Any = None,
) -> None:
    """Configure structured logging for gridbin.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        enable_colors: Enable colored output for console
        enable_json: Use JSON output format
        extra_processors: Additional structlog processors
        stream: Output stream, stdout unless given (the MCP server uses stderr)
    """
    stream = stream or sys.stdout
    log_level = LOG_LEVELS[level.upper()]

    # Set standard library logging level
    logging.basicConfig(format="%(message)s", stream=stream, level=log_level)

    # Build processor chain
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
    ]

    if extra_processors:
        processors.extend(extra_processors)

    # Choose renderer based on output format
    if enable_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(colors=enable_colors and stream.isatty())
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.WriteLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )


def configure_for_environment(environment: str, **overrides: Any) -> None:
    """Apply one of the ``CONFIGS`` presets.

    Raises:
        ValueError: If the environment name is unknown
    """
    if environment not in CONFIGS:
        raise ValueError(
            f"Unknown logging environment {environment!r}, expected one of {sorted(CONFIGS)}"
        )
    options = dict(CONFIGS[environment])
    options.update(overrides)
    configure_logging(**options)


# Predefined log levels and configurations
LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Default configuration for different environments
CONFIGS: Dict[str, Dict[str, Any]] = {
    "development": {
        "level": "DEBUG",
        "enable_colors": True,
        "enable_json": False,
    },
    "production": {
        "level": "INFO",
        "enable_colors": False,
        "enable_json": True,
    },
    "testing": {
        "level": "WARNING",
        "enable_colors": False,
        "enable_json": False,
    },
}
