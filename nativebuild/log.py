"""Logging setup on top of loguru."""
from __future__ import annotations

from typing import Any, TextIO
import sys

from loguru import logger

LOG_LEVELS: dict[str, str] = {
    "silly": "TRACE",
    "verbose": "DEBUG",
    "info": "INFO",
    "http": "SUCCESS",
    "warn": "WARNING",
    "error": "ERROR",
}
"""User-facing log level names mapped to loguru severities."""

DEFAULT_LOG_LEVEL = "info"

_FORMAT = "<level>{level: <8}</level> | <level>{message}</level>"
_DEBUG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> | "
    "<level>{message}</level>"
)


def normalize_log_level(value: Any) -> str | None:
    """Return the canonical level name for ``value`` or ``None`` if unrecognized."""

    if not isinstance(value, str):
        return None
    candidate = value.strip().lower()
    return candidate if candidate in LOG_LEVELS else None


def setup_logging(level: str | None, *, sink: TextIO | None = None) -> str:
    """Replace loguru's handlers with a single sink at ``level``.

    Returns the loguru level name that was installed.
    """

    logger.remove()
    loguru_level = LOG_LEVELS[level or DEFAULT_LOG_LEVEL]
    log_format = _DEBUG_FORMAT if loguru_level in {"TRACE", "DEBUG"} else _FORMAT
    logger.add(sink or sys.stderr, level=loguru_level, format=log_format, colorize=None)
    return loguru_level
