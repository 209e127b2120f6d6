"""Logging utilities for safe-local-exec."""

from __future__ import annotations

import logging
from typing import Final, TextIO

DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOGGER_PREFIX: Final[str] = "safe_local_exec"
_LEVELS: Final[dict[str, int]] = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def configure_logging(
    level: str = "WARNING",
    fmt: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Configure diagnostic logging.

    Command output is never routed through logging; it goes to the reporting
    sink. Logging carries the executor's own diagnostics only.

    Args:
        level: Logging level name (e.g., "INFO", "DEBUG").
        fmt: Optional logging format string. Defaults to a standard structured format.
        stream: Optional stream for log records. Defaults to stderr.
    """

    logging.basicConfig(
        level=_normalize_level(level),
        format=fmt or DEFAULT_LOG_FORMAT,
        stream=stream,
    )


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under the package logger."""

    if name == LOGGER_PREFIX or name.startswith(f"{LOGGER_PREFIX}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_PREFIX}.{name}")


def _normalize_level(level: str) -> int:
    normalized = level.strip().upper()
    return _LEVELS.get(normalized, logging.INFO)
