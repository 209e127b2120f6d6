"""Reporting sinks receiving command output one line at a time."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable


class OutputSink(ABC):
    """Destination for live command output."""

    @abstractmethod
    def emit(self, line: str) -> None:
        """Deliver one line of output, without its terminator.

        Args:
            line: The text line to report.
        """


class CollectingSink(OutputSink):
    """Sink that keeps an in-memory transcript of every emitted line."""

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._lock = threading.Lock()

    def emit(self, line: str) -> None:
        with self._lock:
            self._lines.append(line)

    @property
    def lines(self) -> list[str]:
        """Return a copy of the transcript."""

        with self._lock:
            return list(self._lines)

    def text(self) -> str:
        return "\n".join(self.lines)


class LoggerSink(OutputSink):
    """Sink forwarding each line to a standard logger."""

    def __init__(self, logger: logging.Logger, level: int = logging.INFO) -> None:
        self._logger = logger
        self._level = level

    def emit(self, line: str) -> None:
        self._logger.log(self._level, "%s", line)


class CallbackSink(OutputSink):
    """Sink wrapping an arbitrary ``callable(line)``."""

    def __init__(self, callback: Callable[[str], object]) -> None:
        self._callback = callback

    def emit(self, line: str) -> None:
        self._callback(line)
