"""Process-group capability: spawn into a group and signal it as a whole."""

from __future__ import annotations

import os
import signal
from abc import ABC, abstractmethod
from typing import Any

from safe_local_exec.util.logging import get_logger

_LOGGER = get_logger(__name__)


class ProcessGroupControl(ABC):
    """Best-effort group termination for a spawned command and its children."""

    @abstractmethod
    def spawn_options(self) -> dict[str, Any]:
        """Return extra ``subprocess.Popen`` keyword arguments for spawning."""

    @abstractmethod
    def lookup(self, pid: int) -> int | None:
        """Return the process-group id of ``pid``, or None if unavailable."""

    @abstractmethod
    def terminate(self, pgid: int | None) -> bool:
        """Send a terminate signal to every process in the group.

        Never raises: failures are logged and reported as False.

        Args:
            pgid: Process-group id captured right after spawn.

        Returns:
            True if a signal was delivered.
        """


class PosixProcessGroups(ProcessGroupControl):
    """Process groups on POSIX systems: new group per command, SIGTERM on kill."""

    def __init__(self, signum: int = signal.SIGTERM) -> None:
        self._signum = signum

    def spawn_options(self) -> dict[str, Any]:
        return {"process_group": 0}

    def lookup(self, pid: int) -> int | None:
        try:
            return os.getpgid(pid)
        except OSError as exc:
            _LOGGER.warning("Could not look up process group of pid %s: %s", pid, exc)
            return None

    def terminate(self, pgid: int | None) -> bool:
        if pgid is None:
            _LOGGER.warning("No process group recorded; skipping group termination.")
            return False
        try:
            os.killpg(pgid, self._signum)
        except ProcessLookupError:
            _LOGGER.debug("Process group %s already gone.", pgid)
            return False
        except OSError as exc:
            _LOGGER.warning("Failed to signal process group %s: %s", pgid, exc)
            return False
        _LOGGER.info("Sent signal %s to process group %s.", self._signum, pgid)
        return True


class NullProcessGroups(ProcessGroupControl):
    """Platforms without process groups; only the direct child is ever killed."""

    def spawn_options(self) -> dict[str, Any]:
        return {}

    def lookup(self, pid: int) -> int | None:
        return None

    def terminate(self, pgid: int | None) -> bool:
        return False


def default_process_groups() -> ProcessGroupControl:
    """Return the group control matching the running platform."""

    if os.name == "posix":
        return PosixProcessGroups()
    return NullProcessGroups()
