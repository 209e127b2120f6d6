"""Execution value types and argument/environment helpers."""

from __future__ import annotations

import enum
import json
import os
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from safe_local_exec.execution.errors import CommandFailedError, ExecError

_POSIX_SHELL: tuple[str, ...] = ("/bin/sh", "-c")
_WINDOWS_SHELL: tuple[str, ...] = ("cmd", "/C")


@dataclass(frozen=True)
class InvocationRequest:
    """A single command invocation, validated at the configuration boundary.

    Attributes:
        command: Command text handed to the interpreter as its final argument.
        interpreter: Interpreter prefix; empty means the platform default shell.
        working_dir: Working directory; empty means the caller's directory.
        environment: Variables merged on top of the inherited environment.
        timeout_s: Requested timeout in seconds; 0 means none requested.
    """

    command: str
    interpreter: tuple[str, ...] = ()
    working_dir: str = ""
    environment: Mapping[str, str] = field(default_factory=dict)
    timeout_s: int = 0


@dataclass(frozen=True)
class LaunchSpec:
    """Fully resolved process launch parameters."""

    argv: tuple[str, ...]
    env: Mapping[str, str]
    working_dir: str | None = None


@dataclass(frozen=True)
class InvocationOutcome:
    """Terminal result of an invocation.

    Attributes:
        command: The command text that was run.
        error: Underlying failure, or None on success.
        output: Captured tail of combined output (at most the buffer capacity).
        timeout_s: Effective timeout that was enforced; 0 when unbounded.
        drain_abandoned: True if output draining was cut short by cancellation.
    """

    command: str
    error: ExecError | None = None
    output: bytes = b""
    timeout_s: int = 0
    drain_abandoned: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def raise_for_failure(self) -> None:
        """Raise :class:`CommandFailedError` if the invocation failed."""

        if self.error is not None:
            raise CommandFailedError(self.command, self.error, self.output)


class InvocationState(str, enum.Enum):
    """Lifecycle states of one invocation."""

    IDLE = "idle"
    SPAWNING = "spawning"
    RUNNING = "running"
    DRAINING = "draining"
    TERMINATED = "terminated"


def default_interpreter(os_name: str | None = None) -> tuple[str, ...]:
    """Return the platform default shell invocation prefix."""

    if (os_name or os.name) == "nt":
        return _WINDOWS_SHELL
    return _POSIX_SHELL


def build_argv(request: InvocationRequest, os_name: str | None = None) -> tuple[str, ...]:
    """Return the interpreter prefix followed by the command text."""

    prefix = request.interpreter or default_interpreter(os_name)
    return (*prefix, request.command)


def merge_environment(
    overrides: Mapping[str, str],
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Return the inherited environment with overrides applied on top."""

    merged = dict(os.environ if base is None else base)
    merged.update(overrides)
    return merged


def format_argv(argv: Sequence[str]) -> str:
    """Render an argument vector with every element double-quoted."""

    return "[" + " ".join(json.dumps(arg, ensure_ascii=False) for arg in argv) + "]"
