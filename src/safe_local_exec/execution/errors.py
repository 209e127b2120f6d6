"""Error taxonomy for controlled command execution."""

from __future__ import annotations

import signal


class ExecError(RuntimeError):
    """Base class for every failure raised by the executor."""


class ConfigurationError(ExecError):
    """Raised when an invocation is rejected before anything is spawned."""


class StartError(ExecError):
    """Raised when the operating system fails to create the process."""


class PipeError(StartError):
    """Raised when the output pipe cannot be allocated."""


class RunError(ExecError):
    """Raised when a started process exits non-zero or dies from a signal.

    Attributes:
        returncode: Raw return code reported for the process. Negative values
            are the number of the signal that killed it.
        signal_name: Name of the killing signal, if any.
        reason: Cancellation reason when the kill was requested by a context.
    """

    def __init__(self, returncode: int, reason: str | None = None) -> None:
        self.returncode = returncode
        self.signal_name = _signal_name(-returncode) if returncode < 0 else None
        self.reason = reason
        super().__init__(self._describe())

    def _describe(self) -> str:
        if self.signal_name is not None:
            message = f"signal: {self.signal_name}"
        else:
            message = f"exit status {self.returncode}"
        if self.reason:
            message = f"{message} ({self.reason})"
        return message


class CommandFailedError(ExecError):
    """Final failure reported to the caller of an invocation.

    Attributes:
        command: The original command text.
        cause: The underlying start, pipe, or run error.
        output: Captured tail of the combined output.
    """

    def __init__(self, command: str, cause: ExecError, output: bytes) -> None:
        self.command = command
        self.cause = cause
        self.output = output
        tail = output.decode("utf-8", errors="replace")
        super().__init__(f"Error running command '{command}': {cause}. Output: {tail}")


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return f"signal {signum}"
