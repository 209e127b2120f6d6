"""Controlled local command execution with deadline enforcement."""

from safe_local_exec.execution.base import InvocationOutcome, InvocationRequest
from safe_local_exec.execution.coordinator import InvocationCoordinator
from safe_local_exec.execution.errors import (
    CommandFailedError,
    ConfigurationError,
    ExecError,
    PipeError,
    RunError,
    StartError,
)

__all__ = [
    "CommandFailedError",
    "ConfigurationError",
    "ExecError",
    "InvocationCoordinator",
    "InvocationOutcome",
    "InvocationRequest",
    "PipeError",
    "RunError",
    "StartError",
]

__version__ = "0.1.0"
