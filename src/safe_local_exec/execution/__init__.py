"""Execution engine package."""

from safe_local_exec.execution.base import (
    InvocationOutcome,
    InvocationRequest,
    InvocationState,
    LaunchSpec,
)
from safe_local_exec.execution.context import CompletionEvent, ExecutionContext, race
from safe_local_exec.execution.coordinator import InvocationCoordinator
from safe_local_exec.execution.groups import (
    NullProcessGroups,
    PosixProcessGroups,
    ProcessGroupControl,
    default_process_groups,
)
from safe_local_exec.execution.launcher import LaunchedProcess, ProcessLauncher

__all__ = [
    "CompletionEvent",
    "ExecutionContext",
    "InvocationCoordinator",
    "InvocationOutcome",
    "InvocationRequest",
    "InvocationState",
    "LaunchSpec",
    "LaunchedProcess",
    "NullProcessGroups",
    "PosixProcessGroups",
    "ProcessGroupControl",
    "ProcessLauncher",
    "default_process_groups",
    "race",
]
