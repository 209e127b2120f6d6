"""Application wiring for CLI-friendly invocation."""

from __future__ import annotations

from typing import Any, Mapping

from safe_local_exec.config import parse_invocation_request
from safe_local_exec.execution.base import InvocationOutcome, InvocationRequest
from safe_local_exec.execution.context import ExecutionContext
from safe_local_exec.execution.coordinator import InvocationCoordinator
from safe_local_exec.execution.groups import ProcessGroupControl
from safe_local_exec.execution.launcher import ProcessLauncher
from safe_local_exec.output.sinks import OutputSink
from safe_local_exec.util.logging import get_logger
from safe_local_exec.util.observability import ObservabilityManager

_LOGGER = get_logger("safe_local_exec.app")


def build_coordinator(
    *,
    groups: ProcessGroupControl | None = None,
    observability: ObservabilityManager | None = None,
    environ: Mapping[str, str] | None = None,
) -> InvocationCoordinator:
    """Build a coordinator with the platform launcher.

    Args:
        groups: Optional process-group control (for testing).
        observability: Optional shared metrics manager.
        environ: Optional environment override (for testing).

    Returns:
        Configured InvocationCoordinator.
    """

    return InvocationCoordinator(
        ProcessLauncher(groups),
        observability=observability,
        environ=environ,
    )


def execute(
    request: InvocationRequest,
    sink: OutputSink,
    *,
    context: ExecutionContext | None = None,
    coordinator: InvocationCoordinator | None = None,
) -> InvocationOutcome:
    """Run a request and raise if it failed.

    Args:
        request: Validated invocation request.
        sink: Reporting sink for live output.
        context: Optional caller context used for cancellation.
        coordinator: Optional pre-built coordinator (for testing).

    Returns:
        The successful InvocationOutcome.

    Raises:
        ConfigurationError: If the request is rejected before spawning.
        CommandFailedError: If the command could not start or did not succeed.
    """

    runner = coordinator or build_coordinator()
    _LOGGER.info("Running command %r.", request.command)
    outcome = runner.run(request, sink, context)
    outcome.raise_for_failure()
    return outcome


def apply_config(
    raw: Mapping[str, Any],
    sink: OutputSink,
    *,
    context: ExecutionContext | None = None,
    coordinator: InvocationCoordinator | None = None,
) -> InvocationOutcome:
    """Validate a loosely-typed request record and execute it.

    This is the provisioner entry point: the host hands over the raw field
    map, which is converted into an InvocationRequest once at this boundary.
    """

    request = parse_invocation_request(raw)
    return execute(request, sink, context=context, coordinator=coordinator)
