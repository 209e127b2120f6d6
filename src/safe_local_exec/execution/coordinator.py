"""Top-level control flow for one controlled command invocation."""

from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass, field
from typing import Mapping

from safe_local_exec.config import effective_timeout, read_timeout_ceiling
from safe_local_exec.execution.base import (
    InvocationOutcome,
    InvocationRequest,
    InvocationState,
    LaunchSpec,
    build_argv,
    format_argv,
    merge_environment,
)
from safe_local_exec.execution.context import CompletionEvent, ExecutionContext, race
from safe_local_exec.execution.errors import ConfigurationError, ExecError, PipeError
from safe_local_exec.execution.groups import ProcessGroupControl
from safe_local_exec.execution.launcher import LaunchedProcess, ProcessLauncher
from safe_local_exec.output.buffer import MAX_OUTPUT_BYTES, BoundedBuffer
from safe_local_exec.output.lines import LineReader
from safe_local_exec.output.sinks import OutputSink
from safe_local_exec.output.tee import TeeReader
from safe_local_exec.util.logging import get_logger
from safe_local_exec.util.observability import (
    ObservabilityManager,
    create_observability_manager,
)

DRAIN = "drain"
CALLER_CANCELLED = "caller_cancelled"
DEADLINE = "deadline"

_LOGGER = get_logger(__name__)


class OutputPump:
    """Background task forwarding captured output lines to a sink.

    Reads the pipe through a tee into the bounded buffer and emits each line
    to the sink. ``done`` is set once the pipe reaches end of stream. After
    :meth:`detach`, lines are still consumed (so writers never block on a full
    pipe) but no longer reach the sink.
    """

    def __init__(self, reader: TeeReader, sink: OutputSink) -> None:
        self._reader = reader
        self._sink = sink
        self.done = CompletionEvent()
        self._detached = False
        self._emit_lock = threading.Lock()
        self._thread = threading.Thread(
            target=self._run, name="safe-local-exec-drain", daemon=True
        )

    def start(self) -> None:
        self._thread.start()

    def detach(self) -> None:
        """Stop forwarding to the sink; returns once no emit is in flight."""

        with self._emit_lock:
            self._detached = True

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    def _run(self) -> None:
        try:
            with self._reader:
                for line in LineReader(self._reader):
                    self._forward(line)
        except OSError as exc:
            _LOGGER.warning("Reading command output failed: %s", exc)
        finally:
            self.done.set()

    def _forward(self, line: str) -> None:
        with self._emit_lock:
            if self._detached:
                return
            try:
                self._sink.emit(line)
            except Exception:
                _LOGGER.exception("Output sink failed; line dropped.")


@dataclass
class RunningInvocation:
    """Mutable runtime state owned by the coordinator for a single call."""

    request: InvocationRequest
    timeout_s: int
    output: BoundedBuffer
    state: InvocationState = InvocationState.IDLE
    process: LaunchedProcess | None = None
    pump: OutputPump | None = None
    write_fd: int | None = None
    error: ExecError | None = None
    drain_abandoned: bool = False
    transitions: list[InvocationState] = field(default_factory=list)

    def advance(self, state: InvocationState) -> None:
        _LOGGER.debug("Invocation %s -> %s", self.state.value, state.value)
        self.state = state
        self.transitions.append(state)

    def close_write_end(self) -> None:
        if self.write_fd is None:
            return
        fd, self.write_fd = self.write_fd, None
        try:
            os.close(fd)
        except OSError as exc:
            _LOGGER.debug("Closing output pipe failed: %s", exc)

    def outcome(self) -> InvocationOutcome:
        return InvocationOutcome(
            command=self.request.command,
            error=self.error,
            output=self.output.contents(),
            timeout_s=self.timeout_s,
            drain_abandoned=self.drain_abandoned,
        )


class InvocationCoordinator:
    """Run one command under a deadline while streaming its output.

    The coordinator spawns the command with combined output on a pipe, drains
    that pipe on a background thread into both a bounded tail buffer and the
    reporting sink, and then races drain completion against caller
    cancellation and the deadline. Cancellation or deadline expiry also
    signals the command's whole process group.
    """

    def __init__(
        self,
        launcher: ProcessLauncher | None = None,
        *,
        observability: ObservabilityManager | None = None,
        buffer_size: int = MAX_OUTPUT_BYTES,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            launcher: Process launcher. Defaults to one using platform groups.
            observability: Metrics sink. A private one is created if omitted.
            buffer_size: Capacity of the captured output tail.
            environ: Environment to inherit and read the timeout ceiling from.
                Defaults to ``os.environ`` at call time.
        """

        self._launcher = launcher or ProcessLauncher()
        self._observability = observability or create_observability_manager()
        self._buffer_size = buffer_size
        self._environ = environ

    @property
    def groups(self) -> ProcessGroupControl:
        return self._launcher.groups

    @property
    def observability(self) -> ObservabilityManager:
        return self._observability

    def run(
        self,
        request: InvocationRequest,
        sink: OutputSink,
        context: ExecutionContext | None = None,
    ) -> InvocationOutcome:
        """Execute ``request`` and return its outcome.

        Args:
            request: The invocation to run.
            sink: Receives the ``Executing:`` line and every output line.
            context: Caller context; cancelling it kills the command.

        Returns:
            InvocationOutcome describing success or failure.

        Raises:
            ConfigurationError: If the request or the timeout ceiling is
                invalid. Nothing has been spawned when this is raised.
        """

        if not request.command:
            raise ConfigurationError("command must be a non-empty string")
        environ = os.environ if self._environ is None else self._environ
        timeout_s = effective_timeout(request.timeout_s, read_timeout_ceiling(environ))
        spec = LaunchSpec(
            argv=build_argv(request),
            env=merge_environment(request.environment, environ),
            working_dir=request.working_dir or None,
        )
        invocation = RunningInvocation(
            request=request,
            timeout_s=timeout_s,
            output=BoundedBuffer(self._buffer_size),
        )
        caller = context or ExecutionContext()

        self._observability.increment("invocations.started")
        with self._observability.track_duration("invocation"):
            self._execute(invocation, spec, sink, caller)
        outcome = invocation.outcome()

        if outcome.succeeded:
            self._observability.increment("invocations.succeeded")
            _LOGGER.info("Command finished successfully.")
        else:
            self._observability.increment("invocations.failed")
            _LOGGER.info("Command failed: %s", outcome.error)
        return outcome

    def _execute(
        self,
        invocation: RunningInvocation,
        spec: LaunchSpec,
        sink: OutputSink,
        caller: ExecutionContext,
    ) -> None:
        invocation.advance(InvocationState.SPAWNING)
        try:
            read_fd, write_fd = os.pipe()
        except OSError as exc:
            invocation.error = PipeError(f"failed to initialize pipe for output: {exc}")
            invocation.advance(InvocationState.TERMINATED)
            return
        invocation.write_fd = write_fd
        reader = TeeReader(os.fdopen(read_fd, "rb", buffering=0), invocation.output)
        invocation.pump = OutputPump(reader, sink)
        invocation.pump.start()

        with ExecutionContext(parent=caller, timeout_s=invocation.timeout_s) as deadline:
            try:
                sink.emit(f"Executing: {format_argv(spec.argv)}")
                self._spawn_and_wait(invocation, spec, write_fd, deadline)
            finally:
                # The drain only sees end of stream once our copy is closed.
                invocation.close_write_end()
            if invocation.state is InvocationState.RUNNING:
                invocation.advance(InvocationState.DRAINING)
            self._await_drain(invocation, caller, deadline)
        invocation.advance(InvocationState.TERMINATED)

    def _spawn_and_wait(
        self,
        invocation: RunningInvocation,
        spec: LaunchSpec,
        write_fd: int,
        deadline: ExecutionContext,
    ) -> None:
        try:
            invocation.process = self._launcher.launch(spec, write_fd, deadline)
        except ExecError as exc:
            self._observability.increment("invocations.start_failed")
            _LOGGER.warning("Command failed to start: %s", exc)
            invocation.error = exc
            return
        invocation.advance(InvocationState.RUNNING)
        try:
            invocation.process.wait()
        except ExecError as exc:
            invocation.error = exc

    def _await_drain(
        self,
        invocation: RunningInvocation,
        caller: ExecutionContext,
        deadline: ExecutionContext,
    ) -> None:
        assert invocation.pump is not None
        started = time.monotonic()
        fired = race(
            {
                DRAIN: invocation.pump.done,
                CALLER_CANCELLED: caller.done,
                DEADLINE: deadline.done,
            }
        )
        if fired != DRAIN:
            _LOGGER.warning(
                "Abandoning output drain after %.2fs: %s.",
                time.monotonic() - started,
                caller.err if fired == CALLER_CANCELLED else deadline.err,
            )
            invocation.pump.detach()
            invocation.drain_abandoned = True
            self._observability.increment("invocations.drain_abandoned")

        # The deadline context is derived from the caller's, so it covers both
        # cancellation sources, even when the drain finished first.
        if deadline.done.is_set() and invocation.process is not None:
            if self.groups.terminate(invocation.process.pgid):
                self._observability.increment("invocations.group_terminations")
