"""Spawning commands bound to an execution context."""

from __future__ import annotations

import subprocess

from safe_local_exec.execution.base import LaunchSpec
from safe_local_exec.execution.context import ExecutionContext
from safe_local_exec.execution.errors import RunError, StartError
from safe_local_exec.execution.groups import ProcessGroupControl, default_process_groups
from safe_local_exec.util.logging import get_logger

_LOGGER = get_logger(__name__)


class LaunchedProcess:
    """A running command whose lifetime is bound to an execution context.

    When the context becomes done the process is killed. Only the direct
    child is signalled here; descendants are handled through the process
    group recorded in ``pgid``.
    """

    def __init__(
        self,
        process: subprocess.Popen[bytes],
        pgid: int | None,
        context: ExecutionContext,
    ) -> None:
        self._process = process
        self.pgid = pgid
        self._context = context
        self._killed_by_context = False
        context.done.add_callback(self._kill)

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    def wait(self) -> None:
        """Block until the process exits.

        Raises:
            RunError: If the process exited non-zero or was killed.
        """

        try:
            returncode = self._process.wait()
        finally:
            self._context.done.remove_callback(self._kill)
        if returncode != 0:
            reason = self._context.err if self._killed_by_context else None
            raise RunError(returncode, reason=reason)

    def _kill(self) -> None:
        if self._process.poll() is not None:
            return
        self._killed_by_context = True
        try:
            self._process.kill()
        except OSError as exc:
            _LOGGER.debug("Kill of pid %s failed: %s", self._process.pid, exc)
        else:
            _LOGGER.info(
                "Killed pid %s: %s.", self._process.pid, self._context.err
            )


class ProcessLauncher:
    """Spawn commands in their own process group with merged output."""

    def __init__(self, groups: ProcessGroupControl | None = None) -> None:
        self._groups = groups or default_process_groups()

    @property
    def groups(self) -> ProcessGroupControl:
        return self._groups

    def launch(
        self,
        spec: LaunchSpec,
        output_fd: int,
        context: ExecutionContext,
    ) -> LaunchedProcess:
        """Start a command with stdout and stderr both written to ``output_fd``.

        Args:
            spec: Resolved argument vector, environment and working directory.
            output_fd: Writable file descriptor receiving combined output.
            context: Context whose completion kills the process.

        Returns:
            LaunchedProcess handle with the process-group id captured.

        Raises:
            StartError: If the context is already done or the OS refuses to
                create the process.
        """

        if context.done.is_set():
            raise StartError(context.err or "context done before start")
        try:
            process = subprocess.Popen(
                list(spec.argv),
                stdin=subprocess.DEVNULL,
                stdout=output_fd,
                stderr=output_fd,
                cwd=spec.working_dir or None,
                env=dict(spec.env),
                **self._groups.spawn_options(),
            )
        except (OSError, ValueError, subprocess.SubprocessError) as exc:
            raise StartError(str(exc)) from exc

        pgid = self._groups.lookup(process.pid)
        _LOGGER.info("Started pid %s (process group %s).", process.pid, pgid)
        return LaunchedProcess(process, pgid, context)
