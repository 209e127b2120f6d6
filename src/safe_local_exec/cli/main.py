"""CLI entrypoints for safe-local-exec."""

from __future__ import annotations

import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import typer

from safe_local_exec.app import execute
from safe_local_exec.config import load_invocation_request, parse_invocation_request
from safe_local_exec.execution.base import InvocationRequest
from safe_local_exec.execution.context import ExecutionContext
from safe_local_exec.execution.errors import ConfigurationError, ExecError
from safe_local_exec.output.sinks import CallbackSink
from safe_local_exec.util.logging import configure_logging

app = typer.Typer(help="Run a command under a hard deadline, streaming its output.")


@app.callback()
def main(
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Logging level (e.g., DEBUG, INFO, WARNING).",
    ),
) -> None:
    """Configure CLI-level options."""

    configure_logging(log_level)


@app.command("run")
def run_command(
    command: str = typer.Argument(..., help="Command text to execute."),
    interpreter: Optional[List[str]] = typer.Option(
        None,
        "--interpreter",
        "-i",
        help="Interpreter argument; repeat for each element (default: platform shell).",
    ),
    working_dir: str = typer.Option(
        "",
        "--working-dir",
        "-d",
        help="Working directory for the command.",
    ),
    env: Optional[List[str]] = typer.Option(
        None,
        "--env",
        "-e",
        help="Environment override as KEY=VALUE; may be repeated.",
    ),
    timeout: int = typer.Option(
        0,
        "--timeout",
        "-t",
        min=0,
        help="Timeout in seconds (0 means no timeout unless MAX_TIMEOUT is set).",
    ),
) -> None:
    """Execute a single command."""

    try:
        request = parse_invocation_request(
            {
                "command": command,
                "interpreter": list(interpreter) if interpreter else None,
                "working_dir": working_dir,
                "environment": _parse_env_options(env or []),
                "timeout": timeout,
            }
        )
    except ConfigurationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    _run(request)


@app.command("apply")
def apply_command(
    request_file: Path = typer.Argument(..., help="JSON, YAML, or TOML request file."),
) -> None:
    """Execute the command described by a request file."""

    try:
        request = load_invocation_request(request_file)
    except ConfigurationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    _run(request)


def _run(request: InvocationRequest) -> None:
    context = ExecutionContext()
    sink = CallbackSink(typer.echo)
    with _cancel_on_interrupt(context):
        try:
            execute(request, sink, context=context)
        except ExecError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=1) from exc


def _parse_env_options(entries: List[str]) -> dict[str, str]:
    environment: dict[str, str] = {}
    for entry in entries:
        key, separator, value = entry.partition("=")
        if not separator or not key:
            raise ConfigurationError(f"Environment override must be KEY=VALUE, got {entry!r}")
        environment[key] = value
    return environment


@contextmanager
def _cancel_on_interrupt(context: ExecutionContext) -> Iterator[None]:
    """Cancel ``context`` on SIGINT instead of raising KeyboardInterrupt."""

    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handle(signum: int, frame: object) -> None:
        context.cancel("interrupted")

    previous = signal.signal(signal.SIGINT, handle)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)
