"""Invocation request parsing and timeout configuration."""

from __future__ import annotations

import json
import os
import tomllib
from pathlib import Path
from typing import Any, Final, Mapping

from safe_local_exec.execution.base import InvocationRequest
from safe_local_exec.execution.errors import ConfigurationError
from safe_local_exec.util.logging import get_logger

MAX_TIMEOUT_ENV: Final[str] = "MAX_TIMEOUT"
REQUEST_FIELDS: Final[frozenset[str]] = frozenset(
    {"command", "interpreter", "working_dir", "environment", "timeout"}
)

_LOGGER = get_logger(__name__)


def parse_invocation_request(raw: Mapping[str, Any]) -> InvocationRequest:
    """Build a typed request from a loosely-typed configuration mapping.

    Args:
        raw: Mapping with ``command`` and optional ``interpreter``,
            ``working_dir``, ``environment`` and ``timeout`` entries.

    Returns:
        Validated InvocationRequest.

    Raises:
        ConfigurationError: If a field is missing, empty, or has the wrong type.
    """

    if not isinstance(raw, Mapping):
        raise ConfigurationError("Invocation request must be a mapping.")
    unknown = sorted(set(raw) - REQUEST_FIELDS)
    if unknown:
        raise ConfigurationError(f"Unknown invocation fields: {', '.join(unknown)}")

    command = raw.get("command")
    if not isinstance(command, str) or command == "":
        raise ConfigurationError("command must be a non-empty string")

    return InvocationRequest(
        command=command,
        interpreter=_parse_interpreter(raw.get("interpreter")),
        working_dir=_parse_working_dir(raw.get("working_dir")),
        environment=_parse_environment(raw.get("environment")),
        timeout_s=_parse_timeout(raw.get("timeout")),
    )


def load_invocation_request(path: Path) -> InvocationRequest:
    """Load an invocation request from a JSON, YAML, or TOML file.

    Args:
        path: Request file. ``pyproject.toml`` is read from its
            ``[tool.safe_local_exec]`` table.

    Returns:
        Validated InvocationRequest.

    Raises:
        ConfigurationError: If the file is missing, unreadable, or invalid.
    """

    if not path.is_file():
        raise ConfigurationError(f"Request file not found: {path}")

    if path.suffix in {".yaml", ".yml", ".json"}:
        raw_data = _load_yaml(path)
    elif path.suffix == ".toml":
        raw_data = _load_toml(path)
    else:
        raise ConfigurationError(f"Unsupported request file type: {path}")

    return parse_invocation_request(raw_data)


def request_to_dict(request: InvocationRequest) -> dict[str, Any]:
    """Serialize an InvocationRequest into a JSON-compatible dictionary."""

    return {
        "command": request.command,
        "interpreter": list(request.interpreter),
        "working_dir": request.working_dir,
        "environment": dict(request.environment),
        "timeout": request.timeout_s,
    }


def read_timeout_ceiling(environ: Mapping[str, str] | None = None) -> int:
    """Return the maximum timeout ceiling from the environment.

    Args:
        environ: Environment to read. Defaults to ``os.environ``.

    Returns:
        Ceiling in seconds; 0 when the variable is unset or blank.

    Raises:
        ConfigurationError: If the value is not a non-negative integer.
    """

    source = os.environ if environ is None else environ
    text = source.get(MAX_TIMEOUT_ENV, "").strip()
    if not text:
        return 0
    try:
        ceiling = int(text)
    except ValueError as exc:
        raise ConfigurationError(
            f"{MAX_TIMEOUT_ENV} must be an integer number of seconds, got {text!r}"
        ) from exc
    if ceiling < 0:
        raise ConfigurationError(f"{MAX_TIMEOUT_ENV} must not be negative, got {ceiling}")
    _LOGGER.info("Maximum timeout configured: %ss", ceiling)
    return ceiling


def effective_timeout(requested: int, ceiling: int) -> int:
    """Combine the requested timeout with the environment ceiling.

    A zero request takes the ceiling; a positive ceiling caps the request.
    A result of 0 means no deadline.
    """

    if ceiling <= 0:
        return requested
    if requested == 0 or requested > ceiling:
        return ceiling
    return requested


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigurationError(f"Could not read {path}: {exc}") from exc
    if path.name == "pyproject.toml":
        tool_config = data.get("tool", {}).get("safe_local_exec", {})
        if not isinstance(tool_config, dict):
            raise ConfigurationError("tool.safe_local_exec must be a mapping.")
        return tool_config
    return data


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Could not read {path}: {exc}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None
    if data is not None:
        if not isinstance(data, dict):
            raise ConfigurationError("Request file must contain a mapping.")
        return data
    try:
        import yaml  # type: ignore[import-untyped]
    except ImportError as exc:
        raise ConfigurationError(
            "PyYAML is required to parse non-JSON YAML request files."
        ) from exc
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Could not parse {path}: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ConfigurationError("Request file must contain a mapping.")
    return parsed


def _parse_interpreter(raw: Any) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str) or not isinstance(raw, (list, tuple)):
        raise ConfigurationError("interpreter must be a list of strings.")
    if not all(isinstance(item, str) for item in raw):
        raise ConfigurationError("interpreter entries must be strings.")
    return tuple(raw)


def _parse_working_dir(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, Path):
        return str(raw)
    if not isinstance(raw, str):
        raise ConfigurationError("working_dir must be a string.")
    return raw


def _parse_environment(raw: Any) -> dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ConfigurationError("environment must be a mapping of names to values.")
    env: dict[str, str] = {}
    for key, value in raw.items():
        name = str(key)
        if not name or "=" in name:
            raise ConfigurationError(f"Invalid environment variable name: {name!r}")
        env[name] = "" if value is None else str(value)
    return env


def _parse_timeout(raw: Any) -> int:
    if raw is None:
        return 0
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ConfigurationError("timeout must be an integer number of seconds.")
    if raw < 0:
        raise ConfigurationError("timeout must not be negative.")
    return raw
