from __future__ import annotations

import json
from pathlib import Path

import pytest

from safe_local_exec.config import (
    MAX_TIMEOUT_ENV,
    effective_timeout,
    load_invocation_request,
    parse_invocation_request,
    read_timeout_ceiling,
    request_to_dict,
)
from safe_local_exec.execution.base import InvocationRequest
from safe_local_exec.execution.errors import ConfigurationError


def test_parse_invocation_request_full_record() -> None:
    request = parse_invocation_request(
        {
            "command": "make deploy",
            "interpreter": ["/bin/bash", "-c"],
            "working_dir": "/srv/app",
            "environment": {"STAGE": "prod", "RETRIES": 3},
            "timeout": 30,
        }
    )

    assert request == InvocationRequest(
        command="make deploy",
        interpreter=("/bin/bash", "-c"),
        working_dir="/srv/app",
        environment={"STAGE": "prod", "RETRIES": "3"},
        timeout_s=30,
    )


def test_parse_invocation_request_defaults() -> None:
    request = parse_invocation_request({"command": "true"})

    assert request.interpreter == ()
    assert request.working_dir == ""
    assert dict(request.environment) == {}
    assert request.timeout_s == 0


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"command": ""},
        {"command": 42},
        {"command": "ls", "interpreter": "bash"},
        {"command": "ls", "interpreter": ["bash", 1]},
        {"command": "ls", "working_dir": 5},
        {"command": "ls", "environment": ["A=1"]},
        {"command": "ls", "environment": {"A=B": "1"}},
        {"command": "ls", "timeout": -1},
        {"command": "ls", "timeout": "10"},
        {"command": "ls", "timeout": True},
        {"command": "ls", "retries": 3},
    ],
)
def test_parse_invocation_request_rejects_invalid_records(raw: dict[str, object]) -> None:
    with pytest.raises(ConfigurationError):
        parse_invocation_request(raw)


def test_request_to_dict_round_trips_through_parser() -> None:
    request = InvocationRequest(
        command="echo hi", interpreter=("sh", "-c"), environment={"A": "1"}, timeout_s=4
    )

    assert parse_invocation_request(request_to_dict(request)) == request


@pytest.mark.parametrize(
    ("environ", "expected"),
    [
        ({}, 0),
        ({MAX_TIMEOUT_ENV: ""}, 0),
        ({MAX_TIMEOUT_ENV: " 5 "}, 5),
        ({MAX_TIMEOUT_ENV: "0"}, 0),
    ],
)
def test_read_timeout_ceiling(environ: dict[str, str], expected: int) -> None:
    assert read_timeout_ceiling(environ) == expected


@pytest.mark.parametrize("value", ["soon", "1.5", "-3"])
def test_read_timeout_ceiling_rejects_malformed_values(value: str) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        read_timeout_ceiling({MAX_TIMEOUT_ENV: value})

    assert MAX_TIMEOUT_ENV in str(excinfo.value)


def test_read_timeout_ceiling_defaults_to_process_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(MAX_TIMEOUT_ENV, "12")

    assert read_timeout_ceiling() == 12


@pytest.mark.parametrize(
    ("requested", "ceiling", "expected"),
    [
        (10, 5, 5),
        (0, 5, 5),
        (10, 0, 10),
        (0, 0, 0),
        (3, 5, 3),
    ],
)
def test_effective_timeout(requested: int, ceiling: int, expected: int) -> None:
    assert effective_timeout(requested, ceiling) == expected


def test_load_request_from_json(tmp_path: Path) -> None:
    path = tmp_path / "request.json"
    path.write_text(json.dumps({"command": "echo hi", "timeout": 2}), encoding="utf-8")

    request = load_invocation_request(path)

    assert request.command == "echo hi"
    assert request.timeout_s == 2


def test_load_request_from_yaml(tmp_path: Path) -> None:
    pytest.importorskip("yaml")
    path = tmp_path / "request.yaml"
    path.write_text(
        """
command: ./deploy.sh
interpreter:
  - /bin/bash
  - -c
environment:
  STAGE: qa
""",
        encoding="utf-8",
    )

    request = load_invocation_request(path)

    assert request.interpreter == ("/bin/bash", "-c")
    assert dict(request.environment) == {"STAGE": "qa"}


def test_load_request_from_pyproject(tmp_path: Path) -> None:
    path = tmp_path / "pyproject.toml"
    path.write_text(
        """
[tool.safe_local_exec]
command = "pytest -q"
working_dir = "tests"
timeout = 60

[tool.safe_local_exec.environment]
CI = "1"
""",
        encoding="utf-8",
    )

    request = load_invocation_request(path)

    assert request.command == "pytest -q"
    assert request.working_dir == "tests"
    assert request.timeout_s == 60
    assert dict(request.environment) == {"CI": "1"}


def test_load_request_rejects_missing_and_unknown_files(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_invocation_request(tmp_path / "missing.json")

    other = tmp_path / "request.ini"
    other.write_text("command=ls", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_invocation_request(other)


def test_load_request_rejects_non_mapping_json(tmp_path: Path) -> None:
    path = tmp_path / "request.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_invocation_request(path)
