"""Unit tests for the CLI entrypoint."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from workflow_engine.engine.history.store import HistoryLog
from workflow_engine.engine.main import _parse_assignments, build_parser, main


@pytest.fixture(autouse=True)
def _cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    history_path = tmp_path / "history.json"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("WORKFLOW_HISTORY_PATH", str(history_path))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    for name in ("WORKFLOW_CREDIT_PROCESS_KEY", "WORKFLOW_LOAN_PROCESS_KEY"):
        monkeypatch.delenv(name, raising=False)

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield history_path
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def _instance_id(output: str) -> str:
    return output.strip().splitlines()[-1].rsplit(": ", 1)[-1]


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_parse_assignments() -> None:
    assert _parse_assignments(["a=1", "b=true", "c=hello", "d=2.5"]) == {
        "a": 1,
        "b": True,
        "c": "hello",
        "d": 2.5,
    }
    with pytest.raises(ValueError):
        _parse_assignments(["novalue"])


def test_credit_check_then_history(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["start-credit-check", "--credit-score", "750"]) == 0
    instance_id = _instance_id(capsys.readouterr().out)

    assert main(["history", "variables", instance_id]) == 0
    variables = json.loads(capsys.readouterr().out)
    assert [(v["name"], v["value"]) for v in variables] == [
        ("creditScore", 750),
        ("approved", True),
    ]

    assert main(["history", "finished", "--definition-key", "checkCreditProcess"]) == 0
    finished = json.loads(capsys.readouterr().out)
    assert [p["id"] for p in finished] == [instance_id]
    assert finished[0]["status"] == "finished"


def test_loan_task_completion_across_invocations(
    capsys: pytest.CaptureFixture[str], _cli_env: Path
) -> None:
    assert main(["apply-loan", "--applicant", "alice", "--amount", "1000"]) == 0
    instance_id = _instance_id(capsys.readouterr().out)

    assert main(["history", "running"]) == 0
    assert [p["id"] for p in json.loads(capsys.readouterr().out)] == [instance_id]

    task_id = HistoryLog(_cli_env).historic_task_instances()[0].id
    assert main(["complete-task", "--task-id", task_id, "--var", "reviewer=carol"]) == 0
    assert "Completed task" in capsys.readouterr().out

    assert main(["history", "process-instance", instance_id]) == 0
    record = json.loads(capsys.readouterr().out)
    assert record["status"] == "finished"
    assert record["endActivityId"] == "loanApproved"


def test_missing_process_instance_exit_code(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["history", "process-instance", "nope"]) == 4
    assert json.loads(capsys.readouterr().out) is None


def test_unknown_task_exit_code(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["complete-task", "--task-id", "nope"]) == 4
    assert "nope" in capsys.readouterr().err


def test_configuration_error_exit_code(
    capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("WORKFLOW_LOAN_PROCESS_KEY", " ")

    assert main(["history", "running"]) == 2
    assert "Configuration error" in capsys.readouterr().err
