"""Unit tests for the in-process engine: launch, delegates, history, rollback."""

from __future__ import annotations

import threading
from collections.abc import Mapping
from pathlib import Path

import pytest

from workflow_engine.engine.definitions import (
    CREDIT_CHECK_PROCESS_KEY,
    LOAN_APPROVAL_PROCESS_KEY,
)
from workflow_engine.engine.history.records import ActivityType, ProcessStatus
from workflow_engine.engine.history.service import HistoryQueryService
from workflow_engine.engine.history.store import HistoryLog
from workflow_engine.engine.host import ProcessDefinitionNotFoundError, TaskNotFoundError
from workflow_engine.engine.launch import ProcessLaunchService
from workflow_engine.engine.runtime import InMemoryProcessEngine
from workflow_engine.engine.variables import MissingVariableError


def _current_variables(service: HistoryQueryService, instance_id: str) -> dict[str, object]:
    return {
        v.name: v.value for v in service.get_variable_history(instance_id) if v.end_time is None
    }


def test_credit_check_750_is_approved(
    launcher: ProcessLaunchService, history_service: HistoryQueryService
) -> None:
    instance_id = launcher.start_credit_check(750)

    variables = history_service.get_variable_history(instance_id)
    assert [(v.name, v.value) for v in variables] == [("creditScore", 750), ("approved", True)]

    instance = history_service.get_process_instance(instance_id)
    assert instance is not None
    assert instance.status is ProcessStatus.FINISHED
    assert instance.process_definition_key == CREDIT_CHECK_PROCESS_KEY
    assert instance.end_activity_id == "creditApproved"
    assert instance.duration_ms is not None and instance.duration_ms > 0


def test_credit_check_low_score_takes_rejected_path(
    launcher: ProcessLaunchService, history_service: HistoryQueryService
) -> None:
    instance_id = launcher.start_credit_check(640)

    activities = history_service.get_activity_history(instance_id)
    assert [a.activity_id for a in activities] == [
        "creditRejected",
        "creditCheckTask",
        "startEvent",
    ]
    assert all(a.end_time is not None for a in activities)
    assert _current_variables(history_service, instance_id)["approved"] is False


def test_credit_check_without_score_defaults(
    engine: InMemoryProcessEngine, history_service: HistoryQueryService
) -> None:
    instance_id = engine.start_process_instance_by_key(CREDIT_CHECK_PROCESS_KEY, {})

    assert _current_variables(history_service, instance_id) == {"approved": False}


def test_eligible_loan_waits_at_review_task(
    launcher: ProcessLaunchService,
    engine: InMemoryProcessEngine,
    history_service: HistoryQueryService,
) -> None:
    instance_id = launcher.apply_loan("alice", 20_000.0)

    assert [p.id for p in history_service.get_running_processes()] == [instance_id]
    assert history_service.get_finished_processes() == []

    tasks = engine.list_open_tasks(instance_id)
    assert [t.task_definition_key for t in tasks] == ["reviewLoanApplication"]
    assert tasks[0].assignee == "loan-officer"

    activities = history_service.get_activity_history(instance_id)
    assert activities[0].activity_type is ActivityType.USER_TASK
    assert activities[0].task_id == tasks[0].id
    assert activities[0].end_time is None


def test_completing_review_task_finishes_loan(
    launcher: ProcessLaunchService,
    engine: InMemoryProcessEngine,
    history_service: HistoryQueryService,
) -> None:
    instance_id = launcher.apply_loan("alice", 20_000.0)
    task = engine.list_open_tasks(instance_id)[0]

    completed = engine.complete_task(task.id, {"reviewer": "carol"})

    assert completed.end_time is not None
    assert completed.delete_reason == "completed"
    assert engine.list_open_tasks() == []

    instance = history_service.get_process_instance(instance_id)
    assert instance is not None
    assert instance.status is ProcessStatus.FINISHED
    assert instance.end_activity_id == "loanApproved"
    assert _current_variables(history_service, instance_id) == {
        "applicant": "alice",
        "amount": 20_000.0,
        "eligible": True,
        "reviewer": "carol",
    }
    assert [t.end_time for t in history_service.get_task_history(instance_id)] == [
        completed.end_time
    ]


def test_completing_a_task_twice_fails(
    launcher: ProcessLaunchService, engine: InMemoryProcessEngine
) -> None:
    instance_id = launcher.apply_loan("alice", 100.0)
    task = engine.list_open_tasks(instance_id)[0]
    engine.complete_task(task.id)

    with pytest.raises(TaskNotFoundError):
        engine.complete_task(task.id)
    with pytest.raises(TaskNotFoundError):
        engine.complete_task("no-such-task")


def test_ineligible_loan_is_rejected_without_task(
    launcher: ProcessLaunchService,
    engine: InMemoryProcessEngine,
    history_service: HistoryQueryService,
) -> None:
    instance_id = launcher.apply_loan("bob", 75_000.0)

    instance = history_service.get_process_instance(instance_id)
    assert instance is not None
    assert instance.status is ProcessStatus.FINISHED
    assert instance.end_activity_id == "loanRejected"
    assert history_service.get_task_history(instance_id) == []
    assert engine.list_open_tasks() == []


def test_delegate_failure_rolls_back_and_propagates(
    engine: InMemoryProcessEngine, history_log: HistoryLog
) -> None:
    with pytest.raises(MissingVariableError):
        engine.start_process_instance_by_key(LOAN_APPROVAL_PROCESS_KEY, {"applicant": "eve"})

    assert history_log.historic_process_instances() == ()
    assert history_log.historic_activity_instances() == ()
    assert history_log.historic_variable_instances() == ()


def test_unknown_definition(engine: InMemoryProcessEngine) -> None:
    with pytest.raises(ProcessDefinitionNotFoundError, match="nope"):
        engine.start_process_instance_by_key("nope", {})


def test_finished_and_running_queries_across_instances(
    launcher: ProcessLaunchService, history_service: HistoryQueryService
) -> None:
    credit_a = launcher.start_credit_check(720)
    loan_open = launcher.apply_loan("alice", 10.0)
    credit_b = launcher.start_credit_check(500)
    loan_rejected = launcher.apply_loan("bob", 90_000.0)
    loan_open_2 = launcher.apply_loan("carol", 20.0)

    finished = history_service.get_finished_processes()
    assert [p.id for p in finished] == [loan_rejected, credit_b, credit_a]

    finished_credit = history_service.get_finished_processes(CREDIT_CHECK_PROCESS_KEY)
    assert [p.id for p in finished_credit] == [credit_b, credit_a]

    running = history_service.get_running_processes(LOAN_APPROVAL_PROCESS_KEY)
    assert [p.id for p in running] == [loan_open_2, loan_open]
    assert history_service.get_running_processes(CREDIT_CHECK_PROCESS_KEY) == []


class RecordingStarter:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, object]]] = []

    def start_process_instance_by_key(
        self, definition_key: str, variables: Mapping[str, object]
    ) -> str:
        self.calls.append((definition_key, dict(variables)))
        return f"instance-{len(self.calls)}"


def test_launch_service_builds_variable_sets() -> None:
    starter = RecordingStarter()
    service = ProcessLaunchService(starter, credit_process_key="c", loan_process_key="l")

    assert service.start_credit_check(710) == "instance-1"
    assert service.apply_loan("dana", 1234.5) == "instance-2"

    assert starter.calls == [
        ("c", {"creditScore": 710}),
        ("l", {"applicant": "dana", "amount": 1234.5}),
    ]


def test_launch_service_propagates_engine_failure() -> None:
    class BrokenStarter:
        def start_process_instance_by_key(
            self, definition_key: str, variables: Mapping[str, object]
        ) -> str:
            raise RuntimeError("engine unavailable")

    with pytest.raises(RuntimeError, match="engine unavailable"):
        ProcessLaunchService(BrokenStarter()).start_credit_check(700)


def test_task_completion_survives_restart(history_path: Path) -> None:
    first = InMemoryProcessEngine(HistoryLog(history_path))
    instance_id = ProcessLaunchService(first).apply_loan("alice", 30_000)
    task_id = first.list_open_tasks(instance_id)[0].id

    restarted = InMemoryProcessEngine(HistoryLog(history_path))
    restarted.complete_task(task_id)

    service = HistoryQueryService(HistoryLog(history_path))
    instance = service.get_process_instance(instance_id)
    assert instance is not None
    assert instance.status is ProcessStatus.FINISHED
    assert instance.end_activity_id == "loanApproved"
    amount = _current_variables(service, instance_id)["amount"]
    assert amount == 30_000


def test_engines_sharing_a_history_file_keep_each_others_instances(
    history_path: Path,
) -> None:
    cli = InMemoryProcessEngine(HistoryLog(history_path))
    server = InMemoryProcessEngine(HistoryLog(history_path))

    cli_id = ProcessLaunchService(cli).start_credit_check(750)
    server_id = ProcessLaunchService(server).start_credit_check(800)

    reloaded = HistoryQueryService(HistoryLog(history_path))
    assert {p.id for p in reloaded.get_finished_processes()} == {cli_id, server_id}
    assert HistoryQueryService(server.history).get_process_instance(cli_id) is not None


def test_concurrent_completion_of_one_task_succeeds_once() -> None:
    engine = InMemoryProcessEngine()
    instance_id = ProcessLaunchService(engine).apply_loan("alice", 1_000)
    task_id = engine.list_open_tasks(instance_id)[0].id
    barrier = threading.Barrier(2)
    outcomes: list[str] = []

    def complete() -> None:
        barrier.wait()
        try:
            engine.complete_task(task_id)
        except TaskNotFoundError:
            outcomes.append("rejected")
        else:
            outcomes.append("completed")

    threads = [threading.Thread(target=complete) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["completed", "rejected"]
    assert engine.list_open_tasks(instance_id) == []
    tasks = HistoryQueryService(engine.history).get_task_history(instance_id)
    assert [t.delete_reason for t in tasks] == ["completed"]
