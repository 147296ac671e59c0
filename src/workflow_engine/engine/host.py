"""Capabilities the core consumes from the process-execution host."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from workflow_engine.engine.history.records import HistoricTaskInstance


class ProcessDefinitionNotFoundError(LookupError):
    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"No process definition deployed with key {self.key!r}"


class TaskNotFoundError(LookupError):
    def __init__(self, task_id: str) -> None:
        super().__init__(task_id)
        self.task_id = task_id

    def __str__(self) -> str:
        return f"No open task with id {self.task_id!r}"


class ProcessStarter(Protocol):
    def start_process_instance_by_key(
        self, definition_key: str, variables: Mapping[str, object]
    ) -> str:
        """Start a process definition and return the new instance id."""
        ...


class TaskService(Protocol):
    def complete_task(
        self, task_id: str, variables: Mapping[str, object] | None = None
    ) -> HistoricTaskInstance: ...

    def list_open_tasks(
        self, process_instance_id: str | None = None
    ) -> list[HistoricTaskInstance]: ...
