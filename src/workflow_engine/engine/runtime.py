"""In-process reference host engine.

Runs the linear definitions from :mod:`workflow_engine.engine.definitions`,
invokes delegates synchronously at service tasks and writes history to a
:class:`HistoryLog`. It stands in for an external BPMN engine in tests, the
CLI and the HTTP server.

Each ``start_process_instance_by_key`` / ``complete_task`` call is one
transaction: its history is committed only if the call succeeds. A delegate
error discards everything the call produced and propagates to the caller.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

from workflow_engine.engine.definitions import ProcessDefinition, default_definitions
from workflow_engine.engine.delegates import DelegateRegistry, default_registry
from workflow_engine.engine.history.query import (
    HistoryFilter,
    query_activity_instances,
    query_task_instances,
    query_variable_instances,
)
from workflow_engine.engine.history.records import (
    ActivityType,
    HistoricActivityInstance,
    HistoricProcessInstance,
    HistoricTaskInstance,
    HistoricVariableInstance,
    ProcessStatus,
    new_record_id,
)
from workflow_engine.engine.history.store import HistoryBatch, HistoryLog
from workflow_engine.engine.host import ProcessDefinitionNotFoundError, TaskNotFoundError
from workflow_engine.engine.variables import TypedValue, VariableContext

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class _Execution:
    definition: ProcessDefinition
    process: HistoricProcessInstance
    context: VariableContext
    variables: dict[str, HistoricVariableInstance] = field(default_factory=dict)
    batch: HistoryBatch = field(default_factory=HistoryBatch)

    @property
    def instance_id(self) -> str:
        return self.process.id


class InMemoryProcessEngine:
    def __init__(
        self,
        history: HistoryLog | None = None,
        *,
        definitions: Mapping[str, ProcessDefinition] | None = None,
        delegates: DelegateRegistry | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._history = history if history is not None else HistoryLog()
        self._definitions = dict(definitions if definitions is not None else default_definitions())
        self._delegates = delegates if delegates is not None else default_registry()
        self._clock = clock or utc_now
        self._lock = threading.Lock()
        self._completing: set[str] = set()

    @property
    def history(self) -> HistoryLog:
        return self._history

    def definition(self, key: str) -> ProcessDefinition:
        try:
            return self._definitions[key]
        except KeyError:
            raise ProcessDefinitionNotFoundError(key) from None

    def start_process_instance_by_key(
        self, definition_key: str, variables: Mapping[str, object]
    ) -> str:
        definition = self.definition(definition_key)
        context = VariableContext(variables)

        instance_id = new_record_id()
        process = HistoricProcessInstance(
            id=instance_id,
            process_instance_id=instance_id,
            process_definition_key=definition.key,
            process_definition_id=definition.definition_id,
            start_time=self._clock(),
            start_activity_id=(
                definition.activities[0].activity_id if definition.activities else None
            ),
        )
        execution = _Execution(definition=definition, process=process, context=context)
        execution.batch.put(process)
        for name, typed in context.typed_items().items():
            self._write_variable(execution, name, typed)

        self._execute(execution, start_index=0)

        logger.info(
            "Process instance started",
            extra={
                "process_definition_key": definition.key,
                "process_instance_id": instance_id,
                "status": execution.process.status.value,
            },
        )
        return instance_id

    def complete_task(
        self, task_id: str, variables: Mapping[str, object] | None = None
    ) -> HistoricTaskInstance:
        with self._lock:
            if task_id in self._completing:
                raise TaskNotFoundError(task_id)
            self._completing.add(task_id)
        try:
            task = self._history.find(HistoricTaskInstance, task_id)
            if task is None or task.finished:
                raise TaskNotFoundError(task_id)

            execution = self._rehydrate(task)
            ended_task = task.ended(self._clock(), delete_reason="completed")
            execution.batch.put(ended_task)
            activity = self._activity_for_task(task)
            if activity is not None:
                execution.batch.put(activity.ended(self._clock()))

            if variables:
                before = execution.context.typed_items()
                for name, value in variables.items():
                    execution.context.set(name, value)
                self._record_changes(execution, before)

            resume_at = execution.definition.index_of(task.task_definition_key) + 1
            self._execute(execution, start_index=resume_at)

            logger.info(
                "Task completed",
                extra={
                    "task_id": task_id,
                    "process_instance_id": task.process_instance_id,
                    "status": execution.process.status.value,
                },
            )
            return ended_task  # type: ignore[return-value]
        finally:
            with self._lock:
                self._completing.discard(task_id)

    def list_open_tasks(self, process_instance_id: str | None = None) -> list[HistoricTaskInstance]:
        flt = HistoryFilter(process_instance_id=process_instance_id, status=ProcessStatus.RUNNING)
        return query_task_instances(self._history, flt)

    def _execute(self, execution: _Execution, *, start_index: int) -> None:
        try:
            self._run(execution, start_index)
        except Exception:
            logger.warning(
                "Process step failed; discarding uncommitted history",
                extra={
                    "process_definition_key": execution.definition.key,
                    "process_instance_id": execution.instance_id,
                },
            )
            raise
        self._history.commit(execution.batch)

    def _run(self, execution: _Execution, start_index: int) -> None:
        definition = execution.definition
        for activity_def in definition.activities[start_index:]:
            if not activity_def.applies(execution.context):
                continue

            activity = HistoricActivityInstance(
                process_instance_id=execution.instance_id,
                process_definition_key=definition.key,
                start_time=self._clock(),
                activity_id=activity_def.activity_id,
                activity_name=activity_def.name,
                activity_type=activity_def.activity_type,
            )

            if activity_def.activity_type is ActivityType.SERVICE_TASK:
                before = execution.context.typed_items()
                self._delegates.invoke(activity_def.activity_id, execution.context)
                self._record_changes(execution, before)

            elif activity_def.activity_type is ActivityType.USER_TASK:
                task = HistoricTaskInstance(
                    process_instance_id=execution.instance_id,
                    process_definition_key=definition.key,
                    start_time=activity.start_time,
                    task_definition_key=activity_def.activity_id,
                    name=activity_def.name,
                    assignee=activity_def.assignee,
                )
                execution.batch.put(task)
                execution.batch.put(activity.model_copy(update={"task_id": task.id}))
                # Wait state: resumed by complete_task().
                return

            execution.batch.put(activity.ended(self._clock()))

            if activity_def.activity_type is ActivityType.END_EVENT:
                break

        self._finish(execution)

    def _finish(self, execution: _Execution) -> None:
        last_activity = None
        for record in reversed(execution.batch.records()):
            if isinstance(record, HistoricActivityInstance):
                last_activity = record.activity_id
                break
        ended = execution.process.ended(self._clock(), end_activity_id=last_activity)
        assert isinstance(ended, HistoricProcessInstance)
        execution.process = ended
        execution.batch.put(ended)

    def _record_changes(self, execution: _Execution, before: Mapping[str, TypedValue]) -> None:
        for name, typed in execution.context.typed_items().items():
            if before.get(name) != typed:
                self._write_variable(execution, name, typed)

    def _write_variable(self, execution: _Execution, name: str, typed: TypedValue) -> None:
        now = self._clock()
        previous = execution.variables.get(name)
        if previous is not None:
            execution.batch.put(previous.ended(now))
        record = HistoricVariableInstance(
            process_instance_id=execution.instance_id,
            process_definition_key=execution.definition.key,
            start_time=now,
            name=name,
            type=typed.type,
            value=typed.value,
        )
        execution.variables[name] = record
        execution.batch.put(record)

    def _rehydrate(self, task: HistoricTaskInstance) -> _Execution:
        process = self._history.find(HistoricProcessInstance, task.process_instance_id)
        if process is None or process.finished:
            raise TaskNotFoundError(task.id)
        definition = self.definition(process.process_definition_key)

        current = query_variable_instances(
            self._history,
            HistoryFilter(process_instance_id=process.id, status=ProcessStatus.RUNNING),
        )
        variables = {record.name: record for record in current}
        context = VariableContext.from_typed(
            {name: record.typed_value() for name, record in variables.items()}
        )
        return _Execution(
            definition=definition, process=process, context=context, variables=variables
        )

    def _activity_for_task(self, task: HistoricTaskInstance) -> HistoricActivityInstance | None:
        activities = query_activity_instances(
            self._history, HistoryFilter(process_instance_id=task.process_instance_id)
        )
        for activity in activities:
            if activity.task_id == task.id:
                return activity
        return None
