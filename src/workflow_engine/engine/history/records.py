"""Historic record models produced by the host engine.

Records are immutable snapshots. The only change a record ever sees after it
is appended is its end timestamp being set (see :meth:`HistoricRecord.ended`).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from workflow_engine.engine.variables import TypedValue, VariableType, VariableValue


class ProcessStatus(str, Enum):
    RUNNING = "running"
    FINISHED = "finished"


class ActivityType(str, Enum):
    START_EVENT = "startEvent"
    SERVICE_TASK = "serviceTask"
    USER_TASK = "userTask"
    END_EVENT = "endEvent"


def new_record_id() -> str:
    return str(uuid.uuid4())


class HistoricRecord(BaseModel):
    """Fields shared by all four record kinds."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=new_record_id)
    process_instance_id: str
    process_definition_key: str
    start_time: datetime
    end_time: datetime | None = None

    @property
    def finished(self) -> bool:
        return self.end_time is not None

    def ended(self, at: datetime, **updates: object) -> HistoricRecord:
        if self.end_time is not None:
            raise ValueError(f"Record {self.id} already ended at {self.end_time.isoformat()}")
        return self.model_copy(update={"end_time": at, **updates})


class HistoricProcessInstance(HistoricRecord):
    process_definition_id: str
    status: ProcessStatus = ProcessStatus.RUNNING
    start_activity_id: str | None = None
    end_activity_id: str | None = None
    duration_ms: int | None = None

    def ended(self, at: datetime, **updates: object) -> HistoricRecord:
        duration = int((at - self.start_time).total_seconds() * 1000)
        return super().ended(at, status=ProcessStatus.FINISHED, duration_ms=duration, **updates)


class HistoricActivityInstance(HistoricRecord):
    activity_id: str
    activity_name: str
    activity_type: ActivityType
    task_id: str | None = None


class HistoricTaskInstance(HistoricRecord):
    task_definition_key: str
    name: str
    assignee: str | None = None
    delete_reason: str | None = None


class HistoricVariableInstance(HistoricRecord):
    name: str
    type: VariableType
    value: VariableValue

    def typed_value(self) -> TypedValue:
        return TypedValue.parse(self.type.value, self.value)
