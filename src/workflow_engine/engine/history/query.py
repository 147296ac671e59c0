"""Filter + order composition over historic records.

A query is an explicit :class:`HistoryFilter` value passed to one function per
record kind. Filters are additive: a field left as ``None`` applies no
narrowing at all.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Protocol, TypeVar

from workflow_engine.engine.history.records import (
    HistoricActivityInstance,
    HistoricProcessInstance,
    HistoricRecord,
    HistoricTaskInstance,
    HistoricVariableInstance,
    ProcessStatus,
)

R = TypeVar("R", bound=HistoricRecord)


class HistoryOrderBy(str, Enum):
    START_TIME = "startTime"
    END_TIME = "endTime"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class NonUniqueResultError(ValueError):
    pass


class HistorySource(Protocol):
    """Read access to the host engine's historical store."""

    def historic_process_instances(self) -> Sequence[HistoricProcessInstance]: ...

    def historic_activity_instances(self) -> Sequence[HistoricActivityInstance]: ...

    def historic_task_instances(self) -> Sequence[HistoricTaskInstance]: ...

    def historic_variable_instances(self) -> Sequence[HistoricVariableInstance]: ...


@dataclass(frozen=True, slots=True)
class HistoryFilter:
    process_instance_id: str | None = None
    process_definition_key: str | None = None
    # finished/running is decided by the end timestamp for every record kind.
    status: ProcessStatus | None = None
    order_by: HistoryOrderBy | None = None
    direction: SortDirection = SortDirection.ASC

    def with_definition_key(self, key: str | None) -> HistoryFilter:
        if key is None:
            return self
        return replace(self, process_definition_key=key)

    def matches(self, record: HistoricRecord) -> bool:
        if (
            self.process_instance_id is not None
            and record.process_instance_id != self.process_instance_id
        ):
            return False
        if (
            self.process_definition_key is not None
            and record.process_definition_key != self.process_definition_key
        ):
            return False
        if self.status is ProcessStatus.FINISHED and not record.finished:
            return False
        if self.status is ProcessStatus.RUNNING and record.finished:
            return False
        return True


_SortKey = tuple[bool, datetime | None]


def _sort_key(order_by: HistoryOrderBy) -> Callable[[HistoricRecord], _SortKey]:
    def key(record: HistoricRecord) -> _SortKey:
        value = record.start_time if order_by is HistoryOrderBy.START_TIME else record.end_time
        # Missing timestamps sort lowest.
        return (value is not None, value)

    return key


def apply_filter(records: Iterable[R], flt: HistoryFilter) -> list[R]:
    """Narrow then order ``records``.

    Sorting is stable, so records with equal keys keep the order the host
    produced them in. Without ``order_by`` that order is returned unchanged.
    """

    selected = [r for r in records if flt.matches(r)]
    if flt.order_by is None:
        return selected
    return sorted(
        selected,
        key=_sort_key(flt.order_by),
        reverse=flt.direction is SortDirection.DESC,
    )


def single_result(records: Sequence[R]) -> R | None:
    if not records:
        return None
    if len(records) > 1:
        raise NonUniqueResultError(f"Query returned {len(records)} results instead of max 1")
    return records[0]


def query_process_instances(
    source: HistorySource, flt: HistoryFilter
) -> list[HistoricProcessInstance]:
    return apply_filter(source.historic_process_instances(), flt)


def query_activity_instances(
    source: HistorySource, flt: HistoryFilter
) -> list[HistoricActivityInstance]:
    return apply_filter(source.historic_activity_instances(), flt)


def query_task_instances(source: HistorySource, flt: HistoryFilter) -> list[HistoricTaskInstance]:
    return apply_filter(source.historic_task_instances(), flt)


def query_variable_instances(
    source: HistorySource, flt: HistoryFilter
) -> list[HistoricVariableInstance]:
    return apply_filter(source.historic_variable_instances(), flt)
