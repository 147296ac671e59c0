"""Historic workflow records and the queries composed over them."""

from workflow_engine.engine.history.query import (
    HistoryFilter,
    HistoryOrderBy,
    HistorySource,
    NonUniqueResultError,
    SortDirection,
)
from workflow_engine.engine.history.records import (
    ActivityType,
    HistoricActivityInstance,
    HistoricProcessInstance,
    HistoricTaskInstance,
    HistoricVariableInstance,
    ProcessStatus,
)
from workflow_engine.engine.history.service import HistoryQueryService
from workflow_engine.engine.history.store import HistoryBatch, HistoryLog

__all__ = [
    "ActivityType",
    "HistoricActivityInstance",
    "HistoricProcessInstance",
    "HistoricTaskInstance",
    "HistoricVariableInstance",
    "HistoryBatch",
    "HistoryFilter",
    "HistoryLog",
    "HistoryOrderBy",
    "HistoryQueryService",
    "HistorySource",
    "NonUniqueResultError",
    "ProcessStatus",
    "SortDirection",
]
