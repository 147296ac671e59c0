"""Read-side queries over workflow history."""

from __future__ import annotations

from workflow_engine.engine.history.query import (
    HistoryFilter,
    HistoryOrderBy,
    HistorySource,
    SortDirection,
    query_activity_instances,
    query_process_instances,
    query_task_instances,
    query_variable_instances,
    single_result,
)
from workflow_engine.engine.history.records import (
    HistoricActivityInstance,
    HistoricProcessInstance,
    HistoricTaskInstance,
    HistoricVariableInstance,
    ProcessStatus,
)


class HistoryQueryService:
    """Side-effect free history lookups.

    Every method builds a :class:`HistoryFilter` and hands it to the query
    function for one record kind. A lookup that matches nothing returns
    ``None`` or an empty list; it is never an error.
    """

    def __init__(self, source: HistorySource) -> None:
        self._source = source

    def get_process_instance(self, process_instance_id: str) -> HistoricProcessInstance | None:
        return single_result(
            query_process_instances(
                self._source, HistoryFilter(process_instance_id=process_instance_id)
            )
        )

    def get_activity_history(self, process_instance_id: str) -> list[HistoricActivityInstance]:
        flt = HistoryFilter(
            process_instance_id=process_instance_id,
            order_by=HistoryOrderBy.START_TIME,
            direction=SortDirection.DESC,
        )
        return query_activity_instances(self._source, flt)

    def get_task_history(self, process_instance_id: str) -> list[HistoricTaskInstance]:
        flt = HistoryFilter(
            process_instance_id=process_instance_id,
            order_by=HistoryOrderBy.END_TIME,
            direction=SortDirection.DESC,
        )
        return query_task_instances(self._source, flt)

    def get_variable_history(self, process_instance_id: str) -> list[HistoricVariableInstance]:
        return query_variable_instances(
            self._source, HistoryFilter(process_instance_id=process_instance_id)
        )

    def get_finished_processes(
        self, process_definition_key: str | None = None
    ) -> list[HistoricProcessInstance]:
        flt = HistoryFilter(
            status=ProcessStatus.FINISHED,
            order_by=HistoryOrderBy.END_TIME,
            direction=SortDirection.DESC,
        ).with_definition_key(process_definition_key)
        return query_process_instances(self._source, flt)

    def get_running_processes(
        self, process_definition_key: str | None = None
    ) -> list[HistoricProcessInstance]:
        flt = HistoryFilter(
            status=ProcessStatus.RUNNING,
            order_by=HistoryOrderBy.START_TIME,
            direction=SortDirection.DESC,
        ).with_definition_key(process_definition_key)
        return query_process_instances(self._source, flt)
