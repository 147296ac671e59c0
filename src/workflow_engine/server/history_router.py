"""Workflow history endpoints (mounted under `/api/history`).

Thin wrappers over :class:`HistoryQueryService`. A lookup that matches
nothing returns `null` or `[]`, not 404.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, Request

from workflow_engine.engine.history.records import (
    HistoricActivityInstance,
    HistoricProcessInstance,
    HistoricTaskInstance,
    HistoricVariableInstance,
)
from workflow_engine.engine.history.service import HistoryQueryService

router = APIRouter()


def _history(request: Request) -> HistoryQueryService:
    service = getattr(request.app.state, "history_service", None)
    if not isinstance(service, HistoryQueryService):
        raise HTTPException(status_code=500, detail="History service not configured")
    return service


@router.get(
    "/process-instance/{process_instance_id}",
    response_model=HistoricProcessInstance | None,
)
def get_process_instance(
    request: Request, process_instance_id: str
) -> HistoricProcessInstance | None:
    return _history(request).get_process_instance(process_instance_id)


@router.get(
    "/process-instance/{process_instance_id}/activities",
    response_model=list[HistoricActivityInstance],
)
def get_activity_history(
    request: Request, process_instance_id: str
) -> list[HistoricActivityInstance]:
    return _history(request).get_activity_history(process_instance_id)


@router.get(
    "/process-instance/{process_instance_id}/tasks",
    response_model=list[HistoricTaskInstance],
)
def get_task_history(request: Request, process_instance_id: str) -> list[HistoricTaskInstance]:
    return _history(request).get_task_history(process_instance_id)


@router.get(
    "/process-instance/{process_instance_id}/variables",
    response_model=list[HistoricVariableInstance],
)
def get_variable_history(
    request: Request, process_instance_id: str
) -> list[HistoricVariableInstance]:
    return _history(request).get_variable_history(process_instance_id)


@router.get("/finished-processes", response_model=list[HistoricProcessInstance])
def get_finished_processes(
    request: Request,
    process_definition_key: str | None = Query(default=None, alias="processDefinitionKey"),
) -> list[HistoricProcessInstance]:
    return _history(request).get_finished_processes(process_definition_key)


@router.get("/running-processes", response_model=list[HistoricProcessInstance])
def get_running_processes(
    request: Request,
    process_definition_key: str | None = Query(default=None, alias="processDefinitionKey"),
) -> list[HistoricProcessInstance]:
    return _history(request).get_running_processes(process_definition_key)
