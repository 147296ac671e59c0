"""Process launch endpoints (mounted under `/process`)."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse

from workflow_engine.engine.history.records import HistoricTaskInstance
from workflow_engine.engine.host import TaskService
from workflow_engine.engine.launch import ProcessLaunchService
from workflow_engine.server.models import CompleteTaskRequest, LoanRequest

router = APIRouter()


def _launch_service(request: Request) -> ProcessLaunchService:
    service = getattr(request.app.state, "launch_service", None)
    if not isinstance(service, ProcessLaunchService):
        raise HTTPException(status_code=500, detail="Launch service not configured")
    return service


def _task_service(request: Request) -> TaskService:
    service = getattr(request.app.state, "task_service", None)
    if service is None:
        raise HTTPException(status_code=500, detail="Task service not configured")
    return service


@router.post("/start", response_class=PlainTextResponse)
def start(request: Request, credit_score: int = Query(alias="creditScore")) -> str:
    _launch_service(request).start_credit_check(credit_score)
    return f"Process started with creditScore={credit_score}"


@router.post("/loan/apply", response_class=PlainTextResponse)
def apply_loan(request: Request, body: LoanRequest) -> str:
    _launch_service(request).apply_loan(body.applicant, body.amount)
    return "Loan application submitted!"


@router.get("/tasks", response_model=list[HistoricTaskInstance])
def list_open_tasks(
    request: Request,
    process_instance_id: str | None = Query(default=None, alias="processInstanceId"),
) -> list[HistoricTaskInstance]:
    return _task_service(request).list_open_tasks(process_instance_id)


@router.post("/tasks/{task_id}/complete", response_model=HistoricTaskInstance)
def complete_task(
    request: Request, task_id: str, body: CompleteTaskRequest | None = None
) -> HistoricTaskInstance:
    variables = body.variables if body is not None else None
    return _task_service(request).complete_task(task_id, variables)
