"""FastAPI app factory.

Endpoints are intentionally thin wrappers over the engine services.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from workflow_engine import __version__
from workflow_engine.engine.config import WorkflowSettings
from workflow_engine.engine.history.service import HistoryQueryService
from workflow_engine.engine.history.store import HistoryLog
from workflow_engine.engine.host import ProcessDefinitionNotFoundError, TaskNotFoundError
from workflow_engine.engine.launch import ProcessLaunchService
from workflow_engine.engine.runtime import InMemoryProcessEngine
from workflow_engine.engine.variables import MissingVariableError, VariableTypeError
from workflow_engine.server.config import ServerSettings
from workflow_engine.server.history_router import router as history_router
from workflow_engine.server.models import AppInfo, HealthStatus, InfoResponse
from workflow_engine.server.process_router import router as process_router

logger = logging.getLogger(__name__)


def create_app(
    settings: WorkflowSettings | None = None,
    engine: InMemoryProcessEngine | None = None,
) -> FastAPI:
    settings = settings or WorkflowSettings()
    server_settings = ServerSettings()
    if engine is None:
        engine = InMemoryProcessEngine(HistoryLog(settings.history_path))

    app = FastAPI(
        title="Workflow Engine",
        version=__version__,
        description="Credit and loan decision workflows with history queries.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.state.settings = settings
    app.state.launch_service = ProcessLaunchService(
        engine,
        credit_process_key=settings.credit_process_key,
        loan_process_key=settings.loan_process_key,
    )
    app.state.history_service = HistoryQueryService(engine.history)
    app.state.task_service = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=server_settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(process_router, prefix="/process", tags=["process"])
    app.include_router(history_router, prefix="/api/history", tags=["history"])

    _register_error_handlers(app)

    @app.get("/health", response_model=HealthStatus)
    def health() -> HealthStatus:
        return HealthStatus(status="UP")

    @app.get("/info", response_model=InfoResponse)
    def info() -> InfoResponse:
        return InfoResponse(
            app=AppInfo(
                name=settings.app_name,
                description=settings.app_description,
                version=__version__,
            )
        )

    return app


def _register_error_handlers(app: FastAPI) -> None:
    """Map engine errors onto HTTP status codes.

    Anything not listed here surfaces as a 500.
    """

    def _reply(status_code: int, exc: Exception, request: Request) -> JSONResponse:
        logger.warning(
            "Request failed",
            extra={"path": request.url.path, "status_code": status_code, "error": str(exc)},
        )
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.exception_handler(MissingVariableError)
    def _missing_variable(request: Request, exc: MissingVariableError) -> JSONResponse:
        return _reply(422, exc, request)

    @app.exception_handler(VariableTypeError)
    def _variable_type(request: Request, exc: VariableTypeError) -> JSONResponse:
        return _reply(422, exc, request)

    @app.exception_handler(TaskNotFoundError)
    def _task_not_found(request: Request, exc: TaskNotFoundError) -> JSONResponse:
        return _reply(404, exc, request)

    @app.exception_handler(ProcessDefinitionNotFoundError)
    def _definition_not_found(
        request: Request, exc: ProcessDefinitionNotFoundError
    ) -> JSONResponse:
        return _reply(404, exc, request)
