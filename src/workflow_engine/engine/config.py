"""Configuration for the workflow engine.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Decision thresholds are deliberately not configurable; they live next to the
delegates in :mod:`workflow_engine.engine.delegates`.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from workflow_engine.engine.definitions import (
    CREDIT_CHECK_PROCESS_KEY,
    LOAN_APPROVAL_PROCESS_KEY,
)


class WorkflowSettings(BaseSettings):
    """Settings for the engine, CLI and server.

    Environment variables:
    - LOG_LEVEL                     (optional)
    - WORKFLOW_HISTORY_PATH         (optional)
    - WORKFLOW_CREDIT_PROCESS_KEY   (optional)
    - WORKFLOW_LOAN_PROCESS_KEY     (optional)
    - WORKFLOW_APP_NAME             (optional)
    - WORKFLOW_APP_DESCRIPTION      (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `WorkflowSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    history_path: Path = Field(
        default=Path("engine_state/history.json"),
        validation_alias="WORKFLOW_HISTORY_PATH",
        description="File where the in-process engine persists workflow history",
    )

    credit_process_key: str = Field(
        default=CREDIT_CHECK_PROCESS_KEY,
        validation_alias="WORKFLOW_CREDIT_PROCESS_KEY",
        description="Process definition key started by the credit-check launch",
    )
    loan_process_key: str = Field(
        default=LOAN_APPROVAL_PROCESS_KEY,
        validation_alias="WORKFLOW_LOAN_PROCESS_KEY",
        description="Process definition key started by the loan-application launch",
    )

    app_name: str = Field(default="workflow-engine", validation_alias="WORKFLOW_APP_NAME")
    app_description: str = Field(
        default="Credit and loan decision workflows",
        validation_alias="WORKFLOW_APP_DESCRIPTION",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("credit_process_key", "loan_process_key")
    @classmethod
    def _require_key(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("process definition key must not be empty")
        return value.strip()
