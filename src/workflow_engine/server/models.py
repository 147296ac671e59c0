"""Pydantic models for the REST server."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class LoanRequest(BaseModel):
    applicant: str = Field(min_length=1)
    amount: float


class CompleteTaskRequest(BaseModel):
    variables: dict[str, bool | int | float | str] = Field(default_factory=dict)


class HealthStatus(BaseModel):
    status: Literal["UP", "DOWN"] = "UP"


class AppInfo(BaseModel):
    name: str
    description: str
    version: str


class InfoResponse(BaseModel):
    app: AppInfo
