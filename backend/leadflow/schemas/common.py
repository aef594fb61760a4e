"""Common response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class AuditLogResponse(BaseModel):
    id: uuid.UUID
    workspace_id: Optional[str]
    lead_id: Optional[uuid.UUID]
    action: str
    step: Optional[str]
    input_summary: Optional[str]
    output_summary: Optional[str]
    reason_code: Optional[str]
    extra_data: Optional[dict]
    actor: str
    timestamp: datetime

    model_config = {"from_attributes": True}


class SchedulerStateResponse(BaseModel):
    last_run: Optional[str]
    is_running: bool
    total_tasks_executed: int


class CycleReportResponse(BaseModel):
    ran: bool
    tasks: dict[str, int] = {}
    errors: dict[str, int] = {}


class HealthResponse(BaseModel):
    status: str
    version: str = "1.0.0"
    db: str
    redis: str
    scheduler: str


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    token: str
    email: str
