"""Audit log viewer endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from leadflow.api.deps import get_db
from leadflow.middleware.auth import verify_admin_token
from leadflow.models.audit import AuditLog
from leadflow.schemas.common import AuditLogResponse

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("", response_model=list[AuditLogResponse])
def list_audit_logs(
    lead_id: UUID | None = None,
    workspace_id: str | None = None,
    action: str | None = None,
    actor: str | None = None,
    since: datetime | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    admin: str = Depends(verify_admin_token),
    db: Session = Depends(get_db),
):
    """List audit logs with filters."""
    query = select(AuditLog).order_by(AuditLog.timestamp.desc())

    if lead_id:
        query = query.where(AuditLog.lead_id == lead_id)
    if workspace_id:
        query = query.where(AuditLog.workspace_id == workspace_id)
    if action:
        query = query.where(AuditLog.action == action)
    if actor:
        query = query.where(AuditLog.actor == actor)
    if since:
        query = query.where(AuditLog.timestamp >= since)

    query = query.offset((page - 1) * per_page).limit(per_page)

    logs = db.execute(query).scalars().all()
    return [AuditLogResponse.model_validate(log) for log in logs]
