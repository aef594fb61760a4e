"""Audit trail helpers."""

import uuid

from sqlalchemy.orm import Session

from leadflow.clock import utcnow
from leadflow.models.audit import AuditLog


def create_audit_entry(
    session: Session,
    action: str,
    lead_id: uuid.UUID | str | None = None,
    workspace_id: str | None = None,
    step: str | None = None,
    input_summary: str | None = None,
    output_summary: str | None = None,
    reason_code: str | None = None,
    extra_data: dict | None = None,
    actor: str = "system",
    timestamp=None,
) -> AuditLog:
    """Add an audit log entry to ``session``. The caller commits."""
    if isinstance(lead_id, str):
        lead_id = uuid.UUID(lead_id)
    entry = AuditLog(
        workspace_id=workspace_id,
        lead_id=lead_id,
        action=action,
        step=step,
        input_summary=input_summary[:500] if input_summary else None,
        output_summary=output_summary[:500] if output_summary else None,
        reason_code=reason_code,
        extra_data=extra_data,
        actor=actor or "system",
        timestamp=timestamp or utcnow(),
    )
    session.add(entry)
    return entry
