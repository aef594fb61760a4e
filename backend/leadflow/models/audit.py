"""Audit log model - tracks every lifecycle action with full context."""

import uuid
from datetime import datetime

from sqlalchemy import String, Text, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from leadflow.clock import utcnow
from leadflow.database import Base, JSONType


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    lead_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)

    # Action details
    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    # e.g.: lead_created, lead_updated, status_changed, interaction_added, lead_converted,
    #       followup_sent, sla_alert, report_executed, lead_auto_archived

    step: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Content
    input_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    output_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    reason_code: Mapped[str | None] = mapped_column(String(100), nullable=True)
    extra_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    # Actor
    actor: Mapped[str] = mapped_column(String(100), default="system")  # system, agent id, scheduler

    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
