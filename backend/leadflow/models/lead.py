"""Lead and lead interaction models."""

import uuid
from datetime import datetime

from sqlalchemy import String, Text, Float, Integer, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leadflow.clock import utcnow
from leadflow.constants import LEAD_SCHEMA_VERSION
from leadflow.database import Base, JSONType


class Lead(Base):
    __tablename__ = "leads"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Contact info (copied to the Contact on conversion)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    alternate_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    phone_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False)

    # Qualification
    intent: Mapped[str] = mapped_column(String(20), default="unknown")  # buying, selling, renting, leasing-out, investing
    timeline: Mapped[str] = mapped_column(String(20), default="unknown")
    details: Mapped[dict | None] = mapped_column(JSONType, nullable=True)  # intent-specific fields

    # Source & attribution
    source: Mapped[str] = mapped_column(String(30), default="other")
    source_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    campaign: Mapped[str | None] = mapped_column(String(255), nullable=True)
    referred_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    initial_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Scoring (derived, recomputed on every relevant change)
    qualification_score: Mapped[int] = mapped_column(Integer, default=0)
    score_breakdown: Mapped[dict] = mapped_column(JSONType, default=dict)
    priority: Mapped[str] = mapped_column(String(10), default="low")

    # Status
    status: Mapped[str] = mapped_column(String(20), default="new", index=True)
    loss_reason: Mapped[str | None] = mapped_column(String(30), nullable=True)
    loss_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str] = mapped_column(Text, default="")

    # Routing, set once on conversion
    routed_to: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    # SLA tracking
    first_contact_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    qualified_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    converted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    sla_compliant: Mapped[bool] = mapped_column(Boolean, default=True)
    overdue_by: Mapped[float] = mapped_column(Float, default=0.0)  # hours

    # Follow-up milestones already sent by the scheduler
    automation_milestones: Mapped[list] = mapped_column(JSONType, default=list)

    # Assignment
    agent_id: Mapped[str] = mapped_column(String(100), default="")
    agent_name: Mapped[str] = mapped_column(String(255), default="")

    # Metadata
    created_by: Mapped[str] = mapped_column(String(100), default="")
    schema_version: Mapped[int] = mapped_column(Integer, default=LEAD_SCHEMA_VERSION)
    row_version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    interactions: Mapped[list["LeadInteraction"]] = relationship(
        back_populates="lead",
        order_by="LeadInteraction.sequence",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": row_version}

    def __repr__(self) -> str:
        return f"<Lead {self.id} {self.status}>"


class LeadInteraction(Base):
    __tablename__ = "lead_interactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    lead_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    type: Mapped[str] = mapped_column(String(20), nullable=False)  # call, email, whatsapp, meeting, sms, note
    direction: Mapped[str] = mapped_column(String(10), nullable=False)  # inbound, outbound
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    automated: Mapped[bool] = mapped_column(Boolean, default=False)

    agent_id: Mapped[str] = mapped_column(String(100), default="")
    agent_name: Mapped[str] = mapped_column(String(255), default="")
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    lead: Mapped[Lead] = relationship(back_populates="interactions")
