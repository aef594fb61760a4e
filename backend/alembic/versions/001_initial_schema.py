"""Initial schema: leads, interactions, audit log and app state.

Revision ID: 001
Revises: None
Create Date: 2025-01-01
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Leads
    op.create_table(
        "leads",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("workspace_id", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("alternate_phone", sa.String(50), nullable=True),
        sa.Column("phone_verified", sa.Boolean, server_default="false"),
        sa.Column("email_verified", sa.Boolean, server_default="false"),
        sa.Column("intent", sa.String(20), server_default="unknown"),
        sa.Column("timeline", sa.String(20), server_default="unknown"),
        sa.Column("details", JSONB, nullable=True),
        sa.Column("source", sa.String(30), server_default="other"),
        sa.Column("source_details", sa.Text, nullable=True),
        sa.Column("campaign", sa.String(255), nullable=True),
        sa.Column("referred_by", sa.String(255), nullable=True),
        sa.Column("initial_message", sa.Text, nullable=True),
        sa.Column("qualification_score", sa.Integer, server_default="0"),
        sa.Column("score_breakdown", JSONB, server_default="{}"),
        sa.Column("priority", sa.String(10), server_default="low"),
        sa.Column("status", sa.String(20), server_default="new"),
        sa.Column("loss_reason", sa.String(30), nullable=True),
        sa.Column("loss_notes", sa.Text, nullable=True),
        sa.Column("notes", sa.Text, server_default=""),
        sa.Column("routed_to", JSONB, nullable=True),
        sa.Column("first_contact_at", sa.DateTime, nullable=True),
        sa.Column("qualified_at", sa.DateTime, nullable=True),
        sa.Column("converted_at", sa.DateTime, nullable=True),
        sa.Column("sla_compliant", sa.Boolean, server_default="true"),
        sa.Column("overdue_by", sa.Float, server_default="0"),
        sa.Column("automation_milestones", JSONB, server_default="[]"),
        sa.Column("agent_id", sa.String(100), server_default=""),
        sa.Column("agent_name", sa.String(255), server_default=""),
        sa.Column("created_by", sa.String(100), server_default=""),
        sa.Column("schema_version", sa.Integer, server_default="1"),
        sa.Column("row_version", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_leads_workspace_id", "leads", ["workspace_id"])
    op.create_index("ix_leads_phone", "leads", ["phone"])
    op.create_index("ix_leads_status", "leads", ["status"])
    op.create_index("ix_leads_created_at", "leads", ["created_at"])

    # Interaction timeline
    op.create_table(
        "lead_interactions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("lead_id", UUID(as_uuid=True), sa.ForeignKey("leads.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sequence", sa.Integer, nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("direction", sa.String(10), nullable=False),
        sa.Column("summary", sa.Text, nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("duration_minutes", sa.Integer, nullable=True),
        sa.Column("automated", sa.Boolean, server_default="false"),
        sa.Column("agent_id", sa.String(100), server_default=""),
        sa.Column("agent_name", sa.String(255), server_default=""),
        sa.Column("timestamp", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_lead_interactions_lead_id", "lead_interactions", ["lead_id"])

    # Audit logs
    op.create_table(
        "audit_logs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("workspace_id", sa.String(100), nullable=True),
        sa.Column("lead_id", UUID(as_uuid=True), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("step", sa.String(100), nullable=True),
        sa.Column("input_summary", sa.Text, nullable=True),
        sa.Column("output_summary", sa.Text, nullable=True),
        sa.Column("reason_code", sa.String(100), nullable=True),
        sa.Column("extra_data", JSONB, nullable=True),
        sa.Column("actor", sa.String(100), server_default="system"),
        sa.Column("timestamp", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_audit_logs_workspace_id", "audit_logs", ["workspace_id"])
    op.create_index("ix_audit_logs_lead_id", "audit_logs", ["lead_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_timestamp", "audit_logs", ["timestamp"])

    # Key/value state: lead settings and scheduler state
    op.create_table(
        "app_state",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", JSONB, server_default="{}"),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("app_state")
    op.drop_table("audit_logs")
    op.drop_table("lead_interactions")
    op.drop_table("leads")
