"""Lead lifecycle service - creation, updates, interactions and status changes.

Every mutation runs in its own session and commits one lead row. The row's
``row_version`` column guards against lost updates: a concurrent write makes
the commit fail with ``LeadConflictError`` instead of silently overwriting.
"""

import re
import uuid
from dataclasses import dataclass, field
from typing import get_args
from datetime import datetime

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from leadflow.clock import Clock, utcnow
from leadflow.config import settings as app_settings
from leadflow.constants import (
    ACTIVE_STATUSES, INTENTS, TIMELINES, SOURCES, STATUSES, SYSTEM_ACTOR, LeadLossReason,
    InteractionType, InteractionDirection,
)
from leadflow.exceptions import LeadNotFoundError, LeadStateError, LeadConflictError, LeadValidationError
from leadflow.metrics import LEADS_CREATED, LEAD_STATUS_CHANGES
from leadflow.models.lead import Lead, LeadInteraction
from leadflow.services.assignment import agent_workloads, least_loaded_agent
from leadflow.services.audit import create_audit_entry
from leadflow.services.lead_settings import LeadSettingsStore
from leadflow.services.scoring import score_lead
from leadflow.services.sla import SLAEvaluation, SLAStatus, evaluate, sla_status
from leadflow.services.store import LeadFilter, build_query, apply_filter

logger = structlog.get_logger()

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

LOSS_REASONS = get_args(LeadLossReason)
INTERACTION_TYPES = get_args(InteractionType)
INTERACTION_DIRECTIONS = get_args(InteractionDirection)

# Allowed manual transitions. "converted" is only reachable through
# record_conversion; leaving archived/lost goes through reactivate.
TRANSITIONS = {
    "new": {"qualifying", "qualified", "lost", "archived"},
    "qualifying": {"qualified", "lost", "archived"},
    "qualified": {"lost", "archived"},
    "converted": {"archived"},
    "lost": {"archived"},
    "archived": set(),
}
IMMUTABLE_STATUSES = ("converted", "archived")
CONVERTIBLE_STATUSES = ACTIVE_STATUSES

SCORING_FIELDS = {"phone_verified", "email_verified", "email", "intent", "timeline", "source", "details"}
EDITABLE_FIELDS = SCORING_FIELDS | {
    "name", "phone", "alternate_phone", "source_details", "campaign", "referred_by",
    "initial_message", "notes", "agent_id", "agent_name", "workspace_id",
}
NOT_NULL_FIELDS = {
    "phone_verified", "email_verified", "intent", "timeline", "source",
    "notes", "agent_id", "agent_name", "workspace_id",
}


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass
class LeadCreateResult:
    lead: Lead | None = None
    errors: list[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.lead is not None and not self.errors


@dataclass
class BulkResult:
    updated: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)  # lead id -> reason


@dataclass(frozen=True)
class SLARefresh:
    lead: Lead
    evaluation: SLAEvaluation


def normalize_phone(phone: str) -> str:
    return re.sub(r"[\s-]", "", phone or "")


def validate_contact_fields(data: dict, phone_pattern: str, partial: bool = False) -> list[FieldError]:
    """Name, phone and email checks. With ``partial`` only present keys are checked."""
    errors = []
    if not partial or "name" in data:
        name = (data.get("name") or "").strip()
        if len(name) < 2:
            errors.append(FieldError("name", "Name must be at least 2 characters"))
    if not partial or "phone" in data:
        phone = normalize_phone(data.get("phone"))
        if not phone:
            errors.append(FieldError("phone", "Phone number is required"))
        elif not re.match(phone_pattern, phone):
            errors.append(FieldError("phone", "Invalid phone number format"))
    email = data.get("email")
    if email and not EMAIL_PATTERN.match(email):
        errors.append(FieldError("email", "Invalid email format"))

    for name, allowed in (("intent", INTENTS), ("timeline", TIMELINES), ("source", SOURCES)):
        value = data.get(name)
        if value is not None and value not in allowed:
            errors.append(FieldError(name, f"Invalid {name} '{value}'"))
    if partial:
        for name in sorted(NOT_NULL_FIELDS.intersection(data)):
            if data[name] is None:
                errors.append(FieldError(name, f"{name} cannot be null"))
    return errors


def _parse_id(lead_id) -> uuid.UUID:
    if isinstance(lead_id, uuid.UUID):
        return lead_id
    try:
        return uuid.UUID(str(lead_id))
    except ValueError:
        raise LeadNotFoundError(lead_id)


class LeadService:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        settings_store: LeadSettingsStore,
        clock: Clock = utcnow,
        notifier=None,
        phone_pattern: str | None = None,
    ):
        self.session_factory = session_factory
        self.settings_store = settings_store
        self.clock = clock
        self.notifier = notifier
        self.phone_pattern = phone_pattern or app_settings.phone_pattern

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load(self, session: Session, lead_id) -> Lead:
        lead = session.get(Lead, _parse_id(lead_id))
        if lead is None:
            raise LeadNotFoundError(lead_id)
        return lead

    def _commit(self, session: Session, lead_id) -> None:
        try:
            session.commit()
        except StaleDataError as e:
            session.rollback()
            logger.warning("lead_conflict", lead_id=str(lead_id))
            raise LeadConflictError(f"Lead {lead_id} was modified concurrently") from e

    def _rescore(self, lead: Lead, lead_settings=None) -> None:
        lead_settings = lead_settings or self.settings_store.get()
        result = score_lead(lead, lead_settings.weights())
        lead.qualification_score = result.total
        lead.score_breakdown = result.breakdown()
        lead.priority = result.priority

    def _apply_sla(self, lead: Lead, now: datetime, lead_settings=None) -> SLAEvaluation:
        lead_settings = lead_settings or self.settings_store.get()
        evaluation = evaluate(lead, now, lead_settings.targets())
        lead.sla_compliant = evaluation.sla_compliant
        lead.overdue_by = round(evaluation.overdue_by, 2)
        return evaluation

    @staticmethod
    def _stamp_milestone(lead: Lead, milestone: str, now: datetime) -> None:
        """Stamp ``milestone`` and back-fill any earlier missing one with ``now``."""
        if lead.first_contact_at is None:
            lead.first_contact_at = now
        if milestone in ("qualified", "converted") and lead.qualified_at is None:
            lead.qualified_at = now
        if milestone == "converted" and lead.converted_at is None:
            lead.converted_at = now

    def _transition(self, lead: Lead, target: str, now: datetime) -> str:
        """Move ``lead`` to ``target`` via the transition table. Returns the old status."""
        previous = lead.status
        if target == previous:
            return previous
        if target not in STATUSES:
            raise LeadStateError(f"Unknown status '{target}'")
        if target == "converted":
            raise LeadStateError("Leads can only be converted through the conversion workflow")
        if target not in TRANSITIONS[previous]:
            raise LeadStateError(f"Cannot move lead from {previous} to {target}")

        if target == "qualified":
            self._stamp_milestone(lead, "qualified", now)
        lead.status = target
        LEAD_STATUS_CHANGES.labels(status=target).inc()
        return previous

    @staticmethod
    def _check_version(lead: Lead, expected_version: int | None) -> None:
        if expected_version is not None and lead.row_version != expected_version:
            raise LeadConflictError(
                f"Lead {lead.id} is at version {lead.row_version}, expected {expected_version}"
            )

    @staticmethod
    def _ensure_mutable(lead: Lead) -> None:
        if lead.status in IMMUTABLE_STATUSES:
            raise LeadStateError(f"Lead {lead.id} is {lead.status} and cannot be edited")

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create(self, data: dict, actor: str = SYSTEM_ACTOR) -> LeadCreateResult:
        """Validate and create a lead. Field errors are returned, not raised."""
        errors = validate_contact_fields(data, self.phone_pattern)
        if errors:
            logger.info("lead_create_rejected", errors=[e.field for e in errors])
            return LeadCreateResult(errors=errors)

        now = self.clock()
        lead_settings = self.settings_store.get()

        with self.session_factory() as session:
            agent_id = data.get("agent_id") or ""
            agent_name = data.get("agent_name") or ""
            if not agent_id and lead_settings.auto_assign_enabled:
                agent_id, agent_name = self._auto_assign_agent(session, lead_settings)

            lead = Lead(
                id=uuid.uuid4(),
                workspace_id=data.get("workspace_id") or "default",
                name=data["name"].strip(),
                phone=data["phone"].strip(),
                email=data.get("email") or None,
                alternate_phone=data.get("alternate_phone") or None,
                phone_verified=False,
                email_verified=False,
                intent=data.get("intent") or "unknown",
                timeline=data.get("timeline") or "unknown",
                details=dict(data.get("details") or {}),
                source=data.get("source") or "other",
                source_details=data.get("source_details"),
                campaign=data.get("campaign"),
                referred_by=data.get("referred_by"),
                initial_message=data.get("initial_message"),
                status="new",
                notes=data.get("notes") or "",
                agent_id=agent_id,
                agent_name=agent_name,
                created_by=actor,
                automation_milestones=[],
                interactions=[],
                sla_compliant=True,
                overdue_by=0.0,
                created_at=now,
                updated_at=now,
            )
            self._rescore(lead, lead_settings)
            session.add(lead)
            create_audit_entry(
                session, "lead_created", lead_id=lead.id, workspace_id=lead.workspace_id,
                step="intake", input_summary=f"{lead.name} via {lead.source}",
                output_summary=f"score={lead.qualification_score} priority={lead.priority}",
                actor=actor, timestamp=now,
            )
            session.commit()

        LEADS_CREATED.labels(source=lead.source).inc()
        logger.info(
            "lead_created", lead_id=str(lead.id), score=lead.qualification_score,
            priority=lead.priority, agent_id=lead.agent_id,
        )
        if self.notifier and lead.priority == "high":
            self.notifier.notify(
                "info", "High-priority lead", f"{lead.name} ({lead.intent}) scored {lead.qualification_score}",
                lead_id=str(lead.id), source=lead.source, agent=lead.agent_name or None,
            )
        return LeadCreateResult(lead=lead)

    def _auto_assign_agent(self, session: Session, lead_settings) -> tuple[str, str]:
        roster = lead_settings.roster()
        if roster:
            active = session.execute(
                select(Lead).where(Lead.status.in_(ACTIVE_STATUSES))
            ).scalars().all()
            agent = least_loaded_agent(roster, agent_workloads(active))
            logger.info("lead_auto_assigned", agent_id=agent.id)
            return agent.id, agent.name
        return lead_settings.default_agent_id, lead_settings.default_agent_name

    def get(self, lead_id) -> Lead:
        with self.session_factory() as session:
            return self._load(session, lead_id)

    def list_leads(
        self,
        lead_filter: LeadFilter | None = None,
        sort: str = "newest",
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Lead]:
        query = build_query(lead_filter, sort).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        with self.session_factory() as session:
            return list(session.execute(query).scalars().all())

    def count(self, lead_filter: LeadFilter | None = None) -> int:
        query = select(func.count()).select_from(Lead)
        if lead_filter:
            query = apply_filter(query, lead_filter)
        with self.session_factory() as session:
            return session.execute(query).scalar_one()

    def update(self, lead_id, patch: dict, actor: str = SYSTEM_ACTOR, expected_version: int | None = None) -> Lead:
        """Apply a partial update. Status changes go through the transition table."""
        patch = dict(patch)
        target_status = patch.pop("status", None)
        loss_reason = patch.pop("loss_reason", None)
        loss_notes = patch.pop("loss_notes", None)
        ignored = sorted(set(patch) - EDITABLE_FIELDS)
        if ignored:
            logger.warning("lead_update_fields_ignored", lead_id=str(lead_id), fields=ignored)
        patch = {k: v for k, v in patch.items() if k in EDITABLE_FIELDS}

        errors = validate_contact_fields(patch, self.phone_pattern, partial=True)
        if errors:
            raise LeadValidationError(errors)

        now = self.clock()
        lead_settings = self.settings_store.get()
        with self.session_factory() as session:
            lead = self._load(session, lead_id)
            self._check_version(lead, expected_version)

            only_archiving = not patch and target_status == "archived"
            if not only_archiving:
                self._ensure_mutable(lead)

            changed = []
            for key, value in patch.items():
                if key == "details":
                    value = dict(value or {})
                if getattr(lead, key) != value:
                    setattr(lead, key, value)
                    changed.append(key)

            if SCORING_FIELDS.intersection(changed):
                self._rescore(lead, lead_settings)

            previous = lead.status
            if target_status is not None:
                if target_status == "lost":
                    self._validate_loss_reason(loss_reason or lead.loss_reason)
                    lead.loss_reason = loss_reason or lead.loss_reason
                    lead.loss_notes = loss_notes if loss_notes is not None else lead.loss_notes
                self._transition(lead, target_status, now)

            self._apply_sla(lead, now, lead_settings)
            lead.updated_at = now
            create_audit_entry(
                session, "status_changed" if lead.status != previous else "lead_updated",
                lead_id=lead.id, workspace_id=lead.workspace_id, step="update",
                input_summary=", ".join(changed) or None,
                output_summary=f"{previous} -> {lead.status}" if lead.status != previous else None,
                actor=actor, timestamp=now,
            )
            self._commit(session, lead_id)

        logger.info("lead_updated", lead_id=str(lead.id), fields=changed, status=lead.status)
        return lead

    def delete(self, lead_id, actor: str = SYSTEM_ACTOR) -> None:
        with self.session_factory() as session:
            lead = self._load(session, lead_id)
            create_audit_entry(
                session, "lead_deleted", lead_id=lead.id, workspace_id=lead.workspace_id,
                input_summary=lead.name, actor=actor, timestamp=self.clock(),
            )
            session.delete(lead)
            self._commit(session, lead_id)
        logger.info("lead_deleted", lead_id=str(lead_id))

    # ------------------------------------------------------------------
    # Interactions
    # ------------------------------------------------------------------

    def add_interaction(self, lead_id, interaction: dict, actor: str = SYSTEM_ACTOR) -> Lead:
        """Append an interaction. The first manual one stamps first contact;
        a non-note interaction on a new lead moves it to qualifying."""
        kind = interaction.get("type")
        direction = interaction.get("direction", "outbound")
        if kind not in INTERACTION_TYPES:
            raise LeadValidationError([FieldError("type", f"Invalid interaction type '{kind}'")])
        if direction not in INTERACTION_DIRECTIONS:
            raise LeadValidationError([FieldError("direction", f"Invalid direction '{direction}'")])
        if not (interaction.get("summary") or "").strip():
            raise LeadValidationError([FieldError("summary", "Summary is required")])

        automated = bool(interaction.get("automated", False))
        now = self.clock()
        lead_settings = self.settings_store.get()
        with self.session_factory() as session:
            lead = self._load(session, lead_id)
            self._ensure_mutable(lead)
            self._append_interaction(lead, interaction, now, automated)

            if not automated:
                if lead.first_contact_at is None:
                    lead.first_contact_at = now
                if lead.status == "new" and kind != "note":
                    self._transition(lead, "qualifying", now)

            self._apply_sla(lead, now, lead_settings)
            lead.updated_at = now
            create_audit_entry(
                session, "interaction_added", lead_id=lead.id, workspace_id=lead.workspace_id,
                step=kind, input_summary=interaction.get("summary"), actor=actor, timestamp=now,
            )
            self._commit(session, lead_id)

        logger.info("lead_interaction_added", lead_id=str(lead.id), type=kind, automated=automated)
        return lead

    @staticmethod
    def _append_interaction(lead: Lead, data: dict, now: datetime, automated: bool = False) -> LeadInteraction:
        sequence = max((i.sequence for i in lead.interactions), default=0) + 1
        entry = LeadInteraction(
            id=uuid.uuid4(),
            sequence=sequence,
            type=data["type"],
            direction=data.get("direction", "outbound"),
            summary=data["summary"],
            notes=data.get("notes"),
            duration_minutes=data.get("duration_minutes"),
            automated=automated,
            agent_id=data.get("agent_id") or "",
            agent_name=data.get("agent_name") or "",
            timestamp=now,
        )
        lead.interactions.append(entry)
        return entry

    def record_followup(
        self,
        lead_id,
        milestone: str,
        subject: str,
        body: str,
        agent_name: str,
        timeline: str | None = None,
        now: datetime | None = None,
    ) -> bool:
        """Log an automated follow-up email once per milestone.

        Returns False when the milestone was already recorded. Automated
        emails do not count as first contact and never advance the status.
        """
        now = now or self.clock()
        with self.session_factory() as session:
            lead = self._load(session, lead_id)
            if milestone in (lead.automation_milestones or []):
                return False
            if lead.status not in ACTIVE_STATUSES:
                return False

            self._append_interaction(lead, {
                "type": "email",
                "direction": "outbound",
                "summary": f"Automated Email: {subject}",
                "notes": body,
                "agent_id": SYSTEM_ACTOR,
                "agent_name": agent_name,
            }, now, automated=True)
            lead.automation_milestones = [*(lead.automation_milestones or []), milestone]
            if timeline and lead.timeline != timeline:
                lead.timeline = timeline
                self._rescore(lead)
            lead.updated_at = now
            create_audit_entry(
                session, "followup_sent", lead_id=lead.id, workspace_id=lead.workspace_id,
                step=milestone, input_summary=subject, actor="scheduler", timestamp=now,
            )
            self._commit(session, lead_id)
        return True

    # ------------------------------------------------------------------
    # Status management
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_loss_reason(reason: str | None) -> None:
        if reason not in LOSS_REASONS:
            raise LeadValidationError([FieldError("loss_reason", f"Invalid loss reason '{reason}'")])

    def mark_lost(self, lead_id, reason: str, notes: str | None = None, actor: str = SYSTEM_ACTOR) -> Lead:
        return self.update(lead_id, {"status": "lost", "loss_reason": reason, "loss_notes": notes}, actor=actor)

    def archive(self, lead_id, actor: str = SYSTEM_ACTOR) -> Lead:
        return self.update(lead_id, {"status": "archived"}, actor=actor)

    def reactivate(self, lead_id, actor: str = SYSTEM_ACTOR) -> Lead:
        """Bring an archived or lost lead back: converted if it was routed, else new."""
        now = self.clock()
        with self.session_factory() as session:
            lead = self._load(session, lead_id)
            if lead.status not in ("archived", "lost"):
                raise LeadStateError(f"Only archived or lost leads can be reactivated (lead is {lead.status})")
            previous = lead.status
            lead.status = "converted" if lead.routed_to else "new"
            lead.loss_reason = None
            lead.loss_notes = None
            LEAD_STATUS_CHANGES.labels(status=lead.status).inc()
            self._apply_sla(lead, now)
            lead.updated_at = now
            create_audit_entry(
                session, "lead_reactivated", lead_id=lead.id, workspace_id=lead.workspace_id,
                output_summary=f"{previous} -> {lead.status}", actor=actor, timestamp=now,
            )
            self._commit(session, lead_id)
        logger.info("lead_reactivated", lead_id=str(lead.id), status=lead.status)
        return lead

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def bulk_assign(self, lead_ids: list, agent_id: str, agent_name: str, actor: str = SYSTEM_ACTOR) -> BulkResult:
        result = BulkResult()
        for lead_id in lead_ids:
            try:
                self.update(lead_id, {"agent_id": agent_id, "agent_name": agent_name}, actor=actor)
                result.updated.append(str(lead_id))
            except (LeadNotFoundError, LeadStateError, LeadConflictError) as e:
                result.failed[str(lead_id)] = str(e)
        logger.info("leads_bulk_assigned", agent_id=agent_id, updated=len(result.updated), failed=len(result.failed))
        return result

    def bulk_set_status(self, lead_ids: list, status: str, actor: str = SYSTEM_ACTOR) -> BulkResult:
        result = BulkResult()
        for lead_id in lead_ids:
            try:
                self.update(lead_id, {"status": status}, actor=actor)
                result.updated.append(str(lead_id))
            except (LeadNotFoundError, LeadStateError, LeadConflictError, LeadValidationError) as e:
                result.failed[str(lead_id)] = str(e)
        logger.info("leads_bulk_status", status=status, updated=len(result.updated), failed=len(result.failed))
        return result

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def refresh_sla(self, lead_id, now: datetime | None = None) -> SLARefresh:
        """Re-evaluate and persist the SLA pair. Writes only when it changed."""
        now = now or self.clock()
        with self.session_factory() as session:
            lead = self._load(session, lead_id)
            previous = (lead.sla_compliant, lead.overdue_by)
            evaluation = self._apply_sla(lead, now)
            if (lead.sla_compliant, lead.overdue_by) != previous:
                self._commit(session, lead_id)
        return SLARefresh(lead=lead, evaluation=evaluation)

    def mark_milestone(
        self, lead_id, key: str, action: str = "automation_milestone", actor: str = "scheduler", note: str | None = None,
    ) -> bool:
        """Record an automation milestone. False if it was already recorded."""
        now = self.clock()
        with self.session_factory() as session:
            lead = self._load(session, lead_id)
            if key in (lead.automation_milestones or []):
                return False
            lead.automation_milestones = [*(lead.automation_milestones or []), key]
            create_audit_entry(
                session, action, lead_id=lead.id, workspace_id=lead.workspace_id,
                step=key, output_summary=note, actor=actor, timestamp=now,
            )
            self._commit(session, lead_id)
        return True

    def sla_status(self, lead_id, now: datetime | None = None) -> SLAStatus:
        lead = self.get(lead_id)
        return sla_status(lead, now or self.clock(), self.settings_store.get().targets())

    def recalculate_score(self, lead_id, actor: str = SYSTEM_ACTOR) -> Lead:
        now = self.clock()
        with self.session_factory() as session:
            lead = self._load(session, lead_id)
            before = lead.qualification_score
            self._rescore(lead)
            if lead.qualification_score != before:
                lead.updated_at = now
                create_audit_entry(
                    session, "score_recalculated", lead_id=lead.id, workspace_id=lead.workspace_id,
                    output_summary=f"{before} -> {lead.qualification_score}", actor=actor, timestamp=now,
                )
            self._commit(session, lead_id)
        return lead

    def record_conversion(
        self,
        lead_id,
        routing: dict,
        actor_id: str = SYSTEM_ACTOR,
        actor_name: str = "",
        summary: str | None = None,
    ) -> Lead:
        """Mark the lead converted and store where it was routed. The only
        path into ``converted``; ``routed_to`` can be set once."""
        now = self.clock()
        with self.session_factory() as session:
            lead = self._load(session, lead_id)
            if lead.routed_to:
                raise LeadStateError(f"Lead {lead.id} was already converted")
            if lead.status not in CONVERTIBLE_STATUSES:
                raise LeadStateError(f"Lead {lead.id} is {lead.status} and cannot be converted")

            lead.routed_to = {
                **{k: v for k, v in routing.items() if v is not None},
                "converted_at": now.isoformat(),
                "converted_by": actor_id,
            }
            self._stamp_milestone(lead, "converted", now)
            lead.status = "converted"
            if summary:
                self._append_interaction(lead, {
                    "type": "note",
                    "direction": "outbound",
                    "summary": summary,
                    "agent_id": actor_id,
                    "agent_name": actor_name,
                }, now)
            self._apply_sla(lead, now)
            lead.updated_at = now
            create_audit_entry(
                session, "lead_converted", lead_id=lead.id, workspace_id=lead.workspace_id,
                step="routing", output_summary=summary, extra_data=dict(lead.routed_to),
                actor=actor_id, timestamp=now,
            )
            self._commit(session, lead_id)

        LEAD_STATUS_CHANGES.labels(status="converted").inc()
        logger.info("lead_converted", lead_id=str(lead.id), contact_id=routing.get("contact_id"))
        return lead

    # ------------------------------------------------------------------
    # Queries used by the scheduler and analytics
    # ------------------------------------------------------------------

    def active_leads(self) -> list[Lead]:
        return self.list_leads(LeadFilter(status=list(ACTIVE_STATUSES)), sort="oldest")

    def all_leads(self) -> list[Lead]:
        return self.list_leads(sort="oldest")

    def converted_before(self, cutoff: datetime) -> list[Lead]:
        query = select(Lead).where(Lead.status == "converted", Lead.converted_at < cutoff)
        with self.session_factory() as session:
            return list(session.execute(query).scalars().all())

    def requiring_action(self, now: datetime | None = None) -> list[Lead]:
        """New uncontacted leads, qualified leads awaiting conversion and overdue leads."""
        now = now or self.clock()
        targets = self.settings_store.get().targets()
        leads = []
        for lead in self.list_leads(LeadFilter(status=list(ACTIVE_STATUSES)), sort="oldest"):
            if lead.status == "new" and lead.first_contact_at is None:
                leads.append(lead)
            elif lead.status == "qualified":
                leads.append(lead)
            elif not evaluate(lead, now, targets).sla_compliant:
                leads.append(lead)
        return leads
