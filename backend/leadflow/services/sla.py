"""SLA compliance tracking.

Three targets are measured from the lead's creation time: first contact,
qualification and conversion. Only milestones that have not been reached yet
are checked against elapsed time; a milestone that was reached late is never
penalised afterwards.
"""

from dataclasses import dataclass, field
from datetime import datetime

from leadflow.clock import hours_between
from leadflow.constants import ACTIVE_STATUSES

# Fraction of a target after which a pending milestone is reported as a warning
WARNING_RATIO = 0.75


@dataclass(frozen=True)
class SLATargets:
    first_contact_hours: float = 2
    qualification_hours: float = 24
    conversion_hours: float = 48


@dataclass(frozen=True)
class SLAEvaluation:
    sla_compliant: bool
    overdue_by: float
    hours_elapsed: float
    breaches: dict[str, float] = field(default_factory=dict)  # milestone -> hours overdue


@dataclass(frozen=True)
class SLAStatus:
    status: str  # compliant, warning, overdue
    message: str
    next_checkpoint: str  # first-contact, qualification, conversion, complete
    evaluation: SLAEvaluation


@dataclass(frozen=True)
class SLAAlert:
    lead_id: str
    lead_name: str
    agent_id: str
    agent_name: str
    alert_type: str  # first-contact-overdue, qualification-overdue, conversion-overdue
    hours_overdue: float
    priority: str
    created_at: datetime


def _milestones(record, targets: SLATargets) -> list[tuple[str, datetime | None, float]]:
    return [
        ("first-contact", record.first_contact_at, targets.first_contact_hours),
        ("qualification", record.qualified_at, targets.qualification_hours),
        ("conversion", record.converted_at, targets.conversion_hours),
    ]


def evaluate(record, now: datetime, targets: SLATargets | None = None) -> SLAEvaluation:
    """Evaluate compliance of ``record`` (anything with created_at and the
    three milestone timestamps) at time ``now``."""
    targets = targets or SLATargets()
    elapsed = max(0.0, hours_between(record.created_at, now))

    breaches: dict[str, float] = {}
    for name, reached_at, target in _milestones(record, targets):
        if reached_at is None and elapsed > target:
            breaches[name] = elapsed - target

    overdue_by = max(breaches.values(), default=0.0)
    return SLAEvaluation(
        sla_compliant=not breaches,
        overdue_by=overdue_by,
        hours_elapsed=elapsed,
        breaches=breaches,
    )


def next_checkpoint(record) -> str:
    if record.first_contact_at is None:
        return "first-contact"
    if record.qualified_at is None:
        return "qualification"
    if record.converted_at is None:
        return "conversion"
    return "complete"


def sla_status(record, now: datetime, targets: SLATargets | None = None) -> SLAStatus:
    targets = targets or SLATargets()
    evaluation = evaluate(record, now, targets)
    checkpoint = next_checkpoint(record)

    if not evaluation.sla_compliant:
        return SLAStatus(
            status="overdue",
            message=f"Overdue by {round(evaluation.overdue_by)} hours",
            next_checkpoint=checkpoint,
            evaluation=evaluation,
        )

    for name, reached_at, target in _milestones(record, targets):
        if reached_at is None and evaluation.hours_elapsed >= target * WARNING_RATIO:
            remaining = target - evaluation.hours_elapsed
            return SLAStatus(
                status="warning",
                message=f"Approaching {name} deadline ({remaining:.1f}h left)",
                next_checkpoint=checkpoint,
                evaluation=evaluation,
            )

    return SLAStatus(
        status="compliant",
        message="All SLA targets met",
        next_checkpoint=checkpoint,
        evaluation=evaluation,
    )


def sla_alerts(leads, now: datetime, targets: SLATargets | None = None) -> list[SLAAlert]:
    """Alerts for every breached milestone of every active lead, most overdue first."""
    targets = targets or SLATargets()
    alerts = []
    for lead in leads:
        if lead.status not in ACTIVE_STATUSES:
            continue
        evaluation = evaluate(lead, now, targets)
        for milestone, hours in evaluation.breaches.items():
            alerts.append(SLAAlert(
                lead_id=str(lead.id),
                lead_name=lead.name,
                agent_id=lead.agent_id,
                agent_name=lead.agent_name,
                alert_type=f"{milestone}-overdue",
                hours_overdue=hours,
                priority=lead.priority,
                created_at=lead.created_at,
            ))
    alerts.sort(key=lambda alert: alert.hours_overdue, reverse=True)
    return alerts
