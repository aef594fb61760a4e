"""Lead statistics and SLA performance reporting."""

from dataclasses import dataclass, field
from datetime import datetime

from leadflow.clock import hours_between
from leadflow.constants import INTENTS, PRIORITIES, STATUSES
from leadflow.services.sla import SLATargets, evaluate, sla_alerts


@dataclass
class LeadStats:
    total: int = 0
    by_status: dict[str, int] = field(default_factory=lambda: dict.fromkeys(STATUSES, 0))
    by_priority: dict[str, int] = field(default_factory=lambda: dict.fromkeys(PRIORITIES, 0))
    by_intent: dict[str, int] = field(default_factory=lambda: dict.fromkeys(INTENTS, 0))
    by_source: dict[str, int] = field(default_factory=dict)
    average_score: float = 0.0
    sla_compliance: float = 0.0  # percent
    conversion_rate: float = 0.0  # percent
    average_time_to_conversion: float = 0.0  # hours


@dataclass
class SLAPerformance:
    total_leads: int = 0
    sla_compliant: int = 0
    sla_violated: int = 0
    compliance_rate: float = 0.0
    average_first_contact: float = 0.0  # hours
    average_qualification: float = 0.0
    average_conversion: float = 0.0
    alerts_by_type: dict[str, int] = field(default_factory=lambda: {
        "first-contact-overdue": 0,
        "qualification-overdue": 0,
        "conversion-overdue": 0,
    })


def _average(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def lead_statistics(leads, now: datetime, targets: SLATargets | None = None) -> LeadStats:
    """Aggregate counts and rates. A lead counts as converted once it has
    been routed, so archiving a converted lead does not lower the rate."""
    stats = LeadStats(total=len(leads))
    if not leads:
        return stats

    compliant = 0
    conversion_hours = []
    for lead in leads:
        stats.by_status[lead.status] = stats.by_status.get(lead.status, 0) + 1
        stats.by_priority[lead.priority] = stats.by_priority.get(lead.priority, 0) + 1
        stats.by_intent[lead.intent] = stats.by_intent.get(lead.intent, 0) + 1
        stats.by_source[lead.source] = stats.by_source.get(lead.source, 0) + 1
        if evaluate(lead, now, targets).sla_compliant:
            compliant += 1
        if lead.routed_to and lead.converted_at:
            conversion_hours.append(hours_between(lead.created_at, lead.converted_at))

    stats.average_score = _average([lead.qualification_score for lead in leads])
    stats.sla_compliance = compliant / len(leads) * 100
    stats.conversion_rate = len(conversion_hours) / len(leads) * 100
    stats.average_time_to_conversion = _average(conversion_hours)
    return stats


def sla_performance(leads, now: datetime, targets: SLATargets | None = None) -> SLAPerformance:
    perf = SLAPerformance(total_leads=len(leads))
    first_contact, qualification, conversion = [], [], []

    for lead in leads:
        if lead.sla_compliant:
            perf.sla_compliant += 1
        else:
            perf.sla_violated += 1
        if lead.first_contact_at:
            first_contact.append(hours_between(lead.created_at, lead.first_contact_at))
        if lead.qualified_at:
            qualification.append(hours_between(lead.created_at, lead.qualified_at))
        if lead.converted_at:
            conversion.append(hours_between(lead.created_at, lead.converted_at))

    for alert in sla_alerts(leads, now, targets):
        perf.alerts_by_type[alert.alert_type] += 1

    perf.compliance_rate = perf.sla_compliant / len(leads) * 100 if leads else 0.0
    perf.average_first_contact = _average(first_contact)
    perf.average_qualification = _average(qualification)
    perf.average_conversion = _average(conversion)
    return perf
