"""Lead store queries - filtering and sorting over the leads table."""

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import Select, case, func, or_, select

from leadflow.models.lead import Lead

SORT_OPTIONS = (
    "newest", "oldest", "priority-high", "priority-low",
    "score-high", "score-low", "name-az", "name-za", "overdue",
)

_PRIORITY_RANK = case({"high": 3, "medium": 2, "low": 1}, value=Lead.priority, else_=0)


@dataclass
class LeadFilter:
    status: list[str] = field(default_factory=list)
    priority: list[str] = field(default_factory=list)
    intent: list[str] = field(default_factory=list)
    source: list[str] = field(default_factory=list)
    agent_id: str | None = None
    workspace_id: str | None = None
    search: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    sla_compliant: bool | None = None
    min_score: int | None = None
    max_score: int | None = None


def apply_filter(query: Select, lead_filter: LeadFilter) -> Select:
    if lead_filter.status:
        query = query.where(Lead.status.in_(lead_filter.status))
    if lead_filter.priority:
        query = query.where(Lead.priority.in_(lead_filter.priority))
    if lead_filter.intent:
        query = query.where(Lead.intent.in_(lead_filter.intent))
    if lead_filter.source:
        query = query.where(Lead.source.in_(lead_filter.source))
    if lead_filter.agent_id:
        query = query.where(Lead.agent_id == lead_filter.agent_id)
    if lead_filter.workspace_id:
        query = query.where(Lead.workspace_id == lead_filter.workspace_id)
    if lead_filter.search:
        term = f"%{lead_filter.search.lower()}%"
        query = query.where(or_(
            func.lower(Lead.name).like(term),
            Lead.phone.like(f"%{lead_filter.search}%"),
            func.lower(Lead.email).like(term),
            func.lower(Lead.notes).like(term),
            func.lower(Lead.initial_message).like(term),
        ))
    if lead_filter.date_from:
        query = query.where(Lead.created_at >= lead_filter.date_from)
    if lead_filter.date_to:
        query = query.where(Lead.created_at <= lead_filter.date_to)
    if lead_filter.sla_compliant is not None:
        query = query.where(Lead.sla_compliant == lead_filter.sla_compliant)
    if lead_filter.min_score is not None:
        query = query.where(Lead.qualification_score >= lead_filter.min_score)
    if lead_filter.max_score is not None:
        query = query.where(Lead.qualification_score <= lead_filter.max_score)
    return query


def apply_sort(query: Select, sort: str = "newest") -> Select:
    if sort not in SORT_OPTIONS:
        raise ValueError(f"Unknown sort '{sort}', expected one of {', '.join(SORT_OPTIONS)}")
    if sort == "oldest":
        return query.order_by(Lead.created_at.asc())
    if sort == "priority-high":
        return query.order_by(_PRIORITY_RANK.desc(), Lead.qualification_score.desc())
    if sort == "priority-low":
        return query.order_by(_PRIORITY_RANK.asc(), Lead.qualification_score.asc())
    if sort == "score-high":
        return query.order_by(Lead.qualification_score.desc())
    if sort == "score-low":
        return query.order_by(Lead.qualification_score.asc())
    if sort == "name-az":
        return query.order_by(func.lower(Lead.name).asc())
    if sort == "name-za":
        return query.order_by(func.lower(Lead.name).desc())
    if sort == "overdue":
        return query.order_by(Lead.sla_compliant.asc(), Lead.overdue_by.desc())
    return query.order_by(Lead.created_at.desc())


def build_query(lead_filter: LeadFilter | None = None, sort: str = "newest") -> Select:
    query = select(Lead)
    if lead_filter:
        query = apply_filter(query, lead_filter)
    return apply_sort(query, sort)
