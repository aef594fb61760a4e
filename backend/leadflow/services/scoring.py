"""Qualification scoring - five capped factors summed into a 0-100 score.

The score is a pure function of the lead's contact verification, intent,
timeline, source and intent-specific details. It is recomputed on every
relevant mutation, so it must stay deterministic and side-effect free.
"""

from dataclasses import dataclass, field, asdict

# Per-factor lookups
INTENT_SCORES = {
    "buying": 20,
    "selling": 20,
    "renting": 18,
    "leasing-out": 18,
    "investing": 16,
    "unknown": 0,
}

TIMELINE_SCORES = {
    "immediate": 20,
    "within-1-month": 18,
    "within-3-months": 14,
    "within-6-months": 10,
    "long-term": 6,
    "unknown": 0,
}

SOURCE_SCORES = {
    "referral": 20,
    "walk-in": 18,
    "whatsapp": 16,
    "phone-call": 16,
    "website": 14,
    "email": 14,
    "zameen": 12,
    "olx": 12,
    "social-media": 10,
    "property-sign": 10,
    "event": 8,
    "coldcall": 6,
    "other": 4,
}

# intent -> (detail fields, any of which counts, credit)
BUDGET_FIELDS = {
    "buying": (("budget_min", "budget_max"), 20),
    "selling": (("expected_price",), 18),
    "renting": (("monthly_budget",), 18),
    "leasing-out": (("expected_rent",), 18),
    "investing": (("investment_budget",), 16),
}

HIGH_PRIORITY_THRESHOLD = 70
MEDIUM_PRIORITY_THRESHOLD = 40


@dataclass(frozen=True)
class ScoreWeights:
    contact_quality: int = 20
    intent_clarity: int = 20
    budget_realism: int = 20
    timeline_urgency: int = 20
    source_quality: int = 20


@dataclass(frozen=True)
class LeadAttributes:
    """The subset of a lead that feeds the score."""

    phone_verified: bool = False
    email_verified: bool = False
    email: str | None = None
    intent: str = "unknown"
    timeline: str = "unknown"
    source: str = "other"
    details: dict = field(default_factory=dict)

    @classmethod
    def from_lead(cls, lead) -> "LeadAttributes":
        return cls(
            phone_verified=bool(lead.phone_verified),
            email_verified=bool(lead.email_verified),
            email=lead.email,
            intent=lead.intent or "unknown",
            timeline=lead.timeline or "unknown",
            source=lead.source or "other",
            details=dict(lead.details or {}),
        )


@dataclass(frozen=True)
class ScoreResult:
    contact_quality: int
    intent_clarity: int
    budget_realism: int
    timeline_urgency: int
    source_quality: int
    total: int
    priority: str

    def breakdown(self) -> dict:
        data = asdict(self)
        data.pop("total")
        data.pop("priority")
        return data


def priority_for(total: float) -> str:
    if total >= HIGH_PRIORITY_THRESHOLD:
        return "high"
    if total >= MEDIUM_PRIORITY_THRESHOLD:
        return "medium"
    return "low"


def _clamp(value: int, weight: int) -> int:
    return max(0, min(value, weight))


def _contact_quality(attrs: LeadAttributes) -> int:
    points = 0
    if attrs.phone_verified:
        points += 12
    elif attrs.email:
        points += 4
    if attrs.email_verified:
        points += 8
    elif attrs.email:
        points += 3
    return points


def _budget_realism(attrs: LeadAttributes) -> int:
    fields, credit = BUDGET_FIELDS.get(attrs.intent, ((), 0))
    if any(attrs.details.get(name) for name in fields):
        return credit
    return 0


def score(attrs: LeadAttributes, weights: ScoreWeights | None = None) -> ScoreResult:
    """Compute the five-factor qualification score for a lead."""
    weights = weights or ScoreWeights()

    contact_quality = _clamp(_contact_quality(attrs), weights.contact_quality)
    intent_clarity = _clamp(INTENT_SCORES.get(attrs.intent, 0), weights.intent_clarity)
    budget_realism = _clamp(_budget_realism(attrs), weights.budget_realism)
    timeline_urgency = _clamp(TIMELINE_SCORES.get(attrs.timeline, 0), weights.timeline_urgency)
    source_quality = _clamp(SOURCE_SCORES.get(attrs.source, 0), weights.source_quality)

    total = contact_quality + intent_clarity + budget_realism + timeline_urgency + source_quality
    return ScoreResult(
        contact_quality=contact_quality,
        intent_clarity=intent_clarity,
        budget_realism=budget_realism,
        timeline_urgency=timeline_urgency,
        source_quality=source_quality,
        total=total,
        priority=priority_for(total),
    )


def score_lead(lead, weights: ScoreWeights | None = None) -> ScoreResult:
    return score(LeadAttributes.from_lead(lead), weights)
