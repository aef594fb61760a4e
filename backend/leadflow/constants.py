"""Lead vocabularies shared by models, schemas and services."""

from typing import Literal, get_args

LeadIntent = Literal["buying", "selling", "renting", "leasing-out", "investing", "unknown"]
LeadTimeline = Literal[
    "immediate", "within-1-month", "within-3-months", "within-6-months", "long-term", "unknown"
]
LeadStatus = Literal["new", "qualifying", "qualified", "converted", "lost", "archived"]
LeadSource = Literal[
    "website", "phone-call", "walk-in", "referral", "social-media", "whatsapp", "email",
    "property-sign", "olx", "zameen", "coldcall", "event", "other",
]
LeadPriority = Literal["high", "medium", "low"]
LeadLossReason = Literal[
    "no-budget", "not-ready", "no-response", "found-elsewhere",
    "not-interested", "duplicate", "spam", "other",
]
InteractionType = Literal["call", "email", "whatsapp", "meeting", "sms", "note"]
InteractionDirection = Literal["inbound", "outbound"]
MatchConfidence = Literal["high", "medium", "low"]

INTENTS: tuple[str, ...] = get_args(LeadIntent)
TIMELINES: tuple[str, ...] = get_args(LeadTimeline)
STATUSES: tuple[str, ...] = get_args(LeadStatus)
SOURCES: tuple[str, ...] = get_args(LeadSource)
PRIORITIES: tuple[str, ...] = get_args(LeadPriority)

ACTIVE_STATUSES = ("new", "qualifying", "qualified")

SYSTEM_ACTOR = "system"
LEAD_SCHEMA_VERSION = 2
