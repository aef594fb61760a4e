"""Lead request/response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from leadflow.constants import (
    LeadIntent, LeadTimeline, LeadSource, LeadStatus, LeadPriority, LeadLossReason,
    InteractionType, InteractionDirection, MatchConfidence,
)


class LeadDetails(BaseModel):
    """Intent-specific qualification details. Unknown keys are kept."""

    # Buying
    budget_min: Optional[float] = None
    budget_max: Optional[float] = None
    preferred_areas: Optional[list[str]] = None
    property_types: Optional[list[str]] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    must_have_features: Optional[list[str]] = None

    # Selling
    property_address: Optional[str] = None
    property_type: Optional[str] = None
    expected_price: Optional[float] = None
    property_area: Optional[float] = None
    property_area_unit: Optional[str] = None
    reason_for_selling: Optional[str] = None

    # Renting
    monthly_budget: Optional[float] = None
    lease_duration: Optional[str] = None
    move_in_date: Optional[str] = None

    # Leasing out
    rental_property_address: Optional[str] = None
    expected_rent: Optional[float] = None
    available_from: Optional[str] = None

    # Investing
    investment_budget: Optional[float] = None
    investment_type: Optional[str] = None
    risk_tolerance: Optional[str] = None

    model_config = {"extra": "allow"}


class LeadCreate(BaseModel):
    name: str
    phone: str
    email: Optional[str] = None
    alternate_phone: Optional[str] = None
    source: LeadSource = "other"
    source_details: Optional[str] = None
    campaign: Optional[str] = None
    referred_by: Optional[str] = None
    initial_message: Optional[str] = None
    intent: LeadIntent = "unknown"
    timeline: LeadTimeline = "unknown"
    details: Optional[LeadDetails] = None
    notes: Optional[str] = None
    agent_id: Optional[str] = None
    agent_name: Optional[str] = None
    workspace_id: Optional[str] = None


class LeadUpdate(BaseModel):
    """Partial update. Score, priority, SLA and routing are derived and not accepted."""

    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    alternate_phone: Optional[str] = None
    phone_verified: Optional[bool] = None
    email_verified: Optional[bool] = None
    source: Optional[LeadSource] = None
    source_details: Optional[str] = None
    campaign: Optional[str] = None
    referred_by: Optional[str] = None
    initial_message: Optional[str] = None
    intent: Optional[LeadIntent] = None
    timeline: Optional[LeadTimeline] = None
    details: Optional[LeadDetails] = None
    notes: Optional[str] = None
    agent_id: Optional[str] = None
    agent_name: Optional[str] = None
    status: Optional[LeadStatus] = None
    loss_reason: Optional[LeadLossReason] = None
    loss_notes: Optional[str] = None
    row_version: Optional[int] = Field(default=None, description="Reject the update if the lead has moved on")


class InteractionCreate(BaseModel):
    type: InteractionType
    direction: InteractionDirection = "outbound"
    summary: str
    notes: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    agent_id: Optional[str] = None
    agent_name: Optional[str] = None


class LostRequest(BaseModel):
    reason: LeadLossReason
    notes: Optional[str] = None


class BulkAssignRequest(BaseModel):
    lead_ids: list[uuid.UUID]
    agent_id: str
    agent_name: str


class BulkStatusRequest(BaseModel):
    lead_ids: list[uuid.UUID]
    status: LeadStatus


class ConvertRequest(BaseModel):
    additional_notes: Optional[str] = None
    actor_name: Optional[str] = None


class InteractionResponse(BaseModel):
    id: uuid.UUID
    sequence: int
    type: str
    direction: str
    summary: str
    notes: Optional[str]
    duration_minutes: Optional[int]
    automated: bool
    agent_id: str
    agent_name: str
    timestamp: datetime

    model_config = {"from_attributes": True}


class LeadResponse(BaseModel):
    id: uuid.UUID
    workspace_id: str
    name: str
    phone: str
    email: Optional[str]
    alternate_phone: Optional[str]
    phone_verified: bool
    email_verified: bool
    intent: str
    timeline: str
    details: Optional[dict]
    source: str
    source_details: Optional[str]
    campaign: Optional[str]
    referred_by: Optional[str]
    initial_message: Optional[str]
    qualification_score: int
    score_breakdown: dict
    priority: str
    status: str
    loss_reason: Optional[str]
    loss_notes: Optional[str]
    notes: str
    routed_to: Optional[dict]
    first_contact_at: Optional[datetime]
    qualified_at: Optional[datetime]
    converted_at: Optional[datetime]
    sla_compliant: bool
    overdue_by: float
    automation_milestones: list[str]
    agent_id: str
    agent_name: str
    created_by: str
    schema_version: int
    row_version: int
    created_at: datetime
    updated_at: datetime
    interactions: list[InteractionResponse] = []

    model_config = {"from_attributes": True}


class LeadListResponse(BaseModel):
    items: list[LeadResponse]
    total: int
    page: int
    per_page: int


class BulkResultResponse(BaseModel):
    updated: list[str]
    failed: dict[str, str]

    model_config = {"from_attributes": True}


class SLAStatusResponse(BaseModel):
    status: str
    message: str
    next_checkpoint: str
    sla_compliant: bool
    overdue_by: float
    hours_elapsed: float
    breaches: dict[str, float]


class SLAAlertResponse(BaseModel):
    lead_id: str
    lead_name: str
    agent_id: str
    agent_name: str
    alert_type: str
    hours_overdue: float
    priority: LeadPriority
    created_at: datetime

    model_config = {"from_attributes": True}


class LeadStatsResponse(BaseModel):
    total: int
    by_status: dict[str, int]
    by_priority: dict[str, int]
    by_intent: dict[str, int]
    by_source: dict[str, int]
    average_score: float
    sla_compliance: float
    conversion_rate: float
    average_time_to_conversion: float

    model_config = {"from_attributes": True}


class SLAPerformanceResponse(BaseModel):
    total_leads: int
    sla_compliant: int
    sla_violated: int
    compliance_rate: float
    average_first_contact: float
    average_qualification: float
    average_conversion: float
    alerts_by_type: dict[str, int]

    model_config = {"from_attributes": True}


class DuplicateCheckResponse(BaseModel):
    has_duplicate: bool
    duplicate_id: Optional[str]
    match_confidence: MatchConfidence

    model_config = {"from_attributes": True}


class ValidationResponse(BaseModel):
    valid: bool
    errors: list[str]
    warnings: list[str]

    model_config = {"from_attributes": True}


class ConversionResultResponse(BaseModel):
    success: bool
    contact_id: Optional[str]
    buyer_requirement_id: Optional[str]
    rent_requirement_id: Optional[str]
    property_id: Optional[str]
    investor_id: Optional[str]
    errors: list[str]
    warnings: list[str]
    duplicate_check: Optional[DuplicateCheckResponse]

    model_config = {"from_attributes": True}


class ConversionPreviewResponse(BaseModel):
    lead: LeadResponse
    will_create: dict[str, bool]
    validation: ValidationResponse
    duplicate_check: DuplicateCheckResponse

    model_config = {"from_attributes": True}


class AgentSuggestionResponse(BaseModel):
    agent_id: str
    agent_name: str
    confidence: float
    reason: str

    model_config = {"from_attributes": True}


class AgentWorkloadResponse(BaseModel):
    agent_id: str
    agent_name: str
    active_leads: int
    new_leads: int
    qualifying_leads: int
    average_score: float
    sla_compliance: float

    model_config = {"from_attributes": True}
