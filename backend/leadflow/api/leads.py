"""Lead endpoints - intake, lifecycle, SLA, statistics and conversion."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from leadflow.api.deps import get_lead_service, get_conversion_engine, get_settings_store
from leadflow.middleware.auth import verify_admin_token
from leadflow.schemas.lead import (
    LeadCreate, LeadUpdate, InteractionCreate, LostRequest, BulkAssignRequest, BulkStatusRequest,
    ConvertRequest, LeadResponse, LeadListResponse, BulkResultResponse, SLAStatusResponse,
    SLAAlertResponse, LeadStatsResponse, SLAPerformanceResponse, DuplicateCheckResponse,
    ConversionResultResponse, ConversionPreviewResponse, AgentSuggestionResponse, AgentWorkloadResponse,
)
from leadflow.services.analytics import lead_statistics, sla_performance
from leadflow.services.assignment import agent_workloads, suggest_agent
from leadflow.services.conversion import ConversionEngine
from leadflow.services.leads import LeadService
from leadflow.services.lead_settings import LeadSettingsStore
from leadflow.services.sla import sla_alerts
from leadflow.services.store import LeadFilter

router = APIRouter(prefix="/leads", tags=["leads"])


def _details(data: dict) -> dict:
    if data.get("details") is not None:
        data["details"] = {k: v for k, v in data["details"].items() if v is not None}
    return data


# --- Collection -------------------------------------------------------

@router.post("", response_model=LeadResponse, status_code=201)
def create_lead(
    body: LeadCreate,
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
):
    """Create a lead. Field validation errors come back as 422 [{field, message}]."""
    result = service.create(_details(body.model_dump()), actor=admin)
    if not result.ok:
        return JSONResponse(
            status_code=422,
            content={"detail": [{"field": e.field, "message": e.message} for e in result.errors]},
        )
    return LeadResponse.model_validate(result.lead)


@router.get("", response_model=LeadListResponse)
def list_leads(
    status: list[str] | None = Query(None),
    priority: list[str] | None = Query(None),
    intent: list[str] | None = Query(None),
    source: list[str] | None = Query(None),
    agent_id: str | None = None,
    workspace_id: str | None = None,
    search: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    sla_compliant: bool | None = None,
    min_score: int | None = Query(None, ge=0, le=100),
    max_score: int | None = Query(None, ge=0, le=100),
    sort: str = "newest",
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
):
    """List leads with filters and sorting."""
    lead_filter = LeadFilter(
        status=status or [], priority=priority or [], intent=intent or [], source=source or [],
        agent_id=agent_id, workspace_id=workspace_id, search=search,
        date_from=date_from, date_to=date_to, sla_compliant=sla_compliant,
        min_score=min_score, max_score=max_score,
    )
    try:
        leads = service.list_leads(lead_filter, sort=sort, offset=(page - 1) * per_page, limit=per_page)
    except ValueError as e:
        return JSONResponse(status_code=422, content={"detail": str(e)})
    return LeadListResponse(
        items=[LeadResponse.model_validate(lead) for lead in leads],
        total=service.count(lead_filter),
        page=page,
        per_page=per_page,
    )


@router.get("/stats", response_model=LeadStatsResponse)
def get_stats(
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
    settings_store: LeadSettingsStore = Depends(get_settings_store),
):
    stats = lead_statistics(service.all_leads(), service.clock(), settings_store.get().targets())
    return LeadStatsResponse.model_validate(stats)


@router.get("/sla/alerts", response_model=list[SLAAlertResponse])
def get_sla_alerts(
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
    settings_store: LeadSettingsStore = Depends(get_settings_store),
):
    """Breached milestones of active leads, most overdue first."""
    alerts = sla_alerts(service.active_leads(), service.clock(), settings_store.get().targets())
    return [SLAAlertResponse.model_validate(alert) for alert in alerts]


@router.get("/sla/performance", response_model=SLAPerformanceResponse)
def get_sla_performance(
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
    settings_store: LeadSettingsStore = Depends(get_settings_store),
):
    perf = sla_performance(service.all_leads(), service.clock(), settings_store.get().targets())
    return SLAPerformanceResponse.model_validate(perf)


@router.get("/requiring-action", response_model=list[LeadResponse])
def get_leads_requiring_action(
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
):
    return [LeadResponse.model_validate(lead) for lead in service.requiring_action()]


@router.get("/workloads", response_model=list[AgentWorkloadResponse])
def get_agent_workloads(
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
):
    return [AgentWorkloadResponse.model_validate(w) for w in agent_workloads(service.active_leads())]


@router.post("/bulk/assign", response_model=BulkResultResponse)
def bulk_assign(
    body: BulkAssignRequest,
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
):
    result = service.bulk_assign(body.lead_ids, body.agent_id, body.agent_name, actor=admin)
    return BulkResultResponse.model_validate(result)


@router.post("/bulk/status", response_model=BulkResultResponse)
def bulk_status(
    body: BulkStatusRequest,
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
):
    result = service.bulk_set_status(body.lead_ids, body.status, actor=admin)
    return BulkResultResponse.model_validate(result)


# --- Single lead ------------------------------------------------------

@router.get("/{lead_id}", response_model=LeadResponse)
def get_lead(
    lead_id: UUID,
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
):
    return LeadResponse.model_validate(service.get(lead_id))


@router.patch("/{lead_id}", response_model=LeadResponse)
def update_lead(
    lead_id: UUID,
    body: LeadUpdate,
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
):
    patch = _details(body.model_dump(exclude_unset=True))
    expected_version = patch.pop("row_version", None)
    lead = service.update(lead_id, patch, actor=admin, expected_version=expected_version)
    return LeadResponse.model_validate(lead)


@router.delete("/{lead_id}", status_code=204)
def delete_lead(
    lead_id: UUID,
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
):
    service.delete(lead_id, actor=admin)


@router.post("/{lead_id}/interactions", response_model=LeadResponse, status_code=201)
def add_interaction(
    lead_id: UUID,
    body: InteractionCreate,
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
):
    data = body.model_dump()
    data["agent_id"] = data.get("agent_id") or admin
    lead = service.add_interaction(lead_id, data, actor=admin)
    return LeadResponse.model_validate(lead)


@router.post("/{lead_id}/lost", response_model=LeadResponse)
def mark_lost(
    lead_id: UUID,
    body: LostRequest,
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
):
    return LeadResponse.model_validate(service.mark_lost(lead_id, body.reason, body.notes, actor=admin))


@router.post("/{lead_id}/archive", response_model=LeadResponse)
def archive_lead(
    lead_id: UUID,
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
):
    return LeadResponse.model_validate(service.archive(lead_id, actor=admin))


@router.post("/{lead_id}/reactivate", response_model=LeadResponse)
def reactivate_lead(
    lead_id: UUID,
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
):
    return LeadResponse.model_validate(service.reactivate(lead_id, actor=admin))


@router.post("/{lead_id}/recalculate-score", response_model=LeadResponse)
def recalculate_score(
    lead_id: UUID,
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
):
    return LeadResponse.model_validate(service.recalculate_score(lead_id, actor=admin))


@router.get("/{lead_id}/sla", response_model=SLAStatusResponse)
def get_lead_sla(
    lead_id: UUID,
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
):
    status = service.sla_status(lead_id)
    return SLAStatusResponse(
        status=status.status,
        message=status.message,
        next_checkpoint=status.next_checkpoint,
        sla_compliant=status.evaluation.sla_compliant,
        overdue_by=status.evaluation.overdue_by,
        hours_elapsed=status.evaluation.hours_elapsed,
        breaches=status.evaluation.breaches,
    )


@router.get("/{lead_id}/suggested-agent", response_model=AgentSuggestionResponse)
def get_suggested_agent(
    lead_id: UUID,
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
    settings_store: LeadSettingsStore = Depends(get_settings_store),
):
    roster = settings_store.get().roster()
    if not roster:
        return JSONResponse(status_code=409, content={"detail": "No agents configured in lead settings"})
    lead = service.get(lead_id)
    suggestion = suggest_agent(lead, roster, agent_workloads(service.active_leads()))
    return AgentSuggestionResponse.model_validate(suggestion)


# --- Conversion -------------------------------------------------------

@router.get("/{lead_id}/duplicates", response_model=DuplicateCheckResponse)
def check_duplicates(
    lead_id: UUID,
    admin: str = Depends(verify_admin_token),
    service: LeadService = Depends(get_lead_service),
    engine: ConversionEngine = Depends(get_conversion_engine),
):
    return DuplicateCheckResponse.model_validate(engine.check_duplicate_contact(service.get(lead_id)))


@router.get("/{lead_id}/conversion-preview", response_model=ConversionPreviewResponse)
def conversion_preview(
    lead_id: UUID,
    admin: str = Depends(verify_admin_token),
    engine: ConversionEngine = Depends(get_conversion_engine),
):
    return ConversionPreviewResponse.model_validate(engine.preview(lead_id))


@router.post("/{lead_id}/convert", response_model=ConversionResultResponse)
def convert_lead(
    lead_id: UUID,
    body: ConvertRequest | None = None,
    admin: str = Depends(verify_admin_token),
    engine: ConversionEngine = Depends(get_conversion_engine),
):
    """Convert a lead. Validation failures are reported in the body with success=false."""
    body = body or ConvertRequest()
    result = engine.convert(lead_id, admin, body.actor_name or admin, body.additional_notes)
    return ConversionResultResponse.model_validate(result)
