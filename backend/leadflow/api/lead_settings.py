"""Lead settings endpoints - SLA targets, score weights, retention and agent roster."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from leadflow.api.deps import get_settings_store
from leadflow.middleware.auth import verify_admin_token
from leadflow.services.lead_settings import LeadSettings, LeadSettingsStore

router = APIRouter(prefix="/lead-settings", tags=["lead-settings"])


@router.get("", response_model=LeadSettings)
def get_lead_settings(
    admin: str = Depends(verify_admin_token),
    store: LeadSettingsStore = Depends(get_settings_store),
):
    return store.get()


@router.put("", response_model=LeadSettings)
def update_lead_settings(
    patch: dict,
    admin: str = Depends(verify_admin_token),
    store: LeadSettingsStore = Depends(get_settings_store),
):
    """Merge a partial settings document into the stored settings.

    Only future rescoring and SLA evaluation pick up the new values; existing
    leads keep their scores until they are next touched.
    """
    try:
        return store.update(patch)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=[{"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]} for err in e.errors()],
        )
