"""FastAPI dependencies resolving services from the application runtime."""

from collections.abc import Iterator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from leadflow.runtime import Runtime
from leadflow.services.conversion import ConversionEngine
from leadflow.services.leads import LeadService
from leadflow.services.lead_settings import LeadSettingsStore
from leadflow.workers.automation import AutomationScheduler


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime


def get_db(runtime: Runtime = Depends(get_runtime)) -> Iterator[Session]:
    session = runtime.session_factory()
    try:
        yield session
    finally:
        session.close()


def get_lead_service(runtime: Runtime = Depends(get_runtime)) -> LeadService:
    return runtime.lead_service


def get_conversion_engine(runtime: Runtime = Depends(get_runtime)) -> ConversionEngine:
    return runtime.conversion


def get_settings_store(runtime: Runtime = Depends(get_runtime)) -> LeadSettingsStore:
    return runtime.settings_store


def get_scheduler(runtime: Runtime = Depends(get_runtime)) -> AutomationScheduler:
    return runtime.scheduler
