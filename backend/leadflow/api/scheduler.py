"""Automation scheduler control endpoints."""

from fastapi import APIRouter, Depends

from leadflow.api.deps import get_scheduler
from leadflow.middleware.auth import verify_admin_token
from leadflow.schemas.common import SchedulerStateResponse, CycleReportResponse
from leadflow.workers.automation import AutomationScheduler

router = APIRouter(prefix="/scheduler", tags=["scheduler"])


@router.get("/state", response_model=SchedulerStateResponse)
def get_state(
    admin: str = Depends(verify_admin_token),
    scheduler: AutomationScheduler = Depends(get_scheduler),
):
    return SchedulerStateResponse(**scheduler.get_state())


@router.post("/start", response_model=SchedulerStateResponse)
def start_scheduler(
    admin: str = Depends(verify_admin_token),
    scheduler: AutomationScheduler = Depends(get_scheduler),
):
    scheduler.start()
    return SchedulerStateResponse(**scheduler.get_state())


@router.post("/stop", response_model=SchedulerStateResponse)
def stop_scheduler(
    admin: str = Depends(verify_admin_token),
    scheduler: AutomationScheduler = Depends(get_scheduler),
):
    scheduler.stop()
    return SchedulerStateResponse(**scheduler.get_state())


@router.post("/run", response_model=CycleReportResponse)
def run_cycle(
    admin: str = Depends(verify_admin_token),
    scheduler: AutomationScheduler = Depends(get_scheduler),
):
    """Run one automation cycle now. ``ran`` is false if a cycle was already in progress."""
    report = scheduler.run_cycle()
    if report is None:
        return CycleReportResponse(ran=False)
    return CycleReportResponse(ran=True, tasks=report.tasks, errors=report.errors)
