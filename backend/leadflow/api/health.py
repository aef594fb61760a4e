"""Health check and metrics endpoints."""

import redis as redis_lib
from fastapi import APIRouter, Depends, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import text

from leadflow.api.deps import get_runtime
from leadflow.runtime import Runtime
from leadflow.schemas.common import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check(runtime: Runtime = Depends(get_runtime)):
    """Health check endpoint."""
    db_status = "ok"
    redis_status = "disabled"

    # Check DB
    try:
        with runtime.session_factory() as session:
            session.execute(text("SELECT 1"))
    except Exception:
        db_status = "error"

    # Redis is only needed for the cross-process tick lock
    if runtime.config.scheduler_redis_lock:
        try:
            r = redis_lib.from_url(runtime.config.redis_url, socket_timeout=2)
            r.ping()
            redis_status = "ok"
        except Exception:
            redis_status = "error"

    scheduler_status = "running" if runtime.scheduler.is_running else "stopped"
    overall = "healthy" if db_status == "ok" and redis_status != "error" else "degraded"

    return HealthResponse(
        status=overall,
        db=db_status,
        redis=redis_status,
        scheduler=scheduler_status,
    )


@router.get("/metrics")
def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
