"""FastAPI application entry point."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from leadflow.config import settings
from leadflow.api import audit, health, leads, lead_settings, scheduler
from leadflow.exceptions import LeadNotFoundError, LeadStateError, LeadValidationError, LeadConflictError
from leadflow.middleware.auth import create_admin_token
from leadflow.runtime import Runtime, build_runtime
from leadflow.schemas.common import LoginRequest, LoginResponse

# Configure structured logging
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(0),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
)

logger = structlog.get_logger()


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(LeadNotFoundError)
    async def not_found(request: Request, exc: LeadNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(LeadStateError)
    async def bad_state(request: Request, exc: LeadStateError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(LeadConflictError)
    async def conflict(request: Request, exc: LeadConflictError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(LeadValidationError)
    async def invalid(request: Request, exc: LeadValidationError):
        return JSONResponse(
            status_code=422,
            content={"detail": [{"field": e.field, "message": e.message} for e in exc.errors]},
        )


def create_app(runtime: Runtime | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "runtime", None) is None:
            app.state.runtime = build_runtime()
        if app.state.runtime.config.scheduler_autostart:
            app.state.runtime.scheduler.start()
        logger.info("app_started", scheduler_running=app.state.runtime.scheduler.is_running)
        yield
        app.state.runtime.close()
        logger.info("app_stopped")

    app = FastAPI(
        title=settings.app_name,
        description="Lead qualification, SLA tracking and back-office routing",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.runtime = runtime

    # CORS - allow frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:3001"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)

    # Mount routers
    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(leads.router, prefix=settings.api_prefix)
    app.include_router(lead_settings.router, prefix=settings.api_prefix)
    app.include_router(scheduler.router, prefix=settings.api_prefix)
    app.include_router(audit.router, prefix=settings.api_prefix)

    @app.get("/")
    async def root():
        return {
            "name": settings.app_name,
            "version": "1.0.0",
            "docs": "/docs",
        }

    @app.post(f"{settings.api_prefix}/auth/login", response_model=LoginResponse)
    async def login(req: LoginRequest):
        """Simple admin login. Returns JWT token."""
        if req.email == settings.admin_email and req.password == settings.admin_password:
            token = create_admin_token(req.email)
            return LoginResponse(token=token, email=req.email)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return app


app = create_app()
