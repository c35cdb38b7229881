"""
RiskCover — FastAPI Application.

Run: uvicorn riskcover.main:app --host 0.0.0.0 --port 8000 --reload

Every route delegates to InsuranceService, which runs each operation in
its own database transaction.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from riskcover.config import settings
from riskcover.db.engine import close_db, get_session_factory, init_db
from riskcover.errors import register_exception_handlers
from riskcover.logging_config import configure_logging
from riskcover.middleware.error_handler import ErrorHandlerMiddleware
from riskcover.middleware.request_context import RequestContextMiddleware
from riskcover.services.insurance import InsuranceService

from riskcover.api.routers.accounts import router as accounts_router
from riskcover.api.routers.alerts import router as alerts_router
from riskcover.api.routers.claims import router as claims_router
from riskcover.api.routers.policies import router as policies_router
from riskcover.api.routers.pools import router as pools_router
from riskcover.api.routers.protocols import router as protocols_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown."""
    logger.info("riskcover_starting", version=settings.app_version, environment=settings.environment)
    owns_db = getattr(app.state, "insurance", None) is None
    if owns_db:
        await init_db()
        app.state.insurance = InsuranceService(get_session_factory())
    yield
    if owns_db:
        await close_db()
    logger.info("riskcover_shutdown")


def create_app(service: Optional[InsuranceService] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Pass `service` to run against an already-built InsuranceService (tests,
    embedded use); otherwise one is created against the configured
    database at startup.
    """
    configure_logging()

    app = FastAPI(
        title=settings.app_name,
        description=(
            "# RiskCover — Insurance Protocol Core\n\n"
            "Protocol registration and risk scoring, premium pricing, "
            "capital pools, policies, claims and exploit alerts.\n\n"
            "## Identity\n"
            "Mutating endpoints require an `X-Signer` header naming the caller.\n"
        ),
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_tags=[
            {"name": "health", "description": "Liveness probe"},
            {"name": "protocols", "description": "Protocol state, registry, risk and quotes"},
            {"name": "pools", "description": "Capital pools and providers"},
            {"name": "policies", "description": "Policy issuance"},
            {"name": "claims", "description": "Claim submission and resolution"},
            {"name": "alerts", "description": "Exploit alert log"},
            {"name": "accounts", "description": "Token accounts"},
        ],
    )
    app.state.insurance = service

    register_exception_handlers(app)

    # ── Middleware (last added = outermost) ───────────────────────────
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routes ────────────────────────────────────────────────────────
    app.include_router(protocols_router)
    app.include_router(pools_router)
    app.include_router(policies_router)
    app.include_router(claims_router)
    app.include_router(alerts_router)
    app.include_router(accounts_router)

    @app.get("/health", tags=["health"])
    async def health():
        """Liveness probe. Does not check the database."""
        return {
            "status": "ok",
            "version": settings.app_version,
            "service": "riskcover",
        }

    return app


# Application instance
app = create_app()
