"""
ClinicDesk - clinic management backend (compliance audit & data retention)

FastAPI application entry point.
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.app.api import audit, health
from backend.app.core.config import get_settings
from backend.app.core.database import async_session_maker
from backend.app.core.logging import setup_logging, get_logger
from backend.app.middleware.trace import TracingMiddleware
from backend.app.services.audit_service import build_audit_service
from backend.app.services.data_retention import start_retention_scheduler

settings = get_settings()

# Initialize logging
setup_logging(level=settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"🚀 Starting {settings.app_name} v{settings.app_version}")

    audit_service = build_audit_service(async_session_maker, settings)
    app.state.audit_service = audit_service

    if settings.seed_retention_policies_on_startup:
        inserted = await audit_service.policies.seed_default_policies()
        logger.info(f"Retention policies seeded ({inserted} new)")

    cleanup_task = None
    if settings.audit_cleanup_enabled:
        # First sweep after one interval; startup should not race migrations
        cleanup_task = start_retention_scheduler(
            audit_service.sweeper,
            settings.audit_cleanup_interval_seconds,
            initial_delay_seconds=settings.audit_cleanup_interval_seconds,
        )

    yield

    logger.info(f"👋 Shutting down {settings.app_name}")
    if cleanup_task and not cleanup_task.done():
        cleanup_task.cancel()
        try:
            await cleanup_task
        except asyncio.CancelledError:
            pass


app = FastAPI(
    title=settings.app_name,
    description="Compliance audit logging and data retention for the clinic AI receptionist",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(TracingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Correlation-ID", "X-Clinic-ID"],
)

app.include_router(health.router, tags=["Health"])
app.include_router(
    audit.router,
    prefix=f"{settings.api_prefix}/audit",
    tags=["Compliance"],
)
