"""
DesignDream SLA Service - Main Application
============================================

Business-hour SLA tracking for design requests.

Modules:
- SLA Tracking: Start, pause, resume and complete SLA timers, escalate by email

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, value objects, business calendar and state machine
- Infrastructure: Database, Resend email, config watcher, scheduler
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

# Configuration and Core
from designdream.config import settings
from designdream.core import ApplicationException

# Infrastructure
from designdream.infrastructure.database import (
    close_database,
    create_tables,
    get_engine,
    get_session_context,
    init_database,
)

# SLA Module
from designdream.sla.application import SLAMonitorService
from designdream.sla.infrastructure import (
    ResendEmailClient,
    SLAConfigManager,
    SLAScheduler,
    SQLAlchemyNotificationRepository,
    SQLAlchemySLARecordRepository,
)
from designdream.sla.interfaces import sla_router

# Shared
from designdream.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from designdream.shared.infrastructure.logging import get_logger, log_latency, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database
    3. Create database tables
    4. Load SLA configuration and watch it for changes
    5. Start SLA evaluation scheduler

    SHUTDOWN:
    1. Stop SLA scheduler
    2. Stop config watcher
    3. Close email client
    4. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting SLA Service", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()

    # Tables are created here for development; production runs migrations
    logger.info("Creating database tables")
    try:
        await create_tables()
    except (SQLAlchemyError, OSError) as e:
        logger.warning(
            "Database not available - running in degraded mode",
            extra={"error": str(e)}
        )

    # An invalid config file at startup is fatal
    logger.info("Loading SLA configuration")
    sla_config_manager = SLAConfigManager()
    sla_config_manager.load(settings.sla_config_path)
    sla_config_manager.start_watching()

    email_client = ResendEmailClient()
    if not email_client.is_configured:
        logger.info("Resend not configured - SLA notifications will stay pending")

    async def sla_evaluation_job():
        """Background SLA evaluation job."""
        try:
            with log_latency(logger, "sla_evaluation"):
                async with get_session_context() as session:
                    monitor = SLAMonitorService(
                        SQLAlchemySLARecordRepository(session),
                        SQLAlchemyNotificationRepository(session),
                        sla_config_manager,
                        email_client,
                        lookback_hours=settings.sla_notification_lookback_hours,
                    )
                    await monitor.evaluate(datetime.now(timezone.utc))
        except (ApplicationException, SQLAlchemyError) as e:
            logger.error("SLA evaluation failed", extra={"error": str(e)})

    sla_scheduler = SLAScheduler(interval_seconds=settings.sla_evaluation_interval)
    await sla_scheduler.start(sla_evaluation_job)

    # Store services in app state for dependency injection
    app.state.settings = settings
    app.state.sla_config_manager = sla_config_manager
    app.state.email_client = email_client
    app.state.sla_scheduler = sla_scheduler

    logger.info("SLA Service started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down SLA Service")

    await sla_scheduler.stop()
    sla_config_manager.stop_watching()
    await email_client.close()
    await close_database()

    logger.info("SLA Service shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="DesignDream SLA API",
    description="""
    ## Business-hour SLA tracking for design requests

    Every request gets a timer that only counts working hours (Monday to
    Friday, 9:00 to 17:00 in the configured timezone by default) and can be
    paused while the team waits on the client.

    ---

    ### SLA Tracking Module

    **Endpoints:**
    - `POST /sla` - Start an SLA timer
    - `POST /sla/pause` - Pause a running timer
    - `POST /sla/resume` - Resume a paused timer
    - `POST /sla/complete` - Close the SLA as met or violated
    - `GET /sla/{request_id}` - Live status for a request
    - `GET /sla/dashboard` - Open SLAs, most urgent first
    - `GET /sla/metrics` - Adherence metrics

    **Warning levels:** `none`, `yellow` (12 business hours or fewer left),
    `red` (deadline reached). Escalations are emailed once per level.

    ---
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
# Added last runs first: the correlation ID is set before requests are logged
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(sla_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "database": "connected",
                        "sla_config": "loaded",
                        "sla_scheduler": "running",
                        "email": "configured"
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Returns service health status including:
    - Database connectivity
    - SLA configuration status
    - Scheduler state
    - Email delivery configuration
    """
    state = request.app.state
    scheduler = getattr(state, "sla_scheduler", None)
    email_client = getattr(state, "email_client", None)

    checks = {
        "database": "connected",
        "sla_config": "loaded" if getattr(state, "sla_config_manager", None) else "not_loaded",
        "sla_scheduler": "running" if scheduler and scheduler.is_running else "stopped",
        "email": "configured" if email_client and email_client.is_configured else "not_configured",
    }

    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (RuntimeError, SQLAlchemyError, OSError) as e:
        checks["database"] = f"error: {e}"

    healthy = checks["database"] == "connected" and checks["sla_config"] == "loaded"

    return {
        "status": "healthy" if healthy else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"], responses={
    200: {
        "description": "API information",
        "content": {
            "application/json": {
                "example": {
                    "service": "DesignDream SLA Service",
                    "version": "1.0.0",
                    "architecture": "Clean Architecture / Modular Monolith",
                    "docs": "/docs",
                    "health": "/health"
                }
            }
        }
    }
})
async def root():
    """Root endpoint with API information."""
    return {
        "service": "DesignDream SLA Service",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "sla": {
                "prefix": "/sla",
                "endpoints": [
                    "POST /sla - Start an SLA timer",
                    "POST /sla/pause - Pause an SLA timer",
                    "POST /sla/resume - Resume an SLA timer",
                    "POST /sla/complete - Complete an SLA",
                    "GET /sla/{request_id} - Get SLA status",
                    "GET /sla/dashboard - Get dashboard",
                    "GET /sla/metrics - Get adherence metrics"
                ]
            }
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "designdream.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
