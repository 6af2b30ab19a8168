"""
Health & Escalation Service - Main Application
===============================================

Operational health monitoring and quiet-window escalation.

Modules:
- Heartbeat: bounded component health history, overall status, timeline
- Escalation: business-hours-aware quiet thresholds and escalation tiers
- Monitoring: composition root owning both, exposed over HTTP

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: Config files, file watching, scheduler
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from src.config import ComponentStatus, EscalationTier, Settings, get_settings
from src.core import ApplicationException

# Escalation - configuration sources
from src.escalation.infrastructure import QuietThresholdManager, load_business_schedule

# Monitoring - composition root
from src.monitoring.application import MonitoringSession
from src.monitoring.infrastructure import MonitoringScheduler
from src.monitoring.interfaces import monitoring_router

# Middleware and logging
from src.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from src.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


async def log_escalations(tiers: Dict[str, EscalationTier]) -> None:
    """Default sweep callback: report escalated cases for a notifier to pick up."""
    escalated = {case_id: tier.value for case_id, tier in tiers.items() if tier != EscalationTier.NONE}
    if escalated:
        logger.warning("Quiet cases escalated", extra={"escalated": escalated})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application around a fresh monitoring session."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        """
        Application lifespan manager.

        STARTUP:
        1. Setup structured logging
        2. Load quiet thresholds and start watching the file
        3. Load the business schedule
        4. Create the monitoring session
        5. Start the monitoring scheduler

        SHUTDOWN:
        1. Stop the scheduler
        2. Stop the threshold file watcher
        """
        # === STARTUP ===
        setup_logging(settings.log_level, settings.environment, settings.app_name)
        logger.info("Starting Health & Escalation Service", extra={
            "version": settings.app_version,
            "environment": settings.environment
        })

        logger.info("Loading quiet thresholds")
        thresholds = QuietThresholdManager()
        thresholds.load(settings.quiet_config_path)
        thresholds.start_watching()

        logger.info("Loading business schedule")
        schedule = load_business_schedule(settings.schedule_config_path)

        session = MonitoringSession.from_settings(settings, thresholds=thresholds, schedule=schedule)
        scheduler = MonitoringScheduler(
            session,
            tick_interval_seconds=settings.heartbeat_interval_seconds,
            sweep_interval_seconds=settings.escalation_sweep_interval_seconds,
            on_sweep=log_escalations,
        )
        await scheduler.start()

        app.state.settings = settings
        app.state.monitoring_session = session
        app.state.monitoring_scheduler = scheduler

        logger.info("Health & Escalation Service started successfully")

        yield  # Application runs here

        # === SHUTDOWN ===
        logger.info("Shutting down Health & Escalation Service")
        await scheduler.stop()
        thresholds.stop_watching()
        logger.info("Health & Escalation Service shutdown complete")

    app = FastAPI(
        title="Health & Escalation API",
        description="""
    ## Operational Health Monitoring & Escalation

    ### Heartbeat
    - `POST /monitoring/heartbeat/reports` - Report a component status
    - `GET /monitoring/heartbeat/snapshot` - Current overall status
    - `GET /monitoring/heartbeat/timeline` - Proportional health timeline

    ### Quiet-window escalation
    - `PUT /monitoring/cases/{id}/activity` - Record case activity
    - `GET /monitoring/escalations` - Escalation tiers for all cases
    - `GET|PUT /monitoring/settings/quiet` - Quiet thresholds
    - `GET /monitoring/settings/quiet/export`, `POST /monitoring/settings/quiet/import`

    **Default quiet thresholds (hours):**

    | Mode | Warning | Alert |
    |------|---------|-------|
    | Business hours | 12 | 24 |
    | Off hours | 36 | 72 |
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
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # === Include Module Routers ===
    app.include_router(monitoring_router)

    # === Health Check Endpoint ===

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """
        Health check endpoint for load balancers and orchestrators.

        Reports ``healthy`` only when every monitored component is ok;
        no heartbeat data yet counts as down.
        """
        session: Optional[MonitoringSession] = getattr(request.app.state, "monitoring_session", None)
        scheduler = getattr(request.app.state, "monitoring_scheduler", None)

        if session is None:
            overall = ComponentStatus.DOWN
            statuses = {}
        else:
            current = session.snapshot()
            overall = current.overall
            statuses = {name: s.value for name, s in current.statuses.items()}

        return {
            "status": "healthy" if overall == ComponentStatus.OK else overall.value,
            "version": settings.app_version,
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": {
                "components": statuses,
                "scheduler": "running" if scheduler and scheduler.is_running else "stopped",
            }
        }

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "architecture": "Clean Architecture / Modular Monolith",
            "docs": "/docs",
            "health": "/health",
            "modules": {
                "monitoring": {"prefix": "/monitoring"}
            }
        }

    return app


app = create_app()


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "src.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.environment == "development",
        log_level="info"
    )
