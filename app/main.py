"""Cyber Risk Dashboard - Main Application."""

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.api.routes import (
    audit_router,
    invites_router,
    microsoft_router,
    recommendations_router,
    reports_router,
    scores_cron_router,
    scores_router,
    tenants_router,
    users_router,
    widgets_router,
)
from app.api.services.widget_catalogue import seed_widgets
from app.core.config import get_settings
from app.core.database import SessionLocal, get_db_context, get_db_stats, init_db
from app.core.scheduler import get_scheduler, init_scheduler

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("Starting Cyber Risk Dashboard...")

    init_db()
    logger.info("Database initialized")

    with get_db_context() as db:
        seed_widgets(db)

    scheduler = None
    if settings.scheduler_enabled:
        scheduler = init_scheduler()
        scheduler.start()
        logger.info("Background scheduler started")

    yield

    # Shutdown
    logger.info("Shutting down...")
    if scheduler:
        scheduler.shutdown()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Multi-tenant Microsoft 365 cyber risk dashboard: maturity scoring, "
                "secure score tracking, quarterly risk reports and PDF exports.",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Include routers
app.include_router(tenants_router)
app.include_router(users_router)
app.include_router(invites_router)
app.include_router(widgets_router)
app.include_router(scores_router)
app.include_router(scores_cron_router)
app.include_router(microsoft_router)
app.include_router(reports_router)
app.include_router(recommendations_router)
app.include_router(audit_router)


@app.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "version": settings.app_version}


@app.get("/health/detailed")
async def detailed_health_check():
    """Detailed health check with component status."""
    components = {
        "database": "unknown",
        "scheduler": "unknown",
        "cron_secret_configured": bool(settings.scores_cron_secret),
        "email_configured": bool(settings.smtp_host),
    }
    database_stats = {}

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        database_stats = get_db_stats(db)
        components["database"] = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        components["database"] = f"unhealthy: {str(e)}"
    finally:
        db.close()

    scheduler = get_scheduler()
    if scheduler and scheduler.running:
        components["scheduler"] = "running"
    else:
        components["scheduler"] = "not_running"

    healthy = components["database"] == "healthy"
    return {
        "status": "healthy" if healthy else "degraded",
        "version": settings.app_version,
        "timestamp": datetime.now(UTC).isoformat(),
        "components": components,
        "database_stats": database_stats,
    }


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
