"""Health check endpoints."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from studioauth.api.deps import SessionDep
from studioauth.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def health_check():
    """Basic health check - just confirms the service is running."""
    return {"status": "ok"}


@router.get("/db")
async def health_check_db(session: SessionDep):
    """Health check with database connectivity."""
    try:
        await session.execute(text("SELECT 1"))
        return {"status": "ok", "database": "connected"}
    except Exception as e:
        logger.error(f"Database health check failed: {e!r}")
        return JSONResponse(
            status_code=503,
            content={"status": "error", "database": "disconnected"},
        )


@router.get("/ready")
async def readiness_check(session: SessionDep):
    """Readiness check - confirms all dependencies are available.

    Use this endpoint for Kubernetes readiness probes or load balancer health checks.
    Returns 503 if the database is unavailable.
    """
    errors = {}

    try:
        await session.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.error(f"Database readiness check failed: {e!r}")
        db_status = "disconnected"
        errors["database"] = str(e)

    # Email falls back to the console backend when provider credentials are missing
    email_configured = settings.email_backend != "console" and bool(
        settings.resend_api_key or settings.smtp_host
    )

    status = "ok" if not errors and (email_configured or not settings.is_production) else "degraded"
    response = {
        "status": status,
        "database": db_status,
        "email_configured": email_configured,
    }

    if errors:
        return JSONResponse(status_code=503, content=response)
    return response
