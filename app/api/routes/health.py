"""
Health check endpoints.
"""

import logging

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.api.deps import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "message": "Knowledge Base API is running"}


@router.get("/ready")
async def readiness_check(session: SessionDep):
    """
    Readiness check - verify all critical services are available.
    Used by orchestration systems (K8s, Docker, etc.)
    """
    checks = {"api": "ready"}

    try:
        await session.execute(text("SELECT 1"))
        checks["database"] = "ready"
    except SQLAlchemyError:
        logger.exception("Database readiness check failed")
        checks["database"] = "unavailable"

    all_ready = all(v == "ready" for v in checks.values())

    return {
        "status": "ready" if all_ready else "not_ready",
        "checks": checks,
    }
