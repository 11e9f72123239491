import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from agendas.core.config import settings
from agendas.db import engine

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", summary="Health check")
def read_health() -> dict[str, str]:
    """Return basic service health information."""
    return {"status": "ok", "environment": settings.ENVIRONMENT}


@router.get("/ready", summary="Readiness check")
def read_ready():
    """Check that the database accepts connections (readiness probe)."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning(f"Readiness check failed: {exc}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "database": "disconnected",
                "error": str(exc)
                if settings.ENVIRONMENT != "production"
                else "Database connection failed",
            },
        )
    return {"status": "ready", "database": "connected"}
