"""Health check endpoints for monitoring."""

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select, text
from sqlalchemy.orm import Session

from hiring_api.config.settings import settings
from hiring_api.config.database import get_db
from hiring_api.models import QueueJob, JOB_STATES

logger = structlog.get_logger()
router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    timestamp: str
    database: str
    queue: dict[str, int] = {}


def check_database(db: Session) -> tuple[str, str | None]:
    """Check database connectivity."""
    try:
        result = db.execute(text("SELECT 1"))
        result.fetchone()
        return "connected", None
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        return "disconnected", str(e)


def queue_counts(db: Session) -> dict[str, int]:
    """Job counts per state for the analysis queue."""
    rows = db.execute(
        select(QueueJob.status, func.count(QueueJob.id))
        .where(QueueJob.queue_name == settings.QUEUE_NAME)
        .group_by(QueueJob.status)
    ).all()
    counts = {state: 0 for state in JOB_STATES}
    counts.update({row[0]: row[1] for row in rows})
    return counts


@router.get("", response_model=HealthResponse)
@router.get("/", response_model=HealthResponse)
async def health_check(
    db: Session = Depends(get_db),
) -> HealthResponse:
    """
    Basic health check endpoint.

    Returns overall status, database connectivity and queue backlog.
    """
    db_status, _ = check_database(db)

    if db_status == "connected":
        overall_status = "healthy"
        counts = queue_counts(db)
    else:
        overall_status = "unhealthy"
        counts = {}

    return HealthResponse(
        status=overall_status,
        version=settings.APP_VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
        database=db_status,
        queue=counts,
    )


@router.get("/ready")
async def readiness_check(
    db: Session = Depends(get_db),
) -> dict:
    """
    Readiness check.

    Returns ready only when the database answers.
    """
    db_status, _ = check_database(db)

    if db_status != "connected":
        return {"ready": False, "reason": "Database not connected"}

    return {"ready": True}


@router.get("/live")
async def liveness_check() -> dict:
    """
    Liveness check.

    Returns 200 if service process is alive.
    """
    return {"alive": True}
