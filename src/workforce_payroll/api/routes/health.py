"""Health check endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_payroll.api.dependencies import AppSettings, DbSession
from workforce_payroll.models import StatutoryRuleVersion

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    database: str
    engine_version: str
    rules_version: int | None = None


async def _active_rules_version(db: AsyncSession) -> int | None:
    """Raises SQLAlchemyError when the database is unreachable."""
    return await db.scalar(
        select(StatutoryRuleVersion.version).where(StatutoryRuleVersion.is_active.is_(True))
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession, settings: AppSettings) -> HealthResponse:
    """API and database health, with the statutory rules version in force.

    rules_version is null until the first rules version is seeded.
    """
    rules_version = None
    try:
        rules_version = await _active_rules_version(db)
        db_status = "healthy"
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        db_status = "unhealthy"

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        database=db_status,
        engine_version=settings.engine_version,
        rules_version=rules_version,
    )


@router.get("/ready")
async def readiness_check(db: DbSession, response: Response) -> dict[str, str]:
    """Ready once the database answers."""
    try:
        await _active_rules_version(db)
    except SQLAlchemyError:
        logger.warning("Readiness check failed: database unavailable")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "unavailable"}
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
