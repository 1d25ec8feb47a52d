"""Health check endpoints for liveness/readiness probes."""

from __future__ import annotations

import redis.asyncio as aioredis
import structlog
from fastapi import APIRouter
from fastapi.responses import ORJSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from midnight_admin import __version__
from midnight_admin.api.deps import AppSettings, DBSession
from midnight_admin.schemas.health import LivenessResponse, ReadinessResponse

logger = structlog.stdlib.get_logger()

router = APIRouter(prefix="/health", tags=["Health"])


@router.get(
    "/live",
    response_model=LivenessResponse,
    summary="Liveness probe",
)
async def liveness() -> LivenessResponse:
    return LivenessResponse(version=__version__)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
)
async def readiness(db: DBSession, settings: AppSettings) -> ORJSONResponse:
    db_status = "disconnected"
    redis_status = "disabled"

    try:
        await db.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError as e:
        await logger.awarning("health.database_unavailable", error=str(e))

    # Redis only backs the template cache
    if settings.cache.enabled:
        redis_status = "disconnected"
        client = aioredis.from_url(settings.redis.url)
        try:
            await client.ping()
            redis_status = "connected"
        except (aioredis.ConnectionError, aioredis.TimeoutError) as e:
            await logger.awarning("health.redis_unavailable", error=str(e))
        finally:
            await client.aclose()

    overall = "ok" if db_status == "connected" else "degraded"

    return ORJSONResponse(
        status_code=200 if overall == "ok" else 503,
        content=ReadinessResponse(
            status=overall,
            database=db_status,
            redis=redis_status,
        ).model_dump(),
    )
