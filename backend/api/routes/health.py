"""Health check endpoints."""

import asyncio
import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from api.responses import success_response
from infrastructure.config import get_settings
from infrastructure.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()


async def _ping_database(db: AsyncSession) -> str:
    try:
        result = await asyncio.wait_for(
            db.execute(text("SELECT 1")), timeout=settings.db_query_timeout
        )
        result.scalar()
        return "connected"
    except TimeoutError:
        logger.error("Health check DB timeout")
        return "error: database timeout"
    except Exception as e:
        logger.error("Health check DB error: %s", str(e))
        return "error: database check failed"


async def _ping_redis() -> str:
    if not settings.redis_url:
        return "not configured"
    try:
        import redis.asyncio as aioredis

        r = aioredis.from_url(settings.redis_url)
        await asyncio.wait_for(r.ping(), timeout=2.0)
        await r.aclose()
        return "ok"
    except Exception as e:
        logger.warning("Health check Redis error: %s", str(e))
        return "degraded"


@router.get("/health")
async def health_check():
    """Basic health check."""
    return success_response(
        {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "timestamp": datetime.now(UTC).isoformat(),
        }
    )


@router.get("/health/db")
async def health_check_db(db: AsyncSession = Depends(get_db)):
    """Health check with database connectivity."""
    db_status = await _ping_database(db)
    healthy = db_status == "connected"
    return success_response(
        {
            "status": "healthy" if healthy else "degraded",
            "version": settings.app_version,
            "database": db_status,
            "timestamp": datetime.now(UTC).isoformat(),
        },
        status_code=200 if healthy else 503,
    )


@router.get("/health/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Readiness check. The database is required; Redis only degrades rate limiting."""
    db_ok = await _ping_database(db) == "connected"
    return success_response(
        {
            "ready": db_ok,
            "database": "ok" if db_ok else "unavailable",
            "redis": await _ping_redis(),
        },
        status_code=200 if db_ok else 503,
    )
