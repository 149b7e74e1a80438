"""Health check endpoints."""

from typing import Any

from fastapi import APIRouter
from sqlalchemy import text

from app.core.config import settings
from app.core.deps import DBSession, RedisClient

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(db: DBSession, redis: RedisClient) -> dict[str, Any]:
    """
    Health check endpoint.

    Checks database and Redis connectivity and returns service status.
    """
    health_status: dict[str, Any] = {
        "status": "healthy",
        "version": settings.version,
        "environment": settings.environment,
        "checks": {},
    }

    # Check database connection
    try:
        await db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = "healthy"
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"unhealthy: {str(e)}"

    # Check Redis connection (published layouts are cached there)
    try:
        await redis.ping()
        health_status["checks"]["redis"] = "healthy"
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["redis"] = f"unhealthy: {str(e)}"

    return health_status


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """Liveness probe: the process is up."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(db: DBSession) -> dict[str, str]:
    """Readiness probe: the database answers queries."""
    await db.execute(text("SELECT 1"))
    return {"status": "ready"}
