"""
Health check endpoints for monitoring and orchestration.

Provides:
- Liveness probe: Is the app running?
- Readiness probe: Can the app serve traffic?
- Detailed health check: Status of all dependencies
"""

import time
from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from collaboranexio.config import settings
from collaboranexio.core.database import db_manager
from collaboranexio.core.redis_client import redis_manager

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Health"])


async def _check_database() -> dict[str, Any]:
    start = time.perf_counter()
    try:
        async with db_manager.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError, RuntimeError) as e:
        logger.warning("health_check_failed", dependency="database", error=str(e))
        return {"status": "unhealthy", "error": str(e)}
    return {
        "status": "healthy",
        "response_time_ms": round((time.perf_counter() - start) * 1000, 2),
    }


async def _check_redis() -> dict[str, Any]:
    start = time.perf_counter()
    try:
        await redis_manager.client.ping()
    except (RedisError, OSError, RuntimeError) as e:
        logger.warning("health_check_failed", dependency="redis", error=str(e))
        return {"status": "unhealthy", "error": str(e)}
    return {
        "status": "healthy",
        "response_time_ms": round((time.perf_counter() - start) * 1000, 2),
    }


@router.get("/health/live")
async def liveness() -> dict:
    """
    Liveness probe.

    Returns:
        200: Application is running
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness() -> JSONResponse:
    """
    Readiness probe.

    Only the database gates readiness: without redis the login limiter
    fails open and everything else keeps working.

    Returns:
        200: Ready to serve traffic
        503: Database unavailable
    """
    database = await _check_database()
    is_ready = database["status"] == "healthy"

    status_code = status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if is_ready else "not_ready",
            "checks": {"database": database},
        },
    )


@router.get("/health")
async def health() -> dict:
    """
    Detailed health check with dependency status.

    ``degraded`` when any dependency is down.
    """
    checks = {
        "database": await _check_database(),
        "redis": await _check_redis(),
    }
    overall_status = (
        "healthy"
        if all(check["status"] == "healthy" for check in checks.values())
        else "degraded"
    )

    return {
        "status": overall_status,
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks,
    }
