"""Liveness and readiness endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, status
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from helpdesk.core.config import get_settings
from helpdesk.db.session import engine
from helpdesk.utils.redis_client import create_redis_client

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["health"])

SERVICE_NAME = "helpdesk-api"


@router.get("/live", summary="Liveness probe")
async def live() -> dict[str, str]:
    """Indicates the API process is running."""
    return {"status": "ok", "service": SERVICE_NAME}


def _check_redis(url: str) -> dict[str, str]:
    client = create_redis_client(url, decode_responses=True, socket_connect_timeout=2)
    try:
        client.ping()
    finally:
        client.close()
    return {"status": "healthy", "message": "Redis connection successful"}


@router.get("/ready", summary="Readiness probe")
async def ready() -> dict[str, Any]:
    """Check the database, the event bus and the job broker.

    The broker is reported but does not fail readiness; the worker runs separately.
    """
    settings = get_settings()
    checks: dict[str, Any] = {
        "status": "ok",
        "service": SERVICE_NAME,
        "checks": {},
    }
    all_healthy = True

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        checks["checks"]["database"] = {
            "status": "healthy",
            "message": "Database connection successful",
        }
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        checks["checks"]["database"] = {
            "status": "unhealthy",
            "message": f"Database connection failed: {str(e)}",
        }
        all_healthy = False

    try:
        checks["checks"]["redis"] = _check_redis(settings.redis_url)
    except RedisError as e:
        logger.error(f"Redis health check failed: {e}", exc_info=True)
        checks["checks"]["redis"] = {
            "status": "unhealthy",
            "message": f"Redis connection failed: {str(e)}",
        }
        all_healthy = False

    try:
        checks["checks"]["job_broker"] = _check_redis(settings.broker_url)
    except RedisError as e:
        logger.warning(f"Job broker health check failed: {e}")
        checks["checks"]["job_broker"] = {
            "status": "unhealthy",
            "message": f"Job broker connection failed: {str(e)}",
        }

    if not all_healthy:
        checks["status"] = "unhealthy"
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=checks,
        )

    return checks
