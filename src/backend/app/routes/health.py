"""
Health check endpoint handler.
"""

import logging

from fastapi import APIRouter, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from core.cache import cache
from core.config import settings
from core.database import AsyncSessionLocal

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint for monitoring.
    Checks database connectivity and the shared Redis cache.
    """
    health_status = {
        "status": "healthy",
        "services": {},
    }

    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        health_status["services"]["database"] = {"status": "healthy"}
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        health_status["services"]["database"] = {"status": "unhealthy", "error": str(e)}
        health_status["status"] = "unhealthy"

    redis_healthy = await cache.ping()
    health_status["services"]["redis"] = {
        "status": "healthy" if redis_healthy else "unavailable",
        "lockBackend": settings.scheduling.lock_backend,
    }
    if not redis_healthy and settings.scheduling.lock_backend == "redis":
        health_status["status"] = "degraded"

    dispatcher = getattr(request.app.state, "dispatcher", None)
    health_status["services"]["notifications"] = {
        "pending": dispatcher.pending if dispatcher is not None else 0,
    }

    return health_status
