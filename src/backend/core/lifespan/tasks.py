"""
Lifespan startup and shutdown task functions.

This module contains individual task functions for application startup
and shutdown sequences. Each function handles a specific responsibility.
"""

import logging

from fastapi import FastAPI

from core.cache import CacheManager
from core.locks import create_lock_provider
from services.availability_service import AvailabilityService
from services.notification_service import NotificationDispatcher
from services.predictor_client import create_predictor
from services.technician_selector import TechnicianSelector
from services.work_assignment_service import WorkAssignmentService
from services.workload_service import WorkloadService


async def initialize_logging(log_config):
    """Setup logging configuration."""
    from core.logging_config import setup_logging

    logger = logging.getLogger("main")
    setup_logging(log_config)
    logger.info("🚀 Starting Technician Scheduler...")


async def log_cors_configuration(settings, logger):
    """Log CORS configuration for debugging."""
    logger.info(f"🔒 CORS Allowed Origins: {settings.cors.origins}")


async def initialize_database():
    """Initialize database tables."""
    from core.database import init_db

    logger = logging.getLogger("main")
    await init_db()
    logger.info("✅ Database initialized")


async def initialize_cache(cache: CacheManager) -> bool:
    """
    Connect the shared Redis cache.

    A scheduler without Redis still works with the local lock backend and
    uncached workload summaries, so an unreachable server only disables
    the cache.
    """
    logger = logging.getLogger("main")
    await cache.connect()
    if await cache.ping():
        logger.info("✅ Redis cache connected")
        return True

    logger.warning("⚠️  Redis unreachable, running without shared cache")
    await cache.disconnect()
    return False


async def initialize_scheduler(app: FastAPI, cache: CacheManager) -> None:
    """Build the scheduling services and store them on ``app.state``."""
    logger = logging.getLogger("main")

    predictor = create_predictor()
    locks = create_lock_provider(cache.client)
    dispatcher = NotificationDispatcher(predictor=predictor)
    workload = WorkloadService(cache=cache)
    availability = AvailabilityService()
    selector = TechnicianSelector(predictor=predictor)

    app.state.predictor = predictor
    app.state.dispatcher = dispatcher
    app.state.workload_service = workload
    app.state.availability_service = availability
    app.state.technician_selector = selector
    app.state.assignment_service = WorkAssignmentService(
        availability=availability,
        selector=selector,
        workload=workload,
        dispatcher=dispatcher,
        locks=locks,
    )
    logger.info(
        f"✅ Scheduler ready (locks={locks.backend}, predictor={type(predictor).__name__})"
    )


async def shutdown_scheduler(app: FastAPI) -> None:
    """Let in-flight notifications finish and close the predictor client."""
    logger = logging.getLogger("main")

    dispatcher = getattr(app.state, "dispatcher", None)
    if dispatcher is not None:
        await dispatcher.drain()
        logger.info("✅ Pending notifications drained")

    predictor = getattr(app.state, "predictor", None)
    if predictor is not None:
        await predictor.close()


async def shutdown_redis_cache(cache: CacheManager) -> None:
    """Close Redis cache connections."""
    logger = logging.getLogger("main")
    await cache.disconnect()
    logger.info("✅ Redis cache disconnected")


async def shutdown_database():
    """Close database connections."""
    from core.database import close_db

    logger = logging.getLogger("main")
    await close_db()
    logger.info("✅ Database connections closed")
