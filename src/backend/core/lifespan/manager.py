"""
Application lifespan manager.

This module provides the lifespan context manager that handles
startup and shutdown events for the FastAPI application.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from core.cache import cache
from core.config import settings
from core.logging_config import LogConfig, stop_queue_listener
from . import tasks


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Setup logging
    log_config = LogConfig(**settings.logging.log_config)
    await tasks.initialize_logging(log_config)

    logger = logging.getLogger("main")

    await tasks.log_cors_configuration(settings, logger)

    # Startup
    await tasks.initialize_database()
    await tasks.initialize_cache(cache)
    await tasks.initialize_scheduler(app, cache)

    yield

    # Shutdown
    logger.info("🛑 Shutting down Technician Scheduler...")

    await tasks.shutdown_scheduler(app)
    await tasks.shutdown_redis_cache(cache)
    await tasks.shutdown_database()

    stop_queue_listener()
