"""
Application factory for FastAPI.

This module provides the create_app() function that creates and configures
the FastAPI application instance.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from api.v1 import api_router
from app.routes import health_router
from core.config import settings
from core.exceptions import BusinessRuleViolation, NotFoundError, ServiceError
from core.lifespan import lifespan

logger = logging.getLogger(__name__)


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.message})


async def business_rule_handler(request: Request, exc: BusinessRuleViolation) -> JSONResponse:
    logger.info(f"Rejected {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": exc.message})


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    # Cause already logged where it was wrapped
    logger.error(f"Service error on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal service error"},
    )


def create_app() -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application with all necessary
    middleware, routes, and instrumentation.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    # Rate limiter instance
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[f"{settings.rate_limit.per_minute}/minute"],
    )

    # Create FastAPI app
    app = FastAPI(
        title=settings.api.app_name,
        version=settings.api.app_version,
        description="Technician work-assignment lifecycle and workload scheduler",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # Add rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Scheduling error taxonomy
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(BusinessRuleViolation, business_rule_handler)
    app.add_exception_handler(ServiceError, service_error_handler)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    )

    # Include routers
    app.include_router(health_router)
    app.include_router(api_router, prefix=settings.api.api_v1_prefix)

    # Instrumentation
    if settings.monitoring.enable_metrics:
        app.mount("/metrics", make_asgi_app())

    return app
