"""
Main FastAPI application entry point.
"""

from app import create_app

# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    from core.config import settings

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.api.debug,
        # Capacity locks are per process unless SCHEDULING_LOCK_BACKEND=redis
        workers=1 if settings.api.debug or settings.scheduling.lock_backend == "local" else 4,
        log_level="info",
        log_config=None,
        access_log=True,
        timeout_graceful_shutdown=10,
        server_header=False,
        timeout_keep_alive=5,
    )
