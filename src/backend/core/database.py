"""
Database engine and session management.
Implements connection pooling, async sessions and request-scoped lifecycle.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.exc import PendingRollbackError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from .config import settings


def _engine_options() -> Dict[str, Any]:
    """Build engine keyword arguments for the configured backend."""
    if settings.database.is_sqlite:
        return {"connect_args": {"check_same_thread": False}}

    return {
        "pool_pre_ping": False,
        "pool_size": settings.database.pool_size,
        "max_overflow": settings.database.max_overflow,
        "pool_timeout": settings.database.pool_timeout,
        "pool_recycle": settings.database.pool_recycle,
        "connect_args": {
            "server_settings": {"application_name": settings.api.app_name},
            "command_timeout": 60,
            "timeout": 30,
        },
    }


engine = create_async_engine(
    settings.database.url,
    echo=bool(settings.database.echo),
    future=True,
    **_engine_options(),
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,  # Prevent additional queries after commit
    autoflush=False,
    autocommit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database sessions.
    Commits whatever is left open when the request finishes.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            if session.in_transaction():
                try:
                    await session.commit()
                except PendingRollbackError:
                    await session.rollback()
                    raise
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_cleanup_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a new isolated session for background work.

    Used by the notification dispatcher, which runs after the triggering
    request's transaction has already committed and must never share its
    session.

    Example:
        async with get_cleanup_session() as db:
            db.add(notification)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """
    Create all tables that do not exist yet.
    Should be called on application startup.
    """
    # Register table metadata before create_all
    import db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def close_db() -> None:
    """
    Close database connections.
    Should be called on application shutdown.
    """
    await engine.dispose()
