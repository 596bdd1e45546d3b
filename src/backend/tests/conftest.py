"""
Pytest configuration and fixtures for testing.

Provides:
- Database fixtures (a fresh SQLite file per test via aiosqlite)
- Mock services (cache, predictor)
- Fully wired scheduling services

Usage:
    uv run pytest src/backend/tests -v
"""

import os

# The application engine is created at import time; keep it off PostgreSQL
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("LOG_ENABLE_FILE_LOGGING", "false")

from contextlib import asynccontextmanager
from typing import AsyncGenerator, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

import db.models  # noqa: F401
from core.locks import LocalLockProvider
from services.availability_service import AvailabilityService
from services.notification_service import NotificationDispatcher
from services.predictor_client import TechnicianPredictor
from services.technician_selector import TechnicianSelector
from services.work_assignment_service import WorkAssignmentService
from services.workload_service import WorkloadService


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """Create a SQLite engine on a per-test database file.

    A file (not :memory:) so that concurrently running sessions share data.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'scheduler.db'}",
        connect_args={"check_same_thread": False, "timeout": 15},
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def session_scope(session_factory):
    """Isolated commit-on-exit sessions, as used for background work."""

    @asynccontextmanager
    async def scope():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return scope


# ============================================================================
# Cache Fixtures
# ============================================================================

@pytest.fixture
def mock_cache():
    """Mock Redis cache manager."""
    cache = MagicMock()
    cache.get = AsyncMock(return_value=None)
    cache.set = AsyncMock(return_value=True)
    cache.delete = AsyncMock(return_value=True)
    cache.ping = AsyncMock(return_value=False)
    cache.client = None
    return cache


# ============================================================================
# Predictor Fixtures
# ============================================================================

class FakePredictor(TechnicianPredictor):
    """Predictor returning canned suggestions."""

    def __init__(self):
        self.suggestions: List[int] = []
        self.analysis: Optional[str] = None
        self.calls = 0

    async def suggest_technicians(self, category, priority) -> List[int]:
        self.calls += 1
        return list(self.suggestions)

    async def request_report_analysis(self, request_id: int) -> Optional[str]:
        return self.analysis


@pytest.fixture
def fake_predictor() -> FakePredictor:
    return FakePredictor()


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def dispatcher(session_scope, fake_predictor) -> NotificationDispatcher:
    return NotificationDispatcher(session_scope=session_scope, predictor=fake_predictor)


@pytest.fixture
def workload_service(mock_cache) -> WorkloadService:
    return WorkloadService(cache=mock_cache, capacity=5)


@pytest.fixture
def selector(fake_predictor) -> TechnicianSelector:
    return TechnicianSelector(predictor=fake_predictor, capacity=5)


@pytest_asyncio.fixture
async def assignment_service(dispatcher, workload_service, selector) -> AsyncGenerator[WorkAssignmentService, None]:
    service = WorkAssignmentService(
        availability=AvailabilityService(capacity=5),
        selector=selector,
        workload=workload_service,
        dispatcher=dispatcher,
        locks=LocalLockProvider(timeout=5),
    )
    yield service
    await dispatcher.drain()
