"""
Unit tests for the startup and shutdown tasks.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI

from core.lifespan import tasks
from core.locks import LocalLockProvider
from services.predictor_client import NullTechnicianPredictor
from services.work_assignment_service import WorkAssignmentService


@pytest.mark.asyncio
async def test_scheduler_services_are_wired(mock_cache):
    app = FastAPI()

    await tasks.initialize_scheduler(app, mock_cache)

    service = app.state.assignment_service
    assert isinstance(service, WorkAssignmentService)
    assert isinstance(service.locks, LocalLockProvider)
    assert isinstance(app.state.predictor, NullTechnicianPredictor)
    assert service.workload is app.state.workload_service
    assert service.selector is app.state.technician_selector
    assert service.availability is app.state.availability_service
    assert service.dispatcher is app.state.dispatcher
    assert app.state.workload_service.cache is mock_cache

    await tasks.shutdown_scheduler(app)


@pytest.mark.asyncio
async def test_unreachable_redis_disables_cache(mock_cache):
    mock_cache.connect = AsyncMock()
    mock_cache.disconnect = AsyncMock()
    mock_cache.ping.return_value = False

    assert await tasks.initialize_cache(mock_cache) is False
    mock_cache.disconnect.assert_awaited_once()


@pytest.mark.asyncio
async def test_reachable_redis_stays_connected(mock_cache):
    mock_cache.connect = AsyncMock()
    mock_cache.disconnect = AsyncMock()
    mock_cache.ping.return_value = True

    assert await tasks.initialize_cache(mock_cache) is True
    mock_cache.disconnect.assert_not_awaited()
