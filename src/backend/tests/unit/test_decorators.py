"""
Unit tests for the database operation decorators.
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from core.decorators import (
    critical_database_operation,
    safe_database_query,
    transactional_database_operation,
)
from core.exceptions import BusinessRuleViolation, NotFoundError, ServiceError


@pytest.fixture
def session():
    return AsyncMock(spec=AsyncSession)


class TestTransactionalOperation:

    @pytest.mark.asyncio
    async def test_commits_on_success(self, session):
        @transactional_database_operation("save")
        async def save(db):
            return "saved"

        assert await save(session) == "saved"
        session.commit.assert_awaited_once()
        session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_finds_session_in_kwargs(self, session):
        @transactional_database_operation
        async def save(owner, *, db):
            return owner

        assert await save("svc", db=session) == "svc"
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rule_violation_rolls_back_and_passes_through(self, session):
        @transactional_database_operation("book")
        async def book(db):
            raise BusinessRuleViolation("Technician is not available")

        with pytest.raises(BusinessRuleViolation, match="not available"):
            await book(session)
        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_store_error_becomes_service_error(self, session):
        @transactional_database_operation("book")
        async def book(db):
            raise IntegrityError("INSERT", {}, Exception("duplicate"))

        with pytest.raises(ServiceError, match="Storage failure during book") as excinfo:
            await book(session)
        assert isinstance(excinfo.value.__cause__, IntegrityError)
        session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self, session):
        @transactional_database_operation("book")
        async def book(db):
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            await book(session)
        session.rollback.assert_awaited_once()


class TestCriticalOperation:

    @pytest.mark.asyncio
    async def test_not_found_passes_through(self, session):
        @critical_database_operation("load")
        async def load(db):
            raise NotFoundError("Work assignment with ID 1 not found")

        with pytest.raises(NotFoundError):
            await load(session)

    @pytest.mark.asyncio
    async def test_operational_error_becomes_service_error(self, session):
        @critical_database_operation
        async def load(db):
            raise OperationalError("SELECT 1", {}, Exception("connection reset"))

        with pytest.raises(ServiceError):
            await load(session)


class TestSafeQuery:

    @pytest.mark.asyncio
    async def test_returns_default_on_store_error(self, session):
        @safe_database_query("count", default_return=0)
        async def count(db):
            raise OperationalError("SELECT count(*)", {}, Exception("gone"))

        assert await count(session) == 0

    def test_rejects_sync_functions(self):
        with pytest.raises(TypeError):
            @critical_database_operation
            def load(db):
                return None
