"""
ServiceRequest Repository for database operations.

The scheduler only reads category/priority and mutates status, the current
technician/assignment pointers and completion data.
"""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from db.models import ServiceRequest
from repositories.base_repository import BaseRepository


class ServiceRequestRepository(BaseRepository[ServiceRequest]):
    """Repository for ServiceRequest database operations."""

    model = ServiceRequest

    @classmethod
    async def get_for_update(cls, db: AsyncSession, request_id: int) -> Optional[ServiceRequest]:
        """Load a request and lock its row for the rest of the transaction."""
        return await cls.find_by_id(db, request_id, for_update=True)
