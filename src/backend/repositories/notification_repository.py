"""
Notification Repository for database operations.
"""
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Notification
from repositories.base_repository import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    """Repository for Notification database operations."""

    model = Notification

    @classmethod
    async def find_for_request(cls, db: AsyncSession, request_id: int) -> List[Notification]:
        """Notifications tied to a service request, oldest first."""
        stmt = (
            select(Notification)
            .where(Notification.service_request_id == request_id)
            .order_by(Notification.created_date, Notification.id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())
