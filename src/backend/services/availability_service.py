"""
Availability checks for technicians.

A technician can take one more assignment on a day while the number of
non-terminal assignments scheduled on that calendar day is below the
configured capacity. The check alone is not a reservation: callers that
act on the answer must hold the technician's scheduling lock.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.decorators import critical_database_operation
from repositories.user_repository import UserRepository
from repositories.work_assignment_repository import WorkAssignmentRepository

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Answers whether a technician can accept another assignment on a day."""

    def __init__(self, capacity: Optional[int] = None):
        self.capacity = capacity or settings.scheduling.max_concurrent_assignments

    @critical_database_operation("count_active_on_day")
    async def count_active_on_day(
        self,
        db: AsyncSession,
        technician_id: int,
        day: datetime,
    ) -> int:
        return await WorkAssignmentRepository.count_active_on_day(db, technician_id, day)

    @critical_database_operation("is_available")
    async def is_available(
        self,
        db: AsyncSession,
        technician_id: int,
        day: datetime,
    ) -> bool:
        """
        Check whether ``technician_id`` can take one more assignment on ``day``.

        Args:
            db: Database session
            technician_id: Technician user ID
            day: Any moment of the calendar day to check

        Returns:
            False for unknown technicians or when the day is at capacity
        """
        technician = await UserRepository.get_technician_by_id(db, technician_id)
        if technician is None:
            return False

        count = await WorkAssignmentRepository.count_active_on_day(db, technician_id, day)
        available = count < self.capacity
        logger.debug(
            f"Technician {technician_id} has {count}/{self.capacity} assignments on "
            f"{day.date().isoformat()}: {'available' if available else 'full'}"
        )
        return available
