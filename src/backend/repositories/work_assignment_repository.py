"""
WorkAssignment Repository for database operations.

Handles all queries over work assignments: per request, per technician,
per calendar day, overdue, and the aggregates used by workload reporting.
"""
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.model_enum import WorkAssignmentStatus
from db.models import ServiceRequest, WorkAssignment, utc_now
from repositories.base_repository import BaseRepository


def day_bounds(value: datetime) -> Tuple[datetime, datetime]:
    """Return the half-open [start, end) interval of ``value``'s calendar day."""
    start = value.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


class WorkAssignmentRepository(BaseRepository[WorkAssignment]):
    """Repository for WorkAssignment database operations."""

    model = WorkAssignment

    @classmethod
    async def find_by_request(
        cls,
        db: AsyncSession,
        request_id: int,
        *,
        for_update: bool = False,
    ) -> List[WorkAssignment]:
        """
        All assignments of a request, newest first.

        Args:
            db: Database session
            request_id: Service request ID
            for_update: Lock the returned rows until the transaction ends

        Returns:
            List of assignments
        """
        stmt = (
            select(WorkAssignment)
            .where(WorkAssignment.service_request_id == request_id)
            .order_by(WorkAssignment.assigned_date.desc(), WorkAssignment.id.desc())
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await db.execute(stmt)
        return list(result.scalars().all())

    @classmethod
    async def find_by_technician(
        cls,
        db: AsyncSession,
        technician_id: int,
    ) -> List[WorkAssignment]:
        """All assignments of a technician, newest first."""
        stmt = (
            select(WorkAssignment)
            .where(WorkAssignment.technician_id == technician_id)
            .order_by(WorkAssignment.assigned_date.desc(), WorkAssignment.id.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @classmethod
    async def find_active_for_technician(
        cls,
        db: AsyncSession,
        technician_id: int,
    ) -> List[WorkAssignment]:
        """Non-terminal assignments of a technician, earliest due first."""
        stmt = (
            select(WorkAssignment)
            .where(
                WorkAssignment.technician_id == technician_id,
                WorkAssignment.status.in_(WorkAssignmentStatus.active()),
            )
            .order_by(
                func.coalesce(WorkAssignment.scheduled_date, WorkAssignment.assigned_date),
                WorkAssignment.id,
            )
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @classmethod
    async def count_active_on_day(
        cls,
        db: AsyncSession,
        technician_id: int,
        day: datetime,
    ) -> int:
        """
        Count non-terminal assignments scheduled on ``day`` for a technician.

        Unscheduled assignments never count against a day.
        """
        start, end = day_bounds(day)
        stmt = select(func.count(WorkAssignment.id)).where(
            WorkAssignment.technician_id == technician_id,
            WorkAssignment.scheduled_date.is_not(None),
            WorkAssignment.scheduled_date >= start,
            WorkAssignment.scheduled_date < end,
            WorkAssignment.status.in_(WorkAssignmentStatus.active()),
        )
        result = await db.execute(stmt)
        return result.scalar_one()

    @classmethod
    async def find_scheduled_for_date(
        cls,
        db: AsyncSession,
        day: datetime,
        technician_id: Optional[int] = None,
    ) -> List[WorkAssignment]:
        """Assignments scheduled on ``day``, optionally for one technician."""
        start, end = day_bounds(day)
        stmt = select(WorkAssignment).where(
            WorkAssignment.scheduled_date >= start,
            WorkAssignment.scheduled_date < end,
        )
        if technician_id is not None:
            stmt = stmt.where(WorkAssignment.technician_id == technician_id)

        result = await db.execute(stmt.order_by(WorkAssignment.scheduled_date, WorkAssignment.id))
        return list(result.scalars().all())

    @classmethod
    async def find_overdue(
        cls,
        db: AsyncSession,
        now: Optional[datetime] = None,
    ) -> List[WorkAssignment]:
        """Non-terminal assignments whose scheduled date has passed."""
        now = now or utc_now()
        stmt = (
            select(WorkAssignment)
            .where(
                WorkAssignment.scheduled_date.is_not(None),
                WorkAssignment.scheduled_date < now,
                WorkAssignment.status.in_(WorkAssignmentStatus.active()),
            )
            .order_by(WorkAssignment.scheduled_date, WorkAssignment.id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @classmethod
    async def find_by_date_range(
        cls,
        db: AsyncSession,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        technician_id: Optional[int] = None,
    ) -> List[WorkAssignment]:
        """Assignments whose assigned date falls within [start, end]."""
        stmt = select(WorkAssignment)
        if start is not None:
            stmt = stmt.where(WorkAssignment.assigned_date >= start)
        if end is not None:
            stmt = stmt.where(WorkAssignment.assigned_date <= end)
        if technician_id is not None:
            stmt = stmt.where(WorkAssignment.technician_id == technician_id)

        result = await db.execute(stmt.order_by(WorkAssignment.assigned_date.desc()))
        return list(result.scalars().all())

    @classmethod
    async def find_completed(
        cls,
        db: AsyncSession,
        *,
        technician_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[WorkAssignment]:
        """Completed assignments, filtered on completion date."""
        stmt = select(WorkAssignment).where(
            WorkAssignment.status == WorkAssignmentStatus.COMPLETED
        )
        if technician_id is not None:
            stmt = stmt.where(WorkAssignment.technician_id == technician_id)
        if start is not None:
            stmt = stmt.where(WorkAssignment.completed_date >= start)
        if end is not None:
            stmt = stmt.where(WorkAssignment.completed_date <= end)

        result = await db.execute(stmt.order_by(WorkAssignment.completed_date.desc()))
        return list(result.scalars().all())

    @classmethod
    async def active_counts_by_technician(cls, db: AsyncSession) -> Dict[int, int]:
        """Map technician ID to its number of non-terminal assignments."""
        stmt = (
            select(WorkAssignment.technician_id, func.count(WorkAssignment.id))
            .where(WorkAssignment.status.in_(WorkAssignmentStatus.active()))
            .group_by(WorkAssignment.technician_id)
        )
        result = await db.execute(stmt)
        return {technician_id: count for technician_id, count in result.all()}

    @classmethod
    async def find_recent_with_titles(
        cls,
        db: AsyncSession,
        technician_id: int,
        limit: int,
    ) -> List[Tuple[WorkAssignment, str]]:
        """Most recent assignments of a technician joined with their request title."""
        stmt = (
            select(WorkAssignment, ServiceRequest.title)
            .join(ServiceRequest, ServiceRequest.id == WorkAssignment.service_request_id)
            .where(WorkAssignment.technician_id == technician_id)
            .order_by(WorkAssignment.assigned_date.desc(), WorkAssignment.id.desc())
            .limit(limit)
        )
        result = await db.execute(stmt)
        return [(assignment, title) for assignment, title in result.all()]
