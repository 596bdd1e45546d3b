"""
Workload aggregation for technicians.

Read-only projections over work assignments: current load per technician,
detailed history for dashboards, and performance metrics. None of these
take scheduling locks; they tolerate slightly stale data.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.cache import WORKLOAD_SUMMARY_KEY, CacheManager
from core.config import settings
from core.decorators import critical_database_operation, log_database_operation
from core.exceptions import NotFoundError
from db.model_enum import WorkAssignmentStatus, WorkloadStatus
from db.models import TechnicianProfile, User, WorkAssignment, utc_now
from repositories.user_repository import UserRepository
from repositories.work_assignment_repository import WorkAssignmentRepository
from schemas.workload import (
    PerformanceMetrics,
    RecentAssignment,
    TechnicianPerformance,
    TechnicianWorkload,
    TechnicianWorkloadDetail,
)

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400


def classify_workload(active_assignments: int) -> WorkloadStatus:
    """0 -> Available, 1-2 -> Normal, 3-4 -> Busy, 5+ -> Overloaded."""
    if active_assignments <= 0:
        return WorkloadStatus.AVAILABLE
    if active_assignments <= 2:
        return WorkloadStatus.NORMAL
    if active_assignments <= 4:
        return WorkloadStatus.BUSY
    return WorkloadStatus.OVERLOADED


def workload_percentage(active_assignments: int, capacity: int) -> float:
    if capacity <= 0:
        return 0.0
    return active_assignments / capacity * 100


def average_completion_hours(assignments: Iterable[WorkAssignment]) -> float:
    """Mean of (completed - started) in hours over completed assignments; 0 if none."""
    durations = [
        (a.completed_date - a.started_date).total_seconds() / SECONDS_PER_HOUR
        for a in assignments
        if a.status == WorkAssignmentStatus.COMPLETED and a.started_date and a.completed_date
    ]
    return sum(durations) / len(durations) if durations else 0.0


def on_time_rate(completed: List[WorkAssignment]) -> float:
    """
    Percentage of completed assignments finished by their scheduled date.

    Unscheduled assignments cannot be late and count as on time.
    """
    if not completed:
        return 0.0
    on_time = sum(
        1 for a in completed
        if a.scheduled_date is None or (a.completed_date and a.completed_date <= a.scheduled_date)
    )
    return on_time / len(completed) * 100


def performance_score(completed_tasks: int, on_time: float) -> float:
    """Up to 5 points for volume (0.1 per task) plus up to 5 for punctuality."""
    task_score = min(completed_tasks * 0.1, 5.0)
    time_score = on_time / 100 * 5.0
    return round(task_score + time_score, 1)


def is_overdue(assignment: WorkAssignment, now: datetime) -> bool:
    return (
        assignment.scheduled_date is not None
        and assignment.scheduled_date < now
        and not WorkAssignmentStatus(assignment.status).is_terminal
    )


class WorkloadService:
    """Computes technician workload and performance projections."""

    def __init__(
        self,
        cache: Optional[CacheManager] = None,
        capacity: Optional[int] = None,
        cache_ttl: Optional[int] = None,
    ):
        self.cache = cache
        self.capacity = capacity or settings.scheduling.max_concurrent_assignments
        self.cache_ttl = settings.scheduling.workload_cache_ttl if cache_ttl is None else cache_ttl

    # ==================== Load ====================

    @critical_database_operation("get_workload_percentages")
    async def get_workload_percentages(self, db: AsyncSession) -> Dict[int, float]:
        """Workload percentage per technician ID (absent means 0)."""
        counts = await WorkAssignmentRepository.active_counts_by_technician(db)
        return {tid: workload_percentage(count, self.capacity) for tid, count in counts.items()}

    @log_database_operation("workload summary")
    @critical_database_operation("get_workload_summary")
    async def get_workload_summary(
        self,
        db: AsyncSession,
        use_cache: bool = True,
    ) -> List[TechnicianWorkload]:
        """
        Current load of every active technician, ordered by name.

        Served from the shared cache when a fresh copy exists; lifecycle
        mutations invalidate it.
        """
        if use_cache and self.cache is not None and self.cache_ttl > 0:
            cached = await self.cache.get(WORKLOAD_SUMMARY_KEY)
            if cached is not None:
                return [TechnicianWorkload.model_validate(item) for item in cached]

        technicians = await UserRepository.get_active_technicians(db)
        ids = [t.id for t in technicians]
        profiles = await UserRepository.get_profiles(db, ids)
        counts = await WorkAssignmentRepository.active_counts_by_technician(db)

        completed_by_technician: Dict[int, List[WorkAssignment]] = defaultdict(list)
        for assignment in await WorkAssignmentRepository.find_completed(db):
            completed_by_technician[assignment.technician_id].append(assignment)

        summary = []
        for technician in technicians:
            active = counts.get(technician.id, 0)
            status = classify_workload(active)
            summary.append(
                TechnicianWorkload(
                    technician_id=technician.id,
                    technician_name=technician.full_name,
                    email=technician.email,
                    specializations=_specializations(profiles.get(technician.id)),
                    active_assignments=active,
                    max_concurrent_assignments=self.capacity,
                    workload_percentage=workload_percentage(active, self.capacity),
                    average_completion_time=average_completion_hours(
                        completed_by_technician.get(technician.id, [])
                    ),
                    workload_status=status,
                    workload_status_color=status.color,
                )
            )

        if use_cache and self.cache is not None and self.cache_ttl > 0:
            await self.cache.set(
                WORKLOAD_SUMMARY_KEY,
                [item.model_dump(mode="json") for item in summary],
                ttl=self.cache_ttl,
            )
        return summary

    async def invalidate(self) -> None:
        """Drop cached projections after a lifecycle mutation."""
        if self.cache is not None:
            await self.cache.delete(WORKLOAD_SUMMARY_KEY)

    # ==================== Detail ====================

    @critical_database_operation("get_detailed_workload")
    async def get_detailed_workload(self, db: AsyncSession) -> List[TechnicianWorkloadDetail]:
        """Detailed workload of every technician, ordered by name."""
        technicians = await UserRepository.get_all_technicians(db)
        profiles = await UserRepository.get_profiles(db, [t.id for t in technicians])

        details = []
        for technician in technicians:
            details.append(
                await self._build_detail(
                    db,
                    technician,
                    profiles.get(technician.id),
                    settings.scheduling.recent_assignments_limit,
                )
            )
        return sorted(details, key=lambda d: (d.technician_name, d.technician_id))

    @critical_database_operation("get_technician_workload_details")
    async def get_technician_workload_details(
        self,
        db: AsyncSession,
        technician_id: int,
    ) -> TechnicianWorkloadDetail:
        """
        Detailed workload of one technician.

        Raises:
            NotFoundError: If no technician has this ID
        """
        technician = await UserRepository.get_technician_by_id(db, technician_id)
        if technician is None:
            raise NotFoundError(f"Technician with ID {technician_id} not found")

        profiles = await UserRepository.get_profiles(db, [technician_id])
        return await self._build_detail(
            db,
            technician,
            profiles.get(technician_id),
            settings.scheduling.detail_recent_assignments_limit,
        )

    async def _build_detail(
        self,
        db: AsyncSession,
        technician: User,
        profile: Optional[TechnicianProfile],
        recent_limit: int,
    ) -> TechnicianWorkloadDetail:
        now = utc_now()
        assignments = await WorkAssignmentRepository.find_by_technician(db, technician.id)

        by_status: Dict[WorkAssignmentStatus, int] = {status: 0 for status in WorkAssignmentStatus}
        for assignment in assignments:
            by_status[WorkAssignmentStatus(assignment.status)] += 1

        total = len(assignments)
        completed = [
            a for a in assignments
            if a.status == WorkAssignmentStatus.COMPLETED and a.completed_date is not None
        ]
        active = by_status[WorkAssignmentStatus.ASSIGNED] + by_status[WorkAssignmentStatus.IN_PROGRESS]
        status = classify_workload(active)

        average_days = (
            sum((a.completed_date - a.assigned_date).total_seconds() for a in completed)
            / len(completed)
            / SECONDS_PER_DAY
            if completed
            else 0.0
        )

        recent = await WorkAssignmentRepository.find_recent_with_titles(db, technician.id, recent_limit)

        return TechnicianWorkloadDetail(
            technician_id=technician.id,
            technician_name=technician.full_name,
            email=technician.email,
            phone=technician.phone,
            specializations=_specializations(profile),
            is_active=technician.is_active,
            total_assignments=total,
            pending_assignments=by_status[WorkAssignmentStatus.ASSIGNED],
            in_progress_assignments=by_status[WorkAssignmentStatus.IN_PROGRESS],
            completed_assignments=by_status[WorkAssignmentStatus.COMPLETED],
            cancelled_assignments=by_status[WorkAssignmentStatus.CANCELLED],
            active_assignments=active,
            workload_percentage=workload_percentage(active, self.capacity),
            completion_rate=(by_status[WorkAssignmentStatus.COMPLETED] / total * 100) if total else 0.0,
            average_completion_days=average_days,
            overdue_assignments=sum(1 for a in assignments if is_overdue(a, now)),
            last_assignment_date=max((a.assigned_date for a in assignments), default=None),
            last_completion_date=max((a.completed_date for a in completed), default=None),
            workload_status=status,
            workload_status_color=status.color,
            recent_assignments=[_recent(a, title, now) for a, title in recent],
        )

    # ==================== Performance ====================

    @log_database_operation("performance metrics")
    @critical_database_operation("get_performance_metrics")
    async def get_performance_metrics(
        self,
        db: AsyncSession,
        technician_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> PerformanceMetrics:
        """
        Assignment performance over assignments assigned within [start, end].

        With ``technician_id`` every figure is scoped to that technician;
        without it a per-technician breakdown of completions within the
        range is included.

        Raises:
            NotFoundError: If ``technician_id`` is not a technician
        """
        if technician_id is not None:
            if await UserRepository.get_technician_by_id(db, technician_id) is None:
                raise NotFoundError(f"Technician with ID {technician_id} not found")

        now = utc_now()
        scoped = await WorkAssignmentRepository.find_by_date_range(
            db, start=start, end=end, technician_id=technician_id
        )
        completed = [a for a in scoped if a.status == WorkAssignmentStatus.COMPLETED]
        cancelled = sum(1 for a in scoped if a.status == WorkAssignmentStatus.CANCELLED)
        total = len(scoped)

        metrics = PerformanceMetrics(
            technician_id=technician_id,
            start_date=start,
            end_date=end,
            total_assignments=total,
            completed_assignments=len(completed),
            cancelled_assignments=cancelled,
            overdue_assignments=sum(1 for a in scoped if is_overdue(a, now)),
            completion_rate=(len(completed) / total * 100) if total else 0.0,
            average_completion_time=average_completion_hours(completed),
            on_time_completion_rate=on_time_rate(completed),
            calculated_date=now,
        )

        if technician_id is None:
            completed_in_range: Dict[int, List[WorkAssignment]] = defaultdict(list)
            for assignment in await WorkAssignmentRepository.find_completed(db, start=start, end=end):
                completed_in_range[assignment.technician_id].append(assignment)

            for technician in await UserRepository.get_all_technicians(db):
                tasks = completed_in_range.get(technician.id, [])
                rate = on_time_rate(tasks)
                metrics.technician_performances[technician.id] = TechnicianPerformance(
                    technician_id=technician.id,
                    technician_name=technician.full_name,
                    completed_tasks=len(tasks),
                    average_completion_time=average_completion_hours(tasks),
                    on_time_rate=rate,
                    performance_score=performance_score(len(tasks), rate),
                )

        return metrics


def _specializations(profile: Optional[TechnicianProfile]) -> List[str]:
    return profile.specialization_list if profile is not None else []


def _recent(assignment: WorkAssignment, title: Optional[str], now: datetime) -> RecentAssignment:
    status = WorkAssignmentStatus(assignment.status)
    until = assignment.completed_date or now
    return RecentAssignment(
        assignment_id=assignment.id,
        service_request_id=assignment.service_request_id,
        service_request_title=title or f"Request #{assignment.service_request_id}",
        status=status,
        status_color=status.color,
        assigned_date=assignment.assigned_date,
        scheduled_date=assignment.scheduled_date,
        completed_date=assignment.completed_date,
        days_in_progress=max(int((until - assignment.assigned_date).total_seconds() // SECONDS_PER_DAY), 0),
        is_overdue=is_overdue(assignment, now),
    )
