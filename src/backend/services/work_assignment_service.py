"""
Work assignment lifecycle.

Owns the assignment state machine and keeps the parent service request in
step with it.

Concurrency contract:
- create / auto-assign / reassign hold the booked technician's lock and the
  request's lock from the capacity check until the transaction commits, so
  two bookings can never both see the last free slot.
- complete / cancel hold the request's lock while the request status is
  re-derived from its assignments.
- Notifications are dispatched after commit and after the locks are
  released; their failures never reach the caller.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from core.decorators import (
    critical_database_operation,
    log_database_operation,
    transactional_database_operation,
)
from core.exceptions import BusinessRuleViolation, NotFoundError
from core.locks import LockProvider, LocalLockProvider, request_key, technician_key
from core.logging_config import AssignmentLogger
from core.metrics import (
    track_assignment_created,
    track_auto_assign_failed,
    track_completion_hours,
    track_request_completed,
    track_status_change,
)
from db.model_enum import ServiceCategory, ServiceStatus, WorkAssignmentStatus
from db.models import ServiceRequest, WorkAssignment, utc_now
from repositories.service_request_repository import ServiceRequestRepository
from repositories.user_repository import UserRepository
from repositories.work_assignment_repository import WorkAssignmentRepository
from services.availability_service import AvailabilityService
from services.notification_service import NotificationDispatcher
from services.technician_selector import TechnicianSelector
from services.workload_service import WorkloadService

logger = logging.getLogger(__name__)

MANUAL_ASSIGNMENT_NOTE = "Manual assignment"
AUTO_ASSIGNMENT_NOTE = "Automatic assignment"
NOT_SPECIFIED = "Not specified"


class WorkAssignmentService:
    """Creates assignments and drives them through their states."""

    def __init__(
        self,
        availability: Optional[AvailabilityService] = None,
        selector: Optional[TechnicianSelector] = None,
        workload: Optional[WorkloadService] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        locks: Optional[LockProvider] = None,
    ):
        self.availability = availability or AvailabilityService()
        self.selector = selector or TechnicianSelector()
        self.workload = workload or WorkloadService()
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.locks = locks or LocalLockProvider()
        self.events = AssignmentLogger("lifecycle")

    # ==================== Creation ====================

    @log_database_operation("assignment creation", level="info")
    @transactional_database_operation("create_assignment")
    async def create_assignment(
        self,
        db: AsyncSession,
        request_id: int,
        technician_id: int,
        scheduled_date: Optional[datetime] = None,
        notes: Optional[str] = None,
        estimated_hours: Optional[float] = None,
        mode: str = "direct",
    ) -> WorkAssignment:
        """
        Book a technician on a request.

        Args:
            db: Database session
            request_id: Service request to assign
            technician_id: Technician to book
            scheduled_date: Planned date (naive UTC); checked against capacity when given
            notes: Free-text notes
            estimated_hours: Estimated effort
            mode: Label for metrics and the lifecycle log

        Returns:
            The new Assigned WorkAssignment

        Raises:
            NotFoundError: Unknown request, or unknown or inactive technician
            BusinessRuleViolation: Technician has no capacity on ``scheduled_date``
        """
        async with self.locks.hold(technician_key(technician_id), request_key(request_id)):
            request = await self._get_request_for_update(db, request_id)
            assignment = await self._book(
                db, request, technician_id, scheduled_date, notes, estimated_hours
            )
            await db.commit()

        await self._after_created(assignment, request, mode)
        return assignment

    async def manual_assign(
        self,
        db: AsyncSession,
        request_id: int,
        technician_id: int,
        scheduled_date: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> WorkAssignment:
        """Manager-picked assignment; same rules as create_assignment."""
        return await self.create_assignment(
            db,
            request_id,
            technician_id,
            scheduled_date=scheduled_date,
            notes=notes or MANUAL_ASSIGNMENT_NOTE,
            mode="manual",
        )

    @log_database_operation("automatic assignment", level="info")
    @transactional_database_operation("auto_assign")
    async def auto_assign(self, db: AsyncSession, request_id: int) -> WorkAssignment:
        """
        Assign the first ranked candidate that still has capacity today.

        Each candidate is checked and booked under its own lock, so a
        technician who fills up while we iterate is skipped rather than
        overbooked. The new assignment is scheduled for now and therefore
        counts against today's capacity.

        Raises:
            NotFoundError: Unknown request
            BusinessRuleViolation: No candidate has capacity
        """
        request = await ServiceRequestRepository.find_by_id(db, request_id)
        if request is None:
            raise NotFoundError(f"Service request with ID {request_id} not found")

        category = ServiceCategory(request.category)
        candidates = await self.selector.find_candidates(db, category, request.priority)

        for technician_id in candidates:
            async with self.locks.hold(technician_key(technician_id), request_key(request_id)):
                now = utc_now()
                if not await self.availability.is_available(db, technician_id, now):
                    self.events.auto_assign_skipped(request_id, technician_id)
                    continue

                request = await self._get_request_for_update(db, request_id)
                assignment = await self._book(
                    db, request, technician_id, now, AUTO_ASSIGNMENT_NOTE, None
                )
                await db.commit()

            await self._after_created(assignment, request, "auto")
            return assignment

        self.events.auto_assign_failed(request_id, len(candidates))
        track_auto_assign_failed(category.value)
        raise BusinessRuleViolation(
            f"No suitable technician available for service request #{request_id}"
        )

    async def _book(
        self,
        db: AsyncSession,
        request: ServiceRequest,
        technician_id: int,
        scheduled_date: Optional[datetime],
        notes: Optional[str],
        estimated_hours: Optional[float],
    ) -> WorkAssignment:
        # Caller holds the technician and request locks
        technician = await UserRepository.get_technician_by_id(db, technician_id, for_update=True)
        if technician is None or not technician.is_active:
            raise NotFoundError(f"Technician with ID {technician_id} not found or inactive")

        if scheduled_date is not None and not await self.availability.is_available(
            db, technician_id, scheduled_date
        ):
            raise BusinessRuleViolation(
                f"Technician is not available on {scheduled_date:%d.%m.%Y %H:%M}"
            )

        assignment = await WorkAssignmentRepository.create(
            db,
            obj_in={
                "service_request_id": request.id,
                "technician_id": technician_id,
                "status": WorkAssignmentStatus.ASSIGNED,
                "assigned_date": utc_now(),
                "scheduled_date": scheduled_date,
                "notes": notes,
                "estimated_hours": estimated_hours,
            },
        )

        request.assigned_technician_id = technician_id
        request.current_assignment_id = assignment.id
        if request.status == ServiceStatus.PENDING:
            request.status = ServiceStatus.IN_PROGRESS
        await db.flush()
        return assignment

    async def _after_created(self, assignment: WorkAssignment, request: ServiceRequest, mode: str) -> None:
        self.events.assignment_created(
            assignment.id,
            assignment.service_request_id,
            assignment.technician_id,
            assignment.scheduled_date,
            mode,
        )
        track_assignment_created(mode, ServiceCategory(request.category).value)
        await self.workload.invalidate()
        self.dispatcher.technician_assigned(assignment.service_request_id, assignment.technician_id)

    # ==================== Transitions ====================

    @transactional_database_operation("start_assignment")
    async def start_assignment(self, db: AsyncSession, assignment_id: int) -> WorkAssignment:
        """
        Move an Assigned assignment to InProgress.

        Raises:
            NotFoundError: Unknown assignment
            BusinessRuleViolation: Assignment is not in Assigned state
        """
        assignment = await self._get_assignment(db, assignment_id, for_update=True)
        if assignment.status != WorkAssignmentStatus.ASSIGNED:
            raise BusinessRuleViolation("Only assigned tasks can be started")

        assignment.status = WorkAssignmentStatus.IN_PROGRESS
        assignment.started_date = utc_now()
        await db.commit()

        self._record_transition(assignment, WorkAssignmentStatus.ASSIGNED)
        await self.workload.invalidate()
        return assignment

    @log_database_operation("assignment completion", level="info")
    @transactional_database_operation("complete_assignment")
    async def complete_assignment(
        self,
        db: AsyncSession,
        assignment_id: int,
        completion_notes: Optional[str] = None,
        actual_hours: Optional[float] = None,
    ) -> WorkAssignment:
        """
        Complete an Assigned or InProgress assignment.

        The request status is re-derived in the same transaction; when it
        completes, the customer notification and report analysis are
        dispatched after commit.

        Raises:
            NotFoundError: Unknown assignment
            BusinessRuleViolation: Assignment already Completed or Cancelled
        """
        request_id = (await self._get_assignment(db, assignment_id)).service_request_id

        async with self.locks.hold(request_key(request_id)):
            assignment = await self._get_assignment(db, assignment_id, for_update=True)
            if assignment.status == WorkAssignmentStatus.COMPLETED:
                raise BusinessRuleViolation("This task has already been completed")
            if assignment.status == WorkAssignmentStatus.CANCELLED:
                raise BusinessRuleViolation("Cancelled tasks cannot be completed")

            previous = WorkAssignmentStatus(assignment.status)
            assignment.status = WorkAssignmentStatus.COMPLETED
            assignment.completed_date = utc_now()
            if completion_notes is not None:
                assignment.completion_notes = completion_notes
            if actual_hours is not None:
                assignment.actual_hours = actual_hours
            await db.flush()

            request, request_completed = await self._sync_request(db, request_id)
            await db.commit()

        self._record_transition(assignment, previous)
        if assignment.started_date is not None:
            track_completion_hours(
                (assignment.completed_date - assignment.started_date).total_seconds() / 3600
            )
        await self.workload.invalidate()
        if request_completed:
            self.dispatcher.service_completed(request.id)
            self.dispatcher.report_analysis(request.id)
        return assignment

    @log_database_operation("assignment cancellation", level="info")
    @transactional_database_operation("cancel_assignment")
    async def cancel_assignment(
        self,
        db: AsyncSession,
        assignment_id: int,
        reason: Optional[str] = None,
    ) -> WorkAssignment:
        """
        Cancel an Assigned or InProgress assignment.

        When the cancelled assignment was the request's current one the
        request points at its newest remaining active assignment, or at
        nothing, which makes it eligible for a fresh auto-assign.

        Raises:
            NotFoundError: Unknown assignment
            BusinessRuleViolation: Assignment already Completed or Cancelled
        """
        request_id = (await self._get_assignment(db, assignment_id)).service_request_id

        async with self.locks.hold(request_key(request_id)):
            assignment, previous, request_completed = await self._cancel_locked(db, assignment_id, reason)
            await db.commit()

        self._record_transition(assignment, previous)
        await self.workload.invalidate()
        if request_completed:
            self.dispatcher.service_completed(request_id)
            self.dispatcher.report_analysis(request_id)
        return assignment

    async def _cancel_locked(
        self,
        db: AsyncSession,
        assignment_id: int,
        reason: Optional[str],
        sync: bool = True,
    ) -> Tuple[WorkAssignment, WorkAssignmentStatus, bool]:
        assignment = await self._get_assignment(db, assignment_id, for_update=True)
        if assignment.status == WorkAssignmentStatus.COMPLETED:
            raise BusinessRuleViolation("Completed tasks cannot be cancelled")
        if assignment.status == WorkAssignmentStatus.CANCELLED:
            raise BusinessRuleViolation("This task has already been cancelled")

        previous = WorkAssignmentStatus(assignment.status)
        assignment.status = WorkAssignmentStatus.CANCELLED
        suffix = f"Cancellation reason: {reason or NOT_SPECIFIED}"
        assignment.notes = f"{assignment.notes} | {suffix}" if assignment.notes else suffix
        await db.flush()

        if not sync:
            return assignment, previous, False
        _, request_completed = await self._sync_request(db, assignment.service_request_id)
        return assignment, previous, request_completed

    @log_database_operation("reassignment", level="info")
    @transactional_database_operation("reassign")
    async def reassign(
        self,
        db: AsyncSession,
        assignment_id: int,
        new_technician_id: int,
        reason: Optional[str] = None,
    ) -> Tuple[WorkAssignment, WorkAssignment]:
        """
        Cancel an assignment and book another technician on the same request.

        Both steps commit together: if the new technician cannot be booked,
        the old assignment stays as it was.

        Returns:
            (cancelled assignment, new assignment)

        Raises:
            NotFoundError: Unknown assignment, or unknown or inactive technician
            BusinessRuleViolation: Old assignment is terminal, or the new
                technician has no capacity on the scheduled date
        """
        original = await self._get_assignment(db, assignment_id)
        request_id = original.service_request_id

        async with self.locks.hold(technician_key(new_technician_id), request_key(request_id)):
            old, previous, _ = await self._cancel_locked(
                db, assignment_id, f"Reassignment: {reason or NOT_SPECIFIED}", sync=False
            )
            request = await self._get_request_for_update(db, request_id)
            new = await self._book(
                db,
                request,
                new_technician_id,
                old.scheduled_date,
                f"Reassigned from assignment #{assignment_id}. Reason: {reason or NOT_SPECIFIED}",
                old.estimated_hours,
            )
            # The request is re-derived only once the replacement exists
            request, _ = await self._sync_request(db, request_id)
            await db.commit()

        self._record_transition(old, previous)
        self.events.reassigned(old.id, new.id, new_technician_id, reason)
        await self._after_created(new, request, "reassign")
        return old, new

    # ==================== Request synchronization ====================

    @transactional_database_operation("sync_request_status")
    async def sync_request_status(self, db: AsyncSession, request_id: int) -> ServiceRequest:
        """Re-derive a request's status from its assignments and commit."""
        async with self.locks.hold(request_key(request_id)):
            request, completed = await self._sync_request(db, request_id)
            await db.commit()

        if completed:
            await self.workload.invalidate()
            self.dispatcher.service_completed(request_id)
        return request

    async def _sync_request(self, db: AsyncSession, request_id: int) -> Tuple[ServiceRequest, bool]:
        """
        Apply the request-assignment rules; caller holds the request lock.

        A request completes once at least one assignment is Completed and
        every assignment is terminal. Returns whether this call completed it.
        """
        request = await self._get_request_for_update(db, request_id)
        assignments = await WorkAssignmentRepository.find_by_request(db, request_id)

        # Newest first, so the first active one becomes current
        active = [a for a in assignments if not WorkAssignmentStatus(a.status).is_terminal]
        current = next((a for a in assignments if a.id == request.current_assignment_id), None)
        if current is None or current.is_terminal:
            if active:
                request.current_assignment_id = active[0].id
                request.assigned_technician_id = active[0].technician_id
            elif current is None or current.status == WorkAssignmentStatus.CANCELLED:
                request.current_assignment_id = None
                request.assigned_technician_id = None
            else:
                # Completed work keeps its technician on the request
                request.current_assignment_id = None

        has_completed = any(a.status == WorkAssignmentStatus.COMPLETED for a in assignments)
        newly_completed = False
        if has_completed and not active and request.status != ServiceStatus.COMPLETED:
            request.status = ServiceStatus.COMPLETED
            request.completed_date = utc_now()
            newly_completed = True
            self.events.request_completed(request_id, len(assignments))
            track_request_completed(
                ServiceCategory(request.category).value,
                (request.completed_date - request.created_date).total_seconds(),
            )

        await db.flush()
        return request, newly_completed

    # ==================== Queries ====================

    @critical_database_operation("get_assignment")
    async def get_assignment(self, db: AsyncSession, assignment_id: int) -> WorkAssignment:
        """Raises NotFoundError for an unknown ID."""
        return await self._get_assignment(db, assignment_id)

    @critical_database_operation("get_by_technician")
    async def get_by_technician(
        self,
        db: AsyncSession,
        technician_id: int,
        active_only: bool = False,
    ) -> List[WorkAssignment]:
        if active_only:
            return await WorkAssignmentRepository.find_active_for_technician(db, technician_id)
        return await WorkAssignmentRepository.find_by_technician(db, technician_id)

    async def get_active_for_technician(self, db: AsyncSession, technician_id: int) -> List[WorkAssignment]:
        return await self.get_by_technician(db, technician_id, active_only=True)

    @critical_database_operation("get_by_service_request")
    async def get_by_service_request(self, db: AsyncSession, request_id: int) -> List[WorkAssignment]:
        return await WorkAssignmentRepository.find_by_request(db, request_id)

    @critical_database_operation("get_scheduled_assignments")
    async def get_scheduled_assignments(
        self,
        db: AsyncSession,
        day: datetime,
        technician_id: Optional[int] = None,
    ) -> List[WorkAssignment]:
        """Assignments scheduled on the calendar day of ``day``."""
        return await WorkAssignmentRepository.find_scheduled_for_date(db, day, technician_id)

    @critical_database_operation("get_overdue_assignments")
    async def get_overdue_assignments(self, db: AsyncSession) -> List[WorkAssignment]:
        return await WorkAssignmentRepository.find_overdue(db)

    # ==================== Administration ====================

    @log_database_operation("assignment deletion", level="warning")
    @transactional_database_operation("delete_assignment")
    async def delete_assignment(self, db: AsyncSession, assignment_id: int) -> None:
        """
        Hard-delete an assignment.

        Only for correcting bad data; normal flows cancel instead.

        Raises:
            NotFoundError: Unknown assignment
        """
        assignment = await self._get_assignment(db, assignment_id)
        request_id = assignment.service_request_id

        async with self.locks.hold(request_key(request_id)):
            assignment = await self._get_assignment(db, assignment_id, for_update=True)
            await db.delete(assignment)
            await db.flush()
            await self._sync_request(db, request_id)
            await db.commit()

        logger.warning(f"Work assignment {assignment_id} of request {request_id} deleted")
        await self.workload.invalidate()

    # ==================== Helpers ====================

    async def _get_assignment(
        self,
        db: AsyncSession,
        assignment_id: int,
        *,
        for_update: bool = False,
    ) -> WorkAssignment:
        assignment = await WorkAssignmentRepository.find_by_id(db, assignment_id, for_update=for_update)
        if assignment is None:
            raise NotFoundError(f"Work assignment with ID {assignment_id} not found")
        return assignment

    async def _get_request_for_update(self, db: AsyncSession, request_id: int) -> ServiceRequest:
        request = await ServiceRequestRepository.get_for_update(db, request_id)
        if request is None:
            raise NotFoundError(f"Service request with ID {request_id} not found")
        return request

    def _record_transition(self, assignment: WorkAssignment, previous: WorkAssignmentStatus) -> None:
        from_status = previous.value
        to_status = WorkAssignmentStatus(assignment.status).value
        self.events.status_changed(assignment.id, from_status, to_status)
        track_status_change(from_status, to_status)
