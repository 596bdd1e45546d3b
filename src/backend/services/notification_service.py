"""
Durable notification service and background dispatcher.

Contract:
- Notifications are persisted rows; delivery channels read them later.
- The scheduler never waits for a notification. NotificationDispatcher
  runs each one as a background task, after the triggering transaction
  has committed and its locks are released, in its own session.
- A failed notification is logged and counted, never propagated.
"""

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from typing import Awaitable, Callable, List, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_cleanup_session
from core.metrics import notifications_in_flight, track_notification
from db.model_enum import NotificationType
from db.models import Notification, utc_now
from repositories.notification_repository import NotificationRepository
from repositories.service_request_repository import ServiceRequestRepository
from repositories.user_repository import UserRepository
from services.predictor_client import NullTechnicianPredictor, TechnicianPredictor

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractAsyncContextManager]


class NotificationService:
    """Builds and persists notifications for scheduling events."""

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        *,
        user_id: int,
        title: str,
        message: str,
        notification_type: NotificationType,
        request_id: Optional[int] = None,
        recipient_email: Optional[str] = None,
    ) -> Notification:
        """
        Persist one notification (flush only).

        Args:
            db: Database session
            user_id: Recipient user ID
            title: Short title
            message: Body text
            notification_type: Kind of event
            request_id: Related service request
            recipient_email: Address for the email channel

        Returns:
            Created Notification
        """
        notification = await NotificationRepository.create(
            db,
            obj_in={
                "user_id": user_id,
                "title": title,
                "message": message,
                "type": notification_type,
                "service_request_id": request_id,
                "recipient_email": recipient_email,
            },
        )
        logger.info(
            f"[NOTIFICATION] Created {notification_type.value} for user {user_id}, "
            f"request_id={request_id}, notification_id={notification.id}"
        )
        return notification

    @staticmethod
    async def notify_technician_assigned(
        db: AsyncSession,
        request_id: int,
        technician_id: int,
    ) -> List[Notification]:
        """Tell the customer who is coming and the technician what to do."""
        request = await ServiceRequestRepository.find_by_id(db, request_id)
        technician = await UserRepository.find_by_id(db, technician_id)
        if request is None or technician is None:
            logger.warning(
                f"Skipping assignment notification: request {request_id} or "
                f"technician {technician_id} no longer exists"
            )
            return []

        customer = await UserRepository.find_by_id(db, request.customer_id)
        created = []

        if customer is not None:
            created.append(
                await NotificationService.create_notification(
                    db,
                    user_id=customer.id,
                    title="Technician Assigned",
                    message=(
                        f"Technician {technician.full_name} has been assigned to your service "
                        f"request '{request.title}'. They will contact you soon."
                    ),
                    notification_type=NotificationType.TECHNICIAN_ASSIGNED,
                    request_id=request.id,
                    recipient_email=customer.email,
                )
            )

        customer_name = customer.full_name if customer is not None else "unknown"
        created.append(
            await NotificationService.create_notification(
                db,
                user_id=technician.id,
                title="New Task Assigned",
                message=(
                    f"You have been assigned a new task: '{request.title}' (#{request.id}). "
                    f"Customer: {customer_name}"
                ),
                notification_type=NotificationType.SERVICE_REQUEST_ASSIGNED,
                request_id=request.id,
                recipient_email=technician.email,
            )
        )
        return created

    @staticmethod
    async def notify_service_completed(db: AsyncSession, request_id: int) -> List[Notification]:
        """Tell the customer their request has been completed."""
        request = await ServiceRequestRepository.find_by_id(db, request_id)
        if request is None:
            logger.warning(f"Skipping completion notification: request {request_id} no longer exists")
            return []

        customer = await UserRepository.find_by_id(db, request.customer_id)
        if customer is None:
            return []

        notification = await NotificationService.create_notification(
            db,
            user_id=customer.id,
            title="Service Completed",
            message=(
                f"Your service request '{request.title}' has been completed successfully. "
                f"We hope you are satisfied with our service."
            ),
            notification_type=NotificationType.SERVICE_REQUEST_COMPLETED,
            request_id=request.id,
            recipient_email=customer.email,
        )
        return [notification]


class NotificationDispatcher:
    """
    Fire-and-forget runner for post-commit side effects.

    Every dispatch opens a fresh session from ``session_scope`` so it never
    touches the caller's session or transaction.
    """

    def __init__(
        self,
        session_scope: SessionScope = get_cleanup_session,
        predictor: Optional[TechnicianPredictor] = None,
    ):
        self._session_scope = session_scope
        self._predictor = predictor or NullTechnicianPredictor()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def technician_assigned(self, request_id: int, technician_id: int) -> asyncio.Task:
        return self._dispatch(
            "technician_assigned",
            lambda db: NotificationService.notify_technician_assigned(db, request_id, technician_id),
        )

    def service_completed(self, request_id: int) -> asyncio.Task:
        return self._dispatch(
            "service_completed",
            lambda db: NotificationService.notify_service_completed(db, request_id),
        )

    def report_analysis(self, request_id: int) -> asyncio.Task:
        return self._dispatch(
            "report_analysis",
            lambda db: self._store_report_analysis(db, request_id),
        )

    async def _store_report_analysis(self, db: AsyncSession, request_id: int) -> None:
        request = await ServiceRequestRepository.find_by_id(db, request_id)
        if request is None or request.ai_report_analysis:
            return

        analysis = await self._predictor.request_report_analysis(request_id)
        if analysis:
            request.ai_report_analysis = analysis
            request.ai_analysis_date = utc_now()
            logger.info(f"Stored report analysis for request {request_id}")

    def _dispatch(
        self,
        kind: str,
        action: Callable[[AsyncSession], Awaitable[object]],
    ) -> asyncio.Task:
        task = asyncio.create_task(self._run(kind, action), name=f"notify:{kind}")
        self._tasks.add(task)
        notifications_in_flight.inc()
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        notifications_in_flight.dec()

    async def _run(self, kind: str, action: Callable[[AsyncSession], Awaitable[object]]) -> None:
        try:
            async with self._session_scope() as db:
                await action(db)
        except Exception as exc:
            # Side effects never fail the state transition that triggered them
            logger.error(f"Notification '{kind}' failed: {type(exc).__name__}: {exc}", exc_info=True)
            track_notification(kind, success=False)
            return
        track_notification(kind, success=True)

    async def drain(self) -> None:
        """Wait for every in-flight dispatch (shutdown and tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
