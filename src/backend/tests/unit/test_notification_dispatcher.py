"""
Unit tests for notifications and the background dispatcher.
"""

from contextlib import asynccontextmanager

import pytest

from db.model_enum import NotificationType, ServiceStatus
from repositories.notification_repository import NotificationRepository
from services.notification_service import NotificationDispatcher, NotificationService
from services.predictor_client import NullTechnicianPredictor
from services.work_assignment_service import WorkAssignmentService
from tests.factories import create_customer, create_request, create_technician


class ExplodingPredictor(NullTechnicianPredictor):

    async def request_report_analysis(self, request_id):
        raise RuntimeError("predictor crashed")


@asynccontextmanager
async def broken_scope():
    raise RuntimeError("database unavailable")
    yield


class TestNotificationService:

    @pytest.mark.asyncio
    async def test_assignment_notifications(self, db_session):
        customer = await create_customer(db_session)
        technician = await create_technician(db_session, first_name="Mert", last_name="Aydın")
        request = await create_request(db_session, customer, title="Laptop screen")

        created = await NotificationService.notify_technician_assigned(db_session, request.id, technician.id)
        await db_session.commit()

        assert [n.user_id for n in created] == [customer.id, technician.id]
        assert "Mert Aydın" in created[0].message
        assert "Laptop screen" in created[1].message
        assert created[1].recipient_email == technician.email

    @pytest.mark.asyncio
    async def test_missing_request_is_skipped(self, db_session):
        technician = await create_technician(db_session)

        assert await NotificationService.notify_technician_assigned(db_session, 99999, technician.id) == []
        assert await NotificationService.notify_service_completed(db_session, 99999) == []


class TestDispatcher:

    @pytest.mark.asyncio
    async def test_dispatch_runs_in_its_own_session(self, db_session, dispatcher):
        customer = await create_customer(db_session)
        technician = await create_technician(db_session)
        request = await create_request(db_session, customer)

        dispatcher.technician_assigned(request.id, technician.id)
        assert dispatcher.pending == 1
        await dispatcher.drain()

        assert dispatcher.pending == 0
        notifications = await NotificationRepository.find_for_request(db_session, request.id)
        assert len(notifications) == 2

    @pytest.mark.asyncio
    async def test_failures_are_contained(self, db_session):
        customer = await create_customer(db_session)
        request = await create_request(db_session, customer)
        dispatcher = NotificationDispatcher(session_scope=broken_scope)

        task = dispatcher.service_completed(request.id)
        await dispatcher.drain()

        assert task.done()
        assert task.exception() is None
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_predictor_failure_does_not_fail_completion(
        self, db_session, session_scope, workload_service, selector
    ):
        dispatcher = NotificationDispatcher(session_scope=session_scope, predictor=ExplodingPredictor())
        service = WorkAssignmentService(
            selector=selector, workload=workload_service, dispatcher=dispatcher
        )
        customer = await create_customer(db_session)
        technician = await create_technician(db_session)
        request = await create_request(db_session, customer)
        assignment = await service.create_assignment(db_session, request.id, technician.id)

        await service.complete_assignment(db_session, assignment.id)
        await dispatcher.drain()
        await db_session.refresh(request)

        assert request.status == ServiceStatus.COMPLETED
        assert request.ai_report_analysis is None
        notifications = await NotificationRepository.find_for_request(db_session, request.id)
        assert any(n.type == NotificationType.SERVICE_REQUEST_COMPLETED for n in notifications)

    @pytest.mark.asyncio
    async def test_existing_analysis_is_kept(self, db_session, session_scope, fake_predictor):
        customer = await create_customer(db_session)
        request = await create_request(db_session, customer)
        request.ai_report_analysis = "Earlier analysis"
        await db_session.commit()
        fake_predictor.analysis = "New analysis"
        dispatcher = NotificationDispatcher(session_scope=session_scope, predictor=fake_predictor)

        dispatcher.report_analysis(request.id)
        await dispatcher.drain()
        await db_session.refresh(request)

        assert request.ai_report_analysis == "Earlier analysis"
