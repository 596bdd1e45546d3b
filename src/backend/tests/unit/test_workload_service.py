"""
Unit tests for workload and performance projections.

Tests:
- Workload classification and scoring helpers
- Summary (active technicians only, cache hit and miss)
- Per-technician detail
- Performance metrics, global and scoped
"""

from datetime import timedelta

import pytest
import pytest_asyncio

from core.cache import WORKLOAD_SUMMARY_KEY
from core.exceptions import NotFoundError
from db.model_enum import WorkAssignmentStatus, WorkloadStatus
from db.models import WorkAssignment, utc_now
from services.workload_service import (
    WorkloadService,
    classify_workload,
    on_time_rate,
    performance_score,
    workload_percentage,
)
from tests.factories import (
    create_assignment,
    create_customer,
    create_request,
    create_technician,
    today_at,
)


# ============================================================================
# Helpers
# ============================================================================

class TestClassification:

    @pytest.mark.parametrize(
        "active, expected",
        [
            (0, WorkloadStatus.AVAILABLE),
            (1, WorkloadStatus.NORMAL),
            (2, WorkloadStatus.NORMAL),
            (3, WorkloadStatus.BUSY),
            (4, WorkloadStatus.BUSY),
            (5, WorkloadStatus.OVERLOADED),
            (9, WorkloadStatus.OVERLOADED),
        ],
    )
    def test_classify_workload(self, active, expected):
        assert classify_workload(active) == expected

    def test_colors(self):
        assert WorkloadStatus.AVAILABLE.color == "success"
        assert WorkloadStatus.OVERLOADED.color == "danger"

    def test_workload_percentage(self):
        assert workload_percentage(3, 5) == 60.0
        assert workload_percentage(7, 5) == 140.0
        assert workload_percentage(1, 0) == 0.0


class TestScoring:

    def test_volume_is_capped(self):
        assert performance_score(100, 100.0) == 10.0

    def test_mixed(self):
        assert performance_score(12, 50.0) == 3.7

    def test_nothing_done(self):
        assert performance_score(0, 0.0) == 0.0

    def test_on_time_rate(self):
        now = utc_now()
        completed = [
            WorkAssignment(
                service_request_id=1, technician_id=1, status=WorkAssignmentStatus.COMPLETED,
                assigned_date=now, scheduled_date=now, completed_date=now - timedelta(hours=1),
            ),
            WorkAssignment(
                service_request_id=1, technician_id=1, status=WorkAssignmentStatus.COMPLETED,
                assigned_date=now, scheduled_date=now, completed_date=now + timedelta(hours=1),
            ),
            WorkAssignment(
                service_request_id=1, technician_id=1, status=WorkAssignmentStatus.COMPLETED,
                assigned_date=now, scheduled_date=None, completed_date=now,
            ),
        ]

        assert on_time_rate(completed) == pytest.approx(200 / 3)
        assert on_time_rate([]) == 0.0


# ============================================================================
# Summary
# ============================================================================

@pytest.fixture
def cached_workload(mock_cache) -> WorkloadService:
    return WorkloadService(cache=mock_cache, capacity=5, cache_ttl=30)


class TestWorkloadSummary:

    @pytest.mark.asyncio
    async def test_summary_of_active_technicians(self, db_session, cached_workload, mock_cache):
        idle = await create_technician(db_session, first_name="Ayla", specializations="Network, WiFi")
        busy = await create_technician(db_session, first_name="Burak")
        await create_technician(db_session, first_name="Cem", is_active=False)
        customer = await create_customer(db_session)
        request = await create_request(db_session, customer)
        for _ in range(3):
            await create_assignment(db_session, request, busy)
        await create_assignment(
            db_session, request, busy,
            status=WorkAssignmentStatus.COMPLETED,
            started_date=today_at(8), completed_date=today_at(10),
        )

        summary = await cached_workload.get_workload_summary(db_session)

        assert [s.technician_id for s in summary] == [idle.id, busy.id]
        assert summary[0].active_assignments == 0
        assert summary[0].workload_status == WorkloadStatus.AVAILABLE
        assert summary[0].specializations == ["Network", "WiFi"]
        assert summary[0].average_completion_time == 0.0

        assert summary[1].active_assignments == 3
        assert summary[1].workload_percentage == 60.0
        assert summary[1].workload_status == WorkloadStatus.BUSY
        assert summary[1].workload_status_color == "warning"
        assert summary[1].max_concurrent_assignments == 5
        assert summary[1].average_completion_time == pytest.approx(2.0)

        mock_cache.set.assert_awaited_once()
        assert mock_cache.set.await_args.args[0] == WORKLOAD_SUMMARY_KEY
        assert mock_cache.set.await_args.kwargs["ttl"] == 30

    @pytest.mark.asyncio
    async def test_cache_hit_skips_database(self, db_session, cached_workload, mock_cache):
        mock_cache.get.return_value = [
            {
                "technicianId": 7,
                "technicianName": "Cached Tech",
                "email": "cached@example.com",
                "specializations": [],
                "activeAssignments": 1,
                "maxConcurrentAssignments": 5,
                "workloadPercentage": 20.0,
                "averageCompletionTime": 0.0,
                "workloadStatus": "Normal",
                "workloadStatusColor": "info",
            }
        ]
        await create_technician(db_session)

        summary = await cached_workload.get_workload_summary(db_session)

        assert [s.technician_id for s in summary] == [7]
        assert summary[0].workload_status == WorkloadStatus.NORMAL
        mock_cache.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refresh_bypasses_cache(self, db_session, cached_workload, mock_cache):
        mock_cache.get.return_value = [{"technicianId": 7}]
        technician = await create_technician(db_session)

        summary = await cached_workload.get_workload_summary(db_session, use_cache=False)

        assert [s.technician_id for s in summary] == [technician.id]
        mock_cache.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_zero_ttl_disables_cache(self, db_session, mock_cache):
        service = WorkloadService(cache=mock_cache, capacity=5, cache_ttl=0)
        await create_technician(db_session)

        await service.get_workload_summary(db_session)

        mock_cache.get.assert_not_awaited()
        mock_cache.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalidate(self, cached_workload, mock_cache):
        await cached_workload.invalidate()

        mock_cache.delete.assert_awaited_once_with(WORKLOAD_SUMMARY_KEY)

    @pytest.mark.asyncio
    async def test_workload_percentages(self, db_session, cached_workload):
        technician = await create_technician(db_session)
        customer = await create_customer(db_session)
        request = await create_request(db_session, customer)
        await create_assignment(db_session, request, technician)
        await create_assignment(db_session, request, technician, status=WorkAssignmentStatus.CANCELLED)

        assert await cached_workload.get_workload_percentages(db_session) == {technician.id: 20.0}


# ============================================================================
# Detail
# ============================================================================

class TestWorkloadDetail:

    @pytest_asyncio.fixture
    async def loaded_technician(self, db_session):
        technician = await create_technician(db_session, first_name="Deniz", specializations="Donanım")
        customer = await create_customer(db_session)
        request = await create_request(db_session, customer, title="Printer jam")
        two_days_ago = utc_now() - timedelta(days=2)

        await create_assignment(
            db_session, request, technician,
            scheduled_date=today_at() - timedelta(days=1),
        )
        await create_assignment(
            db_session, request, technician,
            status=WorkAssignmentStatus.IN_PROGRESS, started_date=utc_now(),
        )
        await create_assignment(
            db_session, request, technician,
            status=WorkAssignmentStatus.COMPLETED,
            assigned_date=two_days_ago,
            started_date=two_days_ago,
            completed_date=two_days_ago + timedelta(days=2),
        )
        await create_assignment(
            db_session, request, technician,
            status=WorkAssignmentStatus.CANCELLED,
            assigned_date=two_days_ago,
        )
        return technician

    @pytest.mark.asyncio
    async def test_technician_detail(self, db_session, workload_service, loaded_technician):
        detail = await workload_service.get_technician_workload_details(db_session, loaded_technician.id)

        assert detail.total_assignments == 4
        assert detail.pending_assignments == 1
        assert detail.in_progress_assignments == 1
        assert detail.completed_assignments == 1
        assert detail.cancelled_assignments == 1
        assert detail.active_assignments == 2
        assert detail.workload_percentage == 40.0
        assert detail.workload_status == WorkloadStatus.NORMAL
        assert detail.completion_rate == 25.0
        assert detail.average_completion_days == pytest.approx(2.0)
        assert detail.overdue_assignments == 1
        assert detail.specializations == ["Donanım"]
        assert detail.last_completion_date is not None

        assert len(detail.recent_assignments) == 4
        assert {r.service_request_title for r in detail.recent_assignments} == {"Printer jam"}
        overdue = [r for r in detail.recent_assignments if r.is_overdue]
        assert len(overdue) == 1
        completed = next(r for r in detail.recent_assignments if r.status == WorkAssignmentStatus.COMPLETED)
        assert completed.days_in_progress == 2
        assert completed.status_color == "success"

    @pytest.mark.asyncio
    async def test_unknown_technician(self, db_session, workload_service):
        with pytest.raises(NotFoundError):
            await workload_service.get_technician_workload_details(db_session, 99999)

    @pytest.mark.asyncio
    async def test_detailed_workload_includes_inactive(self, db_session, workload_service, loaded_technician):
        retired = await create_technician(db_session, first_name="Ahmet", is_active=False)

        details = await workload_service.get_detailed_workload(db_session)

        assert [d.technician_id for d in details] == [retired.id, loaded_technician.id]
        assert details[0].is_active is False
        assert details[0].total_assignments == 0
        assert details[0].completion_rate == 0.0
        assert details[0].recent_assignments == []


# ============================================================================
# Performance
# ============================================================================

class TestPerformanceMetrics:

    @pytest_asyncio.fixture
    async def team(self, db_session):
        fast = await create_technician(db_session, first_name="Ayla")
        idle = await create_technician(db_session, first_name="Berk")
        customer = await create_customer(db_session)
        request = await create_request(db_session, customer)

        await create_assignment(
            db_session, request, fast,
            status=WorkAssignmentStatus.COMPLETED,
            scheduled_date=today_at(11), started_date=today_at(8), completed_date=today_at(10),
        )
        await create_assignment(
            db_session, request, fast,
            status=WorkAssignmentStatus.COMPLETED,
            scheduled_date=today_at(9), started_date=today_at(8), completed_date=today_at(12),
        )
        await create_assignment(db_session, request, fast, status=WorkAssignmentStatus.CANCELLED)
        await create_assignment(
            db_session, request, fast,
            scheduled_date=today_at() - timedelta(days=1),
        )
        return fast, idle

    @pytest.mark.asyncio
    async def test_global_metrics(self, db_session, workload_service, team):
        fast, idle = team

        metrics = await workload_service.get_performance_metrics(db_session)

        assert metrics.technician_id is None
        assert metrics.total_assignments == 4
        assert metrics.completed_assignments == 2
        assert metrics.cancelled_assignments == 1
        assert metrics.overdue_assignments == 1
        assert metrics.completion_rate == 50.0
        assert metrics.average_completion_time == pytest.approx(3.0)
        assert metrics.on_time_completion_rate == 50.0

        assert set(metrics.technician_performances) == {fast.id, idle.id}
        fast_perf = metrics.technician_performances[fast.id]
        assert fast_perf.completed_tasks == 2
        assert fast_perf.on_time_rate == 50.0
        assert fast_perf.performance_score == 2.7
        idle_perf = metrics.technician_performances[idle.id]
        assert idle_perf.completed_tasks == 0
        assert idle_perf.performance_score == 0.0

    @pytest.mark.asyncio
    async def test_scoped_to_technician(self, db_session, workload_service, team):
        fast, idle = team

        metrics = await workload_service.get_performance_metrics(db_session, technician_id=idle.id)

        assert metrics.technician_id == idle.id
        assert metrics.total_assignments == 0
        assert metrics.completion_rate == 0.0
        assert metrics.technician_performances == {}

    @pytest.mark.asyncio
    async def test_date_range(self, db_session, workload_service):
        technician = await create_technician(db_session)
        customer = await create_customer(db_session)
        request = await create_request(db_session, customer)
        await create_assignment(db_session, request, technician, assigned_date=utc_now() - timedelta(days=10))
        await create_assignment(db_session, request, technician)

        metrics = await workload_service.get_performance_metrics(
            db_session, start=utc_now() - timedelta(days=2), end=utc_now() + timedelta(minutes=1)
        )

        assert metrics.total_assignments == 1

    @pytest.mark.asyncio
    async def test_unknown_technician(self, db_session, workload_service):
        with pytest.raises(NotFoundError):
            await workload_service.get_performance_metrics(db_session, technician_id=99999)
