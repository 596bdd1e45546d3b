"""
Workload Endpoints.

Read-only technician workload projections for manager dashboards and the
manual assignment picker.

Endpoints:
- GET /summary                      - Current load of active technicians
- GET /detailed                     - Per-technician history and recent work
- GET /technicians/{technician_id}  - Detailed view of one technician
- GET /performance                  - Completion and punctuality metrics
- GET /technician-options           - Ranked technicians for manual assignment
- GET /availability/{technician_id} - Capacity check for a given day

Workload status:
- Available: no active assignments
- Normal:    1-2
- Busy:      3-4
- Overloaded: 5 or more
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_session
from core.dependencies import (
    get_availability_service,
    get_technician_selector,
    get_workload_service,
)
from schemas.work_assignment import to_naive_utc
from schemas.workload import (
    AvailabilityRead,
    PerformanceMetrics,
    TechnicianOption,
    TechnicianWorkload,
    TechnicianWorkloadDetail,
)
from services.availability_service import AvailabilityService
from services.technician_selector import TechnicianSelector
from services.workload_service import WorkloadService

router = APIRouter()


@router.get("/summary", response_model=List[TechnicianWorkload])
async def get_workload_summary(
    refresh: bool = Query(False, description="Bypass the shared cache"),
    db: AsyncSession = Depends(get_session),
    service: WorkloadService = Depends(get_workload_service),
):
    """Current load of every active technician."""
    return await service.get_workload_summary(db, use_cache=not refresh)


@router.get("/detailed", response_model=List[TechnicianWorkloadDetail])
async def get_detailed_workload(
    db: AsyncSession = Depends(get_session),
    service: WorkloadService = Depends(get_workload_service),
):
    return await service.get_detailed_workload(db)


@router.get("/technicians/{technician_id}", response_model=TechnicianWorkloadDetail)
async def get_technician_workload(
    technician_id: int,
    db: AsyncSession = Depends(get_session),
    service: WorkloadService = Depends(get_workload_service),
):
    return await service.get_technician_workload_details(db, technician_id)


@router.get("/performance", response_model=PerformanceMetrics)
async def get_performance_metrics(
    technician_id: Optional[int] = Query(None, alias="technicianId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_session),
    service: WorkloadService = Depends(get_workload_service),
):
    """
    Assignment performance over an optional date range.

    Without ``technicianId`` the response includes a per-technician breakdown.
    """
    return await service.get_performance_metrics(
        db,
        technician_id=technician_id,
        start=to_naive_utc(start_date),
        end=to_naive_utc(end_date),
    )


@router.get("/technician-options", response_model=List[TechnicianOption])
async def get_technician_options(
    request_id: Optional[int] = Query(None, alias="requestId"),
    exclude_technician_id: Optional[int] = Query(None, alias="excludeTechnicianId"),
    db: AsyncSession = Depends(get_session),
    selector: TechnicianSelector = Depends(get_technician_selector),
):
    """Active technicians ranked for a request, recommended first."""
    return await selector.get_technician_options(
        db,
        request_id=request_id,
        exclude_technician_id=exclude_technician_id,
    )


@router.get("/availability/{technician_id}", response_model=AvailabilityRead)
async def get_availability(
    technician_id: int,
    date: datetime = Query(..., description="Any moment of the day to check (UTC)"),
    db: AsyncSession = Depends(get_session),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Whether a technician can take one more assignment on a day."""
    day = to_naive_utc(date)
    return AvailabilityRead(
        technician_id=technician_id,
        date=day,
        active_assignments=await service.count_active_on_day(db, technician_id, day),
        capacity=service.capacity,
        is_available=await service.is_available(db, technician_id, day),
    )
