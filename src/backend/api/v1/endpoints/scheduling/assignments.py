"""
Work Assignment Endpoints.

HTTP endpoints for booking technicians on service requests and driving
assignments through their lifecycle.

Assignment Lifecycle:
1. Assigned     - created by create / manual / auto-assign / reassign
2. InProgress   - technician started the work
3. Completed    - work done; the request completes once no active work remains
   Cancelled    - from Assigned or InProgress; terminal

Endpoints:
Creation:
- POST /                        - Assign a chosen technician
- POST /manual                  - Manager assignment (default note)
- POST /auto/{request_id}       - Pick the best available technician

Queries:
- GET /{assignment_id}                    - One assignment
- GET /technician/{technician_id}         - Assignments of a technician
- GET /request/{request_id}               - Assignment history of a request
- GET /scheduled?date=                    - Assignments scheduled on a day
- GET /overdue                            - Active assignments past their date

Transitions:
- POST /{assignment_id}/start
- POST /{assignment_id}/complete
- POST /{assignment_id}/cancel
- POST /{assignment_id}/reassign

Administration:
- DELETE /{assignment_id}       - Hard delete (data correction only)

Errors:
- 404 when a request, technician or assignment does not exist
- 409 when a scheduling rule forbids the operation
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_session
from core.dependencies import get_assignment_service
from schemas.work_assignment import (
    CancelAssignmentRequest,
    CompleteAssignmentRequest,
    ManualAssignRequest,
    ReassignRequest,
    ReassignResponse,
    WorkAssignmentCreate,
    WorkAssignmentRead,
    to_naive_utc,
)
from services.work_assignment_service import WorkAssignmentService

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Creation
# ============================================================================


@router.post("", response_model=WorkAssignmentRead, status_code=status.HTTP_201_CREATED)
async def create_assignment(
    payload: WorkAssignmentCreate,
    db: AsyncSession = Depends(get_session),
    service: WorkAssignmentService = Depends(get_assignment_service),
):
    """Assign a technician to a service request."""
    return await service.create_assignment(
        db,
        payload.service_request_id,
        payload.technician_id,
        scheduled_date=payload.scheduled_date,
        notes=payload.notes,
        estimated_hours=payload.estimated_hours,
    )


@router.post("/manual", response_model=WorkAssignmentRead, status_code=status.HTTP_201_CREATED)
async def manual_assign(
    payload: ManualAssignRequest,
    db: AsyncSession = Depends(get_session),
    service: WorkAssignmentService = Depends(get_assignment_service),
):
    """Assign a technician picked by a manager."""
    return await service.manual_assign(
        db,
        payload.service_request_id,
        payload.technician_id,
        scheduled_date=payload.scheduled_date,
        notes=payload.notes,
    )


@router.post(
    "/auto/{request_id}",
    response_model=WorkAssignmentRead,
    status_code=status.HTTP_201_CREATED,
)
async def auto_assign(
    request_id: int,
    db: AsyncSession = Depends(get_session),
    service: WorkAssignmentService = Depends(get_assignment_service),
):
    """
    Assign the best available technician.

    Candidates come from the predictor, or from specialization keywords and
    current workload when the predictor has no suggestion. Returns 409 when
    every candidate is at capacity today.
    """
    return await service.auto_assign(db, request_id)


# ============================================================================
# Queries
# ============================================================================


@router.get("/scheduled", response_model=List[WorkAssignmentRead])
async def get_scheduled_assignments(
    date: datetime = Query(..., description="Any moment of the day to list (UTC)"),
    technician_id: Optional[int] = Query(None, alias="technicianId"),
    db: AsyncSession = Depends(get_session),
    service: WorkAssignmentService = Depends(get_assignment_service),
):
    """List assignments scheduled on the calendar day of ``date``."""
    return await service.get_scheduled_assignments(db, to_naive_utc(date), technician_id)


@router.get("/overdue", response_model=List[WorkAssignmentRead])
async def get_overdue_assignments(
    db: AsyncSession = Depends(get_session),
    service: WorkAssignmentService = Depends(get_assignment_service),
):
    """List active assignments whose scheduled date has passed."""
    return await service.get_overdue_assignments(db)


@router.get("/technician/{technician_id}", response_model=List[WorkAssignmentRead])
async def get_technician_assignments(
    technician_id: int,
    active_only: bool = Query(False, alias="activeOnly"),
    db: AsyncSession = Depends(get_session),
    service: WorkAssignmentService = Depends(get_assignment_service),
):
    """List assignments of a technician, optionally only Assigned/InProgress ones."""
    return await service.get_by_technician(db, technician_id, active_only=active_only)


@router.get("/request/{request_id}", response_model=List[WorkAssignmentRead])
async def get_request_assignments(
    request_id: int,
    db: AsyncSession = Depends(get_session),
    service: WorkAssignmentService = Depends(get_assignment_service),
):
    """Assignment history of a service request, newest first."""
    return await service.get_by_service_request(db, request_id)


@router.get("/{assignment_id}", response_model=WorkAssignmentRead)
async def get_assignment(
    assignment_id: int,
    db: AsyncSession = Depends(get_session),
    service: WorkAssignmentService = Depends(get_assignment_service),
):
    return await service.get_assignment(db, assignment_id)


# ============================================================================
# Transitions
# ============================================================================


@router.post("/{assignment_id}/start", response_model=WorkAssignmentRead)
async def start_assignment(
    assignment_id: int,
    db: AsyncSession = Depends(get_session),
    service: WorkAssignmentService = Depends(get_assignment_service),
):
    """Start work on an Assigned assignment."""
    return await service.start_assignment(db, assignment_id)


@router.post("/{assignment_id}/complete", response_model=WorkAssignmentRead)
async def complete_assignment(
    assignment_id: int,
    payload: Optional[CompleteAssignmentRequest] = None,
    db: AsyncSession = Depends(get_session),
    service: WorkAssignmentService = Depends(get_assignment_service),
):
    """Complete an assignment; may complete the parent request."""
    payload = payload or CompleteAssignmentRequest()
    return await service.complete_assignment(
        db,
        assignment_id,
        completion_notes=payload.completion_notes,
        actual_hours=payload.actual_hours,
    )


@router.post("/{assignment_id}/cancel", response_model=WorkAssignmentRead)
async def cancel_assignment(
    assignment_id: int,
    payload: Optional[CancelAssignmentRequest] = None,
    db: AsyncSession = Depends(get_session),
    service: WorkAssignmentService = Depends(get_assignment_service),
):
    """Cancel an active assignment."""
    reason = payload.reason if payload else None
    return await service.cancel_assignment(db, assignment_id, reason=reason)


@router.post("/{assignment_id}/reassign", response_model=ReassignResponse)
async def reassign(
    assignment_id: int,
    payload: ReassignRequest,
    db: AsyncSession = Depends(get_session),
    service: WorkAssignmentService = Depends(get_assignment_service),
):
    """
    Move an assignment to another technician.

    The old assignment is cancelled and a new one created in a single
    transaction; on failure neither change is kept.
    """
    cancelled, created = await service.reassign(
        db, assignment_id, payload.new_technician_id, reason=payload.reason
    )
    return ReassignResponse(
        cancelled=WorkAssignmentRead.model_validate(cancelled),
        created=WorkAssignmentRead.model_validate(created),
    )


# ============================================================================
# Administration
# ============================================================================


@router.delete("/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assignment(
    assignment_id: int,
    db: AsyncSession = Depends(get_session),
    service: WorkAssignmentService = Depends(get_assignment_service),
):
    """Hard-delete an assignment. Normal flows should cancel instead."""
    await service.delete_assignment(db, assignment_id)
