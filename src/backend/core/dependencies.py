"""
Service dependencies for FastAPI.

The lifespan builds one instance of each scheduling service and stores it on
``app.state``; these providers hand them to endpoints so tests can swap them
through ``app.dependency_overrides``.
"""

from fastapi import Request

from services.availability_service import AvailabilityService
from services.technician_selector import TechnicianSelector
from services.work_assignment_service import WorkAssignmentService
from services.workload_service import WorkloadService


def get_assignment_service(request: Request) -> WorkAssignmentService:
    """Get the work assignment service of the running app."""
    return request.app.state.assignment_service


def get_workload_service(request: Request) -> WorkloadService:
    return request.app.state.workload_service


def get_technician_selector(request: Request) -> TechnicianSelector:
    return request.app.state.technician_selector


def get_availability_service(request: Request) -> AvailabilityService:
    return request.app.state.availability_service
