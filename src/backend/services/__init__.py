"""
Scheduling services: availability, selection, workload and the assignment lifecycle.
"""
from .availability_service import AvailabilityService
from .notification_service import NotificationDispatcher, NotificationService
from .technician_selector import TechnicianSelector
from .work_assignment_service import WorkAssignmentService
from .workload_service import WorkloadService

__all__ = [
    "AvailabilityService",
    "NotificationDispatcher",
    "NotificationService",
    "TechnicianSelector",
    "WorkAssignmentService",
    "WorkloadService",
]
