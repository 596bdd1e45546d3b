"""
Schemas package for API validation and serialization.

Request bodies and read projections for the scheduling API; the table
models themselves live in ``db.models``.
"""
from .work_assignment import (
    CancelAssignmentRequest,
    CompleteAssignmentRequest,
    ManualAssignRequest,
    ReassignRequest,
    ReassignResponse,
    WorkAssignmentCreate,
    WorkAssignmentRead,
)
from .workload import (
    AvailabilityRead,
    PerformanceMetrics,
    RecentAssignment,
    TechnicianOption,
    TechnicianPerformance,
    TechnicianWorkload,
    TechnicianWorkloadDetail,
)

__all__ = [
    "AvailabilityRead",
    "CancelAssignmentRequest",
    "CompleteAssignmentRequest",
    "ManualAssignRequest",
    "PerformanceMetrics",
    "ReassignRequest",
    "ReassignResponse",
    "RecentAssignment",
    "TechnicianOption",
    "TechnicianPerformance",
    "TechnicianWorkload",
    "TechnicianWorkloadDetail",
    "WorkAssignmentCreate",
    "WorkAssignmentRead",
]
