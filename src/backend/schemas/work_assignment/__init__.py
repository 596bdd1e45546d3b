"""Work assignment schemas package."""
from .work_assignment import (
    CancelAssignmentRequest,
    CompleteAssignmentRequest,
    ManualAssignRequest,
    ReassignRequest,
    ReassignResponse,
    WorkAssignmentCreate,
    WorkAssignmentRead,
    to_naive_utc,
)

__all__ = [
    "CancelAssignmentRequest",
    "CompleteAssignmentRequest",
    "ManualAssignRequest",
    "ReassignRequest",
    "ReassignResponse",
    "WorkAssignmentCreate",
    "WorkAssignmentRead",
    "to_naive_utc",
]
