"""
Database models and enums for the scheduler.
"""
from .model_enum import (
    NotificationType,
    RequestPriority,
    ServiceCategory,
    ServiceStatus,
    UserRole,
    WorkAssignmentStatus,
    WorkloadStatus,
)
from .models import (
    Notification,
    ServiceRequest,
    TableModel,
    TechnicianProfile,
    User,
    WorkAssignment,
    utc_now,
)

__all__ = [
    "Notification",
    "NotificationType",
    "RequestPriority",
    "ServiceCategory",
    "ServiceRequest",
    "ServiceStatus",
    "TableModel",
    "TechnicianProfile",
    "User",
    "UserRole",
    "WorkAssignment",
    "WorkAssignmentStatus",
    "WorkloadStatus",
    "utc_now",
]
