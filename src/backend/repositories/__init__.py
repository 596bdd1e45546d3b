"""
Repository layer for database operations.

This package contains all data access logic isolated from business logic.
Each repository handles queries for a specific entity.
"""

from repositories.base_repository import BaseRepository
from repositories.notification_repository import NotificationRepository
from repositories.service_request_repository import ServiceRequestRepository
from repositories.user_repository import UserRepository
from repositories.work_assignment_repository import WorkAssignmentRepository, day_bounds

__all__ = [
    "BaseRepository",
    "NotificationRepository",
    "ServiceRequestRepository",
    "UserRepository",
    "WorkAssignmentRepository",
    "day_bounds",
]
