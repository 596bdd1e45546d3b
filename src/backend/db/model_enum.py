"""
Model enums for database models.

All of these have a fixed set of values that never change at runtime, so
they are stored as short strings rather than lookup tables.
"""
from enum import Enum


class UserRole(str, Enum):
    """
    Role tag on the single User aggregate.

    Technicians additionally carry a TechnicianProfile row.
    """
    CUSTOMER = "Customer"
    TECHNICIAN = "Technician"
    MANAGER = "Manager"
    ADMIN = "Admin"


class ServiceCategory(str, Enum):
    SOFTWARE_ISSUE = "SoftwareIssue"
    HARDWARE_ISSUE = "HardwareIssue"
    NETWORK_ISSUE = "NetworkIssue"
    SECURITY_ISSUE = "SecurityIssue"
    MAINTENANCE = "Maintenance"
    OTHER = "Other"


class RequestPriority(str, Enum):
    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"
    CRITICAL = "Critical"


class ServiceStatus(str, Enum):
    """Aggregate status of a service request."""
    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    ON_HOLD = "OnHold"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    REJECTED = "Rejected"


class WorkAssignmentStatus(str, Enum):
    """
    State of a single technician-to-request binding.

    Allowed transitions: Assigned -> InProgress -> Completed, and
    Assigned|InProgress -> Cancelled. Completed and Cancelled are terminal.
    """
    ASSIGNED = "Assigned"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkAssignmentStatus.COMPLETED, WorkAssignmentStatus.CANCELLED)

    @property
    def color(self) -> str:
        """Bootstrap contextual colour used by dashboards."""
        return _ASSIGNMENT_STATUS_COLORS[self]

    @classmethod
    def active(cls) -> tuple["WorkAssignmentStatus", ...]:
        return (cls.ASSIGNED, cls.IN_PROGRESS)


_ASSIGNMENT_STATUS_COLORS = {
    WorkAssignmentStatus.ASSIGNED: "warning",
    WorkAssignmentStatus.IN_PROGRESS: "primary",
    WorkAssignmentStatus.COMPLETED: "success",
    WorkAssignmentStatus.CANCELLED: "danger",
}


class WorkloadStatus(str, Enum):
    """Classification of a technician's active assignment count."""
    AVAILABLE = "Available"
    NORMAL = "Normal"
    BUSY = "Busy"
    OVERLOADED = "Overloaded"

    @property
    def color(self) -> str:
        return _WORKLOAD_STATUS_COLORS[self]


_WORKLOAD_STATUS_COLORS = {
    WorkloadStatus.AVAILABLE: "success",
    WorkloadStatus.NORMAL: "info",
    WorkloadStatus.BUSY: "warning",
    WorkloadStatus.OVERLOADED: "danger",
}


class NotificationType(str, Enum):
    SERVICE_REQUEST_CREATED = "ServiceRequestCreated"
    SERVICE_REQUEST_ASSIGNED = "ServiceRequestAssigned"
    STATUS_CHANGED = "StatusChanged"
    SERVICE_REQUEST_COMPLETED = "ServiceRequestCompleted"
    TECHNICIAN_ASSIGNED = "TechnicianAssigned"
    URGENT_REQUEST = "UrgentRequest"
    SYSTEM_ALERT = "SystemAlert"
