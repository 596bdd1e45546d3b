"""
Database models for the work-assignment scheduler.

Users are a single aggregate with a role tag; technician-only data lives in
TechnicianProfile. A ServiceRequest accumulates WorkAssignment rows over its
life (one per reassignment) and points at the authoritative non-terminal one
through ``current_assignment_id``.
"""

from datetime import datetime, timezone
from typing import List, Optional, Type

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlmodel import Field, SQLModel

from db.model_enum import (
    NotificationType,
    RequestPriority,
    ServiceCategory,
    ServiceStatus,
    UserRole,
    WorkAssignmentStatus,
)


def utc_now() -> datetime:
    """
    Current time in UTC, timezone-naive, for database storage.

    All timestamps are stored naive UTC; calendar-day comparisons for
    capacity checks are therefore UTC days.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def enum_type(enum_cls: Type) -> SAEnum:
    """Store a str enum by value in a portable VARCHAR column."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )


class TableModel(SQLModel):
    """Base table model with common functionality."""

    pass


class User(TableModel, table=True):
    """Any person known to the system; behaviour is selected by ``role``."""

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    email: str = Field(
        sa_column=Column(String(255), unique=True, nullable=False),
        description="Login and notification address",
    )
    phone: Optional[str] = Field(default=None, max_length=20)
    role: UserRole = Field(
        default=UserRole.CUSTOMER,
        sa_column=Column(enum_type(UserRole), nullable=False, index=True),
    )
    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, default=True, nullable=False),
    )
    created_date: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class TechnicianProfile(TableModel, table=True):
    """Technician-specific payload for a User with role=Technician."""

    __tablename__ = "technician_profiles"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("users.id", ondelete="CASCADE"),
            unique=True,
            nullable=False,
        ),
    )
    specializations: Optional[str] = Field(
        default=None,
        sa_column=Column(String(500), nullable=True),
        description="Free-text specializations, comma separated",
    )
    notes: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    @property
    def specialization_list(self) -> List[str]:
        if not self.specializations:
            return []
        return [s.strip() for s in self.specializations.split(",") if s.strip()]


class ServiceRequest(TableModel, table=True):
    """Customer-filed support ticket."""

    __tablename__ = "service_requests"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=200)
    description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    category: ServiceCategory = Field(
        default=ServiceCategory.OTHER,
        sa_column=Column(enum_type(ServiceCategory), nullable=False),
    )
    priority: RequestPriority = Field(
        default=RequestPriority.NORMAL,
        sa_column=Column(enum_type(RequestPriority), nullable=False),
    )
    status: ServiceStatus = Field(
        default=ServiceStatus.PENDING,
        sa_column=Column(enum_type(ServiceStatus), nullable=False, index=True),
    )

    customer_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id"), nullable=False),
    )
    assigned_technician_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("users.id"), nullable=True, index=True),
        description="Technician of the current assignment",
    )
    # Plain column: work_assignments already references this table
    current_assignment_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, nullable=True),
        description="The non-terminal assignment that currently owns the request",
    )

    scheduled_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))
    created_date: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")),
    )
    completed_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))
    resolution: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    estimated_cost: Optional[float] = Field(default=None, sa_column=Column(Float, nullable=True))
    actual_cost: Optional[float] = Field(default=None, sa_column=Column(Float, nullable=True))
    estimated_hours: Optional[float] = Field(default=None, sa_column=Column(Float, nullable=True))
    actual_hours: Optional[float] = Field(default=None, sa_column=Column(Float, nullable=True))
    ai_report_analysis: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    ai_analysis_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))


class WorkAssignment(TableModel, table=True):
    """One technician-to-request binding with its own state machine."""

    __tablename__ = "work_assignments"

    id: Optional[int] = Field(default=None, primary_key=True)
    service_request_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("service_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    technician_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id"), nullable=False),
    )
    status: WorkAssignmentStatus = Field(
        default=WorkAssignmentStatus.ASSIGNED,
        sa_column=Column(enum_type(WorkAssignmentStatus), nullable=False),
    )

    assigned_date: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime, nullable=False),
    )
    scheduled_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))
    started_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))
    completed_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))

    notes: Optional[str] = Field(default=None, sa_column=Column(String(1000), nullable=True))
    completion_notes: Optional[str] = Field(default=None, sa_column=Column(String(1000), nullable=True))
    estimated_hours: Optional[float] = Field(default=None, sa_column=Column(Float, nullable=True))
    actual_hours: Optional[float] = Field(default=None, sa_column=Column(Float, nullable=True))

    __table_args__ = (
        Index("ix_work_assignments_request", "service_request_id"),
        Index("ix_work_assignments_technician_status", "technician_id", "status"),
        Index("ix_work_assignments_technician_scheduled", "technician_id", "scheduled_date"),
    )

    @property
    def is_terminal(self) -> bool:
        return WorkAssignmentStatus(self.status).is_terminal


class Notification(TableModel, table=True):
    """Persisted user notification."""

    __tablename__ = "notifications"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=200)
    message: str = Field(sa_column=Column(Text, nullable=False))
    type: NotificationType = Field(
        sa_column=Column(enum_type(NotificationType), nullable=False),
    )
    user_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    service_request_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("service_requests.id", ondelete="SET NULL"), nullable=True),
    )
    recipient_email: Optional[str] = Field(default=None, max_length=255)
    is_read: bool = Field(default=False, sa_column=Column(Boolean, default=False, nullable=False))
    created_date: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")),
    )
