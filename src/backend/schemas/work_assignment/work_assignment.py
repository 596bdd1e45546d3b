"""
Work assignment schemas for API validation and serialization.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import Field, computed_field, field_validator

from core.schema_base import HTTPSchemaModel
from db.model_enum import WorkAssignmentStatus


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize incoming datetimes to the naive-UTC storage convention."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class WorkAssignmentCreate(HTTPSchemaModel):
    """Schema for creating an assignment for a chosen technician."""

    service_request_id: int
    technician_id: int
    scheduled_date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    estimated_hours: Optional[float] = Field(default=None, ge=0)

    @field_validator("scheduled_date")
    @classmethod
    def normalize_scheduled_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class ManualAssignRequest(HTTPSchemaModel):
    """Schema for a manager's manual assignment."""

    service_request_id: int
    technician_id: int
    scheduled_date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("scheduled_date")
    @classmethod
    def normalize_scheduled_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class CompleteAssignmentRequest(HTTPSchemaModel):
    completion_notes: Optional[str] = Field(default=None, max_length=1000)
    actual_hours: Optional[float] = Field(default=None, ge=0)


class CancelAssignmentRequest(HTTPSchemaModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class ReassignRequest(HTTPSchemaModel):
    new_technician_id: int
    reason: Optional[str] = Field(default=None, max_length=500)


class WorkAssignmentRead(HTTPSchemaModel):
    """Schema for reading work assignment data."""

    id: int
    service_request_id: int
    technician_id: int
    status: WorkAssignmentStatus
    assigned_date: datetime
    scheduled_date: Optional[datetime] = None
    started_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    notes: Optional[str] = None
    completion_notes: Optional[str] = None
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None

    @computed_field
    @property
    def status_color(self) -> str:
        return WorkAssignmentStatus(self.status).color


class ReassignResponse(HTTPSchemaModel):
    """Both sides of a reassignment."""

    cancelled: WorkAssignmentRead
    created: WorkAssignmentRead
