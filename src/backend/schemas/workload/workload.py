"""
Workload and performance schemas.

These are read projections for manager dashboards; none of them is
persisted.
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from core.schema_base import HTTPSchemaModel
from db.model_enum import WorkAssignmentStatus, WorkloadStatus


class TechnicianWorkload(HTTPSchemaModel):
    """Current load of one technician."""

    technician_id: int
    technician_name: str
    email: str
    specializations: List[str] = Field(default_factory=list)
    active_assignments: int
    max_concurrent_assignments: int
    workload_percentage: float
    average_completion_time: float = Field(description="Mean hours from start to completion")
    workload_status: WorkloadStatus
    workload_status_color: str


class RecentAssignment(HTTPSchemaModel):
    assignment_id: int
    service_request_id: int
    service_request_title: str
    status: WorkAssignmentStatus
    status_color: str
    assigned_date: datetime
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    days_in_progress: int
    is_overdue: bool


class TechnicianWorkloadDetail(HTTPSchemaModel):
    """Full workload history of one technician."""

    technician_id: int
    technician_name: str
    email: str
    phone: Optional[str] = None
    specializations: List[str] = Field(default_factory=list)
    is_active: bool
    total_assignments: int
    pending_assignments: int
    in_progress_assignments: int
    completed_assignments: int
    cancelled_assignments: int
    active_assignments: int
    workload_percentage: float
    completion_rate: float
    average_completion_days: float
    overdue_assignments: int
    last_assignment_date: Optional[datetime] = None
    last_completion_date: Optional[datetime] = None
    workload_status: WorkloadStatus
    workload_status_color: str
    recent_assignments: List[RecentAssignment] = Field(default_factory=list)


class TechnicianPerformance(HTTPSchemaModel):
    technician_id: int
    technician_name: str
    completed_tasks: int
    average_completion_time: float
    on_time_rate: float
    performance_score: float


class PerformanceMetrics(HTTPSchemaModel):
    """Assignment performance, globally or for one technician."""

    technician_id: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    total_assignments: int
    completed_assignments: int
    cancelled_assignments: int
    overdue_assignments: int
    completion_rate: float
    average_completion_time: float
    on_time_completion_rate: float
    technician_performances: Dict[int, TechnicianPerformance] = Field(default_factory=dict)
    calculated_date: datetime


class TechnicianOption(HTTPSchemaModel):
    """A technician offered in the manual assignment picker."""

    technician_id: int
    technician_name: str
    email: str
    specializations: List[str] = Field(default_factory=list)
    active_assignments: int
    workload_percentage: float
    workload_status: WorkloadStatus
    is_recommended: bool
    match_score: int


class AvailabilityRead(HTTPSchemaModel):
    technician_id: int
    date: datetime
    active_assignments: int
    capacity: int
    is_available: bool
