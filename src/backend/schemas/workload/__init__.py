"""Workload schemas package."""
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
    "PerformanceMetrics",
    "RecentAssignment",
    "TechnicianOption",
    "TechnicianPerformance",
    "TechnicianWorkload",
    "TechnicianWorkloadDetail",
]
