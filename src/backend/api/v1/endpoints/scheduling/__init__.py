"""Work assignment and workload endpoints."""

from . import assignments, workload

__all__ = ["assignments", "workload"]
