"""
API v1 routes.

- scheduling/assignments: work assignment lifecycle
- scheduling/workload: workload projections and technician options
"""

from fastapi import APIRouter

from .endpoints.scheduling import assignments, workload

api_router = APIRouter()

api_router.include_router(assignments.router, prefix="/assignments", tags=["assignments"])

api_router.include_router(workload.router, prefix="/workload", tags=["workload"])
