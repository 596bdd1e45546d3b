"""
Technician selection for automatic and manual assignment.

Candidates come from the external predictor when it has an opinion. When it
returns nothing (or is down) a local heuristic ranks active technicians by
specialization keywords and current workload.
"""

import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.decorators import critical_database_operation, log_database_operation
from core.metrics import track_predictor_fallback
from db.model_enum import RequestPriority, ServiceCategory
from db.models import User
from repositories.service_request_repository import ServiceRequestRepository
from repositories.user_repository import UserRepository
from repositories.work_assignment_repository import WorkAssignmentRepository
from schemas.workload import TechnicianOption
from services.predictor_client import NullTechnicianPredictor, TechnicianPredictor
from services.workload_service import classify_workload, workload_percentage

logger = logging.getLogger(__name__)

# Bilingual (TR/EN) specialization keywords with their match weight
CATEGORY_KEYWORDS: Dict[ServiceCategory, Tuple[Tuple[str, int], ...]] = {
    ServiceCategory.SOFTWARE_ISSUE: (
        ("yazılım", 10), ("software", 10), ("uygulama", 8), ("program", 8),
    ),
    ServiceCategory.HARDWARE_ISSUE: (
        ("donanım", 10), ("hardware", 10), ("bilgisayar", 8), ("laptop", 8),
    ),
    ServiceCategory.NETWORK_ISSUE: (
        ("ağ", 10), ("network", 10), ("internet", 8), ("wifi", 6),
    ),
    ServiceCategory.SECURITY_ISSUE: (
        ("güvenlik", 10), ("security", 10), ("virüs", 8), ("firewall", 8),
    ),
    ServiceCategory.MAINTENANCE: (
        ("bakım", 10), ("maintenance", 10), ("genel", 8), ("temizlik", 6),
    ),
    ServiceCategory.OTHER: (),
}


def match_score(specializations: Optional[str], category: Optional[ServiceCategory]) -> int:
    """Sum of keyword weights found in ``specializations`` for ``category``."""
    if not specializations or category is None:
        return 0
    text = specializations.lower()
    return sum(weight for keyword, weight in CATEGORY_KEYWORDS.get(category, ()) if keyword in text)


class TechnicianSelector:
    """Ranks technicians for a request category and priority."""

    def __init__(
        self,
        predictor: Optional[TechnicianPredictor] = None,
        capacity: Optional[int] = None,
    ):
        self.predictor = predictor or NullTechnicianPredictor()
        self.capacity = capacity or settings.scheduling.max_concurrent_assignments

    @log_database_operation("candidate selection")
    @critical_database_operation("find_candidates")
    async def find_candidates(
        self,
        db: AsyncSession,
        category: ServiceCategory,
        priority: RequestPriority,
    ) -> List[int]:
        """
        Return technician IDs, best first.

        Predictor suggestions are kept in the predictor's order after
        dropping unknown and inactive technicians. Availability is not
        checked here; the caller checks it under the technician's lock.
        """
        suggested = await self.predictor.suggest_technicians(category, priority)
        if suggested:
            known = {
                t.id: t for t in await UserRepository.get_technicians_by_ids(db, suggested)
                if t.is_active
            }
            candidates = []
            for technician_id in suggested:
                if technician_id in known and technician_id not in candidates:
                    candidates.append(technician_id)
            if candidates:
                return candidates
            track_predictor_fallback("no_active_suggestions")
        else:
            track_predictor_fallback("empty")

        logger.info(f"Using local ranking for {category.value}/{priority.value}")
        return await self._rank_locally(db, category)

    async def _rank_locally(self, db: AsyncSession, category: ServiceCategory) -> List[int]:
        technicians = await UserRepository.get_active_technicians(db)
        if not technicians:
            return []

        profiles = await UserRepository.get_profiles(db, [t.id for t in technicians])
        suitable = technicians
        if CATEGORY_KEYWORDS.get(category):
            matching = [
                t for t in technicians
                if t.id in profiles and match_score(profiles[t.id].specializations, category) > 0
            ]
            if matching:
                suitable = matching

        counts = await WorkAssignmentRepository.active_counts_by_technician(db)
        ranked = sorted(
            suitable,
            key=lambda t: (workload_percentage(counts.get(t.id, 0), self.capacity), t.full_name, t.id),
        )
        return [t.id for t in ranked]

    @critical_database_operation("get_technician_options")
    async def get_technician_options(
        self,
        db: AsyncSession,
        request_id: Optional[int] = None,
        exclude_technician_id: Optional[int] = None,
    ) -> List[TechnicianOption]:
        """
        Active technicians annotated for the manual assignment picker.

        With ``request_id`` each technician gets a keyword match score for
        the request's category; recommended technicians come first.
        """
        category = None
        if request_id is not None:
            request = await ServiceRequestRepository.find_by_id(db, request_id)
            if request is not None:
                category = ServiceCategory(request.category)

        technicians: List[User] = [
            t for t in await UserRepository.get_active_technicians(db)
            if t.id != exclude_technician_id
        ]
        profiles = await UserRepository.get_profiles(db, [t.id for t in technicians])
        counts = await WorkAssignmentRepository.active_counts_by_technician(db)

        options = []
        for technician in technicians:
            profile = profiles.get(technician.id)
            score = match_score(profile.specializations if profile else None, category)
            active = counts.get(technician.id, 0)
            options.append(
                TechnicianOption(
                    technician_id=technician.id,
                    technician_name=technician.full_name,
                    email=technician.email,
                    specializations=profile.specialization_list if profile else [],
                    active_assignments=active,
                    workload_percentage=workload_percentage(active, self.capacity),
                    workload_status=classify_workload(active),
                    is_recommended=score > 0,
                    match_score=score,
                )
            )

        options.sort(key=lambda o: (not o.is_recommended, -o.match_score, o.technician_name))
        return options
