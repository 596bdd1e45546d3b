"""
Technician predictor client.

The predictor is an external service that ranks technicians for a request
category/priority and writes a short analysis of completed requests. It is
advisory only: any failure yields an empty suggestion list so the local
keyword heuristic takes over.
"""

import logging
from typing import List, Optional

import httpx

from core.config import settings
from db.model_enum import RequestPriority, ServiceCategory

logger = logging.getLogger(__name__)


class TechnicianPredictor:
    """Interface consumed by the technician selector and the dispatcher."""

    async def suggest_technicians(
        self,
        category: ServiceCategory,
        priority: RequestPriority,
    ) -> List[int]:
        """Return technician IDs, best first. Empty means "no opinion"."""
        raise NotImplementedError

    async def request_report_analysis(self, request_id: int) -> Optional[str]:
        """Return an analysis text for a completed request, if one is available."""
        raise NotImplementedError

    async def close(self) -> None:
        return None


class NullTechnicianPredictor(TechnicianPredictor):
    """Predictor used when no external service is configured."""

    async def suggest_technicians(self, category, priority) -> List[int]:
        return []

    async def request_report_analysis(self, request_id: int) -> Optional[str]:
        return None


class HttpTechnicianPredictor(TechnicianPredictor):
    """HTTP client for the predictor service."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Content-Type": "application/json"}
        key = api_key if api_key is not None else settings.predictor.api_key
        if key:
            headers["X-Api-Key"] = key

        self._client = httpx.AsyncClient(
            base_url=base_url or settings.predictor.base_url,
            timeout=httpx.Timeout(timeout_seconds or settings.predictor.timeout_seconds),
            headers=headers,
            transport=transport,
        )

    async def suggest_technicians(
        self,
        category: ServiceCategory,
        priority: RequestPriority,
    ) -> List[int]:
        try:
            response = await self._client.post(
                "/technicians/suggest",
                json={"category": category.value, "priority": priority.value},
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                f"Predictor suggestion failed for {category.value}/{priority.value}: {exc}"
            )
            return []

        ids = payload.get("technicianIds", []) if isinstance(payload, dict) else []
        suggestions = [int(i) for i in ids if isinstance(i, int) or str(i).isdigit()]
        logger.debug(f"Predictor suggested {suggestions} for {category.value}/{priority.value}")
        return suggestions

    async def request_report_analysis(self, request_id: int) -> Optional[str]:
        try:
            response = await self._client.post(f"/requests/{request_id}/report-analysis")
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(f"Report analysis failed for request {request_id}: {exc}")
            return None

        if isinstance(payload, dict):
            return payload.get("analysis") or None
        return None

    async def close(self) -> None:
        """Close the HTTP client (call during shutdown)."""
        if not self._client.is_closed:
            await self._client.aclose()


def create_predictor() -> TechnicianPredictor:
    """Build the predictor selected by ``PREDICTOR_ENABLED``."""
    if settings.predictor.enabled:
        logger.info(f"Using technician predictor at {settings.predictor.base_url}")
        return HttpTechnicianPredictor()
    return NullTechnicianPredictor()
