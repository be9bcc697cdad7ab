"""Treatment advice lookups per detected label."""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from pydantic import ValidationError

from crop_diagnosis.adapters.advisory_client import AdvisoryClient
from crop_diagnosis.domain.advisory import AdviceResponse, AdvisoryReport
from crop_diagnosis.domain.errors import AdvisoryError

_logger = logging.getLogger(__name__)


@dataclass
class AdvisoryService:
    """Fetches advice for each unique label; failures stay per-label."""

    client: AdvisoryClient

    async def fetch_advice(self, crop: str, labels: Iterable[str]) -> AdvisoryReport:
        """Request advice for every unique label concurrently.

        A failed or malformed response leaves its label out of ``advice`` and
        lists it in ``unavailable``; no error escapes.
        """
        unique_labels = list(dict.fromkeys(labels))
        if not unique_labels:
            return AdvisoryReport()
        outcomes = await asyncio.gather(
            *(self._fetch_one(crop, label) for label in unique_labels),
            return_exceptions=True,
        )
        advice: dict[str, str] = {}
        unavailable: set[str] = set()
        for label, outcome in zip(unique_labels, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                _logger.warning("%s", outcome)
                unavailable.add(label)
            else:
                advice[label] = outcome
        return AdvisoryReport(advice=advice, unavailable=frozenset(unavailable))

    async def _fetch_one(self, crop: str, label: str) -> str:
        try:
            payload = await self.client.get_advice(crop, label)
        except Exception as exc:
            raise AdvisoryError(label, str(exc) or type(exc).__name__) from exc
        try:
            return AdviceResponse.model_validate(payload).advice
        except ValidationError as exc:
            raise AdvisoryError(label, "malformed response") from exc
