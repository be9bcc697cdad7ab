"""Treatment advisory service client."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class AdvisoryClient(Protocol):
    """Interface for treatment advice lookups."""

    async def get_advice(self, crop: str, label: str) -> dict[str, object]:
        """Return raw advice data for one crop/label pair."""


@dataclass
class HttpxAdvisoryClient(AdvisoryClient):
    """HTTPX-backed advisory client."""

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str) -> "HttpxAdvisoryClient":
        """Create an advisory client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(timeout=None),
        )

    async def get_advice(self, crop: str, label: str) -> dict[str, object]:
        """Fetch treatment advice for a detected label."""
        url = f"{self.base_url}/treatment-advice"
        response = await self.http_client.get(
            url,
            params={"crop": crop, "label": label},
            headers={"Accept": "application/json"},
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
