"""Remote inference service client."""

import logging
from dataclasses import dataclass
from typing import BinaryIO, Protocol

import httpx

from crop_diagnosis.domain.errors import UploadError

_logger = logging.getLogger(__name__)


class InferenceClient(Protocol):
    """Interface for the detection inference service."""

    async def predict(
        self,
        *,
        filename: str,
        content: BinaryIO,
        mime_type: str,
        score_threshold: float,
    ) -> dict[str, object]:
        """Upload an image and return the raw response object."""


@dataclass
class HttpxInferenceClient(InferenceClient):
    """HTTPX-backed inference client.

    No timeout is applied: a hung request waits indefinitely.
    """

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str) -> "HttpxInferenceClient":
        """Create an inference client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(timeout=None),
        )

    async def predict(
        self,
        *,
        filename: str,
        content: BinaryIO,
        mime_type: str,
        score_threshold: float,
    ) -> dict[str, object]:
        """POST the image as the multipart ``file`` field.

        The multipart boundary header is left to httpx.
        """
        url = f"{self.base_url}/predict"
        try:
            response = await self.http_client.post(
                url,
                params={"score_thresh": score_threshold},
                files={"file": (filename, content, mime_type)},
                headers={"Accept": "application/json"},
            )
        except httpx.RequestError as exc:
            raise UploadError(cause=exc) from exc
        if not response.is_success:
            raise UploadError(status=response.status_code, body=response.text)
        try:
            payload = response.json()
        except ValueError:
            _logger.warning("Inference response is not JSON; treating as empty")
            return {}
        if not isinstance(payload, dict):
            _logger.warning("Inference response is not an object; treating as empty")
            return {}
        return payload

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
