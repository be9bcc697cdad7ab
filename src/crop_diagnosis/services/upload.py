"""Upload client for the remote inference service."""

import base64
import binascii
import logging
from dataclasses import dataclass

from pydantic import ValidationError

from crop_diagnosis.adapters.inference_client import InferenceClient
from crop_diagnosis.domain.detections import Detection, InferenceResult
from crop_diagnosis.domain.errors import UploadError
from crop_diagnosis.domain.images import ImageRef

DEFAULT_SCORE_THRESHOLD = 0.25

_logger = logging.getLogger(__name__)


@dataclass
class UploadService:
    """Sends one inference request per call and parses the outcome."""

    client: InferenceClient

    async def submit(
        self, image: ImageRef, score_threshold: float = DEFAULT_SCORE_THRESHOLD
    ) -> InferenceResult:
        """Upload ``image`` and return raw detections plus the annotated artifact.

        Raises ``UploadError`` for non-2xx responses, network failures, and
        images that cannot be opened.
        """
        try:
            handle = image.local_path().open("rb")
        except OSError as exc:
            raise UploadError(cause=exc) from exc
        with handle:
            payload = await self.client.predict(
                filename=image.name,
                content=handle,
                mime_type=image.mime_type,
                score_threshold=score_threshold,
            )
        result = parse_inference_payload(payload)
        _logger.info(
            "Inference returned %s detections for %s",
            len(result.detections),
            image.name,
        )
        return result


def parse_inference_payload(payload: dict[str, object]) -> InferenceResult:
    """Parse a response object; malformed parts become empty values."""
    return InferenceResult(
        detections=_parse_detections(payload.get("detections")),
        annotated_artifact=_decode_artifact(payload.get("annotated_image_base64")),
    )


def _parse_detections(raw: object) -> tuple[Detection, ...]:
    if not isinstance(raw, list):
        if raw is not None:
            _logger.warning("Ignoring non-list detections field")
        return ()
    detections: list[Detection] = []
    for item in raw:
        if not isinstance(item, dict):
            _logger.warning("Skipping malformed detection: %r", item)
            continue
        try:
            detections.append(Detection.from_payload(item))
        except ValidationError:
            _logger.warning("Skipping malformed detection: %r", item)
    return tuple(detections)


def _decode_artifact(raw: object) -> bytes | None:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        return base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError):
        _logger.warning("Annotated image is not valid base64; dropping it")
        return None
