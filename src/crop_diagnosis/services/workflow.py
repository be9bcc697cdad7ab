"""Diagnosis workflow coordinating capture, upload, advice and weather."""

import asyncio
import logging
from collections.abc import Callable

from crop_diagnosis.adapters.image_picker import ImagePicker
from crop_diagnosis.adapters.location_provider import LocationProvider
from crop_diagnosis.config import WorkflowVariant
from crop_diagnosis.domain.errors import (
    CaptureCancelled,
    CapturePermissionDenied,
    UploadError,
)
from crop_diagnosis.domain.images import ImageRef, ImageSource
from crop_diagnosis.domain.sessions import Session
from crop_diagnosis.domain.weather import Location
from crop_diagnosis.services.advisory import AdvisoryService
from crop_diagnosis.services.sessions import SessionListener, SessionStateMachine
from crop_diagnosis.services.upload import UploadService
from crop_diagnosis.services.weather import WeatherGate, WeatherService

_logger = logging.getLogger(__name__)

_PERMISSION_NOTICES = {
    ImageSource.CAMERA: "Camera access was denied.",
    ImageSource.GALLERY: "Photo library access was denied.",
}


class DiagnosisWorkflow:
    """One session's worth of orchestration.

    All suspension happens on the running event loop; components report back
    through ``SessionStateMachine`` transitions only.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        upload_service: UploadService,
        advisory_service: AdvisoryService | None = None,
        weather_service: WeatherService | None = None,
        location_provider: LocationProvider | None = None,
        variant: WorkflowVariant | None = None,
    ) -> None:
        self.machine = SessionStateMachine(variant)
        self.variant = self.machine.variant
        self.upload_service = upload_service
        self.advisory_service = advisory_service
        self.weather_gate: WeatherGate | None = None
        if (
            self.variant.weather_enabled
            and weather_service is not None
            and location_provider is not None
        ):
            self.weather_gate = WeatherGate(
                self.machine, weather_service, location_provider
            )
        self._weather_task: asyncio.Task[None] | None = None

    @property
    def session(self) -> Session:
        """Return the current session snapshot."""
        return self.machine.session

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Forward snapshots to ``listener`` after every transition."""
        return self.machine.subscribe(listener)

    def start(self) -> None:
        """Kick off the weather lookup in the background, once."""
        if self.weather_gate is None or self._weather_task is not None:
            return
        self._weather_task = asyncio.create_task(self.weather_gate.open())

    async def wait_for_weather(self) -> None:
        """Wait for the background weather lookup, if one was started."""
        if self._weather_task is not None:
            await self._weather_task

    async def refresh_location(self, location: Location) -> None:
        """Fetch a new forecast if the location moved."""
        if self.weather_gate is None:
            return
        await self.wait_for_weather()
        await self.weather_gate.refresh(location)

    def select_crop(self, crop: str | None) -> bool:
        """Choose the crop used for advice lookups."""
        return self.machine.select_crop(crop)

    def capture_image(self, image: ImageRef) -> bool:
        """Use an image taken with the camera."""
        return self.machine.capture_image(image)

    def pick_image(self, image: ImageRef) -> bool:
        """Use an image chosen from the gallery."""
        return self.machine.pick_image(image)

    async def acquire_image(self, picker: ImagePicker, source: ImageSource) -> bool:
        """Ask the capture capability for an image and accept it.

        Cancellation and permission denial leave the phase untouched and
        only set a notice.
        """
        try:
            image = await picker.request_image(source)
        except CaptureCancelled:
            _logger.info("Image %s cancelled", source.value)
            return self.machine.reject("No photo was selected.")
        except CapturePermissionDenied as exc:
            _logger.warning("Image %s permission denied: %s", source.value, exc)
            return self.machine.reject(_PERMISSION_NOTICES[source])
        if source is ImageSource.CAMERA:
            return self.capture_image(image)
        return self.pick_image(image)

    async def diagnose(self) -> Session:
        """Upload the current image, then fetch advice for what was found."""
        attempt = self.machine.start_upload()
        if attempt is None:
            return self.session
        image = self.session.image_ref
        if image is None:
            raise RuntimeError("Upload started without an image")
        try:
            result = await self.upload_service.submit(
                image, score_threshold=self.variant.score_threshold
            )
        except UploadError as exc:
            _logger.warning("Upload of %s failed: %s", image.name, exc)
            self.machine.upload_failed(attempt, exc)
            return self.session
        except Exception as exc:
            self.machine.upload_failed(attempt, UploadError(cause=exc))
            raise
        if self.machine.upload_succeeded(
            attempt, result.detections, result.annotated_artifact
        ):
            await self._fetch_advice(attempt)
        return self.session

    async def aclose(self) -> None:
        """Cancel the background weather lookup if it is still running."""
        task = self._weather_task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            _logger.debug("Weather lookup cancelled")

    async def _fetch_advice(self, attempt: int) -> None:
        if self.advisory_service is None or not self.variant.advisory_enabled:
            return
        crop = self.session.selected_crop or self.variant.default_crop
        labels = self.session.labels
        if crop is None or not labels:
            return
        if not self.machine.advice_requested(attempt):
            return
        report = await self.advisory_service.fetch_advice(crop, labels)
        self.machine.advice_received(attempt, report.advice, report.unavailable)
