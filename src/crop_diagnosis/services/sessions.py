"""Session state machine for the diagnosis workflow."""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace

from crop_diagnosis.config import WorkflowVariant
from crop_diagnosis.domain.detections import Detection
from crop_diagnosis.domain.errors import UploadError
from crop_diagnosis.domain.images import ImageRef
from crop_diagnosis.domain.sessions import (
    UNSELECTED_CROP,
    Session,
    SessionPhase,
    WeatherStatus,
)
from crop_diagnosis.domain.weather import LocatedForecast
from crop_diagnosis.services.detections import reduce_detections

SessionListener = Callable[[Session], None]

_logger = logging.getLogger(__name__)


class SessionStateMachine:
    """Owns the session and the only code paths that change it.

    Rejected transitions leave the phase alone and set ``notice`` to a
    user-facing explanation.
    """

    def __init__(self, variant: WorkflowVariant | None = None) -> None:
        self.variant = variant or WorkflowVariant()
        initial = (
            SessionPhase.CROP_PENDING
            if self.variant.require_crop_selection
            else SessionPhase.IDLE
        )
        self._session = Session(phase=initial)
        self._listeners: list[SessionListener] = []

    @property
    def session(self) -> Session:
        """Return the current snapshot."""
        return self._session

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener for new snapshots; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def select_crop(self, crop: str | None) -> bool:
        """Record the crop to diagnose."""
        cleaned = (crop or "").strip().lower()
        if not cleaned or cleaned == UNSELECTED_CROP:
            return self.reject("Please select a crop first.")
        choices = self.variant.crop_choices
        if choices is not None and cleaned not in choices:
            return self.reject(f"Unknown crop: {crop}.")
        if self._session.phase is SessionPhase.UPLOADING:
            return self.reject("Wait for the current diagnosis to finish.")
        phase = self._session.phase
        if phase is SessionPhase.CROP_PENDING:
            phase = SessionPhase.IDLE
        self._commit(
            replace(self._session, phase=phase, selected_crop=cleaned, notice=None)
        )
        return True

    def capture_image(self, image: ImageRef) -> bool:
        """Accept a new image and drop every result tied to the previous one."""
        session = self._session
        if self.variant.require_crop_selection and session.selected_crop is None:
            return self.reject("Please select a crop before taking a photo.")
        self._commit(
            replace(
                session,
                phase=SessionPhase.IMAGE_READY,
                image_ref=image,
                detections=(),
                annotated_artifact=None,
                results_attempt=None,
                advisory={},
                advisory_unavailable=frozenset(),
                advisory_requested=False,
                show_weather=False,
                error=None,
                notice=None,
            )
        )
        return True

    pick_image = capture_image

    def start_upload(self) -> int | None:
        """Enter ``UPLOADING``; return the attempt id for the completion calls.

        Returns ``None`` when there is no image or an upload is in flight.
        """
        session = self._session
        if session.upload_in_flight is not None:
            return None
        if session.image_ref is None:
            self.reject("Please pick or take a photo first.")
            return None
        attempt = session.upload_attempt + 1
        self._commit(
            replace(
                session,
                phase=SessionPhase.UPLOADING,
                upload_attempt=attempt,
                upload_in_flight=attempt,
                show_weather=False,
                error=None,
                notice=None,
            )
        )
        return attempt

    def upload_succeeded(
        self,
        attempt: int,
        detections: Iterable[Detection],
        artifact: bytes | None,
    ) -> bool:
        """Store reduced detections and open the weather gate."""
        session = replace(self._session, upload_in_flight=None)
        if not self._is_current_upload(attempt):
            _logger.info("Discarding results of superseded upload %s", attempt)
            self._commit(session)
            return False
        self._commit(
            replace(
                session,
                phase=SessionPhase.RESULTS_READY,
                detections=reduce_detections(detections),
                annotated_artifact=artifact,
                results_attempt=attempt,
                advisory={},
                advisory_unavailable=frozenset(),
                advisory_requested=False,
                show_weather=self.variant.weather_enabled,
                error=None,
                notice=None,
            )
        )
        return True

    def upload_failed(self, attempt: int, error: UploadError) -> bool:
        """Enter ``ERROR`` keeping the image and prior detections intact."""
        session = replace(self._session, upload_in_flight=None)
        if not self._is_current_upload(attempt):
            _logger.info("Discarding failure of superseded upload %s", attempt)
            self._commit(session)
            return False
        self._commit(
            replace(
                session,
                phase=SessionPhase.ERROR,
                error=error,
                notice=f"Upload failed: {error}",
            )
        )
        return True

    def advice_requested(self, attempt: int) -> bool:
        """Mark advice for the current results as pending."""
        if self._session.results_attempt != attempt:
            return False
        self._commit(replace(self._session, advisory_requested=True))
        return True

    def advice_received(
        self,
        attempt: int,
        advice: Mapping[str, str],
        unavailable: Iterable[str] = (),
    ) -> bool:
        """Merge advice for labels that are still among the current detections."""
        session = self._session
        if session.results_attempt != attempt:
            return False
        labels = set(session.labels)
        merged = dict(session.advisory)
        merged.update(
            {label: text for label, text in advice.items() if label in labels}
        )
        failed = (session.advisory_unavailable | set(unavailable)) & labels
        self._commit(
            replace(
                session,
                advisory=merged,
                advisory_unavailable=frozenset(failed - merged.keys()),
            )
        )
        return True

    def weather_requested(self) -> None:
        """Mark the forecast lookup as in flight."""
        self._commit(replace(self._session, weather_status=WeatherStatus.PENDING))

    def weather_resolved(self, result: LocatedForecast) -> None:
        """Store the forecast; visibility stays governed by ``show_weather``."""
        self._commit(
            replace(
                self._session,
                weather=result.forecast,
                location_label=result.location_label,
                weather_status=WeatherStatus.AVAILABLE,
            )
        )

    def weather_unavailable(self) -> None:
        """Record that the forecast could not be resolved."""
        self._commit(
            replace(
                self._session,
                weather=None,
                weather_status=WeatherStatus.UNAVAILABLE,
            )
        )

    def reject(self, notice: str) -> bool:
        """Keep the phase and show ``notice`` to the user."""
        _logger.info("Transition rejected: %s", notice)
        self._commit(replace(self._session, notice=notice))
        return False

    def _is_current_upload(self, attempt: int) -> bool:
        session = self._session
        return (
            session.phase is SessionPhase.UPLOADING
            and session.upload_in_flight == attempt
        )

    def _commit(self, session: Session) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener(session)
