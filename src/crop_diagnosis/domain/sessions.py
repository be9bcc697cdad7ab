"""Domain models for diagnosis sessions."""

from dataclasses import dataclass, field
from enum import Enum

from crop_diagnosis.domain.detections import Detection
from crop_diagnosis.domain.errors import UploadError
from crop_diagnosis.domain.images import ImageRef
from crop_diagnosis.domain.weather import DayForecast

UNSELECTED_CROP = "unselected"


class SessionPhase(str, Enum):
    """Workflow phase of a diagnosis session."""

    IDLE = "IDLE"
    CROP_PENDING = "CROP_PENDING"
    IMAGE_READY = "IMAGE_READY"
    UPLOADING = "UPLOADING"
    RESULTS_READY = "RESULTS_READY"
    ERROR = "ERROR"


class WeatherStatus(str, Enum):
    """Progress of the once-per-session forecast lookup."""

    NOT_REQUESTED = "NOT_REQUESTED"
    PENDING = "PENDING"
    AVAILABLE = "AVAILABLE"
    UNAVAILABLE = "UNAVAILABLE"


class AdviceStatus(str, Enum):
    """Progress of the advice lookup for one label."""

    NOT_REQUESTED = "NOT_REQUESTED"
    PENDING = "PENDING"
    AVAILABLE = "AVAILABLE"
    UNAVAILABLE = "UNAVAILABLE"


@dataclass(frozen=True)
class Session:
    """Immutable snapshot of one diagnosis attempt.

    Only ``SessionStateMachine`` produces new snapshots; every transition
    replaces the whole record, so related fields always change together.
    """

    phase: SessionPhase = SessionPhase.IDLE
    selected_crop: str | None = None
    image_ref: ImageRef | None = None
    detections: tuple[Detection, ...] = ()
    annotated_artifact: bytes | None = None
    results_attempt: int | None = None
    advisory: dict[str, str] = field(default_factory=dict)
    advisory_unavailable: frozenset[str] = frozenset()
    advisory_requested: bool = False
    show_weather: bool = False
    weather: tuple[DayForecast, ...] | None = None
    location_label: str | None = None
    weather_status: WeatherStatus = WeatherStatus.NOT_REQUESTED
    upload_attempt: int = 0
    upload_in_flight: int | None = None
    error: UploadError | None = None
    notice: str | None = None

    @property
    def labels(self) -> tuple[str, ...]:
        """Return detected labels in result order."""
        return tuple(detection.label for detection in self.detections)

    @property
    def visible_weather(self) -> tuple[DayForecast, ...] | None:
        """Return the forecast only once the weather gate is open."""
        if not self.show_weather:
            return None
        return self.weather

    def advice_status(self, label: str) -> AdviceStatus:
        """Return whether advice for ``label`` is present, failed, or pending."""
        if label in self.advisory:
            return AdviceStatus.AVAILABLE
        if label in self.advisory_unavailable:
            return AdviceStatus.UNAVAILABLE
        if self.advisory_requested and label in self.labels:
            return AdviceStatus.PENDING
        return AdviceStatus.NOT_REQUESTED
