"""Pydantic models for the HTTP presentation layer."""

import base64
import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from crop_diagnosis.domain.sessions import (
    AdviceStatus,
    Session,
    SessionPhase,
    WeatherStatus,
)
from crop_diagnosis.domain.weather import Coordinates, Location


class CreateSessionRequest(BaseModel):
    """Optional device location for the weather lookup."""

    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    place_name: str | None = None

    def location(self) -> Location | None:
        """Return a location when both coordinates are present."""
        if self.latitude is None or self.longitude is None:
            return None
        return Location(
            coordinates=Coordinates(self.latitude, self.longitude),
            place_name=self.place_name,
        )


class SelectCropRequest(BaseModel):
    """Crop selection payload."""

    crop: str | None = None


class BoundingBoxView(BaseModel):
    """Detection box."""

    x1: float
    y1: float
    x2: float
    y2: float


class DetectionView(BaseModel):
    """Detection with its advice state."""

    label: str
    score: float
    bounding_box: BoundingBoxView
    advice: str | None = None
    advice_status: AdviceStatus


class DayForecastView(BaseModel):
    """One forecast day."""

    date: datetime.date
    max_temp_c: float
    min_temp_c: float
    rain_chance_percent: int
    condition_text: str


class ErrorView(BaseModel):
    """Upload failure details."""

    status: int | None = None
    body: str | None = None
    message: str


class SessionView(BaseModel):
    """Session snapshot as returned to clients."""

    id: UUID
    phase: SessionPhase
    selected_crop: str | None = None
    image_name: str | None = None
    detections: list[DetectionView] = Field(default_factory=list)
    annotated_image_base64: str | None = None
    show_weather: bool = False
    weather_status: WeatherStatus
    weather: list[DayForecastView] | None = None
    location_label: str | None = None
    error: ErrorView | None = None
    notice: str | None = None

    @classmethod
    def from_session(cls, session_id: UUID, session: Session) -> "SessionView":
        """Build the client view; hidden weather stays out of the payload."""
        visible = session.visible_weather
        artifact = session.annotated_artifact
        return cls(
            id=session_id,
            phase=session.phase,
            selected_crop=session.selected_crop,
            image_name=session.image_ref.name if session.image_ref else None,
            detections=[
                DetectionView(
                    label=detection.label,
                    score=detection.score,
                    bounding_box=BoundingBoxView(
                        **detection.bounding_box.model_dump()
                    ),
                    advice=session.advisory.get(detection.label),
                    advice_status=session.advice_status(detection.label),
                )
                for detection in session.detections
            ],
            annotated_image_base64=(
                base64.b64encode(artifact).decode("ascii") if artifact else None
            ),
            show_weather=session.show_weather,
            weather_status=session.weather_status,
            weather=(
                [DayForecastView(**vars(day)) for day in visible]
                if visible is not None
                else None
            ),
            location_label=session.location_label if session.show_weather else None,
            error=(
                ErrorView(
                    status=session.error.status,
                    body=session.error.body,
                    message=str(session.error),
                )
                if session.error
                else None
            ),
            notice=session.notice,
        )
