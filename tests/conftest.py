"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

import pytest

from crop_diagnosis.adapters.advisory_client import AdvisoryClient
from crop_diagnosis.adapters.inference_client import InferenceClient
from crop_diagnosis.adapters.location_provider import StaticLocationProvider
from crop_diagnosis.adapters.weather_client import WeatherClient
from crop_diagnosis.config import Settings, WorkflowVariant
from crop_diagnosis.containers import AppContainer
from crop_diagnosis.domain.detections import BoundingBox, Detection
from crop_diagnosis.domain.errors import UploadError
from crop_diagnosis.domain.images import ImageRef, ImageSource
from crop_diagnosis.domain.weather import Coordinates, Location
from crop_diagnosis.services.advisory import AdvisoryService
from crop_diagnosis.services.upload import UploadService
from crop_diagnosis.services.weather import WeatherService
from crop_diagnosis.services.workflow import DiagnosisWorkflow

FARM = Location(coordinates=Coordinates(17.385, 78.4867), place_name="Hyderabad")


def make_detection(label: str, score: float, x1: float = 0.0) -> Detection:
    return Detection(
        label=label,
        score=score,
        bounding_box=BoundingBox(x1=x1, y1=0.0, x2=x1 + 10.0, y2=10.0),
    )


def detection_payload(label: str, score: float) -> dict[str, object]:
    return {"label": label, "score": score, "x1": 1, "y1": 2, "x2": 30, "y2": 40}


def weather_payload(days: int = 3) -> dict[str, object]:
    return {
        "location": {"name": "Hyderabad", "region": "Telangana"},
        "forecast": {
            "forecastday": [
                {
                    "date": f"2026-10-{18 + index:02d}",
                    "day": {
                        "maxtemp_c": 31.0 + index,
                        "mintemp_c": 21.0,
                        "daily_chance_of_rain": 10 * index,
                        "condition": {"text": "Sunny"},
                    },
                }
                for index in range(days)
            ]
        },
    }


@dataclass
class FakeInferenceClient(InferenceClient):
    """Inference client returning a canned payload or raising an error."""

    payload: dict[str, object] = field(default_factory=dict)
    error: UploadError | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

    async def predict(
        self,
        *,
        filename: str,
        content: BinaryIO,
        mime_type: str,
        score_threshold: float,
    ) -> dict[str, object]:
        self.calls.append(
            {
                "filename": filename,
                "content": content.read(),
                "mime_type": mime_type,
                "score_threshold": score_threshold,
            }
        )
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.payload


@dataclass
class FakeAdvisoryClient(AdvisoryClient):
    """Advisory client with per-label canned answers."""

    answers: dict[str, object] = field(default_factory=dict)
    failing: set[str] = field(default_factory=set)
    calls: list[tuple[str, str]] = field(default_factory=list)

    async def get_advice(self, crop: str, label: str) -> dict[str, object]:
        self.calls.append((crop, label))
        if label in self.failing:
            raise RuntimeError("timeout")
        return self.answers.get(label, {"advice": f"Treat {label} on {crop}."})


@dataclass
class FakeWeatherClient(WeatherClient):
    """Weather client returning a canned forecast."""

    payload: dict[str, object] = field(default_factory=weather_payload)
    error: Exception | None = None
    calls: list[tuple[Coordinates, int]] = field(default_factory=list)

    async def get_forecast(
        self, coordinates: Coordinates, days: int = 14
    ) -> dict[str, object]:
        self.calls.append((coordinates, days))
        if self.error is not None:
            raise self.error
        return self.payload


def build_workflow(  # noqa: PLR0913
    inference: FakeInferenceClient | None = None,
    advisory: FakeAdvisoryClient | None = None,
    weather: FakeWeatherClient | None = None,
    location: Location | None = FARM,
    variant: WorkflowVariant | None = None,
) -> DiagnosisWorkflow:
    return DiagnosisWorkflow(
        upload_service=UploadService(inference or FakeInferenceClient()),
        advisory_service=AdvisoryService(advisory or FakeAdvisoryClient()),
        weather_service=WeatherService(weather or FakeWeatherClient()),
        location_provider=StaticLocationProvider(location),
        variant=variant or WorkflowVariant(default_crop="tomato"),
    )


@pytest.fixture
def image_file(tmp_path: Path) -> ImageRef:
    path = tmp_path / "leaf.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\nleaf")
    return ImageRef(uri=str(path), source=ImageSource.GALLERY)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        inference_base_url="http://inference.test",
        advisory_base_url="http://advisory.test",
        weather_api_key="weather-key",
        default_crop="tomato",
        default_latitude=FARM.coordinates.latitude,
        default_longitude=FARM.coordinates.longitude,
        image_spool_dir=tmp_path / "spool",
    )


@dataclass
class FakeResources:
    """Tracks whether the container released its resources."""

    closed: bool = False

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def resources() -> FakeResources:
    return FakeResources()


@pytest.fixture
def container(settings: Settings, resources: FakeResources) -> AppContainer:
    return AppContainer(
        settings=settings,
        variant=settings.workflow_variant(),
        upload_service=UploadService(
            FakeInferenceClient(
                payload={
                    "detections": [
                        detection_payload("rust", 0.8),
                        detection_payload("rust", 0.95),
                        detection_payload("blight", 0.4),
                    ],
                    "annotated_image_base64": "aW1hZ2U=",
                }
            )
        ),
        advisory_service=AdvisoryService(FakeAdvisoryClient()),
        weather_service=WeatherService(FakeWeatherClient()),
        location_provider=StaticLocationProvider(settings.default_location()),
        close_resources=resources.close,
    )
