"""Application configuration."""

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from crop_diagnosis.domain.weather import MAX_FORECAST_DAYS, Coordinates, Location

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


@dataclass(frozen=True)
class WorkflowVariant:
    """Differences between app revisions, expressed as flags."""

    require_crop_selection: bool = False
    advisory_enabled: bool = True
    weather_enabled: bool = True
    score_threshold: float = 0.25
    default_crop: str | None = None
    crop_choices: frozenset[str] | None = None
    forecast_days: int = MAX_FORECAST_DAYS

    def __post_init__(self) -> None:
        if not 0.0 <= self.score_threshold <= 1.0:
            raise ValueError("score_threshold must be within [0, 1]")
        if not 1 <= self.forecast_days <= MAX_FORECAST_DAYS:
            raise ValueError(f"forecast_days must be within [1, {MAX_FORECAST_DAYS}]")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    inference_base_url: str
    advisory_base_url: str | None = None
    weather_api_key: str | None = None
    weather_base_url: str = "https://api.weatherapi.com/v1"
    score_threshold: float = Field(default=0.25, ge=0.0, le=1.0)
    require_crop_selection: bool = False
    advisory_enabled: bool = True
    weather_enabled: bool = True
    default_crop: str | None = None
    crop_choices: str | None = None
    forecast_days: int = Field(default=MAX_FORECAST_DAYS, ge=1, le=MAX_FORECAST_DAYS)
    default_latitude: float | None = None
    default_longitude: float | None = None
    default_place_name: str | None = None
    image_spool_dir: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "crop_diagnosis"
    )
    max_sessions: int = Field(default=1000, ge=1)
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def workflow_variant(self) -> WorkflowVariant:
        """Build the workflow flags from settings."""
        return WorkflowVariant(
            require_crop_selection=self.require_crop_selection,
            advisory_enabled=self.advisory_enabled and bool(self.advisory_base_url),
            weather_enabled=self.weather_enabled and bool(self.weather_api_key),
            score_threshold=self.score_threshold,
            default_crop=self.default_crop,
            crop_choices=parse_crop_choices(self.crop_choices),
            forecast_days=self.forecast_days,
        )

    def default_location(self) -> Location | None:
        """Return the configured fallback location, if both coordinates are set."""
        if self.default_latitude is None or self.default_longitude is None:
            return None
        return Location(
            coordinates=Coordinates(self.default_latitude, self.default_longitude),
            place_name=self.default_place_name,
        )


def parse_crop_choices(raw: str | None) -> frozenset[str] | None:
    """Parse the allowed crop list from env."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if cleaned in {"", "*"}:
        return None
    choices = {chunk.strip().lower() for chunk in cleaned.split(",")}
    choices.discard("")
    return frozenset(choices) or None
