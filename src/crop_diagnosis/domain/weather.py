"""Weather and location domain models."""

from dataclasses import dataclass
import datetime

from pydantic import BaseModel, Field

MAX_FORECAST_DAYS = 14


@dataclass(frozen=True)
class Coordinates:
    """Latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def as_query(self) -> str:
        """Format coordinates for a ``q=lat,lon`` lookup."""
        return f"{self.latitude},{self.longitude}"


@dataclass(frozen=True)
class Location:
    """Coordinates plus an optional human-readable place name."""

    coordinates: Coordinates
    place_name: str | None = None


@dataclass(frozen=True)
class DayForecast:
    """Forecast for a single day."""

    date: datetime.date
    max_temp_c: float
    min_temp_c: float
    rain_chance_percent: int
    condition_text: str


@dataclass(frozen=True)
class LocatedForecast:
    """Forecast days and the label of the place they describe."""

    forecast: tuple[DayForecast, ...]
    location_label: str | None


class _Condition(BaseModel):
    text: str = ""


class _Day(BaseModel):
    maxtemp_c: float
    mintemp_c: float
    daily_chance_of_rain: int = 0
    condition: _Condition = Field(default_factory=_Condition)


class _ForecastDay(BaseModel):
    date: datetime.date
    day: _Day


class _Forecast(BaseModel):
    forecastday: list[_ForecastDay] = Field(default_factory=list)


class _PlaceInfo(BaseModel):
    name: str | None = None
    region: str | None = None


class ProviderForecast(BaseModel):
    """Subset of the weather provider's forecast payload."""

    location: _PlaceInfo | None = None
    forecast: _Forecast = Field(default_factory=_Forecast)

    def days(self, limit: int = MAX_FORECAST_DAYS) -> tuple[DayForecast, ...]:
        """Map provider days to ``DayForecast`` entries, capped at ``limit``."""
        return tuple(
            DayForecast(
                date=entry.date,
                max_temp_c=entry.day.maxtemp_c,
                min_temp_c=entry.day.mintemp_c,
                rain_chance_percent=entry.day.daily_chance_of_rain,
                condition_text=entry.day.condition.text,
            )
            for entry in self.forecast.forecastday[:limit]
        )

    def place_label(self) -> str | None:
        """Return ``name, region`` from the provider, if present."""
        if self.location is None:
            return None
        parts = [part for part in (self.location.name, self.location.region) if part]
        return ", ".join(parts) or None
