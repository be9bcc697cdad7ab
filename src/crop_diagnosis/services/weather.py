"""Forecast lookup and the gate that reveals it after a diagnosis."""

import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from crop_diagnosis.adapters.location_provider import LocationProvider
from crop_diagnosis.adapters.weather_client import WeatherClient
from crop_diagnosis.domain.errors import WeatherError
from crop_diagnosis.domain.sessions import WeatherStatus
from crop_diagnosis.domain.weather import (
    MAX_FORECAST_DAYS,
    Coordinates,
    LocatedForecast,
    Location,
    ProviderForecast,
)
from crop_diagnosis.services.sessions import SessionStateMachine

_logger = logging.getLogger(__name__)


@dataclass
class WeatherService:
    """Resolves a multi-day forecast for a location."""

    client: WeatherClient
    days: int = MAX_FORECAST_DAYS

    async def resolve_forecast(self, location: Location) -> LocatedForecast:
        """Fetch and parse the forecast; raises ``WeatherError`` on any failure."""
        try:
            payload = await self.client.get_forecast(location.coordinates, self.days)
        except Exception as exc:
            raise WeatherError(f"Forecast lookup failed: {exc!r}") from exc
        try:
            parsed = ProviderForecast.model_validate(payload)
        except ValidationError as exc:
            raise WeatherError(f"Malformed forecast: {exc}") from exc
        return LocatedForecast(
            forecast=parsed.days(self.days),
            location_label=location.place_name or parsed.place_label(),
        )


@dataclass
class WeatherGate:
    """Fetches the forecast once per session and reports it to the machine.

    Whether the forecast is shown is decided by the machine's ``show_weather``
    flag, which only a successful diagnosis sets.
    """

    machine: SessionStateMachine
    service: WeatherService
    location_provider: LocationProvider
    _resolved: Coordinates | None = field(default=None, init=False)

    async def open(self) -> None:
        """Resolve the current location and its forecast."""
        self.machine.weather_requested()
        try:
            location = await self.location_provider.locate()
        except WeatherError as exc:
            self._mark_unavailable(exc)
            return
        except Exception as exc:
            self._mark_unavailable(WeatherError(f"Location lookup failed: {exc!r}"))
            return
        await self._resolve(location)

    async def refresh(self, location: Location) -> None:
        """Re-resolve only when the coordinates differ from the last success."""
        if (
            location.coordinates == self._resolved
            and self.machine.session.weather_status is WeatherStatus.AVAILABLE
        ):
            return
        self.machine.weather_requested()
        await self._resolve(location)

    async def _resolve(self, location: Location) -> None:
        try:
            result = await self.service.resolve_forecast(location)
        except WeatherError as exc:
            self._mark_unavailable(exc)
            return
        self._resolved = location.coordinates
        self.machine.weather_resolved(result)
        _logger.info(
            "Forecast ready: %s days for %s",
            len(result.forecast),
            result.location_label or location.coordinates.as_query(),
        )

    def _mark_unavailable(self, exc: WeatherError) -> None:
        _logger.warning("Weather unavailable: %s", exc)
        self._resolved = None
        self.machine.weather_unavailable()
