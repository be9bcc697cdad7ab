"""WeatherAPI.com forecast client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from crop_diagnosis.domain.weather import MAX_FORECAST_DAYS, Coordinates


class WeatherClient(Protocol):
    """Interface for forecast-by-coordinates lookups."""

    async def get_forecast(
        self, coordinates: Coordinates, days: int = MAX_FORECAST_DAYS
    ) -> dict[str, object]:
        """Return the raw forecast payload."""


@dataclass
class HttpxWeatherClient(WeatherClient):
    """HTTPX-backed WeatherAPI.com client."""

    api_key: str
    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, api_key: str, base_url: str) -> "HttpxWeatherClient":
        """Create a weather client with a managed httpx session."""
        return cls(
            api_key=api_key,
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(timeout=None),
        )

    async def get_forecast(
        self, coordinates: Coordinates, days: int = MAX_FORECAST_DAYS
    ) -> dict[str, object]:
        """Fetch a multi-day forecast for the given coordinates."""
        url = f"{self.base_url}/forecast.json"
        response = await self.http_client.get(
            url,
            params={
                "key": self.api_key,
                "q": coordinates.as_query(),
                "days": days,
                "aqi": "no",
                "alerts": "no",
            },
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
