"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from crop_diagnosis.adapters.advisory_client import HttpxAdvisoryClient
from crop_diagnosis.adapters.inference_client import HttpxInferenceClient
from crop_diagnosis.adapters.location_provider import (
    LocationProvider,
    StaticLocationProvider,
)
from crop_diagnosis.adapters.weather_client import HttpxWeatherClient
from crop_diagnosis.config import Settings, WorkflowVariant
from crop_diagnosis.domain.weather import Location
from crop_diagnosis.services.advisory import AdvisoryService
from crop_diagnosis.services.upload import UploadService
from crop_diagnosis.services.weather import WeatherService
from crop_diagnosis.services.workflow import DiagnosisWorkflow


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    variant: WorkflowVariant
    upload_service: UploadService
    advisory_service: AdvisoryService | None
    weather_service: WeatherService | None
    location_provider: LocationProvider
    close_resources: Callable[[], Awaitable[None]]

    def new_workflow(self, location: Location | None = None) -> DiagnosisWorkflow:
        """Create a workflow for a new session."""
        provider = (
            StaticLocationProvider(location)
            if location is not None
            else self.location_provider
        )
        return DiagnosisWorkflow(
            upload_service=self.upload_service,
            advisory_service=self.advisory_service,
            weather_service=self.weather_service,
            location_provider=provider,
            variant=self.variant,
        )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    variant = resolved_settings.workflow_variant()
    inference_client = HttpxInferenceClient.create(resolved_settings.inference_base_url)
    upload_service = UploadService(inference_client)

    advisory_client: HttpxAdvisoryClient | None = None
    advisory_service: AdvisoryService | None = None
    if resolved_settings.advisory_base_url:
        advisory_client = HttpxAdvisoryClient.create(
            resolved_settings.advisory_base_url
        )
        advisory_service = AdvisoryService(advisory_client)

    weather_client: HttpxWeatherClient | None = None
    weather_service: WeatherService | None = None
    if resolved_settings.weather_api_key:
        weather_client = HttpxWeatherClient.create(
            api_key=resolved_settings.weather_api_key,
            base_url=resolved_settings.weather_base_url,
        )
        weather_service = WeatherService(
            client=weather_client, days=variant.forecast_days
        )

    location_provider = StaticLocationProvider(resolved_settings.default_location())

    async def close_resources() -> None:
        await inference_client.close()
        if advisory_client is not None:
            await advisory_client.close()
        if weather_client is not None:
            await weather_client.close()

    return AppContainer(
        settings=resolved_settings,
        variant=variant,
        upload_service=upload_service,
        advisory_service=advisory_service,
        weather_service=weather_service,
        location_provider=location_provider,
        close_resources=close_resources,
    )
