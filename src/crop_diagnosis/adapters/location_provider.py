"""Location capability used by the weather gate."""

from dataclasses import dataclass
from typing import Protocol

from crop_diagnosis.domain.errors import LocationUnavailable
from crop_diagnosis.domain.weather import Location


class LocationProvider(Protocol):
    """Interface for resolving the device or farm location."""

    async def locate(self) -> Location:
        """Return coordinates and an optional place name.

        Raises ``LocationUnavailable`` when permission is refused or no fix exists.
        """


@dataclass
class StaticLocationProvider(LocationProvider):
    """Location provider returning a fixed, caller-supplied location."""

    location: Location | None

    async def locate(self) -> Location:
        """Return the configured location."""
        if self.location is None:
            raise LocationUnavailable("No location configured")
        return self.location
