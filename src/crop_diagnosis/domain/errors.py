"""Typed failures raised across the diagnosis workflow."""


class CaptureError(Exception):
    """Image acquisition did not produce an image."""


class CaptureCancelled(CaptureError):
    """The user dismissed the picker without choosing an image."""


class CapturePermissionDenied(CaptureError):
    """The capture capability refused access."""


class UploadError(Exception):
    """Inference request failed.

    ``status`` is the HTTP status code, or ``None`` when no response arrived.
    """

    def __init__(
        self,
        status: int | None = None,
        body: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.status = status
        self.body = body
        self.cause = cause
        if status is not None:
            message = f"HTTP {status}: {body or ''}".rstrip(": ")
        else:
            message = f"Network failure: {cause}"
        super().__init__(message)


class AdvisoryError(Exception):
    """Treatment advice lookup failed for a single label."""

    def __init__(self, label: str, reason: str) -> None:
        self.label = label
        self.reason = reason
        super().__init__(f"Advice for {label!r} unavailable: {reason}")


class WeatherError(Exception):
    """Forecast could not be resolved."""


class LocationUnavailable(WeatherError):
    """The location capability could not provide coordinates."""
