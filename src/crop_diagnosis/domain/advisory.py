"""Treatment advisory models."""

from dataclasses import dataclass, field

from pydantic import BaseModel


class AdviceResponse(BaseModel):
    """Advisory service response body."""

    advice: str


@dataclass(frozen=True)
class AdvisoryReport:
    """Outcome of one advisory pass: successes and labels that failed."""

    advice: dict[str, str] = field(default_factory=dict)
    unavailable: frozenset[str] = frozenset()
