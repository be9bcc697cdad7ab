"""Models for inference detections."""

from pydantic import BaseModel, ConfigDict, Field


class BoundingBox(BaseModel):
    """Box corners in source-image pixel coordinates."""

    model_config = ConfigDict(frozen=True)

    x1: float
    y1: float
    x2: float
    y2: float


class Detection(BaseModel):
    """Single labeled, scored finding returned by the inference service."""

    model_config = ConfigDict(frozen=True)

    label: str
    score: float = Field(ge=0.0, le=1.0)
    bounding_box: BoundingBox

    @classmethod
    def from_payload(cls, raw: dict[str, object]) -> "Detection":
        """Build a detection from the flat wire shape ``{label, score, x1..y2}``."""
        return cls.model_validate(
            {
                "label": raw.get("label"),
                "score": raw.get("score"),
                "bounding_box": {
                    "x1": raw.get("x1", 0.0),
                    "y1": raw.get("y1", 0.0),
                    "x2": raw.get("x2", 0.0),
                    "y2": raw.get("y2", 0.0),
                },
            }
        )


class InferenceResult(BaseModel):
    """Parsed inference response."""

    model_config = ConfigDict(frozen=True)

    detections: tuple[Detection, ...] = ()
    annotated_artifact: bytes | None = None
