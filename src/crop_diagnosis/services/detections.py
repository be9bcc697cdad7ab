"""Detection deduplication."""

from collections.abc import Iterable

from crop_diagnosis.domain.detections import Detection


def reduce_detections(raw: Iterable[Detection]) -> tuple[Detection, ...]:
    """Keep the highest-scoring detection per label.

    Ties keep the first-encountered entry. Output follows the order in which
    each label first appears in ``raw``.
    """
    best: dict[str, Detection] = {}
    for detection in raw:
        current = best.get(detection.label)
        if current is None or detection.score > current.score:
            best[detection.label] = detection
    return tuple(best.values())
