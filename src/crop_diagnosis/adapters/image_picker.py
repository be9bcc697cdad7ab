"""Capture capability adapters."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Protocol
from uuid import uuid4

from crop_diagnosis.domain.errors import CaptureCancelled, CapturePermissionDenied
from crop_diagnosis.domain.images import ImageRef, ImageSource

_ALLOWED_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp", ".heic"}
_CHUNK_SIZE = 64 * 1024

_logger = logging.getLogger(__name__)


class ImagePicker(Protocol):
    """Interface for the gallery/camera capability."""

    async def request_image(self, source: ImageSource) -> ImageRef:
        """Return a reference to the chosen image.

        Raises ``CaptureCancelled`` or ``CapturePermissionDenied``.
        """


@dataclass
class SpooledUploadPicker(ImagePicker):
    """Picker backed by an image the client has already uploaded.

    The upload stream is spooled to ``spool_dir`` so later steps can refer to
    it by path.
    """

    spool_dir: Path
    filename: str | None
    stream: BinaryIO
    spooled: ImageRef | None = field(default=None, init=False)

    async def request_image(self, source: ImageSource) -> ImageRef:
        """Spool the uploaded stream and return its path as the reference."""
        if not self.filename:
            raise CaptureCancelled("No file was provided")
        suffix = Path(self.filename).suffix.lower()
        if suffix not in _ALLOWED_SUFFIXES:
            suffix = ".jpg"
        target = self.spool_dir / f"{uuid4().hex}{suffix}"
        try:
            self.spool_dir.mkdir(parents=True, exist_ok=True)
            written = _copy_stream(self.stream, target)
        except PermissionError as exc:
            raise CapturePermissionDenied(str(exc)) from exc
        if written == 0:
            target.unlink(missing_ok=True)
            raise CaptureCancelled("Uploaded file is empty")
        _logger.info("Spooled %s image to %s (%s bytes)", source.value, target, written)
        self.spooled = ImageRef(uri=str(target), source=source)
        return self.spooled


def discard_spooled_image(spool_dir: Path, image: ImageRef | None) -> None:
    """Delete the file behind ``image`` if it lives in ``spool_dir``."""
    if image is None:
        return
    path = image.local_path()
    if path.parent.resolve() != spool_dir.resolve():
        return
    path.unlink(missing_ok=True)
    _logger.debug("Discarded spooled image %s", path)


def _copy_stream(stream: BinaryIO, target: Path) -> int:
    """Copy ``stream`` into ``target`` and return the byte count."""
    written = 0
    with target.open("wb") as handle:
        while chunk := stream.read(_CHUNK_SIZE):
            handle.write(chunk)
            written += len(chunk)
    return written
