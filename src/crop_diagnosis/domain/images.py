"""Image references handed out by the capture capability."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from urllib.parse import unquote, urlparse

_DEFAULT_NAME = "photo.jpg"


class ImageSource(str, Enum):
    """Where an image came from."""

    GALLERY = "gallery"
    CAMERA = "camera"


@dataclass(frozen=True)
class ImageRef:
    """Opaque handle to captured or picked content; never holds the bytes."""

    uri: str
    source: ImageSource = ImageSource.GALLERY

    @property
    def name(self) -> str:
        """Return the file name used for the multipart field."""
        tail = self.uri.rstrip("/").rsplit("/", 1)[-1]
        return tail or _DEFAULT_NAME

    @property
    def mime_type(self) -> str:
        """Infer the MIME type from the file extension."""
        _, _, extension = self.name.rpartition(".")
        if extension.lower() == "png":
            return "image/png"
        return "image/jpeg"

    def local_path(self) -> Path:
        """Resolve the reference to a filesystem path."""
        parsed = urlparse(self.uri)
        if parsed.scheme == "file":
            return Path(unquote(parsed.path))
        return Path(self.uri)
