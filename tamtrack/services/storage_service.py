import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from uuid import uuid4

from typing_extensions import Protocol

from ..config import settings
from ..errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic"}
ALLOWED_CONTENT_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/heic",
}


@dataclass
class StoredFile:
    filename: str
    url: str


class FileStorage(Protocol):
    def save(
        self, data: bytes, filename: str, content_type: Optional[str] = None
    ) -> StoredFile: ...

    def delete(self, filename: str) -> None: ...


def check_image(data: bytes, filename: str, content_type: Optional[str], max_bytes: int):
    """Reject anything that is not a reasonably sized image."""
    extension = Path(filename or "").suffix.lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise ValidationError.for_field("file", "Only image files are allowed")
    if content_type and content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationError.for_field("file", "Only image files are allowed")
    if not data:
        raise ValidationError.for_field("file", "File is empty")
    if len(data) > max_bytes:
        raise ValidationError.for_field(
            "file", f"File exceeds the {max_bytes // (1024 * 1024)} MB limit"
        )
    return extension


def read_upload(stream, max_bytes: int) -> bytes:
    """Read at most one byte past ``max_bytes`` from an upload stream."""
    data = stream.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ValidationError.for_field(
            "file", f"File exceeds the {max_bytes // (1024 * 1024)} MB limit"
        )
    return data


class LocalFileStorage:
    """Stores uploads under ``root`` and serves them from ``url_prefix``."""

    def __init__(
        self,
        root: str = None,
        url_prefix: str = None,
        max_bytes: int = None,
    ):
        self.root = Path(root or settings.UPLOAD_DIR)
        self.url_prefix = (url_prefix or settings.UPLOAD_URL_PREFIX).rstrip("/")
        self.max_bytes = max_bytes or settings.MAX_UPLOAD_BYTES

    def save(
        self, data: bytes, filename: str, content_type: Optional[str] = None
    ) -> StoredFile:
        extension = check_image(data, filename, content_type, self.max_bytes)
        self.root.mkdir(parents=True, exist_ok=True)
        name = f"{uuid4().hex}{extension}"
        (self.root / name).write_bytes(data)
        logger.info("stored upload %s (%s bytes)", name, len(data))
        return StoredFile(filename=name, url=f"{self.url_prefix}/{name}")

    def delete(self, filename: str) -> None:
        path = self.root / Path(filename).name
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("upload %s already gone", filename)


def get_file_storage() -> FileStorage:
    return LocalFileStorage()


def remove_files(storage: FileStorage, filenames) -> None:
    """Best-effort cleanup after the rows are gone; failures are only logged."""
    for filename in filenames:
        try:
            storage.delete(filename)
        except OSError as exc:
            logger.error("could not remove upload %s: %s", filename, exc)
