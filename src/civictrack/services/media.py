"""Image storage collaborator for issue attachments."""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

from civictrack.core.errors import UploadFailedError
from civictrack.core.settings import settings
from civictrack.domain import ImageUpload

logger = logging.getLogger(__name__)

_EXTENSIONS = {"image/jpeg": "jpg", "image/jpg": "jpg", "image/png": "png"}


def validate_images(
    uploads: list[ImageUpload],
    *,
    max_count: int | None = None,
    max_bytes: int | None = None,
    allowed_types: list[str] | None = None,
) -> list[dict[str, str]]:
    """Return every violation among ``uploads`` (empty when all are acceptable)."""
    max_count = settings.max_images_per_issue if max_count is None else max_count
    max_bytes = settings.max_image_bytes if max_bytes is None else max_bytes
    allowed = allowed_types or settings.allowed_image_types

    errors: list[dict[str, str]] = []
    if len(uploads) > max_count:
        errors.append({"field": "images", "message": f"Maximum {max_count} images allowed per issue"})
    for upload in uploads:
        if upload.content_type not in allowed:
            errors.append(
                {
                    "field": "images",
                    "message": f"{upload.filename}: only JPEG and PNG images are allowed",
                }
            )
        if len(upload.data) > max_bytes:
            errors.append(
                {
                    "field": "images",
                    "message": f"{upload.filename}: image exceeds {max_bytes} bytes",
                }
            )
    return errors


def make_object_key(filename: str, content_type: str) -> str:
    ext = _EXTENSIONS.get(content_type)
    if ext is None:
        ext = (filename.rsplit(".", 1)[-1] if "." in filename else "jpg").lower()
    return f"{uuid.uuid4().hex}.{ext}"


class ImageStore(ABC):
    """Binary image storage.

    Contract:
    - ``store`` returns a stable URL for the bytes or raises ``UploadFailedError``.
    - ``delete`` is best-effort: failures are logged, never raised.
    """

    @abstractmethod
    def store(self, data: bytes, content_type: str, filename: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def delete(self, url: str) -> None:
        raise NotImplementedError


class LocalImageStore(ImageStore):
    """Store images as files under ``media_root`` served from ``base_url``."""

    def __init__(self, media_root: str | None = None, base_url: str | None = None) -> None:
        self.media_root = Path(media_root or settings.media_root)
        self.base_url = (base_url or settings.media_base_url).rstrip("/")

    def store(self, data: bytes, content_type: str, filename: str) -> str:
        key = make_object_key(filename, content_type)
        try:
            self.media_root.mkdir(parents=True, exist_ok=True)
            (self.media_root / key).write_bytes(data)
        except OSError as err:
            raise UploadFailedError(f"Failed to store image {filename}") from err
        return f"{self.base_url}/{key}"

    def delete(self, url: str) -> None:
        prefix = f"{self.base_url}/"
        if not url.startswith(prefix):
            logger.warning("Refusing to delete image outside the media store: %s", url)
            return
        path = self.media_root / url[len(prefix):]
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Failed to delete image %s", url, exc_info=True)


def get_image_store() -> ImageStore:
    """Return the configured image store."""
    return LocalImageStore()
