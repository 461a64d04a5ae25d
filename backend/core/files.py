"""Image attachments for inventory items.

``image_from_upload`` turns a multipart file part into an ``UploadedImage``
(or ``None`` when no file was sent). A ``FileStore`` keeps the bytes and hands
back the path that ends up in ``itemImg``.
"""
import logging
import os
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from core.config import settings
from core.errors import StoreFailure, ValidationError

logger = logging.getLogger(__name__)

EXT_TO_CONTENT_TYPE = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "heic": "image/heic",
    "heif": "image/heif",
}

CONTENT_TYPE_TO_EXT = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/heic": ".heic",
    "image/heif": ".heif",
}


@dataclass(frozen=True)
class UploadedImage:
    filename: str
    content_type: str
    data: bytes


async def image_from_upload(
    file: Optional[UploadFile],
    max_bytes: Optional[int] = None,
) -> Optional[UploadedImage]:
    """Read and check an uploaded image. Returns None when no file was sent."""
    if file is None:
        return None
    data = await file.read()
    filename = file.filename or ""
    if not data:
        return None

    content_type = (file.content_type or "").strip().lower()
    ext = os.path.splitext(filename)[1].lower().lstrip(".")
    if content_type and content_type != "application/octet-stream" and not content_type.startswith("image/"):
        raise ValidationError("File must be an image")
    if (not content_type or content_type == "application/octet-stream") and ext not in EXT_TO_CONTENT_TYPE:
        raise ValidationError("File must be an image")

    limit = settings.max_upload_bytes if max_bytes is None else max_bytes
    if len(data) > limit:
        raise ValidationError(f"Image size must be at most {limit} bytes")

    if not content_type or content_type == "application/octet-stream":
        content_type = EXT_TO_CONTENT_TYPE[ext]

    return UploadedImage(
        filename=filename or f"image_{uuid.uuid4().hex[:8]}",
        content_type=content_type,
        data=data,
    )


class FileStore(ABC):

    @abstractmethod
    def save(self, image: UploadedImage) -> str:
        """Store the image under a generated name and return its path."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove a previously stored file."""


class DiskFileStore(FileStore):
    """Keeps images as plain files below one directory."""

    def __init__(self, root: str) -> None:
        self.root = Path(root)

    def _extension(self, image: UploadedImage) -> str:
        ext = os.path.splitext(image.filename)[1].lower()
        if ext.lstrip(".") in EXT_TO_CONTENT_TYPE:
            return ext
        return CONTENT_TYPE_TO_EXT.get(image.content_type, ".jpg")

    def resolve(self, name: str) -> Optional[Path]:
        """Map a bare file name to a path inside the store, or None."""
        if not name or Path(name).name != name:
            return None
        return self.root / name

    def save(self, image: UploadedImage) -> str:
        name = f"{uuid.uuid4().hex}{self._extension(image)}"
        target = self.root / name
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with open(target, "wb") as fh:
                fh.write(image.data)
                fh.flush()
                os.fsync(fh.fileno())
        except OSError as e:
            raise StoreFailure(f"Failed to store image: {e}") from e
        logger.info("Stored image %s (%d bytes)", target, len(image.data))
        return target.as_posix()

    def delete(self, path: str) -> None:
        target = self.resolve(Path(path).name)
        if target is None or Path(path).parent.resolve() != self.root.resolve():
            logger.warning("Refusing to delete %s outside of %s", path, self.root)
            return
        try:
            os.unlink(target)
        except FileNotFoundError:
            logger.warning("Image %s was already gone", path)
            return
        except OSError as e:
            raise StoreFailure(f"Failed to delete image {path}: {e}") from e
        logger.info("Deleted image %s", path)


def get_file_store() -> FileStore:
    return DiskFileStore(settings.upload_dir)
