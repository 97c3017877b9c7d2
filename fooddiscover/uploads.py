"""
Image upload validation and staged storage for listing photos.

Validation happens entirely in memory before anything touches the disk.
Accepted files are written to a staging directory and only moved into the
public upload directory once the request is ready to persist; any failure
after that point removes every file the request wrote.
"""
import os
import re
import shutil
import tempfile
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

from fastapi import Depends, Request
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from .config import Settings, get_settings
from .logging_config import upload_logger
from .responses import UploadError


IMAGE_FIELD = "images"

FILE_TOO_LARGE_MESSAGE = "File too large. Maximum size is {max_mb}MB."
TOO_MANY_FILES_MESSAGE = "Too many files. Maximum is {max_files} files."
UNEXPECTED_FIELD_MESSAGE = "Unexpected field name for file upload."
INVALID_TYPE_MESSAGE = "Upload error: Only JPEG, PNG, WEBP images are allowed"

EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


@dataclass
class ValidatedImage:
    """An uploaded image that passed every constraint."""
    original_filename: str
    content: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.content)


def detect_image_type(head: bytes) -> Optional[str]:
    """Identify JPEG, PNG or WEBP from the leading bytes."""
    if head.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if head.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if len(head) >= 12 and head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return "image/webp"
    return None


def stored_filename(original_filename: str, mime_type: str, index: int = 0) -> str:
    """Build a collision-free, traversal-safe name for an upload."""
    base = os.path.splitext(os.path.basename(original_filename or ""))[0]
    base = _UNSAFE_CHARS.sub("_", base) or "image"
    return f"{time.time_ns()}_{index}_{base}{EXTENSIONS[mime_type]}"


async def read_image_upload(request: Request, settings: Settings) -> List[ValidatedImage]:
    """Read and validate the multipart file parts of a create request.

    Checks run per file in arrival order: field name, file count, size,
    then the sniffed content type. The first violation rejects the batch.
    """
    try:
        form = await request.form()
    except (MultiPartException, StarletteHTTPException) as e:
        detail = getattr(e, "message", None) or getattr(e, "detail", None) or str(e)
        raise UploadError(f"File upload error: {detail}")

    max_mb = settings.max_upload_size // (1024 * 1024)
    images: List[ValidatedImage] = []

    for field_name, value in form.multi_items():
        if not isinstance(value, UploadFile):
            continue
        if not value.filename and not value.size:
            # Browsers send an empty part for an untouched file input
            continue
        if field_name != IMAGE_FIELD:
            upload_logger.warning("Upload rejected", reason="unexpected_field", field=field_name)
            raise UploadError(UNEXPECTED_FIELD_MESSAGE)
        if len(images) >= settings.max_upload_files:
            upload_logger.warning("Upload rejected", reason="too_many_files")
            raise UploadError(TOO_MANY_FILES_MESSAGE.format(max_files=settings.max_upload_files))

        content = await value.read(settings.max_upload_size + 1)
        if len(content) > settings.max_upload_size:
            upload_logger.warning("Upload rejected", reason="file_too_large", filename=value.filename)
            raise UploadError(FILE_TOO_LARGE_MESSAGE.format(max_mb=max_mb))

        mime_type = detect_image_type(content[:16])
        if mime_type is None or mime_type not in settings.allowed_image_types:
            upload_logger.warning(
                "Upload rejected",
                reason="invalid_type",
                filename=value.filename,
                declared_type=value.content_type,
            )
            raise UploadError(INVALID_TYPE_MESSAGE)

        images.append(ValidatedImage(value.filename or "", content, mime_type))

    return images


async def validated_images(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> List[ValidatedImage]:
    """Dependency form of read_image_upload."""
    return await read_image_upload(request, settings)


# ============================================================
# STORAGE
# ============================================================

class StagedBatch:
    """Files of one request, staged and then published together."""

    def __init__(self, storage: "ImageStorage", images: List[ValidatedImage]):
        self.storage = storage
        self.images = images
        self.staging_dir = Path(tempfile.mkdtemp(dir=storage.staging_root))
        self.names: List[str] = []
        self.published: List[Path] = []

    def write(self):
        for index, image in enumerate(self.images):
            name = stored_filename(image.original_filename, image.mime_type, index)
            (self.staging_dir / name).write_bytes(image.content)
            self.names.append(name)

    def publish(self) -> List[str]:
        """Move staged files into the public directory; returns their URL paths."""
        for name in self.names:
            target = self.storage.root / name
            os.replace(self.staging_dir / name, target)
            self.published.append(target)
        return [self.storage.public_path(name) for name in self.names]

    def discard(self):
        for path in self.published:
            path.unlink(missing_ok=True)
        self.published = []

    def cleanup(self):
        shutil.rmtree(self.staging_dir, ignore_errors=True)


class ImageStorage:
    """Local-disk store for listing images."""

    def __init__(self, settings: Settings):
        self.root = Path(settings.upload_dir)
        # Sibling of the public directory so staged files are never served
        self.staging_root = self.root.parent / f".{self.root.name}-staging"
        self.url_prefix = settings.uploads_url_prefix.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)
        self.staging_root.mkdir(parents=True, exist_ok=True)

    def public_path(self, name: str) -> str:
        return f"{self.url_prefix}/{name}"

    def path_for(self, public_path: str) -> Path:
        # Only the final component is trusted; stored paths never nest
        return self.root / Path(public_path).name

    @contextmanager
    def stage(self, images: List[ValidatedImage]) -> Iterator[StagedBatch]:
        """Stage a batch; published files are removed if the block raises."""
        batch = StagedBatch(self, images)
        try:
            batch.write()
            yield batch
        except BaseException:
            batch.discard()
            upload_logger.warning("Discarded staged upload batch", files=len(images))
            raise
        finally:
            batch.cleanup()

    def delete(self, public_paths: List[str]) -> int:
        removed = 0
        for public_path in public_paths:
            path = self.path_for(public_path)
            if path.is_file():
                path.unlink()
                removed += 1
        return removed


def get_image_storage(settings: Settings = Depends(get_settings)) -> ImageStorage:
    return ImageStorage(settings)
