"""Photo storage for complaint evidence, resolution proof and bill photos."""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Protocol

from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from complaint_desk.core.config import settings
from complaint_desk.core.errors import StorageError, ValidationError
from complaint_desk.utils.file_upload import PhotoUpload

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

ALLOWED_EXTENSIONS = {"jpeg", "jpg", "png", "gif", "webp"}
ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
}

COMPLAINT_PHOTO_FOLDER = "complaints"
RESOLUTION_PHOTO_FOLDER = "complaints/resolution"
BILL_PHOTO_FOLDER = "billing"


@dataclass(frozen=True)
class StoredPhoto:
    """Result of a successful upload."""

    url: str
    storage_key: str
    original_name: str
    uploaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "storage_key": self.storage_key,
            "original_name": self.original_name,
            "uploaded_at": self.uploaded_at.isoformat(),
        }


class PhotoStorage(Protocol):
    """Narrow interface the complaint core uses for photo files."""

    def upload(self, file: PhotoUpload, folder: str) -> StoredPhoto:
        """Store the file; raise on failure."""

    def delete(self, storage_key: str) -> None:
        """Remove the file. Best effort: failures are logged, never raised."""


# =============================================================================
# Validation
# =============================================================================

def validate_photo(file: PhotoUpload, max_size_bytes: int | None = None) -> None:
    """Reject anything that is not a reasonably sized image."""
    limit = max_size_bytes or settings.MAX_PHOTO_SIZE_BYTES
    ext = file.filename.rsplit(".", 1)[-1].lower() if "." in file.filename else ""
    if ext not in ALLOWED_EXTENSIONS or file.content_type.lower() not in ALLOWED_MIME_TYPES:
        raise ValidationError("Only image files (jpeg, jpg, png, gif, webp) are allowed")
    if file.size > limit:
        max_mb = limit / (1024 * 1024)
        raise ValidationError(f"Photo '{file.filename}' exceeds {max_mb:.0f} MB limit")


def validate_photo_batch(files: list[PhotoUpload], max_count: int | None = None) -> None:
    limit = max_count or settings.MAX_COMPLAINT_PHOTOS
    if len(files) > limit:
        raise ValidationError(f"Maximum {limit} photos allowed per complaint")
    for file in files:
        validate_photo(file)


def _storage_key(folder: str, filename: str) -> str:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    return f"{folder.strip('/')}/{uuid.uuid4().hex}.{ext}"


# =============================================================================
# Backends
# =============================================================================

class LocalPhotoStorage:
    """Writes photos under a local directory (dev only)."""

    def __init__(self, base_path: str, base_url: str):
        self.base_path = base_path
        self.base_url = base_url.rstrip("/")

    def upload(self, file: PhotoUpload, folder: str) -> StoredPhoto:
        storage_key = _storage_key(folder, file.filename)
        path = os.path.join(self.base_path, storage_key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(file.content)
        return StoredPhoto(
            url=f"{self.base_url}/{storage_key}",
            storage_key=storage_key,
            original_name=file.filename,
        )

    def delete(self, storage_key: str) -> None:
        path = os.path.join(self.base_path, storage_key)
        try:
            if os.path.exists(path):
                os.remove(path)
        except OSError as exc:
            logger.warning("Local photo delete failed key=%s error=%s", storage_key, exc)


class S3PhotoStorage:
    """Stores photos in an S3 (or S3-compatible) bucket."""

    def __init__(self, bucket: str, client_factory: Callable[[], BaseClient]):
        self.bucket = bucket
        self._client_factory = client_factory

    def upload(self, file: PhotoUpload, folder: str) -> StoredPhoto:
        from io import BytesIO

        from complaint_desk.services.storage_client import public_object_url

        storage_key = _storage_key(folder, file.filename)
        s3 = self._client_factory()
        s3.upload_fileobj(
            BytesIO(file.content),
            self.bucket,
            storage_key,
            ExtraArgs={"ContentType": file.content_type},
        )
        return StoredPhoto(
            url=public_object_url(self.bucket, storage_key),
            storage_key=storage_key,
            original_name=file.filename,
        )

    def delete(self, storage_key: str) -> None:
        try:
            self._client_factory().delete_object(Bucket=self.bucket, Key=storage_key)
        except (BotoCoreError, ClientError) as exc:
            logger.warning("S3 photo delete failed key=%s error=%s", storage_key, exc)


def get_photo_storage() -> PhotoStorage:
    """Build the configured storage backend."""
    if settings.STORAGE_BACKEND == "s3":
        from complaint_desk.services.storage_client import get_s3_client

        return S3PhotoStorage(settings.S3_BUCKET, get_s3_client)
    return LocalPhotoStorage(settings.LOCAL_STORAGE_PATH, settings.LOCAL_STORAGE_BASE_URL)


# =============================================================================
# Batch operations
# =============================================================================

def upload_photos(
    storage: PhotoStorage,
    files: list[PhotoUpload],
    folder: str,
) -> list[dict]:
    """
    Upload a batch all-or-nothing.

    Every file in the batch is attempted. If any upload failed, every photo this
    call stored is deleted and StorageError is raised, so no partial batch is
    ever attached to a record.
    """
    uploaded: list[StoredPhoto] = []
    first_error: Exception | None = None
    for file in files:
        try:
            uploaded.append(storage.upload(file, folder))
        except Exception as exc:
            logger.warning("Photo upload failed folder=%s file=%s error=%s", folder, file.filename, exc)
            first_error = first_error or exc

    if first_error is not None:
        logger.warning("Rolling back photo batch folder=%s uploaded=%s", folder, len(uploaded))
        for photo in uploaded:
            storage.delete(photo.storage_key)
        raise StorageError("Failed to upload photos") from first_error
    return [photo.to_dict() for photo in uploaded]


def delete_photos(storage: PhotoStorage, photos: list[dict] | None) -> None:
    """Delete stored photos by key; never raises."""
    for photo in photos or []:
        storage_key = photo.get("storage_key") if isinstance(photo, dict) else None
        if not storage_key:
            continue
        try:
            storage.delete(storage_key)
        except Exception as exc:
            logger.warning("Photo delete failed key=%s error=%s", storage_key, exc)
