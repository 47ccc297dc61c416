"""
Profile photo uploads.

Files go to object storage first and the `assets` row is added to the
caller's session without committing, so the employee write that links the
asset decides whether both persist. Callers that roll back must call
`discard_upload` to remove the orphaned storage object.
"""

import logging
import os
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from employee_directory.core.config import settings
from employee_directory.core.exceptions import NotFoundError, ValidationError
from employee_directory.core.storage import ObjectStorage, StorageError
from employee_directory.models.asset import Asset

logger = logging.getLogger("employee_directory.assets")

PROFILE_PHOTO_PREFIX = "profile-photos"

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}
ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


@dataclass
class PhotoUpload:
    """An uploaded file read into memory by the router."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def validate_photo(upload: PhotoUpload) -> None:
    """
    Raises:
        ValidationError: wrong type, empty file, or larger than PROFILE_PHOTO_MAX_BYTES
    """
    content_type = (upload.content_type or "").lower()
    extension = os.path.splitext(upload.filename or "")[1].lower()
    if content_type not in ALLOWED_IMAGE_TYPES or extension not in ALLOWED_EXTENSIONS:
        raise ValidationError("Only image files are allowed")
    if upload.size == 0:
        raise ValidationError("Uploaded file is empty")
    if upload.size > settings.PROFILE_PHOTO_MAX_BYTES:
        max_mb = settings.PROFILE_PHOTO_MAX_BYTES / (1024 * 1024)
        raise ValidationError(f"File too large. Maximum size is {max_mb:g}MB")


def build_storage_key(upload: PhotoUpload) -> str:
    extension = os.path.splitext(upload.filename)[1].lower()
    if extension == ".jpeg":
        extension = ".jpg"
    return f"{PROFILE_PHOTO_PREFIX}/{uuid.uuid4().hex}{extension}"


async def create_asset(db: AsyncSession, storage: ObjectStorage, upload: PhotoUpload) -> Asset:
    """
    Validate and upload a photo, then add (and flush) its Asset row.

    Does not commit.
    """
    validate_photo(upload)
    key = build_storage_key(upload)
    stored = await storage.upload(key, upload.data, upload.content_type.lower())

    asset = Asset(
        storage_key=stored.key,
        bucket=stored.bucket,
        original_name=upload.filename[:255],
        mime_type=upload.content_type.lower(),
        size=upload.size,
        url=stored.url,
        cdn_url=stored.cdn_url,
    )
    db.add(asset)
    await db.flush()
    logger.info(f"Stored profile photo {stored.key} ({upload.size} bytes)")
    return asset


async def discard_upload(storage: ObjectStorage, storage_key: Optional[str]) -> None:
    """Remove a storage object whose database write was rolled back."""
    if not storage_key:
        return
    try:
        await storage.delete(storage_key)
    except StorageError:
        logger.exception(f"Failed to clean up orphaned upload {storage_key}")


async def delete_asset(db: AsyncSession, storage: ObjectStorage, asset_id: int) -> None:
    """
    Delete an asset: storage object first, then its row.

    Raises:
        NotFoundError: no such asset
        StorageError: the storage backend refused the delete (row kept)
    """
    asset = await db.scalar(select(Asset).where(Asset.id == asset_id))
    if asset is None:
        raise NotFoundError("Asset not found")

    await storage.delete(asset.storage_key)
    await db.delete(asset)
    await db.commit()
    logger.info(f"Deleted asset {asset_id} ({asset.storage_key})")
