"""
Object storage for uploaded files (profile photos).

Two backends behind one async interface:
- S3ObjectStorage: AWS S3 through boto3, optionally fronted by CloudFront
- LocalObjectStorage: a directory on disk, for development

boto3 and filesystem calls are blocking, so both backends run them in a
worker thread with `asyncio.to_thread`.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from employee_directory.core.config import settings

logger = logging.getLogger("employee_directory.storage")


class StorageBackend(str, Enum):
    """Supported storage backend types."""

    LOCAL = "local"
    S3 = "s3"


class StorageError(Exception):
    """Raised when the storage service rejects or fails an operation."""


@dataclass
class StoredObject:
    key: str
    bucket: Optional[str]
    url: str
    cdn_url: Optional[str] = None


def normalize_key(key: str) -> str:
    """Convert backslashes, strip leading/trailing slashes and collapse doubles."""
    key = key.replace("\\", "/").strip("/")
    while "//" in key:
        key = key.replace("//", "/")
    return key


class ObjectStorage(ABC):
    """Interface every storage backend implements."""

    @property
    @abstractmethod
    def backend_type(self) -> StorageBackend:
        ...

    @abstractmethod
    async def upload(self, key: str, data: bytes, content_type: str) -> StoredObject:
        """
        Store `data` under `key`.

        Raises:
            StorageError: if the backend fails
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete the object at `key`. Deleting a missing object is not an error."""
        ...


class S3ObjectStorage(ObjectStorage):
    """
    S3 implementation.

    Environment Variables:
        AWS_S3_BUCKET: bucket name (required)
        AWS_REGION: AWS region (default: us-east-1)
        AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY: optional explicit credentials
        AWS_CLOUDFRONT_DOMAIN: optional CDN domain used to build `cdn_url`
    """

    def __init__(
        self,
        bucket: str,
        *,
        region: str = "us-east-1",
        cdn_domain: Optional[str] = None,
        client=None,
    ):
        if not bucket:
            raise ValueError("S3 bucket name required. Set AWS_S3_BUCKET.")
        self._bucket = bucket
        self._region = region
        self._cdn_domain = cdn_domain.strip("/") if cdn_domain else None
        self._client = client or self._create_client()

    def _create_client(self):
        client_kwargs = {"region_name": self._region}
        if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
            client_kwargs["aws_access_key_id"] = settings.AWS_ACCESS_KEY_ID
            client_kwargs["aws_secret_access_key"] = settings.AWS_SECRET_ACCESS_KEY
        return boto3.client("s3", **client_kwargs)

    @property
    def backend_type(self) -> StorageBackend:
        return StorageBackend.S3

    @property
    def bucket(self) -> str:
        return self._bucket

    def _object_url(self, key: str) -> str:
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{key}"

    def _cdn_url(self, key: str) -> Optional[str]:
        if not self._cdn_domain:
            return None
        return f"https://{self._cdn_domain}/{key}"

    async def upload(self, key: str, data: bytes, content_type: str) -> StoredObject:
        key = normalize_key(key)
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 upload failed for {key}: {e}")
            raise StorageError(f"Failed to upload {key}") from e

        return StoredObject(
            key=key,
            bucket=self._bucket,
            url=self._object_url(key),
            cdn_url=self._cdn_url(key),
        )

    async def delete(self, key: str) -> None:
        key = normalize_key(key)
        try:
            # S3 DeleteObject succeeds for missing keys
            await asyncio.to_thread(self._client.delete_object, Bucket=self._bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 delete failed for {key}: {e}")
            raise StorageError(f"Failed to delete {key}") from e


class LocalObjectStorage(ObjectStorage):
    """Filesystem implementation; URLs are file:// URIs."""

    def __init__(self, base_path: str):
        self._base_path = Path(base_path).resolve()

    @property
    def backend_type(self) -> StorageBackend:
        return StorageBackend.LOCAL

    def _resolve_path(self, key: str) -> Path:
        path = (self._base_path / normalize_key(key)).resolve()
        if not path.is_relative_to(self._base_path):
            raise StorageError(f"Key escapes storage root: {key}")
        return path

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def upload(self, key: str, data: bytes, content_type: str) -> StoredObject:
        key = normalize_key(key)
        path = self._resolve_path(key)
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as e:
            logger.error(f"Local upload failed for {key}: {e}")
            raise StorageError(f"Failed to upload {key}") from e
        return StoredObject(key=key, bucket=None, url=path.as_uri())

    async def delete(self, key: str) -> None:
        path = self._resolve_path(key)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as e:
            logger.error(f"Local delete failed for {key}: {e}")
            raise StorageError(f"Failed to delete {key}") from e


def create_object_storage(backend: Optional[str] = None) -> ObjectStorage:
    """
    Build the storage backend selected by STORAGE_BACKEND (default: local).
    """
    backend = (backend or settings.STORAGE_BACKEND).lower()
    if backend == StorageBackend.S3.value:
        logger.info(f"Using S3 object storage (bucket={settings.AWS_S3_BUCKET})")
        return S3ObjectStorage(
            settings.AWS_S3_BUCKET,
            region=settings.AWS_REGION,
            cdn_domain=settings.AWS_CLOUDFRONT_DOMAIN,
        )
    if backend == StorageBackend.LOCAL.value:
        logger.info(f"Using local object storage at {settings.LOCAL_STORAGE_PATH}")
        return LocalObjectStorage(settings.LOCAL_STORAGE_PATH)
    raise ValueError(f"Unknown storage backend: {backend}. Valid options: local, s3")
