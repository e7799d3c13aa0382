"""
Blob Store - object storage for company logos

Two operations are needed by the dashboard: upload bytes to a path inside
a bucket, and resolve the public URL of a stored path. LocalBlobStore keeps
objects on disk under {storage_dir}/{bucket}/ and serves them from
{storage_public_url}/{bucket}/.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Optional

from app.config import get_settings

logger = logging.getLogger(__name__)


class BlobStoreError(Exception):
    """Base error for blob storage failures."""
    pass


class BlobExistsError(BlobStoreError):
    """Raised when uploading to an occupied path without upsert."""
    pass


class BlobStore(ABC):
    """Abstract interface of the external object storage."""

    @abstractmethod
    async def upload(
        self,
        path: str,
        data: bytes,
        content_type: str,
        cache_control: Optional[str] = None,
        upsert: bool = False,
    ) -> str:
        """Store bytes at path; return the stored path."""
        pass

    @abstractmethod
    def get_public_url(self, path: str) -> Optional[str]:
        """Public URL for a stored path, or None if it cannot be served."""
        pass


def safe_object_path(path: str) -> PurePosixPath:
    """Normalize an object path and reject traversal outside the bucket."""
    pure = PurePosixPath(path.lstrip("/"))
    if not pure.parts or any(part in ("..", ".") for part in pure.parts):
        raise BlobStoreError(f"Invalid object path: {path!r}")
    return pure


class LocalBlobStore(BlobStore):
    """Filesystem-backed bucket."""

    def __init__(self, root: str, bucket: str, public_url: str):
        self.bucket = bucket
        self.bucket_dir = Path(root) / bucket
        self.public_url = public_url.rstrip("/")

    def _target(self, path: str) -> Path:
        return self.bucket_dir.joinpath(*safe_object_path(path).parts)

    async def upload(
        self,
        path: str,
        data: bytes,
        content_type: str,
        cache_control: Optional[str] = None,
        upsert: bool = False,
    ) -> str:
        target = self._target(path)
        if target.exists() and not upsert:
            raise BlobExistsError(f"Object already exists: {path}")

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        await asyncio.to_thread(_write)
        logger.info(f"Uploaded {len(data)} bytes to {self.bucket}/{path} ({content_type}, cache={cache_control})")
        return str(safe_object_path(path))

    def get_public_url(self, path: str) -> Optional[str]:
        if not self.public_url:
            return None
        return f"{self.public_url}/{self.bucket}/{safe_object_path(path)}"


def build_logo_path(filename: str, folder: Optional[str] = None, now_ms: Optional[int] = None) -> str:
    """
    Object path for an uploaded logo: {folder}/{epoch_ms}_{filename}.

    The timestamp prefix keeps repeated uploads of the same file name apart.
    """
    settings = get_settings()
    folder = folder or settings.logo_bucket
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    name = PurePosixPath(filename).name or "logo"
    return f"{folder}/{stamp}_{name}"


async def upload_file(
    store: BlobStore,
    filename: str,
    data: bytes,
    content_type: str,
    folder: Optional[str] = None,
) -> str:
    """
    Upload a file and return its public URL.

    Raises:
        BlobStoreError: upload failed or no public URL is available
    """
    settings = get_settings()
    path = build_logo_path(filename, folder)
    stored = await store.upload(
        path,
        data,
        content_type=content_type,
        cache_control=settings.logo_cache_control,
        upsert=False,
    )
    url = store.get_public_url(stored)
    if not url:
        raise BlobStoreError("Missing public URL")
    return url


_blob_store: Optional[BlobStore] = None


def get_blob_store() -> BlobStore:
    """Get or create the process-wide blob store."""
    global _blob_store
    if _blob_store is None:
        settings = get_settings()
        _blob_store = LocalBlobStore(settings.storage_dir, settings.logo_bucket, settings.storage_public_url)
    return _blob_store
