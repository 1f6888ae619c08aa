"""
Blob storage for uploaded images.

Two backends:
1. GCSBlobStorage: Google Cloud Storage bucket (production)
2. LocalBlobStorage: directory served by the API under /uploads (development)

Both return a publicly fetchable URL for the stored object.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Protocol

from ..config import Config

logger = logging.getLogger(__name__)


class BlobStorageError(Exception):
    """Upload to blob storage failed."""


class BlobStorage(Protocol):
    """Interface for image blob storage backends."""

    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        """Store bytes under key and return a public URL."""
        ...


class GCSBlobStorage:
    """Google Cloud Storage backend."""

    def __init__(self, bucket_name: str, timeout: float = 60.0):
        self.bucket_name = bucket_name
        self.timeout = timeout
        self._client = None

    def _get_bucket(self):
        """Get or create the GCS bucket handle."""
        if self._client is None:
            from google.cloud import storage
            self._client = storage.Client()
        return self._client.bucket(self.bucket_name)

    def _upload_sync(self, key: str, data: bytes, content_type: str) -> str:
        bucket = self._get_bucket()
        blob = bucket.blob(key)
        blob.upload_from_string(data, content_type=content_type, timeout=self.timeout)
        return blob.public_url

    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        """Upload to GCS (sync client, run in executor)."""
        loop = asyncio.get_running_loop()
        try:
            url = await loop.run_in_executor(
                None,
                lambda: self._upload_sync(key, data, content_type),
            )
        except Exception as e:
            raise BlobStorageError(f"GCS upload failed for {key}: {e}") from e

        logger.info(f"Uploaded {len(data)} bytes -> gs://{self.bucket_name}/{key}")
        return url


class LocalBlobStorage:
    """Filesystem backend; files are served by the app's /uploads mount."""

    def __init__(self, root_dir: str, base_url: str):
        self.root_dir = Path(root_dir)
        self.base_url = base_url.rstrip("/")

    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        # Keys are "uploads/<name>"; the mount already serves root_dir as /uploads
        relative = key.split("/", 1)[1] if key.startswith("uploads/") else key
        path = self.root_dir / relative
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise BlobStorageError(f"Local upload failed for {key}: {e}") from e

        logger.info(f"Stored {len(data)} bytes ({content_type}) at {path}")
        return f"{self.base_url}/uploads/{relative}"


# Singleton storage instance
_blob_storage: Optional[BlobStorage] = None


def get_blob_storage() -> BlobStorage:
    """Get blob storage backend: GCS when GCS_IMAGE_BUCKET is set, else local."""
    global _blob_storage
    if _blob_storage is None:
        bucket = Config.gcs_image_bucket()
        if bucket:
            _blob_storage = GCSBlobStorage(bucket)
        else:
            _blob_storage = LocalBlobStorage(
                Config.local_upload_dir(),
                Config.public_base_url(),
            )
    return _blob_storage
