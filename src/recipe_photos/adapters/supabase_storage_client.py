"""Supabase Storage backend client."""

import asyncio
import logging
from dataclasses import dataclass

from supabase import Client

from recipe_photos.adapters.url_builders import UrlBuilder
from recipe_photos.domain.errors import PhotoValidationError, StorageOperationError
from recipe_photos.domain.photos import UploadFile
from recipe_photos.services.retry import BackoffPolicy
from recipe_photos.services.storage import (
    DEFAULT_SIGNED_URL_TTL_SECONDS,
    StorageClient,
)

logger = logging.getLogger(__name__)


@dataclass
class SupabaseStorageClient(StorageClient):
    """Storage client backed by a Supabase Storage bucket.

    The supabase SDK is synchronous, so every call runs in a worker thread to
    keep the event loop free.
    """

    client: Client
    bucket_name: str
    url_builder: UrlBuilder
    backoff: BackoffPolicy
    cache_control_seconds: int = 31536000

    def _bucket(self):  # type: ignore[no-untyped-def]
        return self.client.storage.from_(self.bucket_name)

    async def upload(self, file: UploadFile, key: str) -> str:
        """Upload bytes, overwriting on retry, and return the stored path."""
        if not key:
            raise PhotoValidationError("File path is required")
        file_options = {
            "content-type": file.content_type or "application/octet-stream",
            "cache-control": str(self.cache_control_seconds),
            "upsert": "true",
        }

        async def attempt() -> str:
            logger.info(
                "Uploading %s to Supabase bucket %s as %s (%s bytes)",
                file.file_name,
                self.bucket_name,
                key,
                file.size,
            )
            response = await asyncio.to_thread(
                self._bucket().upload, key, file.content, file_options
            )
            path = response.path
            if not path:
                raise RuntimeError("No path returned from upload")
            return path

        stored_path = await self.backoff.run("upload file to Supabase Storage", attempt)
        logger.info("Uploaded %s to Supabase bucket %s", stored_path, self.bucket_name)
        return stored_path

    async def delete(self, key: str) -> None:
        """Remove an object from the bucket."""
        if not key or not key.strip():
            logger.warning("Attempted to delete file with empty path")
            return
        logger.info("Deleting %s from Supabase bucket %s", key, self.bucket_name)
        try:
            await asyncio.to_thread(self._bucket().remove, [key])
        except Exception as exc:
            logger.exception("Failed to delete %s from Supabase Storage", key)
            raise StorageOperationError(
                "delete file from Supabase Storage", exc
            ) from exc

    async def get_signed_url(
        self, key: str, ttl_seconds: int = DEFAULT_SIGNED_URL_TTL_SECONDS
    ) -> str:
        """Create a signed URL through Supabase Storage."""
        if not key:
            raise PhotoValidationError("File path is required")
        try:
            response = await asyncio.to_thread(
                self._bucket().create_signed_url, key, ttl_seconds
            )
        except Exception as exc:
            logger.exception("Failed to generate signed URL for %s", key)
            raise StorageOperationError("generate signed URL", exc) from exc
        signed_url = response.get("signedURL") or response.get("signedUrl")
        if not signed_url:
            raise StorageOperationError(
                "generate signed URL", RuntimeError("No signed URL returned")
            )
        return signed_url

    def get_public_url(self, key: str) -> str:
        """Return the public URL from the paired builder."""
        return self.url_builder.public_url(key)
