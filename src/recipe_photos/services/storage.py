"""Storage backend client contract."""

from typing import Protocol

from recipe_photos.adapters.url_builders import UrlBuilder
from recipe_photos.domain.photos import UploadFile

DEFAULT_SIGNED_URL_TTL_SECONDS = 3600


class StorageClient(Protocol):
    """Interface for storing and addressing photo binaries."""

    url_builder: UrlBuilder

    async def upload(self, file: UploadFile, key: str) -> str:
        """Store the file and return the key actually used by the backend."""

    async def delete(self, key: str) -> None:
        """Delete an object; a blank key is a no-op."""

    async def get_signed_url(
        self, key: str, ttl_seconds: int = DEFAULT_SIGNED_URL_TTL_SECONDS
    ) -> str:
        """Return a time-limited signed URL for the object."""

    def get_public_url(self, key: str) -> str:
        """Return the public URL for the object."""
