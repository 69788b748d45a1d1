"""Stateless URL builders for storage backends."""

import logging
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote

from recipe_photos.config import BackendConfig, StorageProvider
from recipe_photos.domain.errors import (
    PhotoValidationError,
    SignedUrlNotSupportedError,
    StorageConfigurationError,
    UnsupportedProviderError,
)

logger = logging.getLogger(__name__)


class UrlBuilder(Protocol):
    """Translates storage keys into URLs without any I/O."""

    def public_url(self, key: str) -> str:
        """Return the public URL for a key, or an empty string for no key."""

    def download_url(self, key: str) -> str:
        """Return a URL that serves the object as an attachment."""

    def upload_url(self, key: str) -> str:
        """Return the URL a client can PUT the object to."""

    async def signed_url(self, key: str, ttl_seconds: int = 3600) -> str:
        """Signing needs credentials; builders always refuse."""


def _strip_slash(url: str | None) -> str | None:
    if not url:
        return None
    return url.rstrip("/")


def _encode(key: str) -> str:
    return quote(key.lstrip("/"), safe="/")


async def _refuse_signing(key: str, backend: str) -> str:
    if not key:
        raise PhotoValidationError("File path is required")
    raise SignedUrlNotSupportedError(
        f"Use the {backend} storage client for signed URLs"
    )


@dataclass(frozen=True)
class SupabaseUrlBuilder(UrlBuilder):
    """URL layout of Supabase Storage buckets."""

    base_url: str
    bucket_name: str
    cdn_url: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_url", _strip_slash(self.base_url) or "")
        object.__setattr__(self, "cdn_url", _strip_slash(self.cdn_url))

    def public_url(self, key: str) -> str:
        """Return the public object URL, served from the CDN when configured."""
        if not key:
            return ""
        if self.cdn_url:
            return f"{self.cdn_url}/{_encode(key)}"
        return (
            f"{self.base_url}/storage/v1/object/public/"
            f"{self.bucket_name}/{_encode(key)}"
        )

    def download_url(self, key: str) -> str:
        """Return the public URL with Supabase's attachment flag."""
        if not key:
            return ""
        return (
            f"{self.base_url}/storage/v1/object/public/"
            f"{self.bucket_name}/{_encode(key)}?download="
        )

    def upload_url(self, key: str) -> str:
        """Return the object endpoint used for direct uploads."""
        if not key:
            return ""
        return f"{self.base_url}/storage/v1/object/{self.bucket_name}/{_encode(key)}"

    async def signed_url(self, key: str, ttl_seconds: int = 3600) -> str:
        """Refuse: use ``SupabaseStorageClient.get_signed_url``."""
        return await _refuse_signing(key, "Supabase")


@dataclass(frozen=True)
class S3UrlBuilder(UrlBuilder):
    """URL layout of S3 buckets.

    AWS buckets are addressed virtual-hosted style. With a custom
    ``endpoint_url`` (MinIO, R2 and similar) the bucket goes in the path.
    """

    bucket_name: str
    region: str
    cdn_url: str | None = None
    endpoint_url: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "cdn_url", _strip_slash(self.cdn_url))
        object.__setattr__(self, "endpoint_url", _strip_slash(self.endpoint_url))

    @property
    def bucket_url(self) -> str:
        if self.endpoint_url:
            return f"{self.endpoint_url}/{self.bucket_name}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com"

    def public_url(self, key: str) -> str:
        """Return the public object URL, served from the CDN when configured."""
        if not key:
            return ""
        if self.cdn_url:
            return f"{self.cdn_url}/{_encode(key)}"
        return f"{self.bucket_url}/{_encode(key)}"

    def download_url(self, key: str) -> str:
        """Return the object URL asking S3 for an attachment disposition."""
        if not key:
            return ""
        return (
            f"{self.bucket_url}/{_encode(key)}"
            "?response-content-disposition=attachment"
        )

    def upload_url(self, key: str) -> str:
        """Return the bucket URL for a PUT upload."""
        if not key:
            return ""
        return f"{self.bucket_url}/{_encode(key)}"

    async def signed_url(self, key: str, ttl_seconds: int = 3600) -> str:
        """Refuse: use ``S3StorageClient.get_signed_url``."""
        return await _refuse_signing(key, "S3")


def create_url_builder(config: BackendConfig) -> UrlBuilder:
    """Create the URL builder matching the configured provider."""
    logger.info(
        "Creating URL builder: provider=%s bucket=%s has_cdn_url=%s",
        config.provider,
        config.bucket_name,
        bool(config.cdn_url),
    )
    if config.provider is StorageProvider.SUPABASE:
        if not config.base_url:
            raise StorageConfigurationError(
                "Base URL is required for Supabase URL builder"
            )
        return SupabaseUrlBuilder(config.base_url, config.bucket_name, config.cdn_url)
    if config.provider is StorageProvider.S3:
        if not config.region:
            raise StorageConfigurationError("Region is required for S3 URL builder")
        return S3UrlBuilder(
            config.bucket_name, config.region, config.cdn_url, config.endpoint_url
        )
    raise UnsupportedProviderError(config.provider)
