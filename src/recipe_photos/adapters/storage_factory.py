"""Storage backend selection."""

import logging
from typing import ClassVar

from supabase import Client

from recipe_photos.adapters.s3_storage_client import S3StorageClient
from recipe_photos.adapters.supabase_storage_client import SupabaseStorageClient
from recipe_photos.adapters.url_builders import create_url_builder
from recipe_photos.config import BackendConfig, Settings, StorageProvider
from recipe_photos.domain.errors import (
    StorageConfigurationError,
    StorageNotInitializedError,
    UnsupportedProviderError,
)
from recipe_photos.services.retry import BackoffPolicy
from recipe_photos.services.storage import StorageClient

logger = logging.getLogger(__name__)


def backoff_from_settings(settings: Settings) -> BackoffPolicy:
    """Build the upload retry policy from settings."""
    return BackoffPolicy(
        max_attempts=settings.storage_max_retries,
        base_delay_seconds=settings.storage_retry_delay_seconds,
    )


class StorageBackendFactory:
    """Builds storage clients and keeps at most one live instance."""

    _instance: ClassVar[StorageClient | None] = None

    @staticmethod
    def create(
        config: BackendConfig,
        settings: Settings,
        *,
        supabase_client: Client | None = None,
        backoff: BackoffPolicy | None = None,
    ) -> StorageClient:
        """Create the client and URL builder pair for ``config.provider``."""
        logger.info(
            "Creating storage client: provider=%s bucket=%s",
            config.provider,
            config.bucket_name,
        )
        policy = backoff or backoff_from_settings(settings)
        if config.provider is StorageProvider.SUPABASE:
            if supabase_client is None:
                raise StorageConfigurationError(
                    "A Supabase client is required for the supabase provider"
                )
            return SupabaseStorageClient(
                client=supabase_client,
                bucket_name=config.bucket_name,
                url_builder=create_url_builder(config),
                backoff=policy,
                cache_control_seconds=settings.storage_cache_control_seconds,
            )
        if config.provider is StorageProvider.S3:
            return S3StorageClient.create(
                bucket_name=config.bucket_name,
                region=config.region or "",
                url_builder=create_url_builder(config),
                backoff=policy,
                access_key_id=settings.aws_access_key_id,
                secret_access_key=settings.aws_secret_access_key,
                endpoint_url=config.endpoint_url,
                timeout_seconds=settings.http_timeout_seconds,
                cache_control_seconds=settings.storage_cache_control_seconds,
            )
        raise UnsupportedProviderError(config.provider)

    @classmethod
    def get_instance(
        cls,
        config: BackendConfig | None = None,
        settings: Settings | None = None,
        *,
        supabase_client: Client | None = None,
        backoff: BackoffPolicy | None = None,
    ) -> StorageClient:
        """Return the live client, replacing it when a config is given."""
        if config is not None:
            if settings is None:
                raise StorageConfigurationError(
                    "Settings are required to create a storage client"
                )
            cls._instance = cls.create(
                config, settings, supabase_client=supabase_client, backoff=backoff
            )
            logger.info(
                "Storage client instance created: provider=%s bucket=%s",
                config.provider,
                config.bucket_name,
            )
        if cls._instance is None:
            raise StorageNotInitializedError()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Drop the live client."""
        cls._instance = None
        logger.info("Storage client instance reset")
