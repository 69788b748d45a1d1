"""Application configuration."""

import logging
import os
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from recipe_photos.domain.errors import (
    StorageConfigurationError,
    UnsupportedProviderError,
)

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    openai_api_key: str
    openai_image_model: str = "dall-e-3"
    openai_image_size: str = "1024x1024"
    openai_image_quality: str = "hd"
    storage_provider: str = "supabase"
    storage_bucket: str = "recipe-photos"
    storage_region: str | None = None
    storage_base_url: str | None = None
    storage_cdn_url: str | None = None
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    s3_endpoint_url: str | None = None
    storage_max_retries: int = 3
    storage_retry_delay_seconds: float = 1.0
    storage_cache_control_seconds: int = 31536000
    http_timeout_seconds: float = 30.0
    max_upload_bytes: int = 5 * 1024 * 1024
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


class StorageProvider(StrEnum):
    """Supported object-storage backends."""

    SUPABASE = "supabase"
    S3 = "s3"


class BackendConfig(BaseModel):
    """Immutable snapshot describing which storage backend to use."""

    model_config = ConfigDict(frozen=True)

    provider: StorageProvider
    bucket_name: str
    region: str | None = None
    base_url: str | None = None
    cdn_url: str | None = None
    endpoint_url: str | None = None

    @model_validator(mode="after")
    def _check_provider_fields(self) -> "BackendConfig":
        if not self.bucket_name.strip():
            raise ValueError("bucket_name is required")
        if self.provider is StorageProvider.S3 and not self.region:
            raise ValueError("region is required for the s3 provider")
        if self.provider is StorageProvider.SUPABASE and not self.base_url:
            raise ValueError("base_url is required for the supabase provider")
        return self


def build_backend_config(values: dict[str, object]) -> BackendConfig:
    """Validate raw values into a backend config or raise a config error."""
    provider = values.get("provider")
    if isinstance(provider, str):
        provider = provider.strip().lower()
    if provider not in {member.value for member in StorageProvider}:
        raise UnsupportedProviderError(provider)
    try:
        return BackendConfig.model_validate({**values, "provider": provider})
    except ValidationError as exc:
        messages = "; ".join(error["msg"] for error in exc.errors())
        raise StorageConfigurationError(
            f"Invalid storage configuration: {messages}"
        ) from exc


def backend_config_from_settings(settings: Settings) -> BackendConfig:
    """Derive the backend snapshot from environment settings."""
    base_url = settings.storage_base_url
    is_supabase = settings.storage_provider.strip().lower() == StorageProvider.SUPABASE
    if base_url is None and is_supabase:
        base_url = settings.supabase_url
    return build_backend_config(
        {
            "provider": settings.storage_provider,
            "bucket_name": settings.storage_bucket,
            "region": settings.storage_region,
            "base_url": base_url,
            "cdn_url": settings.storage_cdn_url,
            "endpoint_url": settings.s3_endpoint_url,
        }
    )


class StorageConfigStore:
    """Holds the current backend config; every change is re-validated."""

    def __init__(self, defaults: BackendConfig) -> None:
        self._defaults = defaults
        self._current = defaults

    def get(self) -> BackendConfig:
        """Return the current snapshot."""
        return self._current

    def update(self, **changes: object) -> BackendConfig:
        """Merge changes into the current snapshot and validate the result."""
        merged = {**self._current.model_dump(), **changes}
        self._current = build_backend_config(merged)
        _log_config("Storage configuration updated", self._current)
        return self._current

    def reset(self) -> BackendConfig:
        """Restore the defaults this store was created with."""
        self._current = self._defaults
        _log_config("Storage configuration reset to defaults", self._current)
        return self._current


def _log_config(message: str, config: BackendConfig) -> None:
    logger.info(
        "%s: provider=%s bucket=%s has_cdn_url=%s",
        message,
        config.provider.value,
        config.bucket_name,
        bool(config.cdn_url),
    )
