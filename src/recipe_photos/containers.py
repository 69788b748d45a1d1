"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import Client, ClientOptions, create_client

from recipe_photos.adapters.image_download_client import HttpxImageDownloadClient
from recipe_photos.adapters.openai_image_client import OpenAIImageClient
from recipe_photos.adapters.storage_factory import (
    StorageBackendFactory,
    backoff_from_settings,
)
from recipe_photos.adapters.supabase_identity import (
    IdentityResolver,
    SupabaseIdentityResolver,
)
from recipe_photos.adapters.supabase_photo_repository import SupabasePhotoRepository
from recipe_photos.config import (
    Settings,
    StorageConfigStore,
    backend_config_from_settings,
)
from recipe_photos.services.image_generation import ImageGenerationService
from recipe_photos.services.photos import PhotoService
from recipe_photos.services.storage import StorageClient


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    supabase_client: Client
    storage_config: StorageConfigStore
    identity_resolver: IdentityResolver
    photo_service: PhotoService
    close_resources: Callable[[], Awaitable[None]]


def create_supabase_client(settings: Settings) -> Client:
    """Create a Supabase client with bounded request timeouts."""
    timeout = int(settings.http_timeout_seconds)
    return create_client(
        settings.supabase_url,
        settings.supabase_service_key,
        options=ClientOptions(
            postgrest_client_timeout=timeout,
            storage_client_timeout=timeout,
        ),
    )


def build_container(
    settings: Settings | None = None, supabase_client: Client | None = None
) -> AppContainer:
    """Create the default dependency container.

    Storage configuration is validated here, so a missing mandatory setting
    fails at startup rather than on the first upload.
    """
    resolved_settings = settings or Settings()
    storage_config = StorageConfigStore(backend_config_from_settings(resolved_settings))
    client = supabase_client or create_supabase_client(resolved_settings)
    storage = StorageBackendFactory.get_instance(
        storage_config.get(), resolved_settings, supabase_client=client
    )
    download_client = HttpxImageDownloadClient.create(
        timeout_seconds=resolved_settings.http_timeout_seconds
    )
    image_client = OpenAIImageClient.create(
        api_key=resolved_settings.openai_api_key,
        model=resolved_settings.openai_image_model,
        size=resolved_settings.openai_image_size,
        quality=resolved_settings.openai_image_quality,
        timeout_seconds=resolved_settings.http_timeout_seconds,
    )
    image_generation = ImageGenerationService(
        image_client=image_client,
        download_client=download_client,
        backoff=backoff_from_settings(resolved_settings),
    )
    photo_service = PhotoService(
        repository=SupabasePhotoRepository(client),
        storage=storage,
        image_generation=image_generation,
        max_upload_bytes=resolved_settings.max_upload_bytes,
    )

    async def close_resources() -> None:
        await download_client.close()
        await image_client.close()

    return AppContainer(
        settings=resolved_settings,
        supabase_client=client,
        storage_config=storage_config,
        identity_resolver=SupabaseIdentityResolver(client),
        photo_service=photo_service,
        close_resources=close_resources,
    )


def reconfigure_storage(container: AppContainer, **changes: object) -> StorageClient:
    """Switch the photo service to a storage client built from new settings.

    The previous client is replaced rather than mutated; an invalid change
    raises before anything is swapped.
    """
    config = container.storage_config.update(**changes)
    storage = StorageBackendFactory.get_instance(
        config, container.settings, supabase_client=container.supabase_client
    )
    container.photo_service.storage = storage
    return storage
