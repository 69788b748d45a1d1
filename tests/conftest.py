"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from recipe_photos.adapters.supabase_identity import IdentityResolver
from recipe_photos.adapters.url_builders import SupabaseUrlBuilder, UrlBuilder
from recipe_photos.config import (
    BackendConfig,
    Settings,
    StorageConfigStore,
    StorageProvider,
)
from recipe_photos.containers import AppContainer
from recipe_photos.domain.photos import AuthContext, MediaRecord, UploadFile
from recipe_photos.services.image_generation import (
    DownloadedImage,
    ImageClient,
    ImageDownloadClient,
    ImageGenerationService,
)
from recipe_photos.services.photos import PhotoRepository, PhotoService
from recipe_photos.services.retry import BackoffPolicy
from recipe_photos.services.storage import StorageClient

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
TEST_TOKEN = "user-token"
AI_IMAGE_URL = "https://ai.example/img.png"


async def no_sleep(_seconds: float) -> None:
    return None


@dataclass
class InMemoryPhotoRepository(PhotoRepository):
    """In-memory photo repository that records every write."""

    photos: dict[UUID, MediaRecord] = field(default_factory=dict)
    writes: list[tuple[str, object]] = field(default_factory=list)
    create_error: Exception | None = None

    def add(  # noqa: PLR0913
        self,
        recipe_id: UUID,
        *,
        is_primary: bool = False,
        is_ai_generated: bool = False,
        created_at: datetime | None = None,
        storage_path: str | None = None,
    ) -> MediaRecord:
        photo_id = uuid4()
        photo = MediaRecord(
            id=photo_id,
            recipe_id=recipe_id,
            file_name=f"{photo_id}.jpg",
            storage_path=storage_path or f"user/{recipe_id}/{photo_id}.jpg",
            is_primary=is_primary,
            is_ai_generated=is_ai_generated,
            created_by=None,
            created_at=created_at or self._next_created_at(),
        )
        self.photos[photo_id] = photo
        return photo

    def primaries(self, recipe_id: UUID) -> list[MediaRecord]:
        return [
            photo
            for photo in self.photos.values()
            if photo.recipe_id == recipe_id and photo.is_primary
        ]

    def _next_created_at(self) -> datetime:
        return BASE_TIME + timedelta(minutes=len(self.photos))

    async def create_photo(  # noqa: PLR0913
        self,
        recipe_id: UUID,
        file_name: str,
        storage_path: str,
        is_primary: bool,
        is_ai_generated: bool,
        created_by: UUID | None,
    ) -> MediaRecord:
        self.writes.append(("create", storage_path))
        if self.create_error is not None:
            raise self.create_error
        photo = MediaRecord(
            id=uuid4(),
            recipe_id=recipe_id,
            file_name=file_name,
            storage_path=storage_path,
            is_primary=is_primary,
            is_ai_generated=is_ai_generated,
            created_by=created_by,
            created_at=self._next_created_at(),
        )
        self.photos[photo.id] = photo
        return photo

    async def get_photo(self, photo_id: UUID) -> MediaRecord | None:
        return self.photos.get(photo_id)

    async def list_photos(self, recipe_id: UUID) -> list[MediaRecord]:
        photos = [p for p in self.photos.values() if p.recipe_id == recipe_id]
        photos.sort(key=lambda p: p.created_at, reverse=True)
        photos.sort(key=lambda p: p.is_primary, reverse=True)
        return photos

    async def clear_primary(self, recipe_id: UUID) -> None:
        self.writes.append(("clear_primary", recipe_id))
        for photo in list(self.photos.values()):
            if photo.recipe_id == recipe_id and photo.is_primary:
                self.photos[photo.id] = _replace(photo, is_primary=False)

    async def mark_primary(self, photo_id: UUID) -> MediaRecord | None:
        self.writes.append(("mark_primary", photo_id))
        photo = self.photos.get(photo_id)
        if photo is None:
            return None
        updated = _replace(photo, is_primary=True)
        self.photos[photo_id] = updated
        return updated

    async def delete_photo(self, photo_id: UUID) -> None:
        self.writes.append(("delete", photo_id))
        self.photos.pop(photo_id, None)

    async def find_oldest_uploaded(self, recipe_id: UUID) -> MediaRecord | None:
        candidates = [
            p
            for p in self.photos.values()
            if p.recipe_id == recipe_id and not p.is_ai_generated
        ]
        candidates.sort(key=lambda p: p.created_at)
        return candidates[0] if candidates else None


def _replace(photo: MediaRecord, *, is_primary: bool) -> MediaRecord:
    return MediaRecord(
        id=photo.id,
        recipe_id=photo.recipe_id,
        file_name=photo.file_name,
        storage_path=photo.storage_path,
        is_primary=is_primary,
        is_ai_generated=photo.is_ai_generated,
        created_by=photo.created_by,
        created_at=photo.created_at,
        updated_at=BASE_TIME,
    )


@dataclass
class FakeStorageClient(StorageClient):
    """Storage client that keeps objects in memory."""

    url_builder: UrlBuilder = field(
        default_factory=lambda: SupabaseUrlBuilder(
            "https://example.supabase.co", "recipe-photos"
        )
    )
    objects: dict[str, bytes] = field(default_factory=dict)
    uploads: list[str] = field(default_factory=list)
    deletes: list[str] = field(default_factory=list)
    upload_error: Exception | None = None
    delete_error: Exception | None = None
    public_url_override: str | None = None

    @property
    def calls(self) -> int:
        return len(self.uploads) + len(self.deletes)

    async def upload(self, file: UploadFile, key: str) -> str:
        self.uploads.append(key)
        if self.upload_error is not None:
            raise self.upload_error
        self.objects[key] = file.content
        return key

    async def delete(self, key: str) -> None:
        if not key:
            return
        self.deletes.append(key)
        if self.delete_error is not None:
            raise self.delete_error
        self.objects.pop(key, None)

    async def get_signed_url(self, key: str, ttl_seconds: int = 3600) -> str:
        return f"https://signed.example/{key}?ttl={ttl_seconds}"

    def get_public_url(self, key: str) -> str:
        if self.public_url_override is not None:
            return self.public_url_override
        return self.url_builder.public_url(key)


@dataclass
class FakeImageClient(ImageClient):
    """Image client returning queued URLs or raising queued errors."""

    outcomes: list[object] = field(default_factory=list)
    prompts: list[str] = field(default_factory=list)

    async def generate_image_url(self, prompt: str) -> str:
        self.prompts.append(prompt)
        outcome = self.outcomes.pop(0) if self.outcomes else AI_IMAGE_URL
        if isinstance(outcome, Exception):
            raise outcome
        return str(outcome)


@dataclass
class FakeDownloadClient(ImageDownloadClient):
    """Download client returning fixed PNG bytes."""

    content: bytes = b"\x89PNG\r\n\x1a\nimage"
    content_type: str = "image/png"
    urls: list[str] = field(default_factory=list)

    async def download(self, url: str) -> DownloadedImage:
        self.urls.append(url)
        return DownloadedImage(content=self.content, content_type=self.content_type)


@dataclass
class FakeIdentityResolver(IdentityResolver):
    """Accepts a single known token."""

    user_id: UUID = field(default_factory=uuid4)
    token: str = TEST_TOKEN

    async def resolve(self, access_token: str) -> AuthContext | None:
        if access_token != self.token:
            return None
        return AuthContext(user_id=self.user_id, access_token=access_token)


def fixed_clock() -> datetime:
    return BASE_TIME


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        openai_api_key="openai-key",
    )


@pytest.fixture
def auth() -> AuthContext:
    return AuthContext(user_id=uuid4(), access_token=TEST_TOKEN)


@pytest.fixture
def photo_repository() -> InMemoryPhotoRepository:
    return InMemoryPhotoRepository()


@pytest.fixture
def storage_client() -> FakeStorageClient:
    return FakeStorageClient()


@pytest.fixture
def image_client() -> FakeImageClient:
    return FakeImageClient()


@pytest.fixture
def image_generation(image_client: FakeImageClient) -> ImageGenerationService:
    return ImageGenerationService(
        image_client=image_client,
        download_client=FakeDownloadClient(),
        backoff=BackoffPolicy(max_attempts=3, base_delay_seconds=0, sleep=no_sleep),
    )


@pytest.fixture
def photo_service(
    photo_repository: InMemoryPhotoRepository,
    storage_client: FakeStorageClient,
    image_generation: ImageGenerationService,
) -> PhotoService:
    return PhotoService(
        repository=photo_repository,
        storage=storage_client,
        image_generation=image_generation,
        clock=fixed_clock,
    )


@pytest.fixture
def identity_resolver() -> FakeIdentityResolver:
    return FakeIdentityResolver()


@pytest.fixture
def container(
    settings: Settings,
    photo_service: PhotoService,
    identity_resolver: FakeIdentityResolver,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        supabase_client=None,  # type: ignore[arg-type]
        storage_config=StorageConfigStore(
            BackendConfig(
                provider=StorageProvider.SUPABASE,
                bucket_name="recipe-photos",
                base_url="https://example.supabase.co",
            )
        ),
        identity_resolver=identity_resolver,
        photo_service=photo_service,
        close_resources=close_resources,
    )
