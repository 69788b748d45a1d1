"""Photo lifecycle: uploads, AI generation, deletion and the primary photo."""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from recipe_photos.domain.errors import (
    PhotoNotFoundError,
    PhotoValidationError,
    RecordIntegrityError,
)
from recipe_photos.domain.photos import AuthContext, MediaRecord, PhotoView, UploadFile
from recipe_photos.domain.recipes import GenerationRequest
from recipe_photos.services.image_generation import ImageGenerationService
from recipe_photos.services.storage import (
    DEFAULT_SIGNED_URL_TTL_SECONDS,
    StorageClient,
)

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 5 * 1024 * 1024

_UNSAFE_FILE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")
_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9]")

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


class PhotoRepository(Protocol):
    """Persistence interface for photo records."""

    async def create_photo(  # noqa: PLR0913
        self,
        recipe_id: UUID,
        file_name: str,
        storage_path: str,
        is_primary: bool,
        is_ai_generated: bool,
        created_by: UUID | None,
    ) -> MediaRecord:
        """Insert a photo record and return it."""

    async def get_photo(self, photo_id: UUID) -> MediaRecord | None:
        """Return a photo record by id, if present."""

    async def list_photos(self, recipe_id: UUID) -> list[MediaRecord]:
        """Return a recipe's photos, primary first then newest first."""

    async def clear_primary(self, recipe_id: UUID) -> None:
        """Unset the primary flag on every photo of a recipe."""

    async def mark_primary(self, photo_id: UUID) -> MediaRecord | None:
        """Set the primary flag on one photo and return it."""

    async def delete_photo(self, photo_id: UUID) -> None:
        """Delete a photo record."""

    async def find_oldest_uploaded(self, recipe_id: UUID) -> MediaRecord | None:
        """Return the oldest photo of a recipe that was not AI generated."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def validate_upload(file: UploadFile, max_bytes: int = MAX_UPLOAD_BYTES) -> None:
    """Reject files that are not images or are too large."""
    if not file.content_type.startswith("image/"):
        raise PhotoValidationError("Only image files are allowed")
    if file.size == 0:
        raise PhotoValidationError("File is empty")
    if file.size > max_bytes:
        raise upload_too_large(max_bytes)


def upload_too_large(max_bytes: int = MAX_UPLOAD_BYTES) -> PhotoValidationError:
    """Return the error raised for a file over the size limit."""
    limit_mb = max_bytes // (1024 * 1024)
    return PhotoValidationError(f"File size must be less than {limit_mb}MB")


def sanitize_file_name(file_name: str) -> str:
    """Replace characters that are unsafe in storage keys."""
    return _UNSAFE_FILE_CHARS.sub("_", file_name) or "photo"


def extension_for(content_type: str) -> str:
    """Return a file extension for an image MIME type."""
    known = _EXTENSIONS.get(content_type.lower())
    if known:
        return known
    subtype = content_type.split("/", 1)[-1].split(";", 1)[0].strip()
    return subtype or "jpg"


@dataclass
class PhotoService:
    """Coordinates storage I/O with photo records.

    A record is only written once its binary is stored, and at most one photo
    per recipe carries the primary flag. The flag is maintained with two
    separate writes (clear, then set), so concurrent callers resolve as last
    writer wins.
    """

    repository: PhotoRepository
    storage: StorageClient
    image_generation: ImageGenerationService
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    clock: Callable[[], datetime] = field(default=_utc_now, repr=False)

    async def list_photos(self, recipe_id: UUID) -> list[PhotoView]:
        """Return a recipe's photos with their public URLs."""
        photos = await self.repository.list_photos(recipe_id)
        logger.info(
            "Fetched %s photo(s) for recipe %s (has_primary=%s)",
            len(photos),
            recipe_id,
            any(photo.is_primary for photo in photos),
        )
        return [self._view(photo) for photo in photos]

    async def upload_photo(
        self,
        file: UploadFile,
        recipe_id: UUID,
        auth: AuthContext,
        is_primary: bool = False,
    ) -> PhotoView:
        """Validate, store and register a user photo."""
        validate_upload(file, self.max_upload_bytes)
        logger.info(
            "Uploading photo %s (%s bytes, %s) for recipe %s, primary=%s",
            file.file_name,
            file.size,
            file.content_type,
            recipe_id,
            is_primary,
        )
        key = (
            f"{auth.user_id}/{recipe_id}/"
            f"{self._timestamp_ms()}_{sanitize_file_name(file.file_name)}"
        )
        storage_path = await self.storage.upload(file, key)

        try:
            if is_primary:
                await self._clear_primary(recipe_id)
            photo = await self.repository.create_photo(
                recipe_id=recipe_id,
                file_name=file.file_name,
                storage_path=storage_path,
                is_primary=is_primary,
                is_ai_generated=False,
                created_by=auth.user_id,
            )
        except Exception:
            # The stored object is left for manual cleanup.
            logger.exception(
                "Failed to register uploaded photo; orphaned object %s", storage_path
            )
            raise
        logger.info("Registered photo %s for recipe %s", photo.id, recipe_id)
        return self._view(photo)

    async def generate_ai_photo(
        self,
        request: GenerationRequest,
        recipe_id: UUID,
        auth: AuthContext,
    ) -> PhotoView:
        """Generate an image for a recipe, store it and register it.

        If the record cannot be written, the stored object is deleted before
        the error propagates.
        """
        prompt = self.image_generation.enhance_prompt(request)
        image = await self.image_generation.generate(prompt)

        timestamp = self._timestamp_ms()
        extension = extension_for(image.content_type)
        upload = UploadFile(
            file_name=f"{timestamp}.{extension}",
            content_type=image.content_type,
            content=image.content,
        )
        storage_path = await self.storage.upload(
            upload, f"{auth.user_id}/{recipe_id}/{upload.file_name}"
        )

        url = self.storage.get_public_url(storage_path)
        if not url:
            await self._discard(storage_path)
            raise RecordIntegrityError("Failed to get photo URL")

        name = _UNSAFE_NAME_CHARS.sub("-", request.recipe_name.strip()) or "recipe"
        try:
            photo = await self.repository.create_photo(
                recipe_id=recipe_id,
                file_name=f"{name}-ai.{extension}",
                storage_path=storage_path,
                is_primary=False,
                is_ai_generated=True,
                created_by=auth.user_id,
            )
        except Exception:
            logger.exception("Failed to save AI photo record for recipe %s", recipe_id)
            await self._discard(storage_path)
            raise
        logger.info("Registered AI photo %s for recipe %s", photo.id, recipe_id)
        return PhotoView(photo=photo, url=url)

    async def delete_photo(self, photo_id: UUID, recipe_id: UUID) -> None:
        """Delete a photo and its object, promoting a new primary if needed."""
        photo = await self._require(photo_id, recipe_id)
        await self.repository.delete_photo(photo_id)
        await self._discard(photo.storage_path)
        logger.info("Deleted photo %s of recipe %s", photo_id, recipe_id)
        if photo.is_primary:
            await self._reassign_primary(recipe_id)

    async def set_primary_photo(self, photo_id: UUID, recipe_id: UUID) -> PhotoView:
        """Make one photo the recipe's primary photo.

        The photo is looked up first, so an unknown id or a photo of another
        recipe fails without touching the current primary.
        """
        await self._require(photo_id, recipe_id)
        await self._clear_primary(recipe_id)
        photo = await self.repository.mark_primary(photo_id)
        if photo is None:
            raise PhotoNotFoundError(f"Photo {photo_id} not found")
        logger.info("Photo %s is now primary for recipe %s", photo_id, recipe_id)
        return self._view(photo)

    async def get_signed_photo_url(
        self,
        photo_id: UUID,
        recipe_id: UUID,
        ttl_seconds: int = DEFAULT_SIGNED_URL_TTL_SECONDS,
    ) -> str:
        """Return a time-limited signed URL for a photo."""
        if ttl_seconds <= 0:
            raise PhotoValidationError("ttl_seconds must be positive")
        photo = await self._require(photo_id, recipe_id)
        return await self.storage.get_signed_url(photo.storage_path, ttl_seconds)

    async def get_download_url(self, photo_id: UUID, recipe_id: UUID) -> str:
        """Return a URL that downloads the photo as an attachment."""
        photo = await self._require(photo_id, recipe_id)
        return self.storage.url_builder.download_url(photo.storage_path)

    async def _require(self, photo_id: UUID, recipe_id: UUID) -> MediaRecord:
        photo = await self.repository.get_photo(photo_id)
        if photo is None or photo.recipe_id != recipe_id:
            raise PhotoNotFoundError(
                f"Photo {photo_id} not found in recipe {recipe_id}"
            )
        return photo

    async def _clear_primary(self, recipe_id: UUID) -> None:
        await self.repository.clear_primary(recipe_id)
        logger.info("Cleared primary photo for recipe %s", recipe_id)

    async def _reassign_primary(self, recipe_id: UUID) -> None:
        replacement = await self.repository.find_oldest_uploaded(recipe_id)
        if replacement is None:
            logger.info("Recipe %s has no photo left to promote", recipe_id)
            return
        await self.set_primary_photo(replacement.id, recipe_id)

    async def _discard(self, storage_path: str) -> None:
        try:
            await self.storage.delete(storage_path)
        except Exception:
            logger.exception("Failed to clean up stored object %s", storage_path)

    def _view(self, photo: MediaRecord) -> PhotoView:
        url = self.storage.get_public_url(photo.storage_path)
        return PhotoView(photo=photo, url=url)

    def _timestamp_ms(self) -> int:
        return int(self.clock().timestamp() * 1000)
