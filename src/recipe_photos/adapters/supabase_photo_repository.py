"""Supabase-backed photo repository."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from recipe_photos.domain.errors import PhotoStoreError, RecordIntegrityError
from recipe_photos.domain.photos import MediaRecord
from recipe_photos.services.photos import PhotoRepository

logger = logging.getLogger(__name__)

PHOTOS_TABLE = "recipe_photos"


@dataclass
class SupabasePhotoRepository(PhotoRepository):
    """Supabase implementation for photo record persistence."""

    client: Client

    async def create_photo(  # noqa: PLR0913
        self,
        recipe_id: UUID,
        file_name: str,
        storage_path: str,
        is_primary: bool,
        is_ai_generated: bool,
        created_by: UUID | None,
    ) -> MediaRecord:
        """Insert a photo row and return it."""
        query = self.client.table(PHOTOS_TABLE).insert(
            {
                "recipe_id": str(recipe_id),
                "file_name": file_name,
                "storage_path": storage_path,
                "is_primary": is_primary,
                "is_ai_generated": is_ai_generated,
                "created_by": str(created_by) if created_by else None,
            }
        )
        rows = await _execute(query, "insert photo")
        if not rows:
            raise RecordIntegrityError("Failed to save photo record")
        return _to_record(rows[0])

    async def get_photo(self, photo_id: UUID) -> MediaRecord | None:
        """Return a photo row by id."""
        query = (
            self.client.table(PHOTOS_TABLE)
            .select("*")
            .eq("id", str(photo_id))
            .limit(1)
        )
        rows = await _execute(query, "fetch photo")
        return _to_record(rows[0]) if rows else None

    async def list_photos(self, recipe_id: UUID) -> list[MediaRecord]:
        """Return a recipe's photos, primary first then newest first."""
        query = (
            self.client.table(PHOTOS_TABLE)
            .select("*")
            .eq("recipe_id", str(recipe_id))
            .order("is_primary", desc=True)
            .order("created_at", desc=True)
        )
        rows = await _execute(query, "list photos")
        return [_to_record(row) for row in rows]

    async def clear_primary(self, recipe_id: UUID) -> None:
        """Unset the primary flag on every photo of a recipe."""
        query = (
            self.client.table(PHOTOS_TABLE)
            .update({"is_primary": False})
            .eq("recipe_id", str(recipe_id))
            .eq("is_primary", True)
        )
        await _execute(query, "clear primary photo")

    async def mark_primary(self, photo_id: UUID) -> MediaRecord | None:
        """Set the primary flag on one photo."""
        query = (
            self.client.table(PHOTOS_TABLE)
            .update({"is_primary": True})
            .eq("id", str(photo_id))
        )
        rows = await _execute(query, "set primary photo")
        return _to_record(rows[0]) if rows else None

    async def delete_photo(self, photo_id: UUID) -> None:
        """Delete a photo row."""
        query = self.client.table(PHOTOS_TABLE).delete().eq("id", str(photo_id))
        await _execute(query, "delete photo")

    async def find_oldest_uploaded(self, recipe_id: UUID) -> MediaRecord | None:
        """Return the oldest photo that was not AI generated."""
        query = (
            self.client.table(PHOTOS_TABLE)
            .select("*")
            .eq("recipe_id", str(recipe_id))
            .eq("is_ai_generated", False)
            .order("created_at", desc=False)
            .limit(1)
        )
        rows = await _execute(query, "find replacement primary photo")
        return _to_record(rows[0]) if rows else None


async def _execute(  # type: ignore[no-untyped-def]
    query, action: str
) -> list[dict[str, object]]:
    try:
        response = await asyncio.to_thread(query.execute)
    except Exception as exc:
        logger.exception("Record store failed to %s", action)
        raise PhotoStoreError(f"Failed to {action}: {exc}") from exc
    return response.data or []


def _to_record(row: dict[str, object]) -> MediaRecord:
    created_by = row.get("created_by")
    updated_at = row.get("updated_at")
    return MediaRecord(
        id=UUID(str(row["id"])),
        recipe_id=UUID(str(row["recipe_id"])),
        file_name=str(row.get("file_name") or ""),
        storage_path=str(row["storage_path"]),
        is_primary=bool(row.get("is_primary")),
        is_ai_generated=bool(row.get("is_ai_generated")),
        created_by=UUID(str(created_by)) if created_by else None,
        created_at=_parse_timestamp(row["created_at"]),
        updated_at=_parse_timestamp(updated_at) if updated_at else None,
    )


def _parse_timestamp(value: object) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
