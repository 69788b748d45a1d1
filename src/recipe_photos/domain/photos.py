"""Domain models for recipe photos."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class MediaRecord:
    """Represents one stored photograph of a recipe."""

    id: UUID
    recipe_id: UUID
    file_name: str
    storage_path: str
    is_primary: bool
    is_ai_generated: bool
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime | None = None


@dataclass(frozen=True)
class PhotoView:
    """A photo record paired with its display URL."""

    photo: MediaRecord
    url: str


@dataclass(frozen=True)
class UploadFile:
    """Binary payload of an image to store."""

    file_name: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class AuthContext:
    """Identity and bearer credential of the calling user."""

    user_id: UUID
    access_token: str
