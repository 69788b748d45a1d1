"""Tests for Supabase adapter implementations."""

import asyncio
from dataclasses import dataclass, field
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest

from recipe_photos.adapters.supabase_identity import SupabaseIdentityResolver
from recipe_photos.adapters.supabase_photo_repository import (
    PHOTOS_TABLE,
    SupabasePhotoRepository,
)
from recipe_photos.domain.errors import PhotoStoreError, RecordIntegrityError


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {"select": [], "insert": [], "update": [], "delete": []}
    )
    last_payload: object | None = None
    last_filters: list[tuple[str, object]] = field(default_factory=list)
    orders: list[tuple[str, bool]] = field(default_factory=list)
    actions: list[str] = field(default_factory=list)
    error: Exception | None = None

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "select"
        return self

    def insert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "insert"
        self.last_payload = payload
        return self

    def update(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "update"
        self.last_payload = payload
        return self

    def delete(self) -> "FakeTable":
        self._action = "delete"
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def order(self, column: str, desc: bool = False) -> "FakeTable":
        self.orders.append((column, desc))
        return self

    def execute(self) -> FakeResponse:
        action = getattr(self, "_action", "select")
        self.actions.append(action)
        if self.error is not None:
            raise self.error
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


def _row(recipe_id: str, **overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "id": str(uuid4()),
        "recipe_id": recipe_id,
        "file_name": "a.jpg",
        "storage_path": f"u/{recipe_id}/1_a.jpg",
        "is_primary": False,
        "is_ai_generated": False,
        "created_by": None,
        "created_at": "2024-05-01T12:00:00+00:00",
        "updated_at": None,
    }
    row.update(overrides)
    return row


def test_create_photo_inserts_row() -> None:
    client = FakeSupabaseClient()
    table = client.table(PHOTOS_TABLE)
    recipe_id = uuid4()
    user_id = uuid4()
    table.queue("insert", [_row(str(recipe_id), created_by=str(user_id))])

    repository = SupabasePhotoRepository(client)  # type: ignore[arg-type]
    photo = asyncio.run(
        repository.create_photo(
            recipe_id=recipe_id,
            file_name="a.jpg",
            storage_path=f"u/{recipe_id}/1_a.jpg",
            is_primary=False,
            is_ai_generated=False,
            created_by=user_id,
        )
    )

    assert photo.recipe_id == recipe_id
    assert photo.created_by == user_id
    assert photo.created_at.year == 2024
    assert table.last_payload == {
        "recipe_id": str(recipe_id),
        "file_name": "a.jpg",
        "storage_path": f"u/{recipe_id}/1_a.jpg",
        "is_primary": False,
        "is_ai_generated": False,
        "created_by": str(user_id),
    }


def test_create_photo_without_row_raises() -> None:
    client = FakeSupabaseClient()
    repository = SupabasePhotoRepository(client)  # type: ignore[arg-type]

    with pytest.raises(RecordIntegrityError):
        asyncio.run(
            repository.create_photo(uuid4(), "a.jpg", "u/r/a.jpg", False, False, None)
        )


def test_list_photos_orders_primary_then_newest() -> None:
    client = FakeSupabaseClient()
    table = client.table(PHOTOS_TABLE)
    recipe_id = str(uuid4())
    table.queue(
        "select",
        [_row(recipe_id, is_primary=True), _row(recipe_id)],
    )

    photos = asyncio.run(
        SupabasePhotoRepository(client).list_photos(recipe_id)  # type: ignore[arg-type]
    )

    assert [photo.is_primary for photo in photos] == [True, False]
    assert table.orders == [("is_primary", True), ("created_at", True)]
    assert ("recipe_id", recipe_id) in table.last_filters


def test_primary_flag_updates() -> None:
    client = FakeSupabaseClient()
    table = client.table(PHOTOS_TABLE)
    recipe_id = uuid4()
    row = _row(str(recipe_id), is_primary=True)
    table.queue("update", [])
    table.queue("update", [row])

    repository = SupabasePhotoRepository(client)  # type: ignore[arg-type]
    asyncio.run(repository.clear_primary(recipe_id))
    clear_filters = list(table.last_filters)
    photo = asyncio.run(repository.mark_primary(uuid4()))

    assert clear_filters == [("recipe_id", str(recipe_id)), ("is_primary", True)]
    assert table.last_payload == {"is_primary": True}
    assert photo is not None
    assert photo.is_primary


def test_get_and_find_oldest_uploaded() -> None:
    client = FakeSupabaseClient()
    table = client.table(PHOTOS_TABLE)
    recipe_id = str(uuid4())
    table.queue("select", [])
    table.queue("select", [_row(recipe_id)])

    repository = SupabasePhotoRepository(client)  # type: ignore[arg-type]
    missing = asyncio.run(repository.get_photo(uuid4()))
    table.last_filters.clear()
    oldest = asyncio.run(repository.find_oldest_uploaded(UUID(recipe_id)))

    assert missing is None
    assert oldest is not None
    assert ("is_ai_generated", False) in table.last_filters
    assert table.orders[-1] == ("created_at", False)


def test_delete_photo_and_query_failure() -> None:
    client = FakeSupabaseClient()
    table = client.table(PHOTOS_TABLE)
    photo_id = uuid4()

    repository = SupabasePhotoRepository(client)  # type: ignore[arg-type]
    asyncio.run(repository.delete_photo(photo_id))

    assert table.actions == ["delete"]
    assert table.last_filters == [("id", str(photo_id))]

    table.error = RuntimeError("connection reset")
    with pytest.raises(PhotoStoreError):
        asyncio.run(repository.get_photo(photo_id))


class FakeAuth:
    def __init__(self, user_id: str | None) -> None:
        self.user_id = user_id

    def get_user(self, jwt: str):  # type: ignore[no-untyped-def]
        if jwt == "expired":
            raise RuntimeError("invalid JWT")
        if self.user_id is None:
            return None
        return SimpleNamespace(user=SimpleNamespace(id=self.user_id))


def test_identity_resolver() -> None:
    user_id = uuid4()
    resolver = SupabaseIdentityResolver(
        SimpleNamespace(auth=FakeAuth(str(user_id)))  # type: ignore[arg-type]
    )

    auth = asyncio.run(resolver.resolve("token"))
    rejected = asyncio.run(resolver.resolve("expired"))

    assert auth is not None
    assert auth.user_id == user_id
    assert auth.access_token == "token"
    assert rejected is None
