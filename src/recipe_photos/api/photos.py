"""Recipe photo endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from recipe_photos.domain.errors import ImageGenerationError
from recipe_photos.domain.photos import AuthContext, PhotoView, UploadFile
from recipe_photos.domain.recipes import GenerationRequest  # noqa: TC001
from recipe_photos.services.image_generation import placeholder_url
from recipe_photos.services.photos import upload_too_large

if TYPE_CHECKING:
    from recipe_photos.containers import AppContainer
    from recipe_photos.services.photos import PhotoService

router = APIRouter(prefix="/recipes/{recipe_id}/photos", tags=["photos"])


def _photo_service(request: Request) -> PhotoService:
    container: AppContainer = request.app.state.container
    return container.photo_service


async def require_user(
    request: Request, authorization: str | None = Header(default=None)
) -> AuthContext:
    """Resolve the bearer token to the calling user."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    container: AppContainer = request.app.state.container
    auth = await container.identity_resolver.resolve(token.strip())
    if auth is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return auth


def _serialize(view: PhotoView) -> dict[str, object]:
    photo = view.photo
    return {
        "id": str(photo.id),
        "recipe_id": str(photo.recipe_id),
        "file_name": photo.file_name,
        "storage_path": photo.storage_path,
        "is_primary": photo.is_primary,
        "is_ai_generated": photo.is_ai_generated,
        "created_by": str(photo.created_by) if photo.created_by else None,
        "created_at": photo.created_at.isoformat(),
        "url": view.url,
    }


@router.get("", dependencies=[Depends(require_user)])
async def list_photos(recipe_id: UUID, request: Request) -> dict[str, object]:
    """Return a recipe's photos, primary first."""
    views = await _photo_service(request).list_photos(recipe_id)
    return {"photos": [_serialize(view) for view in views]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_photo(
    recipe_id: UUID,
    request: Request,
    file_name: str = "photo.jpg",
    is_primary: bool = False,
    content_type: str = Header(default="application/octet-stream"),
    auth: AuthContext = Depends(require_user),
) -> dict[str, object]:
    """Store the raw request body as a new recipe photo."""
    service = _photo_service(request)
    upload = UploadFile(
        file_name=file_name,
        content_type=content_type.split(";")[0].strip().lower(),
        content=await _read_body(request, service.max_upload_bytes),
    )
    view = await service.upload_photo(upload, recipe_id, auth, is_primary=is_primary)
    return _serialize(view)


async def _read_body(request: Request, max_bytes: int) -> bytes:
    """Read the request body, stopping as soon as it passes ``max_bytes``."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > max_bytes:
        raise upload_too_large(max_bytes)
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_bytes:
            raise upload_too_large(max_bytes)
    return bytes(body)


@router.post("/generate", status_code=status.HTTP_201_CREATED, response_model=None)
async def generate_photo(
    recipe_id: UUID,
    payload: GenerationRequest,
    request: Request,
    auth: AuthContext = Depends(require_user),
) -> dict[str, object] | JSONResponse:
    """Generate an AI photo, falling back to a placeholder image."""
    try:
        view = await _photo_service(request).generate_ai_photo(
            payload, recipe_id, auth
        )
    except ImageGenerationError as exc:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"placeholder": True, "url": placeholder_url(exc.kind)},
        )
    return {"placeholder": False, **_serialize(view)}


@router.post("/{photo_id}/primary", dependencies=[Depends(require_user)])
async def set_primary_photo(
    recipe_id: UUID, photo_id: UUID, request: Request
) -> dict[str, object]:
    """Make a photo the recipe's primary photo."""
    view = await _photo_service(request).set_primary_photo(photo_id, recipe_id)
    return _serialize(view)


@router.delete(
    "/{photo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_user)],
)
async def delete_photo(recipe_id: UUID, photo_id: UUID, request: Request) -> None:
    """Delete a photo and its stored object."""
    await _photo_service(request).delete_photo(photo_id, recipe_id)


@router.get("/{photo_id}/signed-url", dependencies=[Depends(require_user)])
async def signed_photo_url(
    recipe_id: UUID, photo_id: UUID, request: Request, ttl_seconds: int = 3600
) -> dict[str, str]:
    """Return a time-limited signed URL for a photo."""
    url = await _photo_service(request).get_signed_photo_url(
        photo_id, recipe_id, ttl_seconds
    )
    return {"url": url}


@router.get("/{photo_id}/download-url", dependencies=[Depends(require_user)])
async def download_photo_url(
    recipe_id: UUID, photo_id: UUID, request: Request
) -> dict[str, str]:
    """Return an attachment-style download URL for a photo."""
    url = await _photo_service(request).get_download_url(photo_id, recipe_id)
    return {"url": url}
