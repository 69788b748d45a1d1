"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from recipe_photos.api.photos import router as photos_router
from recipe_photos.app_logging import configure_logging
from recipe_photos.containers import AppContainer
from recipe_photos.domain.errors import (
    PhotoError,
    PhotoNotFoundError,
    PhotoValidationError,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(photos_router)

    @app.exception_handler(PhotoError)
    async def photo_error_handler(request: Request, exc: PhotoError) -> JSONResponse:
        if isinstance(exc, PhotoValidationError):
            status_code = status.HTTP_400_BAD_REQUEST
        elif isinstance(exc, PhotoNotFoundError):
            status_code = status.HTTP_404_NOT_FOUND
        else:
            status_code = status.HTTP_502_BAD_GATEWAY
            logger.error(
                "%s %s failed: %s", request.method, request.url.path, exc
            )
        return JSONResponse(
            status_code=status_code, content={"error": exc.user_message}
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
