"""HTTP client for downloading generated images."""

from dataclasses import dataclass

import httpx

from recipe_photos.domain.errors import ImageGenerationError
from recipe_photos.services.image_generation import (
    DownloadedImage,
    ImageDownloadClient,
    PlaceholderKind,
)

_TOO_MANY_REQUESTS = 429
_SERVER_ERROR_STATUS = 500


@dataclass
class HttpxImageDownloadClient(ImageDownloadClient):
    """Image download client using httpx."""

    http_client: httpx.AsyncClient
    timeout_seconds: float = 30.0

    @classmethod
    def create(cls, timeout_seconds: float = 30.0) -> "HttpxImageDownloadClient":
        """Create a download client with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient(), timeout_seconds=timeout_seconds)

    async def download(self, url: str) -> DownloadedImage:
        """Download an image, rejecting non-image or empty responses."""
        try:
            response = await self.http_client.get(
                url,
                headers={"Accept": "image/*"},
                timeout=self.timeout_seconds,
                follow_redirects=True,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            if status_code == _TOO_MANY_REQUESTS:
                raise ImageGenerationError(
                    "Rate limited while downloading image",
                    kind=PlaceholderKind.RATE_LIMIT,
                    retryable=True,
                ) from exc
            raise ImageGenerationError(
                f"Failed to download image: HTTP {status_code}",
                retryable=status_code >= _SERVER_ERROR_STATUS,
            ) from exc
        except httpx.TransportError as exc:
            raise ImageGenerationError(
                f"Network error downloading image: {exc}",
                kind=PlaceholderKind.NETWORK_ERROR,
                retryable=True,
            ) from exc

        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        if not content_type.startswith("image/"):
            raise ImageGenerationError(f"Invalid content type: {content_type}")
        if not response.content:
            raise ImageGenerationError("Received empty image buffer")
        return DownloadedImage(content=response.content, content_type=content_type)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
