"""OpenAI Images API client."""

from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from recipe_photos.domain.errors import ImageGenerationError
from recipe_photos.services.image_generation import ImageClient, PlaceholderKind

_SERVER_ERROR_STATUS = 500


@dataclass
class OpenAIImageClient(ImageClient):
    """Image client backed by the OpenAI Images API."""

    client: AsyncOpenAI
    model: str = "dall-e-3"
    size: str = "1024x1024"
    quality: str = "hd"

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        api_key: str,
        model: str = "dall-e-3",
        size: str = "1024x1024",
        quality: str = "hd",
        timeout_seconds: float = 30.0,
    ) -> "OpenAIImageClient":
        """Create an OpenAI image client; retries are handled by the caller."""
        return cls(
            client=AsyncOpenAI(
                api_key=api_key, timeout=timeout_seconds, max_retries=0
            ),
            model=model,
            size=size,
            quality=quality,
        )

    async def generate_image_url(self, prompt: str) -> str:
        """Generate a single image and return its temporary URL."""
        try:
            response = await self.client.images.generate(
                model=self.model,
                prompt=prompt,
                n=1,
                size=self.size,
                quality=self.quality,
                response_format="url",
            )
        except openai.RateLimitError as exc:
            raise ImageGenerationError(
                f"Rate limited by OpenAI: {exc}",
                kind=PlaceholderKind.RATE_LIMIT,
                retryable=True,
            ) from exc
        except (openai.APITimeoutError, openai.APIConnectionError) as exc:
            raise ImageGenerationError(
                f"Network error calling OpenAI: {exc}",
                kind=PlaceholderKind.NETWORK_ERROR,
                retryable=True,
            ) from exc
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise ImageGenerationError(
                f"OpenAI rejected the API key: {exc}",
                kind=PlaceholderKind.API_ERROR,
            ) from exc
        except openai.APIStatusError as exc:
            raise ImageGenerationError(
                f"OpenAI image generation failed: {exc}",
                retryable=exc.status_code >= _SERVER_ERROR_STATUS,
            ) from exc

        if not response.data or not response.data[0].url:
            raise ImageGenerationError("No image URL returned")
        return response.data[0].url

    async def close(self) -> None:
        """Close the underlying OpenAI HTTP session."""
        await self.client.close()
