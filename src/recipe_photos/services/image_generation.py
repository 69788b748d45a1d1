"""AI image generation for recipes."""

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

from recipe_photos.domain.errors import (
    ImageGenerationError,
    PhotoValidationError,
    StorageOperationError,
)
from recipe_photos.domain.recipes import GenerationRequest
from recipe_photos.services.retry import BackoffPolicy

logger = logging.getLogger(__name__)

MAX_PROMPT_INGREDIENTS = 3
MAX_PROMPT_METHODS = 2

COOKING_METHODS: dict[str, str] = {
    "grill": "grilled",
    "bake": "baked",
    "roast": "roasted",
    "fry": "fried",
    "sauté": "sautéed",
    "saute": "sautéed",
    "steam": "steamed",
    "boil": "boiled",
    "broil": "broiled",
    "sear": "seared",
    "smoke": "smoked",
    "braise": "braised",
    "poach": "poached",
    "simmer": "simmered",
}

FALLBACK_PROMPT = (
    "A professional, appetizing photo of food dish, food photography style"
)

PROMPT_STYLE = (
    "styled as a high-end restaurant presentation",
    "shot from a 45-degree angle with soft natural lighting",
    "shallow depth of field",
    "on a clean modern white plate with elegant plating",
    "garnished appropriately",
    "vibrant colors",
    "food photography style",
    "high resolution",
    "4k",
    "detailed",
    "professional lighting",
)


class PlaceholderKind(StrEnum):
    """Reason a placeholder is shown instead of a generated photo."""

    DEFAULT = "default"
    API_ERROR = "api_error"
    NETWORK_ERROR = "network_error"
    RATE_LIMIT = "rate_limit"


_UNSPLASH = "https://images.unsplash.com"
_PLACEHOLDER_PARAMS = "w=1600&auto=format&fit=crop&q=80"
PLACEHOLDER_IMAGES: dict[PlaceholderKind, str] = {
    PlaceholderKind.DEFAULT: f"{_UNSPLASH}/photo-1495195134817-aeb325a55b65",
    PlaceholderKind.API_ERROR: f"{_UNSPLASH}/photo-1546069901-ba9599a7e63c",
    PlaceholderKind.NETWORK_ERROR: f"{_UNSPLASH}/photo-1555939594-58d7cb561ad1",
    PlaceholderKind.RATE_LIMIT: f"{_UNSPLASH}/photo-1540189549336-e6e99c3679fe",
}


def placeholder_url(kind: str) -> str:
    """Return the placeholder photo URL for a failure kind."""
    try:
        resolved = PlaceholderKind(kind)
    except ValueError:
        resolved = PlaceholderKind.DEFAULT
    logger.warning("Using placeholder image: %s", resolved)
    return f"{PLACEHOLDER_IMAGES[resolved]}?{_PLACEHOLDER_PARAMS}"


@dataclass(frozen=True)
class DownloadedImage:
    """Raw image bytes fetched from a URL."""

    content: bytes
    content_type: str


class ImageClient(Protocol):
    """Interface for an AI image generation API."""

    async def generate_image_url(self, prompt: str) -> str:
        """Generate an image and return a temporary URL to it."""


class ImageDownloadClient(Protocol):
    """Interface for fetching generated images."""

    async def download(self, url: str) -> DownloadedImage:
        """Download an image and return its bytes and MIME type."""


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ImageGenerationError) and exc.retryable


@dataclass
class ImageGenerationService:
    """Builds prompts and fetches generated images with retries."""

    image_client: ImageClient
    download_client: ImageDownloadClient
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)

    def enhance_prompt(self, request: GenerationRequest) -> str:
        """Describe the dish using its name, costliest ingredients and methods."""
        recipe_name = request.recipe_name.strip()
        if not recipe_name:
            logger.warning("Recipe name missing, using generic prompt")
            return FALLBACK_PROMPT

        ranked = sorted(
            request.ingredients, key=lambda item: item.cost_percentage, reverse=True
        )
        main_ingredients = ", ".join(
            name
            for name in (item.name.strip() for item in ranked[:MAX_PROMPT_INGREDIENTS])
            if name
        )
        parts = [f"A professional, appetizing photo of {recipe_name}"]
        if main_ingredients:
            parts.append(f"featuring {main_ingredients}")
        methods = extract_cooking_methods(request.instructions)
        if methods:
            parts.append(methods)
        parts.extend(PROMPT_STYLE)
        prompt = ", ".join(parts)
        logger.debug(
            "Built prompt for %s (%s chars, methods=%r)",
            recipe_name,
            len(prompt),
            methods,
        )
        return prompt

    async def generate(self, prompt: str) -> DownloadedImage:
        """Generate and download an image, retrying transient failures."""
        if not prompt.strip():
            raise PhotoValidationError("Empty prompt provided")

        async def attempt() -> DownloadedImage:
            logger.info("Starting image generation (%s chars)", len(prompt))
            image_url = await self.image_client.generate_image_url(prompt)
            image = await self.download_client.download(image_url)
            if not image.content:
                raise ImageGenerationError("Received empty image")
            return image

        try:
            image = await self.backoff.run("generate image", attempt, _is_retryable)
        except StorageOperationError as exc:
            cause = exc.__cause__
            kind = cause.kind if isinstance(cause, ImageGenerationError) else "default"
            raise ImageGenerationError(str(exc), kind=kind) from exc
        logger.info(
            "Image generated (%s bytes, %s)", len(image.content), image.content_type
        )
        return image


def extract_cooking_methods(instructions: list[str]) -> str:
    """Return up to two cooking methods found in the instructions."""
    if not instructions:
        return ""
    text = " ".join(instructions).lower()
    found: list[str] = []
    for keyword, past_tense in COOKING_METHODS.items():
        if keyword in text and past_tense not in found:
            found.append(past_tense)
    if not found:
        return ""
    return f"{' and '.join(found[:MAX_PROMPT_METHODS])} to perfection"
