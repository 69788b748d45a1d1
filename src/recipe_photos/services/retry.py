"""Retry with exponential backoff."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from recipe_photos.domain.errors import PhotoValidationError, StorageOperationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _retry_unless_validation(exc: BaseException) -> bool:
    return not isinstance(exc, PhotoValidationError)


@dataclass(frozen=True)
class BackoffPolicy:
    """Retry policy with exponential backoff and optional jitter.

    The delay after failed attempt ``n`` is ``base_delay_seconds * 2 ** (n - 1)``
    plus up to ``jitter_seconds`` of random spread. ``sleep`` and ``random``
    are injectable so tests can run without waiting.
    """

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    jitter_seconds: float = 0.0
    sleep: Callable[[float], Awaitable[None]] = field(
        default=asyncio.sleep, repr=False, compare=False
    )
    random: Callable[[], float] = field(
        default=random.random, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_seconds < 0 or self.jitter_seconds < 0:
            raise ValueError("delays must not be negative")

    def delay_for(self, attempt: int) -> float:
        """Return the wait in seconds after the given failed attempt."""
        delay = self.base_delay_seconds * 2 ** (attempt - 1)
        if self.jitter_seconds:
            delay += self.random() * self.jitter_seconds
        return delay

    async def run(
        self,
        operation: str,
        func: Callable[[], Awaitable[T]],
        should_retry: Callable[[BaseException], bool] = _retry_unless_validation,
    ) -> T:
        """Call ``func`` until it succeeds or the attempts run out.

        Errors rejected by ``should_retry`` propagate unchanged. Once every
        attempt has failed, a ``StorageOperationError`` naming ``operation``
        is raised with the last error chained as its cause.
        """
        last_error: Exception | None = None
        attempt = 0
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await func()
            except Exception as exc:
                if not should_retry(exc):
                    raise
                last_error = exc
                if attempt == self.max_attempts:
                    break
                delay = self.delay_for(attempt)
                logger.warning(
                    "%s failed on attempt %s/%s, retrying in %.2fs: %s",
                    operation,
                    attempt,
                    self.max_attempts,
                    delay,
                    exc,
                )
                await self.sleep(delay)

        logger.error(
            "%s failed after %s attempt(s): %s", operation, attempt, last_error
        )
        raise StorageOperationError(
            operation, last_error, attempts=attempt
        ) from last_error
