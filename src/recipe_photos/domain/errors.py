"""Error taxonomy for the photo storage pipeline."""


class PhotoError(Exception):
    """Base error carrying a short message safe to show to end users."""

    user_message = "Something went wrong with the photo. Please try again."

    def __init__(self, message: str, user_message: str | None = None) -> None:
        super().__init__(message)
        if user_message is not None:
            self.user_message = user_message


class PhotoValidationError(PhotoError):
    """Bad input such as a wrong MIME type, oversized file or empty key."""

    def __init__(self, message: str) -> None:
        super().__init__(message, user_message=message)


class StorageConfigurationError(PhotoError):
    """Storage settings are missing or inconsistent."""

    user_message = "Photo storage is not configured."


class UnsupportedProviderError(StorageConfigurationError):
    """The configured storage provider has no implementation."""

    def __init__(self, provider: object) -> None:
        super().__init__(f"Unsupported storage provider: {provider!r}")
        self.provider = provider


class StorageNotInitializedError(StorageConfigurationError):
    """The storage backend singleton was requested before configuration."""

    def __init__(self) -> None:
        super().__init__(
            "Storage service not initialized. Please provide configuration."
        )


class StorageOperationError(PhotoError):
    """A storage backend call failed, possibly after several attempts."""

    user_message = "Photo storage is unavailable right now. Please try again."

    def __init__(self, operation: str, cause: BaseException, attempts: int = 1) -> None:
        super().__init__(f"Failed to {operation} after {attempts} attempt(s): {cause}")
        self.operation = operation
        self.attempts = attempts


class SignedUrlNotSupportedError(PhotoError):
    """Signed URLs need the authenticated storage client, not a URL builder."""


class PhotoNotFoundError(PhotoError):
    """The requested photo record does not exist."""

    user_message = "Photo not found."


class RecordIntegrityError(PhotoError):
    """A record store write did not produce the expected row."""


class PhotoStoreError(PhotoError):
    """The relational record store rejected or failed a query."""


class ImageGenerationError(PhotoError):
    """AI image generation failed; ``kind`` picks the placeholder to show."""

    user_message = "Could not generate a photo right now."

    def __init__(
        self, message: str, kind: str = "default", retryable: bool = False
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.retryable = retryable
