"""AWS S3 backend client."""

import logging
from dataclasses import dataclass, field

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from recipe_photos.adapters.url_builders import UrlBuilder
from recipe_photos.domain.errors import PhotoValidationError, StorageOperationError
from recipe_photos.domain.photos import UploadFile
from recipe_photos.services.retry import BackoffPolicy
from recipe_photos.services.storage import (
    DEFAULT_SIGNED_URL_TTL_SECONDS,
    StorageClient,
)

logger = logging.getLogger(__name__)


@dataclass
class S3StorageClient(StorageClient):
    """Storage client backed by an S3 (or S3-compatible) bucket."""

    session: aioboto3.Session
    bucket_name: str
    url_builder: UrlBuilder
    backoff: BackoffPolicy
    endpoint_url: str | None = None
    timeout_seconds: float = 30.0
    cache_control_seconds: int = 31536000
    _client_config: Config = field(init=False, repr=False)

    def __post_init__(self) -> None:
        # Retries are owned by the backoff policy, not botocore.
        self._client_config = Config(
            connect_timeout=self.timeout_seconds,
            read_timeout=self.timeout_seconds,
            retries={"max_attempts": 1, "mode": "standard"},
        )

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        *,
        bucket_name: str,
        region: str,
        url_builder: UrlBuilder,
        backoff: BackoffPolicy,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        endpoint_url: str | None = None,
        timeout_seconds: float = 30.0,
        cache_control_seconds: int = 31536000,
    ) -> "S3StorageClient":
        """Create an S3 client; credentials fall back to the AWS default chain."""
        session_kwargs: dict[str, str] = {"region_name": region}
        if access_key_id and secret_access_key:
            session_kwargs["aws_access_key_id"] = access_key_id
            session_kwargs["aws_secret_access_key"] = secret_access_key
        return cls(
            session=aioboto3.Session(**session_kwargs),
            bucket_name=bucket_name,
            url_builder=url_builder,
            backoff=backoff,
            endpoint_url=endpoint_url,
            timeout_seconds=timeout_seconds,
            cache_control_seconds=cache_control_seconds,
        )

    def _client(self):  # type: ignore[no-untyped-def]
        kwargs: dict[str, object] = {"config": self._client_config}
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        return self.session.client("s3", **kwargs)

    async def upload(self, file: UploadFile, key: str) -> str:
        """Put the object with a one-year cache header and return its key."""
        if not key:
            raise PhotoValidationError("File path is required")

        async def attempt() -> str:
            logger.info(
                "Uploading %s to S3 bucket %s as %s (%s bytes)",
                file.file_name,
                self.bucket_name,
                key,
                file.size,
            )
            async with self._client() as s3:
                await s3.put_object(
                    Bucket=self.bucket_name,
                    Key=key,
                    Body=file.content,
                    ContentType=file.content_type or "application/octet-stream",
                    ContentLength=file.size,
                    CacheControl=f"max-age={self.cache_control_seconds}",
                    Metadata={"original-filename": file.file_name},
                )
            return key

        stored_key = await self.backoff.run("upload file to S3", attempt)
        logger.info("Uploaded %s to S3 bucket %s", stored_key, self.bucket_name)
        return stored_key

    async def delete(self, key: str) -> None:
        """Delete the object from the bucket."""
        if not key or not key.strip():
            logger.warning("Attempted to delete file with empty path")
            return
        logger.info("Deleting %s from S3 bucket %s", key, self.bucket_name)
        try:
            async with self._client() as s3:
                await s3.delete_object(Bucket=self.bucket_name, Key=key)
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Failed to delete %s from S3", key)
            raise StorageOperationError("delete file from S3", exc) from exc

    async def get_signed_url(
        self, key: str, ttl_seconds: int = DEFAULT_SIGNED_URL_TTL_SECONDS
    ) -> str:
        """Presign a GET request for the object."""
        if not key:
            raise PhotoValidationError("File path is required")
        try:
            async with self._client() as s3:
                return await s3.generate_presigned_url(
                    "get_object",
                    Params={"Bucket": self.bucket_name, "Key": key},
                    ExpiresIn=ttl_seconds,
                )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Failed to generate signed URL for %s", key)
            raise StorageOperationError("generate signed URL", exc) from exc

    def get_public_url(self, key: str) -> str:
        """Return the public URL from the paired builder."""
        return self.url_builder.public_url(key)
