"""Blob storage interface and the S3 implementation used for document files."""

import logging
import secrets
from collections.abc import Sequence
from pathlib import PurePosixPath
from typing import Protocol
from uuid import UUID

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from certtrack.config import Settings, get_settings
from certtrack.errors import StorageError

logger = logging.getLogger(__name__)


class BlobStorage(Protocol):
    """Object storage for document files, addressed by '<user_id>/<name>' paths."""

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> None: ...

    def get_public_url(self, path: str) -> str: ...

    async def create_signed_url(self, path: str, ttl_seconds: int) -> str: ...

    async def remove(self, paths: Sequence[str]) -> None: ...


def blob_path_for(user_id: UUID, filename: str) -> str:
    """Per-user path with a random file name and the original extension."""
    suffix = PurePosixPath(filename).suffix
    return f"{user_id}/{secrets.token_hex(12)}{suffix}"


def blob_path_from_url(file_url: str, user_id: UUID) -> str:
    """Recover the storage path of a document from its public URL."""
    name = file_url.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1]
    return f"{user_id}/{name}"


class S3BlobStorage:
    """BlobStorage backed by an S3 bucket (or MinIO/LocalStack)."""

    def __init__(self, settings: Settings | None = None, client=None):
        """Initialize S3 client with credentials from settings."""
        settings = settings or get_settings()
        if client is None:
            client_kwargs = {
                "aws_access_key_id": settings.aws_access_key_id,
                "aws_secret_access_key": settings.aws_secret_access_key,
                "region_name": settings.aws_s3_region,
            }
            # Support MinIO / LocalStack by pointing to a custom endpoint
            if settings.aws_s3_endpoint_url:
                client_kwargs["endpoint_url"] = settings.aws_s3_endpoint_url
            client = boto3.client("s3", **client_kwargs)

        self.s3_client = client
        self.bucket = settings.aws_s3_bucket
        self.public_base_url = (
            settings.storage_public_base_url
            or f"https://{settings.aws_s3_bucket}.s3.{settings.aws_s3_region}.amazonaws.com"
        ).rstrip("/")

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> None:
        """
        Upload a file to S3.

        Args:
            path: Object key, '<user_id>/<name>'
            data: Raw bytes of the file
            content_type: MIME type stored with the object

        Raises:
            StorageError: If the S3 operation fails
        """
        extra = {"ContentType": content_type} if content_type else {}
        try:
            self.s3_client.put_object(Bucket=self.bucket, Key=path, Body=data, **extra)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"File upload failed: {e}") from e

    def get_public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{path}"

    async def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        """
        Generate a presigned download URL.

        Args:
            path: Object key
            ttl_seconds: URL lifetime

        Raises:
            StorageError: If the URL cannot be signed
        """
        try:
            return self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": path},
                ExpiresIn=ttl_seconds,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to sign download URL: {e}") from e

    async def remove(self, paths: Sequence[str]) -> None:
        """
        Delete objects from S3. Keys that do not exist are not an error.

        Raises:
            StorageError: If the S3 operation fails
        """
        if not paths:
            return
        try:
            response = self.s3_client.delete_objects(
                Bucket=self.bucket,
                Delete={"Objects": [{"Key": path} for path in paths], "Quiet": True},
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to remove file: {e}") from e

        errors = response.get("Errors") or []
        if errors:
            logger.warning("S3 refused to delete %d object(s): %s", len(errors), errors)
            raise StorageError(f"Failed to remove file: {errors[0].get('Message', 'unknown error')}")
