"""S3-compatible object storage (MinIO / AWS S3)."""

import asyncio
import logging
import uuid

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from filehub.storage.base import ObjectStorage

logger = logging.getLogger(__name__)


class S3Storage(ObjectStorage):
    """S3-compatible object storage client.

    With a custom ``endpoint`` (MinIO, local dev) URLs are path-style
    ``{endpoint}/{bucket}/{key}``; without one they are AWS virtual-host URLs.
    """

    def __init__(
        self,
        endpoint: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        bucket: str = "filehub-files",
        region: str = "us-east-1",
    ):
        self._bucket = bucket
        self._endpoint = endpoint.rstrip("/") if endpoint else None
        self._region = region
        client_kwargs: dict = {
            "region_name": region,
            "config": Config(
                signature_version="s3v4",
                s3={"addressing_style": "path" if endpoint else "auto"},
            ),
        }
        if endpoint:
            client_kwargs["endpoint_url"] = endpoint
        if access_key and secret_key:
            client_kwargs["aws_access_key_id"] = access_key
            client_kwargs["aws_secret_access_key"] = secret_key
        self._client = boto3.client("s3", **client_kwargs)

    async def init(self) -> None:
        """Create bucket if it doesn't exist."""
        try:
            await asyncio.to_thread(self._client.head_bucket, Bucket=self._bucket)
            logger.info("S3 bucket exists: %s", self._bucket)
        except ClientError:
            await asyncio.to_thread(
                self._client.create_bucket, Bucket=self._bucket
            )
            logger.info("S3 bucket created: %s", self._bucket)

    async def upload(
        self,
        prefix: str,
        filename: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        """Upload file. Returns the object key."""
        ext = filename.rsplit(".", 1)[-1] if "." in filename else "bin"
        object_key = f"{prefix}/{uuid.uuid4()}.{ext}"
        await asyncio.to_thread(
            self._client.put_object,
            Bucket=self._bucket,
            Key=object_key,
            Body=data,
            ContentType=content_type,
            Metadata={"original-name": filename.encode("ascii", "ignore").decode()},
        )
        logger.info("Uploaded %s (%d bytes)", object_key, len(data))
        return object_key

    def url_for(self, object_key: str) -> str:
        if self._endpoint:
            return f"{self._endpoint}/{self._bucket}/{object_key}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{object_key}"
