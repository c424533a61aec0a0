"""
Image upload to S3-compatible object storage.

The event ingestion handler hands over the raw image bytes and gets back a
public HTTPS URL to store on the event. boto3 is blocking, so the call is
pushed to a worker thread to keep the event loop free.
"""

import asyncio
import mimetypes
import time
import uuid
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from devevent.core.config import Settings, get_settings
from devevent.core.errors import ConfigurationError, UploadError
from devevent.core.logging import get_logger
from devevent.core.metrics import media_upload_latency

logger = get_logger(__name__)


class MediaUploader(ABC):
    """Stores a binary image and returns a publicly resolvable URL."""

    @abstractmethod
    async def upload(
        self,
        payload: bytes,
        *,
        filename: str,
        content_type: str,
        folder: Optional[str] = None,
    ) -> str:
        pass


def get_s3_client(settings: Settings):
    """
    S3 client for the configured media store.
    MEDIA_ENDPOINT_URL points at MinIO or another S3 clone in local setups.
    """
    options = {"region_name": settings.MEDIA_REGION}
    if settings.MEDIA_ENDPOINT_URL:
        options["endpoint_url"] = settings.MEDIA_ENDPOINT_URL
    if settings.MEDIA_ACCESS_KEY_ID and settings.MEDIA_SECRET_ACCESS_KEY:
        options["aws_access_key_id"] = settings.MEDIA_ACCESS_KEY_ID
        options["aws_secret_access_key"] = settings.MEDIA_SECRET_ACCESS_KEY
    return boto3.client("s3", **options)


def _extension(filename: str, content_type: str) -> str:
    if "." in filename:
        return "." + filename.rsplit(".", 1)[1].lower()
    return mimetypes.guess_extension(content_type) or ""


class S3MediaUploader(MediaUploader):
    def __init__(self, settings: Settings, client=None):
        self.settings = settings
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_s3_client(self.settings)
        return self._client

    def public_url(self, key: str) -> str:
        if self.settings.MEDIA_PUBLIC_BASE_URL:
            return f"{self.settings.MEDIA_PUBLIC_BASE_URL.rstrip('/')}/{key}"
        bucket = self.settings.MEDIA_BUCKET
        return f"https://{bucket}.s3.{self.settings.MEDIA_REGION}.amazonaws.com/{key}"

    async def upload(
        self,
        payload: bytes,
        *,
        filename: str,
        content_type: str,
        folder: Optional[str] = None,
    ) -> str:
        bucket = self.settings.MEDIA_BUCKET
        if not bucket:
            raise ConfigurationError("Please define the MEDIA_BUCKET environment variable inside .env")

        key = f"{folder or self.settings.MEDIA_FOLDER}/{uuid.uuid4().hex}{_extension(filename, content_type)}"
        started = time.perf_counter()
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=bucket,
                Key=key,
                Body=payload,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("media_upload_failed", bucket=bucket, key=key, error=str(e))
            raise UploadError("Image upload failed") from e
        finally:
            media_upload_latency.observe(time.perf_counter() - started)

        logger.info("media_uploaded", key=key, size=len(payload))
        return self.public_url(key)


@lru_cache()
def _default_uploader() -> S3MediaUploader:
    return S3MediaUploader(get_settings())


def get_media_uploader() -> MediaUploader:
    """FastAPI dependency; tests override it with an in-memory uploader."""
    return _default_uploader()
