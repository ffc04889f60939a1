"""
UserDesk - Profile image storage on an S3-compatible bucket.

Objects are stored as "<prefix>/<uuid><ext>" with a public-read ACL; the
database keeps only "<uuid><ext>" in users.img_url.
"""
import logging
import os
import uuid
from functools import lru_cache
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from ..config import settings

logger = logging.getLogger("userdesk.storage")


class StorageError(Exception):
    """Raised when an image cannot be accepted or stored."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


def build_image_name(original_filename: Optional[str]) -> str:
    """Random object name keeping the uploaded file's extension."""
    ext = os.path.splitext(original_filename or "")[1].lower()
    return f"{uuid.uuid4()}{ext}"


class S3ImageStorage:
    def __init__(self):
        self.bucket = settings.storage.s3_bucket
        self.prefix = settings.storage.s3_key_prefix.strip("/")
        self.client = boto3.client(
            "s3",
            endpoint_url=settings.storage.s3_endpoint,
            aws_access_key_id=settings.storage.s3_access_key,
            aws_secret_access_key=settings.storage.s3_secret_key,
            region_name=settings.storage.s3_region,
        )

    def is_configured(self) -> bool:
        return bool(self.bucket)

    def object_key(self, image_name: str) -> str:
        return f"{self.prefix}/{image_name}"

    def upload_image(self, data: bytes, original_filename: Optional[str], content_type: Optional[str]) -> str:
        """
        Upload image bytes and return the stored image name.

        Raises:
            StorageError: If the bucket is not configured or the upload fails
        """
        if not self.is_configured():
            raise StorageError("Image storage is not configured")

        image_name = build_image_name(original_filename)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=self.object_key(image_name),
                Body=data,
                ContentType=content_type or "application/octet-stream",
                ACL="public-read",
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to upload %s: %s", image_name, exc)
            raise StorageError("Failed to upload image") from exc

        logger.info("Uploaded profile image %s", image_name)
        return image_name

    def delete_image(self, image_name: str) -> bool:
        """Best-effort delete. Returns False instead of raising on failure."""
        if not image_name or not self.is_configured():
            return False
        try:
            self.client.delete_object(Bucket=self.bucket, Key=self.object_key(image_name))
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to delete old image %s: %s", image_name, exc)
            return False
        return True


@lru_cache(maxsize=1)
def get_image_storage() -> S3ImageStorage:
    """FastAPI dependency returning the shared storage client."""
    return S3ImageStorage()


async def store_uploaded_image(upload: Optional[UploadFile], storage: S3ImageStorage) -> Optional[str]:
    """
    Store an uploaded profile image and return its new name.

    Returns None when nothing was uploaded. Any previous image is left alone;
    callers delete it once the new name has been committed.

    Raises:
        StorageError: 400 for a non-image or oversized file, 500 if the upload fails
    """
    if upload is None or not upload.filename:
        return None

    if upload.content_type and not upload.content_type.startswith("image/"):
        raise StorageError("Profile image must be an image file", status_code=400)

    data = await upload.read()
    if len(data) > settings.storage.max_image_size:
        raise StorageError(
            f"Image too large. Maximum size: {settings.storage.max_image_size // (1024 * 1024)}MB",
            status_code=400,
        )

    return await run_in_threadpool(storage.upload_image, data, upload.filename, upload.content_type)
