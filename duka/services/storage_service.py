"""
Blob storage for product images (S3-compatible: MinIO, AWS S3, DigitalOcean Spaces).

Only one operation matters to the rest of the service: upload bytes to a
path and get back a URL that can be saved as ``Product.imageUrl``.
"""
import logging
import mimetypes
from io import BytesIO

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from duka.core.config import settings
from duka.core.exceptions import BlobStorageError, InvalidImageError

logger = logging.getLogger("duka")

MAX_IMAGE_SIZE = 2 * 1024 * 1024
ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}


class BlobStorage:
    """
    Usage:
        storage = BlobStorage()
        url = storage.upload_blob('products/abc/photo.jpg', data, 'image/jpeg')
    """

    def __init__(self, client=None, bucket: str | None = None, public_url: str | None = None):
        self.bucket = bucket or settings.S3_BUCKET
        self.public_url = (public_url or settings.S3_PUBLIC_URL or settings.S3_ENDPOINT or "").rstrip("/")

        self.client = client or boto3.client(
            "s3",
            endpoint_url=settings.S3_ENDPOINT,
            aws_access_key_id=settings.S3_ACCESS_KEY,
            aws_secret_access_key=settings.S3_SECRET_KEY,
            region_name=settings.S3_REGION,
            config=BotoConfig(signature_version="s3v4"),
        )

    def upload_blob(self, path: str, data: bytes, content_type: str | None = None) -> str:
        if not data:
            raise InvalidImageError("No file provided")

        if len(data) > MAX_IMAGE_SIZE:
            raise InvalidImageError(
                f"File is too large ({len(data)} bytes, max {MAX_IMAGE_SIZE})"
            )

        content_type = content_type or mimetypes.guess_type(path)[0] or "application/octet-stream"

        if content_type not in ALLOWED_IMAGE_TYPES:
            raise InvalidImageError(f"Unsupported image type: {content_type}")

        try:
            logger.info(f"[STORAGE] Uploading '{path}' to bucket '{self.bucket}'")
            self.client.upload_fileobj(
                BytesIO(data),
                self.bucket,
                path,
                ExtraArgs={"ContentType": content_type, "ACL": "public-read"},
            )
        except (ClientError, BotoCoreError) as exc:
            logger.exception(f"[STORAGE] Upload failed: {exc}")
            raise BlobStorageError(f"Image upload failed: {exc}") from exc

        return self.get_public_url(path)

    def get_public_url(self, path: str) -> str:
        return f"{self.public_url}/{self.bucket}/{path}"


def get_storage() -> BlobStorage:
    return BlobStorage()
