"""
MinIO (S3-compatible) client for chit and profile images.

Stores the image bytes as objects and hands back a URI; the rest of the
service only ever stores and returns that URI. Objects uploaded as part of
a request that later fails are deleted again by the caller.
"""
import base64
import binascii
import logging
import uuid
from io import BytesIO

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from chitter.config import settings
from chitter.errors import InvalidInput, StoreUnavailable

logger = logging.getLogger(__name__)

_s3 = None

IMAGE_PREFIX = "images/"


def init_minio() -> None:
    """Create the S3 client and ensure the media bucket exists."""
    global _s3
    if not settings.blob_storage_enabled:
        logger.info("Blob storage disabled — only hosted image URLs are accepted")
        return
    scheme = "https" if settings.minio_use_ssl else "http"
    _s3 = boto3.client(
        "s3",
        endpoint_url=f"{scheme}://{settings.minio_endpoint}",
        aws_access_key_id=settings.minio_access_key,
        aws_secret_access_key=settings.minio_secret_key,
        config=Config(
            signature_version="s3v4",
            connect_timeout=settings.store_timeout_seconds,
            read_timeout=settings.store_timeout_seconds,
            retries={"max_attempts": 1},
        ),
        region_name="us-east-1",
    )

    # Create bucket if missing
    existing = [b["Name"] for b in _s3.list_buckets().get("Buckets", [])]
    if settings.minio_bucket not in existing:
        _s3.create_bucket(Bucket=settings.minio_bucket)
        logger.info("Created MinIO bucket '%s'", settings.minio_bucket)
    else:
        logger.info("MinIO bucket '%s' already exists", settings.minio_bucket)


def get_s3():
    if _s3 is None:
        raise StoreUnavailable("Blob storage is not available")
    return _s3


def object_uri(key: str) -> str:
    return f"{settings.media_public_url.rstrip('/')}/{settings.minio_bucket}/{key}"


def key_from_uri(uri: str) -> str:
    prefix = object_uri("")
    if not uri.startswith(prefix):
        raise ValueError(f"{uri} is not an object in {settings.minio_bucket}")
    return uri[len(prefix):]


def upload_image(image_base64: str) -> str:
    """
    Decode a base64 image, upload to MinIO, return its URI.
    Key format: images/{uuid}.jpg
    """
    try:
        data = base64.b64decode(image_base64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidInput("image_base64 is not valid base64") from exc
    if not data:
        raise InvalidInput("image_base64 is empty")

    key = f"{IMAGE_PREFIX}{uuid.uuid4()}.jpg"
    s3 = get_s3()
    try:
        s3.put_object(
            Bucket=settings.minio_bucket,
            Key=key,
            Body=BytesIO(data),
            ContentType="image/jpeg",
        )
    except (BotoCoreError, ClientError) as exc:
        logger.error("Image upload to MinIO failed: %s", exc)
        raise StoreUnavailable("Blob storage unavailable") from exc

    logger.debug("Uploaded image to MinIO: %s", key)
    return object_uri(key)


def delete_image(uri: str) -> None:
    """Compensating delete for an upload whose owning write failed."""
    try:
        get_s3().delete_object(Bucket=settings.minio_bucket, Key=key_from_uri(uri))
        logger.info("Removed orphaned upload %s", uri)
    except (BotoCoreError, ClientError, StoreUnavailable, ValueError) as exc:
        logger.error("Could not remove orphaned upload %s: %s", uri, exc)
