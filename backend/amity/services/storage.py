from __future__ import annotations

import logging
import uuid

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from amity.core.config import settings
from amity.core.errors import ValidationFailed

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "video/mp4": "mp4",
    "video/quicktime": "mov",
    "video/mov": "mov",
    "video/avi": "avi",
    "video/x-msvideo": "avi",
    "video/wmv": "wmv",
    "video/x-ms-wmv": "wmv",
}


def _get_endpoint_url() -> str:
    if settings.R2_ENDPOINT_URL:
        return settings.R2_ENDPOINT_URL
    if not settings.R2_ACCOUNT_ID:
        raise ValueError("R2_ACCOUNT_ID is required when R2_ENDPOINT_URL is not set.")
    return f"https://{settings.R2_ACCOUNT_ID}.r2.cloudflarestorage.com"


def _get_bucket_name() -> str:
    if not settings.R2_BUCKET_NAME:
        raise ValueError("R2_BUCKET_NAME is required.")
    return settings.R2_BUCKET_NAME


def _get_client():
    if not settings.R2_ACCESS_KEY_ID or not settings.R2_SECRET_ACCESS_KEY:
        raise ValueError("R2_ACCESS_KEY_ID and R2_SECRET_ACCESS_KEY are required.")

    return boto3.client(
        "s3",
        endpoint_url=_get_endpoint_url(),
        aws_access_key_id=settings.R2_ACCESS_KEY_ID,
        aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
        region_name=settings.R2_REGION,
        config=Config(signature_version="s3v4"),
    )


def validate_media(size: int, content_type: str | None) -> str:
    if size <= 0:
        raise ValidationFailed("File is empty")
    if size > settings.MAX_UPLOAD_BYTES:
        limit_mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
        raise ValidationFailed(f"File size must be less than {limit_mb}MB")
    extension = ALLOWED_CONTENT_TYPES.get((content_type or "").lower())
    if extension is None:
        raise ValidationFailed("File type not supported")
    return extension


def public_url(key: str, expires_in: int = 3600) -> str:
    if settings.MEDIA_PUBLIC_BASE_URL:
        return f"{settings.MEDIA_PUBLIC_BASE_URL.rstrip('/')}/{key}"
    client = _get_client()
    return client.generate_presigned_url(
        ClientMethod="get_object",
        Params={"Bucket": _get_bucket_name(), "Key": key},
        ExpiresIn=expires_in,
    )


def upload_media(file_bytes: bytes, content_type: str | None, owner_id: str) -> str | None:
    extension = validate_media(len(file_bytes), content_type)
    key = f"{owner_id}/{uuid.uuid4()}.{extension}"
    try:
        client = _get_client()
        client.put_object(
            Bucket=_get_bucket_name(),
            Key=key,
            Body=file_bytes,
            ContentType=content_type,
        )
        return public_url(key)
    except (BotoCoreError, ClientError, ValueError) as exc:
        logger.warning("upload_media failed owner_id=%s key=%s: %s", owner_id, key, exc)
        return None
