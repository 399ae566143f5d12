import os
import secrets
import time

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import get_settings
from app.core.errors import StoreUnavailable, ValidationFailure

ALLOWED_IMAGE_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}

_session = aioboto3.Session()


def validate_image(filename: str, content_type: str, size: int) -> str:
    """Return the normalised extension, or raise ValidationFailure."""
    settings = get_settings()
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in ALLOWED_IMAGE_TYPES or (content_type and content_type not in ALLOWED_IMAGE_TYPES.values()):
        raise ValidationFailure("Only JPEG, PNG, and WEBP images are allowed", field="image")
    if size > settings.max_image_bytes:
        raise ValidationFailure(
            f"File size must be less than {settings.max_image_bytes // (1024 * 1024)}MB", field="image"
        )
    return ext


def object_key(path_hint: str, ext: str) -> str:
    """<prefix>/<path_hint>/<epoch ms>-<random>.<ext>"""
    prefix = get_settings().spaces_prefix.strip("/")
    hint = path_hint.strip("/")
    name = f"{int(time.time() * 1000)}-{secrets.token_hex(6)}{ext}"
    return "/".join(p for p in (prefix, hint, name) if p)


def public_url(key: str) -> str:
    key = key.lstrip("/")
    return f"{get_settings().spaces_cdn_base.rstrip('/')}/{key}"


def key_from_url(url: str) -> str:
    base = (get_settings().spaces_cdn_base or "").rstrip("/") + "/"
    if not url or not url.startswith(base):
        raise ValidationFailure("Image URL does not belong to this store", field="image_url")
    return url[len(base):]


def _client():
    settings = get_settings()
    if not all([settings.spaces_key, settings.spaces_secret, settings.spaces_bucket,
                settings.spaces_endpoint, settings.spaces_cdn_base]):
        raise StoreUnavailable("blob", "connect", "Spaces env vars not fully configured")
    return _session.client(
        "s3",
        region_name=settings.spaces_region,
        endpoint_url=settings.spaces_endpoint,
        aws_access_key_id=settings.spaces_key,
        aws_secret_access_key=settings.spaces_secret,
    )


async def upload_image(*, body: bytes, path_hint: str, filename: str, content_type: str) -> str:
    """
    Uploads a public-read image and returns its public URL.
    """
    ext = validate_image(filename, content_type, len(body))
    key = object_key(path_hint, ext)
    try:
        async with _client() as s3:
            await s3.put_object(
                Bucket=get_settings().spaces_bucket,
                Key=key,
                Body=body,
                ContentType=content_type or ALLOWED_IMAGE_TYPES[ext],
                ACL="public-read",
                CacheControl="max-age=3600",
            )
    except (BotoCoreError, ClientError, OSError) as exc:
        raise StoreUnavailable("blob", "upload", type(exc).__name__) from exc
    return public_url(key)


async def delete_image(url: str) -> None:
    key = key_from_url(url)
    try:
        async with _client() as s3:
            await s3.delete_object(Bucket=get_settings().spaces_bucket, Key=key)
    except (BotoCoreError, ClientError, OSError) as exc:
        raise StoreUnavailable("blob", "delete", type(exc).__name__) from exc
