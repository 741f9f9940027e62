"""Object key naming and upload validation."""

from __future__ import annotations

import secrets
import string
from datetime import datetime, timezone
from typing import Optional

ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "image/gif"})
MAX_IMAGE_BYTES = 10 * 1024 * 1024

_BASE36 = string.digits + string.ascii_lowercase


def _random_suffix(length: int = 6) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def build_object_key(prefix: str, content_type: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """Return ``{prefix}/YYYY/MM/DD/{epoch_ms}-{random}.{ext}``.

    The extension is the MIME subtype of ``content_type`` (``png`` if unknown).
    """
    now = now or datetime.now(timezone.utc)
    subtype = ""
    if content_type and "/" in content_type:
        subtype = content_type.split("/", 1)[1].split(";", 1)[0].strip()
    ext = subtype or "png"
    date_prefix = f"{now.year}/{now.month:02d}/{now.day:02d}"
    epoch_ms = int(now.timestamp() * 1000)
    return f"{prefix.strip('/')}/{date_prefix}/{epoch_ms}-{_random_suffix()}.{ext}"


def validate_image_upload(content_type: Optional[str], size: int) -> None:
    """Raise ValueError if the upload is not an accepted image type or is too large."""
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValueError("Unsupported image format, only JPEG, PNG, WebP and GIF are accepted")
    if size > MAX_IMAGE_BYTES:
        raise ValueError("Image size must not exceed 10MB")
    if size == 0:
        raise ValueError("Image file is empty")


__all__ = ["ALLOWED_IMAGE_TYPES", "MAX_IMAGE_BYTES", "build_object_key", "validate_image_upload"]
