"""S3-compatible object storage (AWS S3, Cloudflare R2, MinIO)."""

from __future__ import annotations

import asyncio
import io
import logging
import threading
from typing import Any, Optional
from urllib.parse import quote

from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError

from mediarelay.config import StorageSettings
from mediarelay.domain.dto import Disposition, StoredObject
from mediarelay.domain.errors import StoreError
from mediarelay.domain.interfaces import ProgressCallback
from mediarelay.utils.placeholders import configured


class _ProgressTracker:
    """Turn boto3's per-chunk byte counts into a running percentage."""

    def __init__(self, total: int, callback: ProgressCallback) -> None:
        self._total = total or 1
        self._loaded = 0
        self._callback = callback
        self._lock = threading.Lock()

    def __call__(self, bytes_amount: int) -> None:
        with self._lock:
            self._loaded += bytes_amount
            percentage = min(self._loaded * 100 / self._total, 100.0)
        self._callback(percentage)


class S3ObjectStore:
    """Upload objects with boto3 and report their store-intrinsic location."""

    def __init__(
        self,
        *,
        endpoint: Optional[str] = None,
        region: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        client: Any = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._endpoint = endpoint.rstrip("/") if endpoint else None
        self._region = region or "auto"
        self._access_key = access_key
        self._secret_key = secret_key
        self._s3_client = client
        self._client_lock = threading.Lock()
        self._logger = logger or logging.getLogger(__name__)

    def _get_s3_client(self):
        """Lazy-load the boto3 S3 client; it is shared by all uploads."""
        with self._client_lock:
            if self._s3_client is None:
                import boto3

                kwargs: dict[str, Any] = {"region_name": self._region}
                if self._endpoint:
                    kwargs["endpoint_url"] = self._endpoint
                if self._access_key and self._secret_key:
                    kwargs["aws_access_key_id"] = self._access_key
                    kwargs["aws_secret_access_key"] = self._secret_key
                self._s3_client = boto3.client("s3", **kwargs)
        return self._s3_client

    async def put_object(
        self,
        *,
        bucket: str,
        key: str,
        body: bytes,
        content_type: Optional[str],
        disposition: Disposition,
        on_progress: Optional[ProgressCallback] = None,
    ) -> StoredObject:
        return await asyncio.to_thread(
            self._upload,
            bucket=bucket,
            key=key,
            body=body,
            content_type=content_type,
            disposition=disposition,
            on_progress=on_progress,
        )

    def _upload(
        self,
        *,
        bucket: str,
        key: str,
        body: bytes,
        content_type: Optional[str],
        disposition: Disposition,
        on_progress: Optional[ProgressCallback],
    ) -> StoredObject:
        extra_args = {"ContentDisposition": Disposition(disposition).value}
        if content_type:
            extra_args["ContentType"] = content_type
        callback = _ProgressTracker(len(body), on_progress) if on_progress else None

        try:
            # boto3 raises a plain ValueError for a malformed endpoint_url.
            client = self._get_s3_client()
            client.upload_fileobj(io.BytesIO(body), bucket, key, ExtraArgs=extra_args, Callback=callback)
        except (Boto3Error, BotoCoreError, ClientError, ValueError) as exc:
            raise StoreError(f"{type(exc).__name__}: {exc}") from exc

        self._logger.info("Uploaded s3://%s/%s (%d bytes)", bucket, key, len(body))
        return StoredObject(bucket=bucket, key=key, location=self.location_for(bucket, key), size_bytes=len(body))

    def location_for(self, bucket: str, key: str) -> str:
        quoted_key = quote(key, safe="/")
        if self._endpoint:
            return f"{self._endpoint}/{bucket}/{quoted_key}"
        region = "us-east-1" if self._region == "auto" else self._region
        return f"https://{bucket}.s3.{region}.amazonaws.com/{quoted_key}"


def build_object_store(settings: StorageSettings) -> S3ObjectStore:
    return S3ObjectStore(
        endpoint=configured(settings.endpoint),
        region=settings.region,
        access_key=configured(settings.access_key),
        secret_key=configured(settings.secret_key),
    )


__all__ = ["S3ObjectStore", "build_object_store"]
