"""Fetch a remote asset and persist it to the object store.

Fetches are retried with linear backoff because re-reading a source has no
effect on the destination. Store writes are attempted exactly once: a failed
write surfaces immediately as ``StoreRejected``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from mediarelay.domain.dto import Disposition, FetchedPayload, RelayRequest, RelayResult, StoredObject
from mediarelay.domain.errors import FetchError, RelayFailure, RelayFailureKind, StoreError
from mediarelay.domain.interfaces import ObjectStore, ProgressCallback, SourceFetcher

SleepFunc = Callable[[float], Awaitable[None]]


class _EmptyBody(Exception):
    pass


class FetchAndRelayStore:
    """Relay bytes from a URL into an S3-compatible bucket."""

    def __init__(
        self,
        fetcher: SourceFetcher,
        store: ObjectStore,
        *,
        default_bucket: Optional[str] = None,
        public_domain: Optional[str] = None,
        base_delay: float = 1.0,
        empty_body_retryable: bool = True,
        sleep: SleepFunc = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._fetcher = fetcher
        self._store = store
        self._default_bucket = default_bucket or None
        self._public_domain = public_domain.rstrip("/") if public_domain else None
        self._base_delay = base_delay
        self._empty_body_retryable = empty_body_retryable
        self._sleep = sleep
        self._logger = logger or logging.getLogger(__name__)

    async def relay(self, request: RelayRequest) -> RelayResult:
        """Fetch ``request.source_url`` and write it under ``request.destination_key``.

        Raises RelayFailure with kind StoreRejected (no retry), EmptyBody (when
        empty bodies are configured as terminal) or AllAttemptsExhausted.
        """
        bucket = self._resolve_bucket(request.bucket, attempts_made=0)
        max_attempts = request.max_attempts
        last_error = ""
        attempt = 0

        while attempt < max_attempts:
            attempt += 1
            try:
                payload = await self._fetch(request.source_url)
            except FetchError as exc:
                last_error = str(exc)
                self._logger.warning(
                    "Fetch failed for %s (attempt %d/%d): %s", request.source_url, attempt, max_attempts, exc
                )
            except _EmptyBody as exc:
                last_error = str(exc)
                self._logger.warning(
                    "Empty body from %s (attempt %d/%d)", request.source_url, attempt, max_attempts
                )
                if not self._empty_body_retryable:
                    raise RelayFailure(RelayFailureKind.EMPTY_BODY, last_error, attempt) from exc
            else:
                content_type = request.content_type or _media_type(payload.content_type)
                stored = await self._put(
                    bucket=bucket,
                    key=request.destination_key,
                    body=payload.content,
                    content_type=content_type,
                    disposition=request.disposition,
                    attempts_made=attempt,
                )
                result = self._to_result(stored, expected_size=payload.size_bytes, attempts_made=attempt)
                self._logger.info(
                    "Relayed %s -> s3://%s/%s (%d bytes, attempt %d)",
                    request.source_url,
                    result.bucket,
                    result.key,
                    result.size_bytes,
                    attempt,
                )
                return result

            if attempt < max_attempts:
                await self._sleep(self._base_delay * attempt)

        self._logger.error(
            "Giving up on %s after %d attempts: %s", request.source_url, max_attempts, last_error
        )
        raise RelayFailure(RelayFailureKind.ALL_ATTEMPTS_EXHAUSTED, last_error, max_attempts)

    async def store_bytes(
        self,
        body: bytes,
        key: str,
        *,
        content_type: Optional[str] = None,
        disposition: Disposition = Disposition.INLINE,
        bucket: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> RelayResult:
        """Write an in-memory body directly, without a source fetch."""
        if not key:
            raise ValueError("key must not be empty")
        resolved_bucket = self._resolve_bucket(bucket, attempts_made=0)
        stored = await self._put(
            bucket=resolved_bucket,
            key=key,
            body=body,
            content_type=content_type,
            disposition=disposition,
            attempts_made=0,
            on_progress=on_progress,
        )
        result = self._to_result(stored, expected_size=len(body), attempts_made=0)
        self._logger.info("Stored s3://%s/%s (%d bytes)", result.bucket, result.key, result.size_bytes)
        return result

    def resolve_url(self, key: str, location: str) -> str:
        if self._public_domain:
            return f"{self._public_domain}/{key}"
        return location

    async def _fetch(self, url: str) -> FetchedPayload:
        payload = await self._fetcher.fetch(url)
        if not payload.content:
            raise _EmptyBody(f"No body in response from {url}")
        return payload

    async def _put(
        self,
        *,
        bucket: str,
        key: str,
        body: bytes,
        content_type: Optional[str],
        disposition: Disposition,
        attempts_made: int,
        on_progress: Optional[ProgressCallback] = None,
    ) -> StoredObject:
        try:
            return await self._store.put_object(
                bucket=bucket,
                key=key,
                body=body,
                content_type=content_type,
                disposition=disposition,
                on_progress=on_progress,
            )
        except StoreError as exc:
            self._logger.error("Store rejected s3://%s/%s: %s", bucket, key, exc)
            raise RelayFailure(RelayFailureKind.STORE_REJECTED, str(exc), attempts_made) from exc

    def _resolve_bucket(self, override: Optional[str], *, attempts_made: int) -> str:
        bucket = override or self._default_bucket
        if not bucket:
            raise RelayFailure(RelayFailureKind.STORE_REJECTED, "Bucket is required", attempts_made)
        return bucket

    def _to_result(self, stored: StoredObject, *, expected_size: int, attempts_made: int) -> RelayResult:
        if stored.size_bytes != expected_size:
            raise RelayFailure(
                RelayFailureKind.STORE_REJECTED,
                f"Stored {stored.size_bytes} bytes but fetched {expected_size}",
                attempts_made,
            )
        return RelayResult(
            resolved_url=self.resolve_url(stored.key, stored.location),
            bucket=stored.bucket,
            key=stored.key,
            size_bytes=stored.size_bytes,
            location=stored.location,
        )


def _media_type(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    return header.split(";", 1)[0].strip() or None


__all__ = ["FetchAndRelayStore", "SleepFunc"]
