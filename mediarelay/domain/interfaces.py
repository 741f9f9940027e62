"""Capability interfaces injected into the relay."""

from __future__ import annotations

from typing import Callable, Optional, Protocol

from mediarelay.domain.dto import Disposition, FetchedPayload, StoredObject

ProgressCallback = Callable[[float], None]


class SourceFetcher(Protocol):
    """Reads the full body of a remote URL."""

    async def fetch(self, url: str) -> FetchedPayload:
        """Return the buffered body or raise FetchError."""


class ObjectStore(Protocol):
    """Writes one object to an S3-compatible store."""

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
        """Persist the body and report where it landed, or raise StoreError."""


__all__ = ["ObjectStore", "ProgressCallback", "SourceFetcher"]
