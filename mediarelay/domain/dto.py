"""Domain data transfer objects for the media relay."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_MAX_ATTEMPTS = 3


class Disposition(str, Enum):
    INLINE = "inline"
    ATTACHMENT = "attachment"


class RelayRequest(BaseModel):
    """One fetch-then-store operation. Never mutated after construction."""

    model_config = ConfigDict(frozen=True)

    source_url: str
    destination_key: str
    content_type: Optional[str] = None
    disposition: Disposition = Disposition.INLINE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    bucket: Optional[str] = None

    @field_validator("source_url")
    @classmethod
    def _absolute_http_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ValueError(f"source_url must be an absolute http(s) URL, got {value!r}")
        try:
            parsed.port
        except ValueError as exc:
            raise ValueError(f"source_url has an invalid port: {value!r}") from exc
        return value

    @field_validator("destination_key")
    @classmethod
    def _non_empty_key(cls, value: str) -> str:
        # Keys are opaque: no stripping or normalisation.
        if not value:
            raise ValueError("destination_key must not be empty")
        return value

    @field_validator("max_attempts", mode="before")
    @classmethod
    def _at_least_one_attempt(cls, value: Optional[int]) -> int:
        if value is None:
            return DEFAULT_MAX_ATTEMPTS
        return max(1, int(value))


class RelayResult(BaseModel):
    """Reference to an object that was written to the store."""

    model_config = ConfigDict(frozen=True)

    resolved_url: str
    bucket: str
    key: str
    size_bytes: int
    location: Optional[str] = None

    @property
    def filename(self) -> str:
        return self.key.split("/")[-1]


@dataclass(frozen=True)
class FetchedPayload:
    """Fully buffered body of a successful source fetch."""

    content: bytes
    status_code: int = 200
    content_type: Optional[str] = None

    @property
    def size_bytes(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class StoredObject:
    """What the object store reports back after a write."""

    bucket: str
    key: str
    location: str
    size_bytes: int


__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "Disposition",
    "FetchedPayload",
    "RelayRequest",
    "RelayResult",
    "StoredObject",
]
