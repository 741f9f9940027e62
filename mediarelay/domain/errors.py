"""Error taxonomy for fetching sources and writing to the object store."""

from __future__ import annotations

from enum import Enum


class RelayFailureKind(str, Enum):
    FETCH_FAILED = "FetchFailed"
    EMPTY_BODY = "EmptyBody"
    STORE_REJECTED = "StoreRejected"
    ALL_ATTEMPTS_EXHAUSTED = "AllAttemptsExhausted"


class FetchError(Exception):
    """The source could not be fetched (non-success status or transport error)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StoreError(Exception):
    """The object store refused or failed the write."""


class RelayFailure(Exception):
    """Terminal failure of a relay or direct store operation."""

    def __init__(self, kind: RelayFailureKind, last_error: str, attempts_made: int) -> None:
        super().__init__(f"{kind.value} after {attempts_made} attempt(s): {last_error}")
        self.kind = kind
        self.last_error = last_error
        self.attempts_made = attempts_made


__all__ = ["FetchError", "RelayFailure", "RelayFailureKind", "StoreError"]
