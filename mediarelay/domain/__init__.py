"""Domain types shared by the services and the API layer."""

from .dto import Disposition, FetchedPayload, RelayRequest, RelayResult, StoredObject
from .errors import FetchError, RelayFailure, RelayFailureKind, StoreError
from .interfaces import ObjectStore, ProgressCallback, SourceFetcher

__all__ = [
    "Disposition",
    "FetchError",
    "FetchedPayload",
    "ObjectStore",
    "ProgressCallback",
    "RelayFailure",
    "RelayFailureKind",
    "RelayRequest",
    "RelayResult",
    "SourceFetcher",
    "StoreError",
    "StoredObject",
]
