"""Relay, fetch and storage services."""

from .object_storage import S3ObjectStore, build_object_store
from .relay_store import FetchAndRelayStore
from .source_fetcher import HttpxSourceFetcher

__all__ = ["FetchAndRelayStore", "HttpxSourceFetcher", "S3ObjectStore", "build_object_store"]
