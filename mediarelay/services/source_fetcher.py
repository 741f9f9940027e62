"""HTTP source fetcher backed by httpx."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from mediarelay.domain.dto import FetchedPayload
from mediarelay.domain.errors import FetchError


class HttpxSourceFetcher:
    """Download a URL into memory. A fresh client is used for every fetch."""

    def __init__(
        self,
        timeout: float = 30.0,
        follow_redirects: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._timeout = timeout
        self._follow_redirects = follow_redirects
        self._transport = transport
        self._logger = logger or logging.getLogger(__name__)

    async def fetch(self, url: str) -> FetchedPayload:
        self._logger.debug("Downloading %s", url)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=self._follow_redirects,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FetchError(f"{type(exc).__name__}: {exc}") from exc

        if not response.is_success:
            raise FetchError(f"HTTP error! status: {response.status_code}", status_code=response.status_code)

        content = response.content
        declared = response.headers.get("content-length")
        # Encoded bodies are decompressed by httpx, so the header only applies to identity.
        if declared and declared.isdigit() and not response.headers.get("content-encoding"):
            if int(declared) != len(content):
                raise FetchError(
                    f"Truncated body: expected {declared} bytes, read {len(content)}",
                    status_code=response.status_code,
                )

        self._logger.debug("Downloaded %s (%d bytes)", url, len(content))
        return FetchedPayload(
            content=content,
            status_code=response.status_code,
            content_type=response.headers.get("content-type"),
        )


__all__ = ["HttpxSourceFetcher"]
