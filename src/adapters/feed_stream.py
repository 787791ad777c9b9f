"""Filtered-stream feed adapter.

Implements the core FeedPort on top of an httpx streaming GET and translates
every httpx failure into a core StreamFault.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator

import httpx

from core.ports import StreamFault

LOGGER = logging.getLogger(__name__)

STREAM_URL = "https://api.twitter.com/2/tweets/search/stream"
# httpx applies read timeouts per chunk, so STREAM_TIMEOUT is the idle bound:
# the provider sends a keep-alive line every ~20s, and 600s of silence means
# the connection is dead. Connect, write and pool get a short, separate bound.
STREAM_TIMEOUT = 600.0
CONNECT_TIMEOUT = 30.0


class HttpFeedSource:
    """Feed port reading newline-delimited JSON from the filtered stream."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str = STREAM_URL,
        timeout: float = STREAM_TIMEOUT,
    ) -> None:
        self._client = client
        self._url = url
        self._timeout = httpx.Timeout(CONNECT_TIMEOUT, read=timeout)

    async def lines(self) -> AsyncIterator[str]:
        try:
            async with self._client.stream("GET", self._url, timeout=self._timeout) as response:
                if response.is_error:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise StreamFault(f"HTTP {response.status_code}: {body[:300]}")
                LOGGER.info("Feed connected (HTTP %s)", response.status_code)
                async for line in response.aiter_lines():
                    yield line
        except (httpx.HTTPError, httpx.StreamError) as exc:
            raise StreamFault(f"{type(exc).__name__}: {exc}") from exc
