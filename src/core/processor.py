"""Core feed processing pipeline.

This module is integration-agnostic. It decodes raw feed lines, applies the
dedup-then-rate-limit gate and hands publish-worthy text to the outbound port.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Optional

from core.dedup import DedupCache
from core.models import StreamItem
from core.ports import OutboundPort
from core.rate_limit import RateLimiter

LOGGER = logging.getLogger(__name__)


def decode_item(line: str) -> Optional[StreamItem]:
    """Decode one feed line, returning None for anything that is not a post."""

    try:
        payload: Any = json.loads(line)
    except ValueError:
        LOGGER.debug("Skipping undecodable feed line: %r", line[:200])
        return None

    if not isinstance(payload, dict):
        return None

    data = payload.get("data")
    if not isinstance(data, dict):
        if "errors" in payload:
            LOGGER.warning("Feed reported errors: %s", payload["errors"])
        else:
            LOGGER.debug("Skipping feed object without data: %r", line[:200])
        return None

    text = data.get("text")
    item_id = data.get("id")
    if not isinstance(text, str) or item_id is None:
        LOGGER.debug("Skipping feed object without text/id: %r", line[:200])
        return None
    return StreamItem(text=text, id=str(item_id))


class FeedProcessor:
    """Orchestrates decoding, dedup, rate limiting and publishing."""

    def __init__(
        self,
        dedup: DedupCache,
        limiter: RateLimiter,
        notifier: OutboundPort,
        show_url: bool,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._dedup = dedup
        self._limiter = limiter
        self._notifier = notifier
        self._show_url = show_url
        self._clock = clock

    @property
    def dedup(self) -> DedupCache:
        return self._dedup

    @property
    def limiter(self) -> RateLimiter:
        return self._limiter

    def format_item(self, item: StreamItem) -> str:
        if self._show_url:
            return f"{item.text} {item.permalink}"
        return item.text

    async def handle_line(self, line: str, now: Optional[float] = None) -> bool:
        """Process one raw feed line. Returns True when something was published."""

        # Keep-alives are bare newlines; only lines with an object marker are decoded.
        if "{" not in line:
            return False

        item = decode_item(line)
        if item is None:
            return False

        if now is None:
            now = self._clock()

        # Duplicates are rejected before the limiter so they never spend a token.
        if not self._dedup.should_publish(item.text, now):
            LOGGER.debug("Dedup skip for item %s", item.id)
            return False
        self._dedup.record(item.text, now)

        if not self._limiter.try_consume(now):
            LOGGER.info("Rate limit drop for item %s", item.id)
            return False

        await self._notifier.send(self.format_item(item))
        LOGGER.info("Published item %s", item.id)
        return True
