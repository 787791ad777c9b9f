"""Deduplication cache (core domain)."""

from __future__ import annotations

import logging

LOGGER = logging.getLogger(__name__)

RETENTION_SECONDS = 24 * 60 * 60


class DedupCache:
    """Remember recently published texts for a fixed retention window.

    Entries are swept lazily whenever a new candidate is checked; there is no
    background timer, so an idle cache keeps its entries until the next check.
    """

    def __init__(self, retention_seconds: float = RETENTION_SECONDS) -> None:
        self._retention = retention_seconds
        self._seen: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, text: object) -> bool:
        return text in self._seen

    def _sweep(self, now: float) -> None:
        expired = [text for text, seen_at in self._seen.items() if now - seen_at >= self._retention]
        for text in expired:
            del self._seen[text]
        if expired:
            LOGGER.debug("Dedup sweep evicted %s entries", len(expired))

    def should_publish(self, text: str, now: float) -> bool:
        """Return False if the exact text was seen within the retention window."""

        self._sweep(now)
        return text not in self._seen

    def record(self, text: str, now: float) -> None:
        self._seen[text] = now
