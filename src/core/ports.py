"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the feed, rule-management and chat
adapters so that the core can be exercised without any network.
"""

from __future__ import annotations

from typing import AsyncIterator, Protocol

from core.models import FilterRule

UNKNOWN_ERROR = "unknown error"


class StreamFault(Exception):
    """Transport-level failure of the feed connection."""


class RulesApiError(Exception):
    """A rule-management call failed; the message is safe to show in chat."""

    def __init__(self, message: str = UNKNOWN_ERROR) -> None:
        super().__init__(message or UNKNOWN_ERROR)


class FeedPort(Protocol):
    """Source of raw feed lines for one connection attempt."""

    def lines(self) -> AsyncIterator[str]:
        """Open a fresh connection and yield its lines.

        Raises StreamFault on any transport error. Returning normally means
        the remote end closed the stream.
        """
        ...


class RulesPort(Protocol):
    """Rule-management operations required by the command dispatcher."""

    async def list_rules(self) -> list[FilterRule]:
        ...

    async def add_rule(self, value: str) -> None:
        ...

    async def delete_rule(self, rule_id: str) -> None:
        ...


class OutboundPort(Protocol):
    """Chat send primitive consumed by both the ingestor and the dispatcher."""

    async def send(self, text: str) -> None:
        ...
