"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass

PERMALINK_TEMPLATE = "https://twitter.com/twitter/status/{id}"


@dataclass(frozen=True)
class StreamItem:
    """One post decoded from the filtered stream."""

    text: str
    id: str

    @property
    def permalink(self) -> str:
        return PERMALINK_TEMPLATE.format(id=self.id)


@dataclass(frozen=True)
class FilterRule:
    """Upstream stream rule, referenced locally by id and value only."""

    id: str
    value: str
