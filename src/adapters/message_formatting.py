"""Shared outbound message formatting helpers.

IRC servers cap a protocol line at 512 bytes, so outgoing text is flattened
to a single line and clipped before it reaches the chat client.
"""

from __future__ import annotations

import re

MAX_MESSAGE_BYTES = 500
TRUNCATION_SUFFIX = "[...]"

_NEWLINES = re.compile(r"[\r\n]+")


def collapse_newlines(text: str) -> str:
    return _NEWLINES.sub(" ", text)


def truncate_bytes(text: str, limit: int = MAX_MESSAGE_BYTES) -> str:
    """Clip ``text`` to ``limit`` UTF-8 bytes, appending a marker when clipped."""

    encoded = text.encode("utf-8")
    if len(encoded) <= limit:
        return text
    # errors="ignore" drops a multi-byte character cut in half by the limit.
    clipped = encoded[:limit].decode("utf-8", errors="ignore")
    return f"{clipped}{TRUNCATION_SUFFIX}"


def format_outgoing(text: str) -> str:
    """Return the chat-safe rendition of ``text``."""

    return truncate_bytes(collapse_newlines(text))
