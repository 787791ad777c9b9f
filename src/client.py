"""HTTP client factory for tweetrelay.

The feed and the rule-management calls get separate httpx clients, each with
its own connection pool, so the stream never shares a socket with API calls.
"""

from __future__ import annotations

import logging

import httpx

from core.config import Config

USER_AGENT = "tweetrelay/1.0"


def _headers(config: Config) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {config.bearer_token}",
        "User-Agent": USER_AGENT,
    }


def build_feed_client(config: Config) -> httpx.AsyncClient:
    """Create the client that owns the streaming connection."""

    logging.getLogger(__name__).info("Initializing feed HTTP client")
    return httpx.AsyncClient(headers=_headers(config))


def build_rules_client(config: Config) -> httpx.AsyncClient:
    """Create the client used for rule list/add/delete calls."""

    logging.getLogger(__name__).info("Initializing rules HTTP client")
    return httpx.AsyncClient(headers=_headers(config))
