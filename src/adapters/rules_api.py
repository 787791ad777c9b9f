"""Stream-rules management adapter.

Implements the core RulesPort with httpx. Every response field is read through
a helper with a defined fallback, so a malformed upstream reply becomes a
RulesApiError with a readable message instead of a crash.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from core.models import FilterRule
from core.ports import UNKNOWN_ERROR, RulesApiError

LOGGER = logging.getLogger(__name__)

RULES_URL = "https://api.twitter.com/2/tweets/search/stream/rules"
RULES_TIMEOUT = 5.0


def _dig(payload: Any, *path: Any) -> Optional[Any]:
    """Follow dict keys / list indexes, returning None on any missing step."""

    current = payload
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, list) or len(current) <= step:
                return None
        elif not isinstance(current, dict) or step not in current:
            return None
        current = current[step]
    return current


def first_error_message(payload: Any) -> str:
    """Extract the first upstream error text, or a generic fallback."""

    candidates = (
        _dig(payload, "errors", 0, "errors", 0, "message"),
        _dig(payload, "errors", 0, "message"),
        _dig(payload, "errors", 0, "detail"),
        _dig(payload, "errors", 0, "title"),
        _dig(payload, "detail"),
        _dig(payload, "title"),
    )
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return UNKNOWN_ERROR


def summary_count(payload: Any, field: str) -> int:
    value = _dig(payload, "meta", "summary", field)
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return value


def parse_rules(payload: Any) -> list[FilterRule]:
    """Turn a rules listing into FilterRule objects; absent ``data`` means none."""

    data = _dig(payload, "data")
    if not isinstance(data, list):
        return []
    rules: list[FilterRule] = []
    for entry in data:
        rule_id = _dig(entry, "id")
        value = _dig(entry, "value")
        if rule_id is None or value is None:
            LOGGER.debug("Skipping malformed rule entry: %r", entry)
            continue
        rules.append(FilterRule(id=str(rule_id), value=str(value)))
    return rules


class TwitterRulesClient:
    """Rule management over the stream-rules endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str = RULES_URL,
        timeout: float = RULES_TIMEOUT,
    ) -> None:
        self._client = client
        self._url = url
        self._timeout = timeout

    async def _request(self, method: str, json_body: Optional[dict] = None) -> Any:
        try:
            response = await self._client.request(
                method,
                self._url,
                json=json_body,
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            LOGGER.warning("Rules API %s failed: %s", method, exc)
            raise RulesApiError(f"request failed: {type(exc).__name__}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            LOGGER.warning("Rules API %s returned HTTP %s", method, response.status_code)
            raise RulesApiError(first_error_message(payload))
        return payload

    async def list_rules(self) -> list[FilterRule]:
        payload = await self._request("GET")
        if payload is None:
            raise RulesApiError(UNKNOWN_ERROR)
        if _dig(payload, "data") is None and _dig(payload, "errors") is not None:
            raise RulesApiError(first_error_message(payload))
        return parse_rules(payload)

    async def add_rule(self, value: str) -> None:
        payload = await self._request("POST", {"add": [{"value": value}]})
        if summary_count(payload, "created") != 1:
            raise RulesApiError(first_error_message(payload))

    async def delete_rule(self, rule_id: str) -> None:
        payload = await self._request("POST", {"delete": {"ids": [rule_id]}})
        if summary_count(payload, "deleted") != 1:
            raise RulesApiError(first_error_message(payload))
