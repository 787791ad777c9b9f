from __future__ import annotations

import asyncio

import httpx
import pytest

from adapters.feed_stream import CONNECT_TIMEOUT, STREAM_TIMEOUT, STREAM_URL, HttpFeedSource
from core.ports import StreamFault


def _collect(handler) -> tuple[list[str], "Exception | None", list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    async def scenario():
        lines: list[str] = []
        error = None
        async with httpx.AsyncClient(
            transport=httpx.MockTransport(record),
            headers={"Authorization": "Bearer secret"},
        ) as client:
            try:
                async for line in HttpFeedSource(client).lines():
                    lines.append(line)
            except StreamFault as exc:
                error = exc
        return lines, error

    lines, error = asyncio.run(scenario())
    return lines, error, requests


def test_yields_each_line_including_keepalives() -> None:
    body = b'{"data":{"text":"one","id":"1"}}\r\n\r\n{"data":{"text":"two","id":"2"}}\r\n'
    lines, error, requests = _collect(lambda request: httpx.Response(200, content=body))

    assert error is None
    assert [line for line in lines if line] == ['{"data":{"text":"one","id":"1"}}', '{"data":{"text":"two","id":"2"}}']
    assert requests[0].method == "GET"
    assert str(requests[0].url) == STREAM_URL
    assert requests[0].headers["Authorization"] == "Bearer secret"


def test_error_status_becomes_stream_fault() -> None:
    lines, error, _ = _collect(lambda request: httpx.Response(429, json={"title": "Too Many Requests"}))

    assert lines == []
    assert isinstance(error, StreamFault)
    assert "429" in str(error)


def test_connect_error_becomes_stream_fault() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    lines, error, _ = _collect(refuse)

    assert lines == []
    assert isinstance(error, StreamFault)
    assert "ConnectError" in str(error)


def test_read_error_mid_stream_becomes_stream_fault() -> None:
    async def body():
        yield b'{"data":{"text":"one","id":"1"}}\n'
        raise httpx.ReadError("connection reset")

    lines, error, _ = _collect(lambda request: httpx.Response(200, content=body()))

    assert lines == ['{"data":{"text":"one","id":"1"}}']
    assert isinstance(error, StreamFault)


@pytest.mark.parametrize("status", [200, 204])
def test_clean_close_ends_iteration(status: int) -> None:
    lines, error, _ = _collect(lambda request: httpx.Response(status, content=b""))

    assert lines == []
    assert error is None


def test_read_timeout_is_the_idle_bound_and_connect_is_short() -> None:
    _, _, requests = _collect(lambda request: httpx.Response(200, content=b""))

    timeout = requests[0].extensions["timeout"]
    assert timeout["read"] == STREAM_TIMEOUT
    assert timeout["connect"] == CONNECT_TIMEOUT
    assert timeout["connect"] < timeout["read"]
