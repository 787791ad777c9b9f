from __future__ import annotations

import asyncio
import json

import pytest

from core.dedup import DedupCache
from core.ingestor import ReconnectPolicy, StreamIngestor
from core.ports import StreamFault
from core.processor import FeedProcessor
from core.rate_limit import RateLimiter


class StopFeed(BaseException):
    """Ends the otherwise endless ingestion loop inside a test."""


class FakeNotifier:
    def __init__(self) -> None:
        self.sent: list[str] = []

    async def send(self, text: str) -> None:
        self.sent.append(text)


class ScriptedFeed:
    """Each connection replays one script: lines, then an optional exception."""

    def __init__(self, scripts: list[tuple[list[str], "BaseException | None"]]) -> None:
        self._scripts = list(scripts)
        self.connections = 0

    async def lines(self):
        self.connections += 1
        if not self._scripts:
            raise StopFeed()
        lines, error = self._scripts.pop(0)
        for line in lines:
            yield line
        if error is not None:
            raise error


def _line(text: str, item_id: str) -> str:
    return json.dumps({"data": {"text": text, "id": item_id}})


def _processor() -> tuple[FeedProcessor, FakeNotifier]:
    notifier = FakeNotifier()
    processor = FeedProcessor(
        dedup=DedupCache(),
        limiter=RateLimiter(60),
        notifier=notifier,
        show_url=False,
        clock=lambda: 500.0,
    )
    return processor, notifier


def test_socket_close_triggers_one_reconnect_and_keeps_state() -> None:
    processor, notifier = _processor()
    feed = ScriptedFeed(
        [
            ([_line("first", "1"), ""], StreamFault("connection reset")),
            ([_line("first", "2"), _line("second", "3")], StopFeed()),
        ]
    )
    ingestor = StreamIngestor(feed, processor)

    with pytest.raises(StopFeed):
        asyncio.run(ingestor.run())

    assert feed.connections == 2
    assert ingestor.connections == 2
    # "first" was remembered across the reconnect, so only "second" is new.
    assert notifier.sent == ["first", "second"]
    assert processor.limiter.bucket.tokens == pytest.approx(4.0)


def test_premature_close_without_error_reconnects() -> None:
    processor, notifier = _processor()
    feed = ScriptedFeed(
        [
            ([_line("a", "1")], None),
            ([], None),
            ([_line("b", "2")], StopFeed()),
        ]
    )

    with pytest.raises(StopFeed):
        asyncio.run(StreamIngestor(feed, processor).run())

    assert feed.connections == 3
    assert notifier.sent == ["a", "b"]


def test_baseline_policy_never_sleeps() -> None:
    processor, _ = _processor()
    feed = ScriptedFeed([([], StreamFault("401 Unauthorized"))] * 5)
    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    with pytest.raises(StopFeed):
        asyncio.run(StreamIngestor(feed, processor, sleep=fake_sleep).run())

    assert feed.connections == 6
    assert delays == []


def test_backoff_policy_doubles_and_resets_after_data() -> None:
    processor, _ = _processor()
    feed = ScriptedFeed(
        [
            ([], StreamFault("boom")),
            ([], StreamFault("boom")),
            ([], StreamFault("boom")),
            ([_line("x", "1")], StreamFault("boom")),
            ([], StreamFault("boom")),
        ]
    )
    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    ingestor = StreamIngestor(feed, processor, ReconnectPolicy(1.0, 3.0), sleep=fake_sleep)
    with pytest.raises(StopFeed):
        asyncio.run(ingestor.run())

    assert delays == [1.0, 2.0, 3.0, 1.0, 2.0]


def test_start_is_idempotent_and_stop_cancels() -> None:
    processor, _ = _processor()

    class BlockingFeed:
        async def lines(self):
            await asyncio.Event().wait()
            yield ""

    async def scenario() -> None:
        ingestor = StreamIngestor(BlockingFeed(), processor)
        first = ingestor.start()
        second = ingestor.start()
        assert first is second
        await asyncio.sleep(0)
        await ingestor.stop()
        assert first.cancelled()

    asyncio.run(scenario())


def test_unexpected_processing_error_reconnects_instead_of_stopping() -> None:
    class FlakyNotifier:
        def __init__(self) -> None:
            self.sent: list[str] = []
            self.failures = 1

        async def send(self, text: str) -> None:
            if self.failures:
                self.failures -= 1
                raise RuntimeError("chat write failed")
            self.sent.append(text)

    notifier = FlakyNotifier()
    processor = FeedProcessor(
        dedup=DedupCache(),
        limiter=RateLimiter(60),
        notifier=notifier,
        show_url=False,
        clock=lambda: 500.0,
    )
    feed = ScriptedFeed(
        [
            ([_line("lost", "1"), _line("never read", "2")], None),
            ([_line("after", "3")], StopFeed()),
        ]
    )

    with pytest.raises(StopFeed):
        asyncio.run(StreamIngestor(feed, processor).run())

    assert feed.connections == 2
    assert notifier.sent == ["after"]
