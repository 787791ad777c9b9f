"""Stream ingestion loop.

The ingestor owns one logical, endless consumption of the feed. Any transport
fault or premature close is logged and followed by a fresh connection; the
processor (and with it the dedup and rate-limit state) outlives every
connection.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from core.ports import FeedPort, StreamFault
from core.processor import FeedProcessor

LOGGER = logging.getLogger(__name__)


class ReconnectPolicy:
    """Delay before the next connection attempt.

    With ``base_delay == 0`` every reconnect is immediate. Otherwise the delay
    doubles per consecutive failed connection up to ``max_delay`` and resets
    once a connection delivered data.
    """

    def __init__(self, base_delay: float = 0.0, max_delay: float = 300.0) -> None:
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.failures = 0

    def next_delay(self, received_data: bool) -> float:
        if received_data:
            self.failures = 0
        self.failures += 1
        if self.base_delay <= 0:
            return 0.0
        return min(self.base_delay * (2 ** (self.failures - 1)), self.max_delay)


class StreamIngestor:
    """Keeps the feed flowing into the processor until the process ends."""

    def __init__(
        self,
        feed: FeedPort,
        processor: FeedProcessor,
        policy: Optional[ReconnectPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._feed = feed
        self._processor = processor
        self._policy = policy or ReconnectPolicy()
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self.connections = 0

    def start(self) -> asyncio.Task:
        """Schedule the ingestion loop; repeated calls return the same task."""

        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="feed-ingestor")
            self._task.add_done_callback(self._log_exit)
        return self._task

    @staticmethod
    def _log_exit(task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            LOGGER.error("Feed ingestor stopped", exc_info=task.exception())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def run(self) -> None:
        while True:
            self.connections += 1
            received = 0
            LOGGER.info("Connecting to feed (connection %s)", self.connections)
            try:
                async for line in self._feed.lines():
                    received += 1
                    await self._processor.handle_line(line)
                LOGGER.warning("Feed stream closed by remote after %s lines, reconnecting", received)
            except StreamFault as exc:
                LOGGER.warning("Feed stream fault after %s lines: %s, reconnecting", received, exc)
            except Exception:
                LOGGER.exception("Unexpected error after %s feed lines, reconnecting", received)

            delay = self._policy.next_delay(received > 0)
            if delay > 0:
                LOGGER.info("Waiting %.1fs before reconnecting", delay)
                await self._sleep(delay)
