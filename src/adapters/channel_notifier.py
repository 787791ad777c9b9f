"""IRC channel notification adapter.

Formats text for the wire and sends it to the configured channel.
"""

from __future__ import annotations

from typing import Optional, Protocol, TextIO

from adapters.message_formatting import format_outgoing


class ChatClient(Protocol):
    """The one chat operation the notifier needs (IrcClient satisfies it)."""

    async def send_message(self, channel: str, text: str) -> None:
        ...


class ChannelNotifier:
    """Outbound port that posts every message to one IRC channel."""

    def __init__(self, chat: ChatClient, channel: str) -> None:
        self._chat = chat
        self._channel = channel

    async def send(self, text: str) -> None:
        await self._chat.send_message(self._channel, format_outgoing(text))


class ConsoleNotifier:
    """Outbound port used by the command line; prints replies instead of chatting."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream

    async def send(self, text: str) -> None:
        print(text, file=self._stream)
