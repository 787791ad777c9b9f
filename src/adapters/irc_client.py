"""Minimal asyncio IRC client.

This keeps the chat protocol details out of the core. Handlers are attached
with the ``on`` decorator and receive plain strings/bools:

- ``registered()`` once the server accepted our nickname (001)
- ``joined(channel, is_self)`` for every JOIN seen in a channel
- ``public_message(channel, sender, text)`` for channel PRIVMSGs
- ``disconnected()`` when the connection ends for any reason
"""

from __future__ import annotations

import asyncio
import logging
import re
import ssl
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

LOGGER = logging.getLogger(__name__)

EVENTS = ("registered", "joined", "public_message", "disconnected")

_LINE_RE = re.compile(r"^(?::(?P<prefix>[^ ]+) +)?(?P<command>[^ ]+)(?P<params>(?: +[^: ][^ ]*)*)(?: +:(?P<trailing>.*))?$")

Handler = Callable[..., Awaitable[None]]


@dataclass(frozen=True)
class IrcMessage:
    """One parsed protocol line."""

    prefix: str
    command: str
    params: list[str] = field(default_factory=list)
    trailing: Optional[str] = None

    @property
    def nick(self) -> str:
        return self.prefix.split("!", 1)[0]


def parse_line(line: str) -> Optional[IrcMessage]:
    """Parse one IRC line (without CRLF). Returns None for garbage."""

    match = _LINE_RE.match(line.rstrip("\r\n"))
    if not match:
        return None
    return IrcMessage(
        prefix=match.group("prefix") or "",
        command=match.group("command").upper(),
        params=match.group("params").split(),
        trailing=match.group("trailing"),
    )


class IrcClient:
    """Single-connection IRC client driven by the asyncio event loop."""

    def __init__(
        self,
        server: str,
        port: int,
        *,
        nickname: str,
        tls: bool = False,
        password: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        self.server = server
        self.port = port
        self.nickname = nickname
        self._tls = tls
        self._password = password
        self._timeout = timeout
        self._handlers: dict[str, list[Handler]] = {name: [] for name in EVENTS}
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None

    def on(self, event: str) -> Callable[[Handler], Handler]:
        """Register an async handler for one of ``EVENTS``."""

        if event not in self._handlers:
            raise ValueError(f"Unknown IRC event: {event}")

        def decorator(func: Handler) -> Handler:
            self._handlers[event].append(func)
            return func

        return decorator

    async def _emit(self, event: str, *args) -> None:
        for handler in self._handlers[event]:
            try:
                await handler(*args)
            except Exception:
                LOGGER.exception("Error in %s handler", event)

    async def _send_raw(self, line: str) -> None:
        if self._writer is None:
            raise ConnectionError("IRC client is not connected")
        self._writer.write(f"{line}\r\n".encode("utf-8"))
        await self._writer.drain()

    async def connect(self) -> None:
        """Open the socket and start registration."""

        ssl_context = ssl.create_default_context() if self._tls else None
        LOGGER.info("Connecting to %s:%s (tls=%s)", self.server, self.port, self._tls)
        self._reader, self._writer = await asyncio.wait_for(
            asyncio.open_connection(self.server, self.port, ssl=ssl_context),
            timeout=self._timeout,
        )
        await self.attach(self._reader, self._writer)

    async def attach(self, reader: asyncio.StreamReader, writer) -> None:
        """Register over an already-open stream pair."""

        self._reader = reader
        self._writer = writer
        if self._password:
            await self._send_raw(f"PASS {self._password}")
        await self._send_raw(f"NICK {self.nickname}")
        await self._send_raw(f"USER {self.nickname} 0 * :{self.nickname}")

    async def join(self, channel: str) -> None:
        await self._send_raw(f"JOIN {channel}")

    async def send_message(self, channel: str, text: str) -> None:
        await self._send_raw(f"PRIVMSG {channel} :{text}")

    async def close(self) -> None:
        if self._writer is None:
            return
        try:
            self._writer.close()
            await self._writer.wait_closed()
        except OSError as exc:
            LOGGER.debug("Error while closing IRC socket: %s", exc)
        finally:
            self._writer = None

    async def handle(self, message: IrcMessage) -> None:
        command = message.command
        if command == "PING":
            await self._send_raw(f"PONG :{message.trailing or (message.params[0] if message.params else '')}")
        elif command == "001":
            if message.params:
                self.nickname = message.params[0]
            LOGGER.info("Registered as %s", self.nickname)
            await self._emit("registered")
        elif command == "433":
            # Nickname in use: retry with a suffix until the server accepts one.
            self.nickname = f"{self.nickname}_"
            LOGGER.warning("Nickname taken, retrying as %s", self.nickname)
            await self._send_raw(f"NICK {self.nickname}")
        elif command == "JOIN":
            channel = message.params[0] if message.params else (message.trailing or "")
            is_self = message.nick.lower() == self.nickname.lower()
            if is_self:
                LOGGER.info("Joined %s", channel)
            await self._emit("joined", channel, is_self)
        elif command == "PRIVMSG":
            target = message.params[0] if message.params else ""
            if target.startswith(("#", "&")):
                await self._emit("public_message", target, message.nick, message.trailing or "")
        elif command in {"NOTICE", "ERROR"}:
            LOGGER.info("Server %s: %s", command, message.trailing)

    async def run_until_disconnected(self) -> None:
        """Read and dispatch lines until the connection ends."""

        if self._reader is None:
            raise ConnectionError("IRC client is not connected")
        try:
            while True:
                raw = await self._reader.readline()
                if not raw:
                    LOGGER.warning("IRC connection closed by server")
                    break
                message = parse_line(raw.decode("utf-8", errors="replace"))
                if message is None:
                    continue
                await self.handle(message)
        except OSError as exc:
            LOGGER.warning("IRC connection lost: %s", exc)
        finally:
            await self.close()
            await self._emit("disconnected")
