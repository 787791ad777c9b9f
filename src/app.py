"""Application entry point for the tweetrelay bot."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint

import settings
from adapters.channel_notifier import ChannelNotifier, ConsoleNotifier
from adapters.feed_stream import HttpFeedSource
from adapters.irc_client import IrcClient
from adapters.rules_api import TwitterRulesClient
from client import build_feed_client, build_rules_client
from core.commands import CommandDispatcher, addressed_text
from core.config import Config
from core.dedup import DedupCache
from core.ingestor import ReconnectPolicy, StreamIngestor
from core.processor import FeedProcessor
from core.rate_limit import RateLimiter

NAME = "TWEETRELAY"
FONT = "small"
CHAT_TIMEOUT = 30.0

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = sorted({secret for secret in secrets if secret}, key=len, reverse=True)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _configure_logging(config: Config) -> None:
    level = getattr(logging, config.log_level, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = _RedactingFormatter(config.secrets(), fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if config.log_file:
        directory = os.path.dirname(config.log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.log_file,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    # httpx logs every request at INFO, which is noise for a reconnecting stream.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _load_config_or_exit(path: str) -> Config:
    try:
        return settings.load_config(path)
    except OSError as exc:
        print(f"Cannot read config file {path}: {exc}", file=sys.stderr)
    except settings.ConfigError as exc:
        print(f"Invalid config file {path}: {exc}", file=sys.stderr)
    sys.exit(1)


def build_processor(config: Config, notifier) -> FeedProcessor:
    return FeedProcessor(
        dedup=DedupCache(),
        limiter=RateLimiter(config.rate_limit_per_minute),
        notifier=notifier,
        show_url=config.show_url,
    )


def _wire(
    irc: IrcClient,
    config: Config,
    ingestor: StreamIngestor,
    dispatcher: CommandDispatcher,
    command_tasks: set[asyncio.Task],
) -> None:
    """Attach the chat event handlers that drive the ingestor and commands."""

    def _finish_command(task: asyncio.Task) -> None:
        command_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            LOGGER.error("Command failed", exc_info=task.exception())

    @irc.on("registered")
    async def on_registered() -> None:
        await irc.join(config.channel)

    @irc.on("joined")
    async def on_joined(channel: str, is_self: bool) -> None:
        if is_self and channel.lower() == config.channel.lower():
            ingestor.start()

    @irc.on("public_message")
    async def on_public_message(channel: str, sender: str, text: str) -> None:
        if channel.lower() != config.channel.lower():
            return
        command = addressed_text(text, irc.nickname)
        if command is None:
            return
        LOGGER.info("Command from %s: %s", sender, command)
        # Each command is its own task; replies may arrive out of issue order.
        task = asyncio.create_task(dispatcher.dispatch(command))
        command_tasks.add(task)
        task.add_done_callback(_finish_command)

    @irc.on("disconnected")
    async def on_disconnected() -> None:
        LOGGER.warning("Chat disconnected, shutting down")
        await ingestor.stop()
        for task in list(command_tasks):
            task.cancel()


async def _serve(config: Config) -> None:
    irc = IrcClient(
        config.chat_server,
        config.chat_port,
        nickname=config.nickname,
        tls=config.use_tls,
        password=config.chat_password,
        timeout=CHAT_TIMEOUT,
    )
    notifier = ChannelNotifier(irc, config.channel)
    command_tasks: set[asyncio.Task] = set()

    async with build_feed_client(config) as feed_http, build_rules_client(config) as rules_http:
        ingestor = StreamIngestor(
            HttpFeedSource(feed_http),
            build_processor(config, notifier),
            ReconnectPolicy(config.reconnect_delay, config.reconnect_max_delay),
        )
        dispatcher = CommandDispatcher(TwitterRulesClient(rules_http), notifier)
        _wire(irc, config, ingestor, dispatcher, command_tasks)

        await irc.connect()
        await irc.run_until_disconnected()


def _run(config_path: str) -> int:
    _print_banner()
    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    LOGGER.info(
        "Starting tweetrelay: %s:%s %s as %s, %s msgs/min, show_url=%s",
        config.chat_server,
        config.chat_port,
        config.channel,
        config.nickname,
        config.rate_limit_per_minute,
        config.show_url,
    )
    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        LOGGER.info("Interrupted, exiting")
        return 0
    except (OSError, asyncio.TimeoutError) as exc:
        LOGGER.error("Could not connect to chat server: %s", exc)
        return 1
    # Reaching here means the chat connection ended; let a supervisor restart us.
    return 1


async def _run_rules_command(config: Config, words: list[str]) -> None:
    async with build_rules_client(config) as rules_http:
        dispatcher = CommandDispatcher(TwitterRulesClient(rules_http), ConsoleNotifier())
        await dispatcher.dispatch(" ".join(words))


def _rules(config_path: str, words: list[str]) -> int:
    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    asyncio.run(_run_rules_command(config, words))
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="tweetrelay")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Relay the filtered stream into the IRC channel")
    run_parser.add_argument("config", help="Path to the key = value config file")

    rules_parser = subparsers.add_parser(
        "rules",
        help="Run one rule command (get, add <rule>, del <id>, help) from the terminal",
    )
    rules_parser.add_argument("config", help="Path to the key = value config file")
    rules_parser.add_argument("words", nargs="+", help="Command text, e.g. add cats has:images")

    args = parser.parse_args(argv)
    if args.command == "rules":
        sys.exit(_rules(args.config, args.words))
    sys.exit(_run(args.config))


if __name__ == "__main__":
    main()
