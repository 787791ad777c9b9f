"""Configuration loading for tweetrelay.

All user-editable settings live in a single ``key = value`` text file so the
relay can be pointed at another channel or feed without touching Python.
Secrets may be left out of the file and supplied through the environment
(or a ``.env`` file) instead.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv

from core.config import Config
from core.rate_limit import BURST_DIVISOR

LOGGER = logging.getLogger(__name__)

REQUIRED_KEYS = ("irc_server", "irc_nick", "irc_channel", "rate_limit")
KNOWN_KEYS = {
    "bearer_token",
    "irc_server",
    "irc_port",
    "irc_tls",
    "irc_password",
    "irc_nick",
    "irc_channel",
    "rate_limit",
    "show_url",
    "reconnect_delay",
    "reconnect_max_delay",
    "log_level",
    "log_file",
    "log_max_bytes",
    "log_backup_count",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class ConfigError(ValueError):
    """The configuration file is missing a key or holds an invalid value."""


def parse_config_text(text: str) -> dict[str, str]:
    """Parse ``key = value`` lines; blank lines and ``#`` comments are skipped."""

    values: dict[str, str] = {}
    for lineno, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        key = key.strip().lower()
        if not sep or not key:
            raise ConfigError(f"line {lineno}: expected 'key = value', got {raw_line!r}")
        if key not in KNOWN_KEYS:
            LOGGER.warning("Ignoring unknown config key %r (line %s)", key, lineno)
            continue
        values[key] = value.strip()
    return values


def _parse_bool(key: str, raw: Optional[str], default: bool) -> bool:
    if raw is None or raw == "":
        return default
    lowered = raw.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"{key} must be a boolean, got {raw!r}")


def _parse_number(key: str, raw: Optional[str], default, kind=float):
    if raw is None or raw == "":
        return default
    try:
        return kind(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from None


def build_config(values: dict[str, str]) -> Config:
    """Validate raw key/value pairs and build the immutable Config."""

    missing = [key for key in REQUIRED_KEYS if not values.get(key)]
    bearer_token = values.get("bearer_token") or os.getenv("BEARER_TOKEN")
    if not bearer_token:
        missing.insert(0, "bearer_token")
    if missing:
        raise ConfigError(f"missing required key(s): {', '.join(missing)}")

    use_tls = _parse_bool("irc_tls", values.get("irc_tls"), False)
    port = _parse_number("irc_port", values.get("irc_port"), 6697 if use_tls else 6667, int)
    if not 0 < port < 65536:
        raise ConfigError(f"irc_port out of range: {port}")

    rate_limit = _parse_number("rate_limit", values.get("rate_limit"), None)
    # Burst capacity is a tenth of the rate; below this no token is ever whole.
    if rate_limit < BURST_DIVISOR:
        raise ConfigError(f"rate_limit must be at least {BURST_DIVISOR} messages/minute, got {rate_limit:g}")

    channel = values["irc_channel"]
    if not channel.startswith(("#", "&")):
        channel = f"#{channel}"

    reconnect_delay = _parse_number("reconnect_delay", values.get("reconnect_delay"), 0.0)
    reconnect_max_delay = _parse_number("reconnect_max_delay", values.get("reconnect_max_delay"), 300.0)
    if reconnect_delay < 0 or reconnect_max_delay < 0:
        raise ConfigError("reconnect delays must not be negative")

    return Config(
        bearer_token=bearer_token,
        chat_server=values["irc_server"],
        chat_port=port,
        use_tls=use_tls,
        chat_password=values.get("irc_password") or os.getenv("IRC_PASSWORD") or None,
        nickname=values["irc_nick"],
        channel=channel,
        rate_limit_per_minute=rate_limit,
        show_url=_parse_bool("show_url", values.get("show_url"), False),
        reconnect_delay=reconnect_delay,
        reconnect_max_delay=reconnect_max_delay,
        log_level=(values.get("log_level") or "INFO").upper(),
        log_file=values.get("log_file") or None,
        log_max_bytes=_parse_number("log_max_bytes", values.get("log_max_bytes"), 5 * 1024 * 1024, int),
        log_backup_count=_parse_number("log_backup_count", values.get("log_backup_count"), 5, int),
    )


def load_config(path: str) -> Config:
    """Load the config file at ``path``.

    Raises FileNotFoundError/OSError when the file cannot be read and
    ConfigError when its content is invalid.
    """

    load_dotenv()
    with open(path, "r", encoding="utf-8") as handle:
        values = parse_config_text(handle.read())
    return build_config(values)
