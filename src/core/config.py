"""Core configuration dataclasses.

We keep config parsing outside the core, but this dataclass defines the
shape the core and adapters expect so the app layer can build them safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Config:
    """Process-wide settings, loaded once at startup and never mutated."""

    bearer_token: str
    chat_server: str
    chat_port: int
    use_tls: bool
    chat_password: Optional[str]
    nickname: str
    channel: str
    rate_limit_per_minute: float
    show_url: bool
    reconnect_delay: float = 0.0
    reconnect_max_delay: float = 300.0
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_max_bytes: int = 5 * 1024 * 1024
    log_backup_count: int = 5

    def secrets(self) -> list[str]:
        """Values that must never appear verbatim in log output."""

        return [value for value in (self.bearer_token, self.chat_password) if value]
