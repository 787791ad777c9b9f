"""Chat command parsing and dispatch (core domain)."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Union

from core.ports import OutboundPort, RulesApiError, RulesPort

LOGGER = logging.getLogger(__name__)

HELP_LINES = [
    "Commands:",
    "  get - list the current stream rules",
    "  add <rule> - add a stream rule, e.g. add cats has:images",
    "  del <id> - delete a stream rule by id",
    "  help - show this text",
]
NO_RULES = "(none)"
UNKNOWN_REPLY = "Unknown command, try help"


@dataclass(frozen=True)
class Help:
    pass


@dataclass(frozen=True)
class Get:
    pass


@dataclass(frozen=True)
class Add:
    value: str


@dataclass(frozen=True)
class Delete:
    rule_id: str


@dataclass(frozen=True)
class Unknown:
    text: str


Command = Union[Help, Get, Add, Delete, Unknown]

_ADD_RE = re.compile(r"^add\s+(\S.*)$", re.IGNORECASE)
_DEL_RE = re.compile(r"^del\s+(\S+)", re.IGNORECASE)


def parse_command(text: str) -> Command:
    """Parse command text into a tagged variant.

    Matching is a case-insensitive prefix test, first match wins, in the order
    help, get, add, del.
    """

    body = text.strip()
    lowered = body.lower()
    if lowered.startswith("help"):
        return Help()
    if lowered.startswith("get"):
        return Get()
    match = _ADD_RE.match(body)
    if match:
        return Add(value=match.group(1).strip())
    match = _DEL_RE.match(body)
    if match:
        return Delete(rule_id=match.group(1))
    return Unknown(text=body)


def addressed_text(message: str, nickname: str) -> Optional[str]:
    """Return the command part of a message addressed to ``nickname``.

    Accepts ``nick: cmd``, ``nick, cmd`` and ``nick cmd``; anything else is not
    for us and yields None.
    """

    pattern = re.compile(rf"^{re.escape(nickname)}(?:[:,]|\s)\s*(.*)$", re.IGNORECASE | re.DOTALL)
    match = pattern.match(message.strip())
    if not match:
        return None
    return match.group(1).strip()


class CommandDispatcher:
    """Runs rule-management commands and reports back through the outbound port."""

    def __init__(self, rules: RulesPort, notifier: OutboundPort) -> None:
        self._rules = rules
        self._notifier = notifier

    async def replies_for(self, command: Command) -> List[str]:
        if isinstance(command, Help):
            return list(HELP_LINES)
        if isinstance(command, Unknown):
            return [UNKNOWN_REPLY]

        try:
            if isinstance(command, Get):
                rules = await self._rules.list_rules()
                if not rules:
                    return [NO_RULES]
                return [f"Rule {rule.id} : {rule.value}" for rule in rules]
            if isinstance(command, Add):
                await self._rules.add_rule(command.value)
                return [f"OK, added rule: {command.value}"]
            if isinstance(command, Delete):
                await self._rules.delete_rule(command.rule_id)
                return [f"OK, deleted rule {command.rule_id}"]
        except RulesApiError as exc:
            LOGGER.warning("Rule command %s failed: %s", command, exc)
            return [str(exc)]
        raise TypeError(f"Unsupported command: {command!r}")

    async def dispatch(self, text: str) -> None:
        """Parse ``text`` and send every reply line to the channel."""

        command = parse_command(text)
        LOGGER.info("Dispatching %s", command)
        for line in await self.replies_for(command):
            await self._notifier.send(line)
