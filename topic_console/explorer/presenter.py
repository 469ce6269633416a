"""Filtering and display of fetched messages."""
from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from topic_console.models.messages import TopicMessage

KEY_PREVIEW_CHARS = 30
VALUE_PREVIEW_CHARS = 50
ELLIPSIS = "..."
JSON_INDENT = 2


class MessageFormat(str, enum.Enum):
    TEXT = "text"
    JSON = "json"


def _reject_constant(name: str) -> Any:
    # json.loads accepts NaN/Infinity; JSON itself does not
    raise ValueError(f"{name} is not valid JSON")


def _parse(value: str) -> Any:
    return json.loads(value, parse_constant=_reject_constant)


def is_structured(value: Optional[str]) -> bool:
    """True when *value* parses as JSON."""
    if not value:
        return False
    try:
        _parse(value)
    except (ValueError, RecursionError):
        return False
    return True


def present(value: Optional[str], fmt: MessageFormat | str = MessageFormat.TEXT) -> str:
    """Render a message value; ``json`` pretty-prints and falls back to the raw text."""
    if not value:
        return ""
    if MessageFormat(fmt) is MessageFormat.JSON:
        try:
            return json.dumps(_parse(value), indent=JSON_INDENT, ensure_ascii=False)
        except (ValueError, RecursionError):
            return value
    return value


def format_json_value(value: str) -> str:
    """Pretty-print a draft payload, leaving anything that isn't JSON untouched."""
    return present(value, MessageFormat.JSON) if value else value


def truncate(text: Optional[str], limit: int) -> str:
    if not text:
        return ""
    return f"{text[:limit]}{ELLIPSIS}" if len(text) > limit else text


def matches(message: TopicMessage, term: str) -> bool:
    """Case-insensitive substring match on key, value and every header key/value."""
    needle = term.lower()
    if message.key and needle in message.key.lower():
        return True
    if message.value and needle in message.value.lower():
        return True
    for k, v in (message.headers or {}).items():
        if needle in k.lower() or (v and needle in v.lower()):
            return True
    return False


def filter_messages(messages: Iterable[TopicMessage], term: Optional[str]) -> list[TopicMessage]:
    """Messages matching *term*; a blank term keeps everything. Never mutates *messages*."""
    if not term or not term.strip():
        return list(messages)
    return [m for m in messages if matches(m, term)]


MessageId = tuple[int, int]


def message_id(message: TopicMessage) -> MessageId:
    return (message.partition, message.offset)


class ExpansionState:
    """Rows shown expanded, keyed by ``(partition, offset)``.

    Keys outlive filtering and format changes; the explorer clears them when a
    fetch replaces the result set.
    """

    def __init__(self) -> None:
        self._expanded: set[MessageId] = set()

    def toggle(self, message: TopicMessage) -> bool:
        """Flip *message*'s state and return whether it is now expanded."""
        key = message_id(message)
        if key in self._expanded:
            self._expanded.discard(key)
            return False
        self._expanded.add(key)
        return True

    def is_expanded(self, message: TopicMessage) -> bool:
        return message_id(message) in self._expanded

    def clear(self) -> None:
        self._expanded.clear()

    def __len__(self) -> int:
        return len(self._expanded)


@dataclass(frozen=True)
class Row:
    partition: int
    offset: int
    timestamp: str
    key: str
    value: str
    headers: dict[str, str]
    structured: bool
    expanded: bool


def render_row(message: TopicMessage, fmt: MessageFormat | str, expanded: bool) -> Row:
    """Display fields for one message.

    Collapsed rows preview the raw key/value; expanded rows show the full key,
    the formatted value and the headers. The structured flag reflects the raw
    value whatever the selected format.
    """
    if expanded:
        key = message.key or ""
        value = present(message.value, fmt)
        headers = dict(message.headers or {})
    else:
        key = truncate(message.key, KEY_PREVIEW_CHARS)
        value = truncate(message.value, VALUE_PREVIEW_CHARS)
        headers = {}
    return Row(
        partition=message.partition,
        offset=message.offset,
        timestamp=message.timestamp.isoformat(),
        key=key,
        value=value,
        headers=headers,
        structured=is_structured(message.value),
        expanded=expanded,
    )
