"""Offset selectors and their wire representation."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from topic_console.explorer.errors import InvalidOffset


class OffsetKind(str, enum.Enum):
    EARLIEST = "earliest"
    LATEST = "latest"
    CUSTOM = "custom"


@dataclass(frozen=True)
class OffsetSelector:
    """Where to start reading: oldest retained, tail, or an absolute offset.

    ``offset`` is only meaningful for ``CUSTOM`` and is kept as entered; it is
    validated when resolved so that bad form input surfaces as
    :class:`InvalidOffset` instead of failing at construction time.
    """

    kind: OffsetKind
    offset: Any = None

    @classmethod
    def earliest(cls) -> "OffsetSelector":
        return cls(OffsetKind.EARLIEST)

    @classmethod
    def latest(cls) -> "OffsetSelector":
        return cls(OffsetKind.LATEST)

    @classmethod
    def custom(cls, offset: Any) -> "OffsetSelector":
        return cls(OffsetKind.CUSTOM, offset)

    @classmethod
    def parse(cls, text: str) -> "OffsetSelector":
        """Parse ``earliest``, ``latest``, ``custom:N`` or a bare ``N``."""
        token = text.strip()
        lowered = token.lower()
        if lowered == OffsetKind.EARLIEST.value:
            return cls.earliest()
        if lowered == OffsetKind.LATEST.value:
            return cls.latest()
        if lowered.startswith("custom:"):
            token = token.split(":", 1)[1].strip()
        return cls.custom(token)

    @property
    def is_latest(self) -> bool:
        return self.kind is OffsetKind.LATEST

    def __str__(self) -> str:
        if self.kind is OffsetKind.CUSTOM:
            return f"custom:{self.offset}"
        return self.kind.value


EARLIEST = OffsetSelector.earliest()
LATEST = OffsetSelector.latest()


def _custom_value(raw: Any) -> int:
    # bool is an int subclass; True is not an offset
    if isinstance(raw, bool):
        raise InvalidOffset(f"Invalid offset: {raw!r}")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and raw.strip().isascii() and raw.strip().isdigit():
        # ASCII only: other scripts' digits are not offsets
        value = int(raw.strip())
    else:
        raise InvalidOffset(f"Invalid offset: {raw!r} is not a non-negative integer")
    if value < 0:
        raise InvalidOffset(f"Invalid offset: {value} is negative")
    return value


def resolve_offset(selector: OffsetSelector) -> str:
    """Return the ``offset`` query value for *selector*.

    Raises
    ------
    InvalidOffset
        If a custom selector does not hold a non-negative integer.
    """
    if selector.kind is OffsetKind.CUSTOM:
        return str(_custom_value(selector.offset))
    return selector.kind.value


@dataclass(frozen=True)
class FetchQuery:
    partition: int
    selector: OffsetSelector = field(default=EARLIEST)
    limit: int = 100

    def __post_init__(self) -> None:
        if isinstance(self.partition, bool) or not isinstance(self.partition, int) or self.partition < 0:
            raise ValueError(f"partition must be a non-negative integer, got {self.partition!r}")
        if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit <= 0:
            raise ValueError(f"limit must be a positive integer, got {self.limit!r}")
