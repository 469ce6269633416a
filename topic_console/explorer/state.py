from __future__ import annotations

import enum
from typing import Optional

from topic_console.explorer.errors import ConsoleError, OperationPending


class BusyState(str, enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    ERROR = "error"


class BusyFlag:
    """``idle -> pending -> idle | error`` for one kind of request.

    ``begin()`` is the only way into ``pending`` and refuses while a request is
    already outstanding; nothing is queued.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.state = BusyState.IDLE
        self.error: Optional[ConsoleError] = None

    @property
    def pending(self) -> bool:
        return self.state is BusyState.PENDING

    def begin(self) -> None:
        if self.pending:
            raise OperationPending(f"A {self.name} is already in progress")
        self.state = BusyState.PENDING
        self.error = None

    def succeed(self) -> None:
        self.state = BusyState.IDLE
        self.error = None

    def fail(self, error: ConsoleError) -> None:
        self.state = BusyState.ERROR
        self.error = error

    def __repr__(self) -> str:
        return f"BusyFlag({self.name!r}, {self.state.value})"
