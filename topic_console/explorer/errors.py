"""Errors surfaced by the message explorer and publisher.

Every error carries a human-readable ``message`` that consoles show as-is.
Local validation errors (:class:`InvalidOffset`, :class:`InvalidPayload`) are
raised before any request is made and are never retried.
"""
from __future__ import annotations

TIMEOUT_HINT = (
    "Try reducing the number of messages or using a specific offset instead of 'latest'."
)


class ConsoleError(Exception):
    """Base class for explorer/publisher errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidOffset(ConsoleError):
    """A custom offset that is not a non-negative integer."""


class InvalidPayload(ConsoleError):
    """A publish request that fails local validation."""


class OperationPending(ConsoleError):
    """A fetch or publish was attempted while one is already in flight."""


class FetchError(ConsoleError):
    """A message read that reached the network and failed."""


class TimedOut(FetchError):
    """The local deadline fired (or the transport timed out) before a response."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or f"Request timed out. {TIMEOUT_HINT}")


class UpstreamTimeout(FetchError):
    """The API answered with a gateway-timeout status."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or f"The server took too long to process your request. {TIMEOUT_HINT}")


class NetworkError(FetchError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "Network error occurred. Please check your connection to the server.")


class RequestFailed(FetchError):
    """The API declined the request; ``message`` is its error text."""


class PublishFailed(ConsoleError):
    """The API (or the transport) rejected a publish."""
