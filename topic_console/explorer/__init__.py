"""Message exploration and publish workflow."""

from .errors import (
    ConsoleError,
    FetchError,
    InvalidOffset,
    InvalidPayload,
    NetworkError,
    OperationPending,
    PublishFailed,
    RequestFailed,
    TimedOut,
    UpstreamTimeout,
)
from .offsets import EARLIEST, LATEST, FetchQuery, OffsetKind, OffsetSelector, resolve_offset
from .presenter import MessageFormat, filter_messages, present
from .publisher import AUTO_PARTITION, HeaderField, PublishRequest, build_publish_request
from .view import MessageExplorer

__all__ = [
    "AUTO_PARTITION",
    "ConsoleError",
    "EARLIEST",
    "FetchError",
    "FetchQuery",
    "HeaderField",
    "InvalidOffset",
    "InvalidPayload",
    "LATEST",
    "MessageExplorer",
    "MessageFormat",
    "NetworkError",
    "OffsetKind",
    "OffsetSelector",
    "OperationPending",
    "PublishFailed",
    "PublishRequest",
    "RequestFailed",
    "TimedOut",
    "UpstreamTimeout",
    "build_publish_request",
    "filter_messages",
    "present",
    "resolve_offset",
]
