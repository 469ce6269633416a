"""Validated message publishing."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Union

import httpx

from topic_console.core.config import settings
from topic_console.explorer.api_client import ConsoleApiClient, error_message
from topic_console.explorer.errors import InvalidPayload, PublishFailed
from topic_console.explorer.presenter import is_structured
from topic_console.models.messages import PublishAck

logger = logging.getLogger(__name__)

AUTO_PARTITION = "auto"

PartitionChoice = Union[int, str, None]


@dataclass
class HeaderField:
    """One key/value row of the publish form."""

    key: str = ""
    value: str = ""


@dataclass(frozen=True)
class PublishRequest:
    key: Optional[str]
    value: str
    headers: Optional[dict[str, str]] = None
    partition: Optional[int] = None  # None: broker-assigned

    def to_payload(self) -> dict:
        payload: dict = {"key": self.key, "value": self.value}
        if self.headers:
            payload["headers"] = dict(self.headers)
        if self.partition is not None:
            payload["partition"] = self.partition
        return payload


def assemble_headers(fields: Iterable[HeaderField]) -> Optional[dict[str, str]]:
    """Headers from form rows; rows missing a key or a value are dropped."""
    headers = {f.key: f.value for f in fields if f.key and f.value}
    return headers or None


def resolve_partition(choice: PartitionChoice) -> Optional[int]:
    """Map the form's partition choice to an explicit partition or ``None``.

    ``None``, ``"auto"`` and negative numbers all mean "let the broker choose".
    """
    if choice is None or isinstance(choice, bool):
        return None
    if isinstance(choice, str):
        token = choice.strip().lower()
        if token in ("", AUTO_PARTITION):
            return None
        try:
            choice = int(token)
        except ValueError:
            raise InvalidPayload(f"Invalid partition: {choice!r}") from None
    if not isinstance(choice, int):
        raise InvalidPayload(f"Invalid partition: {choice!r}")
    return choice if choice >= 0 else None


def build_publish_request(
    key: Optional[str],
    value: str,
    *,
    value_is_structured: bool = False,
    partition: PartitionChoice = AUTO_PARTITION,
    headers: Iterable[HeaderField] = (),
) -> PublishRequest:
    """Validate form input and build the request.

    Raises
    ------
    InvalidPayload
        If *value* is empty, or flagged as structured but not valid JSON.
    """
    if not value:
        raise InvalidPayload("Message value is required")
    if value_is_structured and not is_structured(value):
        raise InvalidPayload("Value is not valid JSON")
    return PublishRequest(
        key=key or None,
        value=value,
        headers=assemble_headers(headers),
        partition=resolve_partition(partition),
    )


class Publisher:
    """Submit one :class:`PublishRequest`; never retries."""

    def __init__(self, client: ConsoleApiClient, topic: str, *, timeout: Optional[float] = None) -> None:
        self._client = client
        self.topic = topic
        self.timeout = timeout or settings.publish_timeout_sec

    async def publish(self, request: PublishRequest) -> PublishAck:
        if not request.value:
            raise InvalidPayload("Message value is required")
        try:
            ack = await self._client.publish_message(self.topic, request.to_payload(), timeout=self.timeout)
        except httpx.HTTPError as exc:
            logger.warning("Publish to %s failed: %s", self.topic, exc)
            raise PublishFailed(error_message(exc)) from exc
        logger.info("Published to %s (partition=%s, offset=%s)", self.topic, ack.partition, ack.offset)
        return ack
