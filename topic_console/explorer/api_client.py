"""Async client for the console HTTP API.

All response-shape tolerance lives in :func:`unwrap`: the API may wrap data
under a named key (``{"topic": {...}}``, ``{"messages": [...]}``) or return it
bare. Failed requests propagate as ``httpx`` exceptions; callers classify them.
"""
from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from topic_console.core.config import settings
from topic_console.models.messages import PublishAck, TopicMessage
from topic_console.models.topics import TopicCreateRequest, TopicInfo

logger = logging.getLogger(__name__)


def unwrap(payload: Any, key: str) -> Any:
    """Return ``payload[key]`` when the body wraps its data under *key*, else the body."""
    if isinstance(payload, dict) and key in payload:
        return payload[key]
    return payload


def error_message(exc: httpx.HTTPError) -> str:
    """Best human-readable text for a failed request.

    Uses the ``error`` or ``message`` field of a JSON error body when there is
    one, otherwise the transport-level error text.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for field in ("error", "message"):
                text = body.get(field)
                if isinstance(text, str) and text:
                    return text
    return str(exc) or exc.__class__.__name__


def _topic_path(name: str) -> str:
    return f"/topics/{quote(name, safe='')}"


class ConsoleApiClient:
    """Thin async wrapper over the topic/message endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.console_api_base).rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.fetch_timeout_sec,
            transport=transport,
        )

    async def __aenter__(self) -> "ConsoleApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kw) -> httpx.Response:
        r = await self._http.request(method, path, **kw)
        r.raise_for_status()
        return r

    # ---------- Topics ----------
    async def list_topics(self) -> list[TopicInfo]:
        r = await self._request("GET", "/topics")
        items = unwrap(r.json(), "topics")
        if not isinstance(items, list):
            raise ValueError("Received invalid topics data format from server")
        return [TopicInfo.model_validate(t) for t in items]

    async def get_topic(self, name: str) -> TopicInfo:
        r = await self._request("GET", _topic_path(name))
        data = unwrap(r.json(), "topic")
        if not isinstance(data, dict) or "name" not in data:
            raise ValueError("Received invalid topic data format from server")
        return TopicInfo.model_validate(data)

    async def create_topic(self, request: TopicCreateRequest) -> Optional[TopicInfo]:
        r = await self._request("POST", "/topics", json=request.model_dump())
        try:
            data = unwrap(r.json(), "topic")
        except ValueError:
            # 201 with an empty body is a success too
            return None
        return TopicInfo.model_validate(data) if isinstance(data, dict) and "name" in data else None

    async def delete_topic(self, name: str) -> None:
        await self._request("DELETE", _topic_path(name))

    # ---------- Messages ----------
    async def get_messages(
        self,
        name: str,
        *,
        partition: int,
        offset: str,
        limit: int,
        timeout: Optional[float] = None,
    ) -> list[TopicMessage]:
        params = {"partition": partition, "offset": offset, "limit": limit}
        kw = {"timeout": timeout} if timeout is not None else {}
        logger.debug("GET messages %s %s", name, params)
        r = await self._request("GET", f"{_topic_path(name)}/messages", params=params, **kw)
        items = unwrap(r.json(), "messages")
        if not isinstance(items, list):
            raise ValueError("Received invalid messages data format from server")
        return [TopicMessage.model_validate(m) for m in items]

    async def publish_message(
        self,
        name: str,
        payload: dict,
        *,
        timeout: Optional[float] = None,
    ) -> PublishAck:
        kw = {"timeout": timeout} if timeout is not None else {}
        r = await self._request("POST", f"{_topic_path(name)}/messages", json=payload, **kw)
        try:
            return PublishAck.model_validate(r.json())
        except ValueError:
            # the record was accepted; an unexpected ack body only loses the metadata
            logger.debug("Unrecognised publish ack for %s: %s", name, r.text[:200])
            return PublishAck(topic=name)
