"""
Shared fixtures.

``FakeConsoleApi`` stands in for the console HTTP API behind an
``httpx.MockTransport`` and records every request it sees.
"""

import asyncio
import json
from typing import Callable, Optional

import httpx
import pytest
import pytest_asyncio

from topic_console.explorer.api_client import ConsoleApiClient

BASE_URL = "http://console.test/api/v1"


def make_message(offset: int, partition: int = 0, key: Optional[str] = None,
                 value: Optional[str] = None, headers: Optional[dict] = None) -> dict:
    return {
        "topic": "orders",
        "partition": partition,
        "offset": offset,
        "timestamp": "2024-05-01T12:00:00+00:00",
        "key": key if key is not None else f"key-{offset}",
        "value": value if value is not None else json.dumps({"seq": offset}),
        "headers": headers,
    }


class FakeConsoleApi:
    """Programmable responses for the topic and message endpoints."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.topic = {
            "name": "orders",
            "numPartitions": 2,
            "replicationFactor": 1,
            "partitions": [
                {"id": 0, "leader": 1, "replicas": [1], "isr": [1]},
                {"id": 1, "leader": 1, "replicas": [1], "isr": [1]},
            ],
        }
        self.batch: list[dict] = [make_message(i) for i in range(10)]
        self.messages_handler: Optional[Callable] = None
        self.publish_handler: Optional[Callable] = None

    # ---------- helpers for assertions ----------
    def calls(self, method: str, suffix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path.endswith(suffix)]

    @property
    def message_reads(self) -> list[httpx.Request]:
        return self.calls("GET", "/messages")

    @property
    def publishes(self) -> list[httpx.Request]:
        return self.calls("POST", "/messages")

    # ---------- transport ----------
    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/messages") and request.method == "GET":
            if self.messages_handler is not None:
                result = self.messages_handler(request)
                if asyncio.iscoroutine(result):
                    result = await result
                return result
            return httpx.Response(200, json={"messages": self.batch})
        if path.endswith("/messages") and request.method == "POST":
            if self.publish_handler is not None:
                return self.publish_handler(request)
            return httpx.Response(200, json={
                "message": "Message published successfully", "topic": "orders", "partition": 0, "offset": 10,
            })
        if path.endswith("/topics/orders") and request.method == "GET":
            return httpx.Response(200, json={"topic": self.topic})
        if path.endswith("/topics") and request.method == "GET":
            return httpx.Response(200, json={"topics": [self.topic]})
        if path.endswith("/topics") and request.method == "POST":
            return httpx.Response(201, json={"message": "Topic created successfully", "topic": self.topic})
        if request.method == "DELETE":
            return httpx.Response(200, json={"message": "Topic deleted successfully"})
        return httpx.Response(404, json={"status": 404, "message": "Topic not found"})


@pytest.fixture
def fake_api() -> FakeConsoleApi:
    return FakeConsoleApi()


@pytest_asyncio.fixture
async def client(fake_api):
    async with ConsoleApiClient(BASE_URL, transport=httpx.MockTransport(fake_api)) as c:
        yield c
