import asyncio

import httpx
import pytest

from topic_console.explorer.errors import (
    InvalidOffset,
    NetworkError,
    RequestFailed,
    TimedOut,
    UpstreamTimeout,
)
from topic_console.explorer.fetcher import BoundedFetcher
from topic_console.explorer.offsets import EARLIEST, LATEST, FetchQuery, OffsetSelector


def _slow(seconds: float):
    async def handler(request):
        await asyncio.sleep(seconds)
        return httpx.Response(200, json={"messages": []})
    return handler


class TestTimeouts:
    def test_default_budget_depends_on_selector(self, client):
        fetcher = BoundedFetcher(client, "orders")
        assert fetcher.timeout_for(LATEST) == 60
        assert fetcher.timeout_for(EARLIEST) == 30
        assert fetcher.timeout_for(OffsetSelector.custom(5)) == 30

    @pytest.mark.asyncio
    async def test_local_deadline_aborts_call(self, client, fake_api):
        fake_api.messages_handler = _slow(5)
        fetcher = BoundedFetcher(client, "orders", timeout=0.05, latest_timeout=0.05)
        with pytest.raises(TimedOut) as info:
            await fetcher.fetch(FetchQuery(0, LATEST, 10))
        assert "reducing the number of messages" in info.value.message

    @pytest.mark.asyncio
    async def test_latest_gets_the_longer_budget(self, client, fake_api):
        fake_api.messages_handler = _slow(0.2)
        fetcher = BoundedFetcher(client, "orders", timeout=0.05, latest_timeout=2.0)
        assert await fetcher.fetch(FetchQuery(0, LATEST, 10)) == []
        with pytest.raises(TimedOut):
            await fetcher.fetch(FetchQuery(0, EARLIEST, 10))

    @pytest.mark.asyncio
    async def test_transport_timeout_is_timed_out(self, client, fake_api):
        def handler(request):
            raise httpx.ReadTimeout("read timed out", request=request)

        fake_api.messages_handler = handler
        with pytest.raises(TimedOut):
            await BoundedFetcher(client, "orders").fetch(FetchQuery(0, EARLIEST, 10))


class TestClassification:
    @pytest.mark.asyncio
    async def test_gateway_timeout(self, client, fake_api):
        fake_api.messages_handler = lambda r: httpx.Response(504, text="Gateway Timeout")
        with pytest.raises(UpstreamTimeout) as info:
            await BoundedFetcher(client, "orders").fetch(FetchQuery(0, LATEST, 10))
        assert "specific offset" in info.value.message

    @pytest.mark.asyncio
    async def test_connection_reset(self, client, fake_api):
        def handler(request):
            raise httpx.ReadError("connection reset by peer", request=request)

        fake_api.messages_handler = handler
        with pytest.raises(NetworkError):
            await BoundedFetcher(client, "orders").fetch(FetchQuery(0, EARLIEST, 10))

    @pytest.mark.asyncio
    async def test_backend_message_is_used(self, client, fake_api):
        fake_api.messages_handler = lambda r: httpx.Response(
            404, json={"status": 404, "message": "Topic or partition not found"}
        )
        with pytest.raises(RequestFailed) as info:
            await BoundedFetcher(client, "orders").fetch(FetchQuery(7, EARLIEST, 10))
        assert info.value.message == "Topic or partition not found"

    @pytest.mark.asyncio
    async def test_malformed_body(self, client, fake_api):
        fake_api.messages_handler = lambda r: httpx.Response(200, json={"items": {}})
        with pytest.raises(RequestFailed):
            await BoundedFetcher(client, "orders").fetch(FetchQuery(0, EARLIEST, 10))

    @pytest.mark.asyncio
    async def test_invalid_offset_issues_no_request(self, client, fake_api):
        with pytest.raises(InvalidOffset):
            await BoundedFetcher(client, "orders").fetch(FetchQuery(0, OffsetSelector.custom(-3), 10))
        assert fake_api.requests == []


@pytest.mark.asyncio
async def test_returns_batch_in_offset_order(client, fake_api):
    msgs = await BoundedFetcher(client, "orders").fetch(FetchQuery(0, EARLIEST, 10))
    offsets = [m.offset for m in msgs]
    assert len(msgs) == 10
    assert offsets == sorted(offsets)
    req = fake_api.message_reads[0]
    assert req.url.params["offset"] == "earliest"
