import json

import httpx
import pytest

from topic_console.cli import build_parser, run_command

from conftest import BASE_URL


async def _run(fake_api, *argv):
    args = build_parser().parse_args(["--api", BASE_URL, *argv])
    return await run_command(args, transport=httpx.MockTransport(fake_api))


def _ack(partition):
    return lambda request: httpx.Response(200, json={
        "message": "Message published successfully", "topic": "orders", "partition": partition, "offset": 3,
    })


def test_publish_requires_a_value():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["publish", "orders", "--key", "k"])


@pytest.mark.asyncio
async def test_topics(fake_api, capsys):
    assert await _run(fake_api, "topics") == 0
    assert "orders\tpartitions=2\trf=1" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_topic_detail(fake_api, capsys):
    assert await _run(fake_api, "topic", "orders") == 0
    out = capsys.readouterr().out
    assert "Number of Partitions: 2" in out
    assert "Partition 1: leader=1" in out


@pytest.mark.asyncio
async def test_create_topic_sends_config(fake_api):
    code = await _run(fake_api, "create-topic", "events", "--partitions", "3", "--config", "retention.ms=1000")
    assert code == 0
    sent = json.loads(fake_api.calls("POST", "/topics")[0].content)
    assert sent == {"name": "events", "numPartitions": 3, "replicationFactor": 1, "config": {"retention.ms": "1000"}}


@pytest.mark.asyncio
async def test_delete_needs_confirmation(fake_api):
    assert await _run(fake_api, "delete-topic", "orders") == 2
    assert fake_api.calls("DELETE", "/orders") == []
    assert await _run(fake_api, "delete-topic", "orders", "--yes") == 0


class TestMessages:
    @pytest.mark.asyncio
    async def test_grep_and_summary(self, fake_api, capsys):
        assert await _run(fake_api, "messages", "orders", "--limit", "10", "--grep", "key-3") == 0
        out = capsys.readouterr().out
        assert "Showing 1 of 10 messages" in out
        assert "#3 p0" in out
        assert "[JSON]" in out

    @pytest.mark.asyncio
    async def test_expanded_json(self, fake_api, capsys):
        fake_api.batch = fake_api.batch[:1]
        assert await _run(fake_api, "messages", "orders", "--format", "json", "--expand") == 0
        out = capsys.readouterr().out
        assert '    "seq": 0' in out
        assert "[JSON]" not in out

    @pytest.mark.asyncio
    async def test_latest_failure_hint(self, fake_api, capsys):
        fake_api.messages_handler = lambda r: httpx.Response(504)
        assert await _run(fake_api, "messages", "orders", "--offset", "latest") == 1
        err = capsys.readouterr().err
        assert "took too long" in err
        assert "--fallback-earliest" in err

    @pytest.mark.asyncio
    async def test_fallback_to_earliest(self, fake_api, capsys):
        def handler(request):
            if request.url.params["offset"] == "latest":
                return httpx.Response(504)
            return httpx.Response(200, json={"messages": fake_api.batch})

        fake_api.messages_handler = handler
        code = await _run(fake_api, "messages", "orders", "--offset", "latest", "--fallback-earliest")
        assert code == 0
        assert [r.url.params["offset"] for r in fake_api.message_reads] == ["latest", "earliest"]
        assert "Showing 10 of 10 messages" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_invalid_offset(self, fake_api, capsys):
        assert await _run(fake_api, "messages", "orders", "--offset", "custom:x") == 1
        assert "Invalid offset" in capsys.readouterr().err
        assert fake_api.message_reads == []


class TestPublish:
    @pytest.mark.asyncio
    async def test_publish(self, fake_api, capsys):
        code = await _run(fake_api, "publish", "orders", "--key", "k1", "--value", "v1", "--header", "src=cli")
        assert code == 0
        assert json.loads(fake_api.publishes[0].content) == {"key": "k1", "value": "v1", "headers": {"src": "cli"}}
        assert "offset=10" in capsys.readouterr().out
        assert fake_api.message_reads == []

    @pytest.mark.asyncio
    async def test_invalid_json_value(self, fake_api, capsys):
        assert await _run(fake_api, "publish", "orders", "--value", "{bad", "--json") == 1
        assert "Value is not valid JSON" in capsys.readouterr().err
        assert fake_api.publishes == []

    @pytest.mark.asyncio
    async def test_show_tail_refetches_latest(self, fake_api, capsys):
        fake_api.publish_handler = _ack(partition=1)
        code = await _run(fake_api, "publish", "orders", "--value", "v1", "--partition", "1", "--show-tail")
        assert code == 0
        assert len(fake_api.message_reads) == 1
        params = fake_api.message_reads[0].url.params
        assert (params["offset"], params["partition"]) == ("latest", "1")
        assert "Showing 10 of 10 messages" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_show_tail_follows_assigned_partition(self, fake_api):
        fake_api.publish_handler = _ack(partition=1)
        assert await _run(fake_api, "publish", "orders", "--value", "v1", "--show-tail") == 0
        assert "partition" not in json.loads(fake_api.publishes[0].content)
        assert fake_api.message_reads[0].url.params["partition"] == "1"

    @pytest.mark.asyncio
    async def test_value_file_is_closed(self, fake_api, tmp_path):
        path = tmp_path / "value.json"
        path.write_text('{"id": 1}', encoding="utf-8")
        args = build_parser().parse_args(["--api", BASE_URL, "publish", "orders", "--value-file", str(path), "--json"])
        assert await run_command(args, transport=httpx.MockTransport(fake_api)) == 0
        assert args.value_file.closed
        assert json.loads(fake_api.publishes[0].content)["value"] == '{"id": 1}'
