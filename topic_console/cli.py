# topic_console/cli.py
"""
Operator console.

    topic-console serve
    topic-console topics
    topic-console topic orders
    topic-console messages orders --partition 1 --offset latest --limit 50 --grep user-42
    topic-console publish orders --key k1 --value '{"id": 1}' --json --header source=cli
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

import httpx

from topic_console.core.config import settings
from topic_console.core.logging import setup_logging
from topic_console.explorer import (
    AUTO_PARTITION,
    ConsoleError,
    HeaderField,
    MessageExplorer,
    MessageFormat,
    OffsetSelector,
    build_publish_request,
)
from topic_console.explorer.api_client import ConsoleApiClient, error_message
from topic_console.explorer.presenter import Row, format_json_value
from topic_console.models.topics import TopicCreateRequest, TopicInfo

LOG = logging.getLogger("topic_console.cli")


def _key_value(text: str) -> tuple[str, str]:
    if "=" not in text:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {text!r}")
    k, v = text.split("=", 1)
    return k.strip(), v


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="topic-console", description="Kafka topic console")
    ap.add_argument("--api", default=settings.console_api_base, help="Console API base URL")
    ap.add_argument("--log-level", default=settings.log_level)
    sub = ap.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the console API server")
    serve.add_argument("--host", default=settings.server_host)
    serve.add_argument("--port", type=int, default=settings.server_port)
    serve.add_argument("--reload", action="store_true")

    sub.add_parser("topics", help="List topics")

    topic = sub.add_parser("topic", help="Show topic details")
    topic.add_argument("topic")

    create = sub.add_parser("create-topic", help="Create a topic")
    create.add_argument("topic")
    create.add_argument("--partitions", type=int, default=1)
    create.add_argument("--replication-factor", type=int, default=1)
    create.add_argument("--config", type=_key_value, action="append", default=[],
                        metavar="KEY=VALUE")

    delete = sub.add_parser("delete-topic", help="Delete a topic")
    delete.add_argument("topic")
    delete.add_argument("--yes", action="store_true", help="Confirm deletion")

    msgs = sub.add_parser("messages", help="Explore messages of one partition")
    msgs.add_argument("topic")
    msgs.add_argument("--partition", type=int, default=0)
    msgs.add_argument("--offset", default="earliest", help="earliest | latest | N | custom:N")
    msgs.add_argument("--limit", type=int, default=settings.default_limit)
    msgs.add_argument("--grep", default="", help="Filter on key, value and headers")
    msgs.add_argument("--format", choices=[f.value for f in MessageFormat], default=MessageFormat.TEXT.value)
    msgs.add_argument("--expand", action="store_true", help="Show full keys, values and headers")
    msgs.add_argument("--fallback-earliest", action="store_true",
                      help="If a 'latest' read fails, read from earliest instead")

    pub = sub.add_parser("publish", help="Publish one message")
    pub.add_argument("topic")
    pub.add_argument("--key", default="")
    src = pub.add_mutually_exclusive_group(required=True)
    src.add_argument("--value")
    src.add_argument("--value-file", type=argparse.FileType("r", encoding="utf-8"),
                     help="Read the value from a file ('-' for stdin)")
    pub.add_argument("--json", action="store_true", help="Value must be valid JSON")
    pub.add_argument("--pretty", action="store_true", help="Pretty-print a JSON value before sending")
    pub.add_argument("--partition", default=AUTO_PARTITION, help="Partition id or 'auto'")
    pub.add_argument("--header", type=_key_value, action="append", default=[], metavar="KEY=VALUE")
    pub.add_argument("--show-tail", action="store_true",
                     help="Show the partition tail after publishing")
    return ap


# ---------- output ----------
def _print_topic(t: TopicInfo) -> None:
    print(f"Topic: {t.name}")
    print(f"Number of Partitions: {t.numPartitions}")
    print(f"Replication Factor: {t.replicationFactor}")
    for k, v in sorted((t.config or {}).items()):
        print(f"  {k}: {v}")
    for p in t.partitions:
        print(f"  Partition {p.id}: leader={p.leader} replicas={p.replicas} isr={p.isr}")


def _print_rows(rows: Sequence[Row], total: int) -> None:
    print(f"Showing {len(rows)} of {total} messages")
    for r in rows:
        marker = " [JSON]" if r.structured and not r.expanded else ""
        print(f"#{r.offset} p{r.partition} {r.timestamp} key={r.key or '-'}{marker}")
        if r.expanded:
            for line in r.value.splitlines() or [""]:
                print(f"    {line}")
            for hk, hv in r.headers.items():
                print(f"    header {hk}: {hv}")
        else:
            print(f"    {r.value}")


# ---------- commands ----------
async def _topics(client: ConsoleApiClient, args) -> int:
    for t in await client.list_topics():
        print(f"{t.name}\tpartitions={t.numPartitions}\trf={t.replicationFactor}")
    return 0


async def _topic(client: ConsoleApiClient, args) -> int:
    _print_topic(await client.get_topic(args.topic))
    return 0


async def _create_topic(client: ConsoleApiClient, args) -> int:
    req = TopicCreateRequest(
        name=args.topic,
        numPartitions=args.partitions,
        replicationFactor=args.replication_factor,
        config=dict(args.config),
    )
    await client.create_topic(req)
    print(f"Topic {args.topic} created")
    return 0


async def _delete_topic(client: ConsoleApiClient, args) -> int:
    if not args.yes:
        print(f"Refusing to delete {args.topic} without --yes", file=sys.stderr)
        return 2
    await client.delete_topic(args.topic)
    print(f"Topic {args.topic} deleted")
    return 0


async def _messages(client: ConsoleApiClient, args) -> int:
    explorer = MessageExplorer(client, args.topic)
    await explorer.load_topic()
    explorer.set_partition(args.partition)
    explorer.set_selector(OffsetSelector.parse(args.offset))
    explorer.set_limit(args.limit)
    explorer.set_search_term(args.grep)
    explorer.set_format(args.format)

    await explorer.fetch()
    if explorer.fetch_error and explorer.can_retry_with_earliest and args.fallback_earliest:
        print(f"Error: {explorer.fetch_error.message}", file=sys.stderr)
        print("Retrying from earliest...", file=sys.stderr)
        await explorer.retry_with_earliest()
    if explorer.fetch_error:
        print(f"Error: {explorer.fetch_error.message}", file=sys.stderr)
        if explorer.can_retry_with_earliest:
            print("Hint: re-run with --offset earliest or --fallback-earliest", file=sys.stderr)
        return 1

    if args.expand:
        for i in range(len(explorer.visible_messages)):
            explorer.toggle_row(i)
    _print_rows(explorer.rows(), len(explorer.messages))
    return 0


async def _publish(client: ConsoleApiClient, args) -> int:
    if args.value is not None:
        value = args.value
    else:
        with args.value_file:
            value = args.value_file.read()
    if args.pretty:
        value = format_json_value(value)
    request = build_publish_request(
        args.key,
        value,
        value_is_structured=args.json,
        partition=args.partition,
        headers=[HeaderField(k, v) for k, v in args.header],
    )
    explorer = MessageExplorer(client, args.topic)
    ack = await explorer.publish(request)
    if ack is None:
        print(f"Error: {explorer.publish_error.message}", file=sys.stderr)
        return 1
    print(f"{ack.message} (partition={ack.partition}, offset={ack.offset})")
    if args.show_tail:
        # tail the partition the broker actually wrote to
        partition = ack.partition if ack.partition is not None else request.partition
        explorer.set_partition(partition or 0)
        explorer.set_selector(OffsetSelector.latest())
        await explorer.fetch()
        if explorer.fetch_error:
            print(f"Error: {explorer.fetch_error.message}", file=sys.stderr)
            return 1
        _print_rows(explorer.rows(), len(explorer.messages))
    return 0


_COMMANDS = {
    "topics": _topics,
    "topic": _topic,
    "create-topic": _create_topic,
    "delete-topic": _delete_topic,
    "messages": _messages,
    "publish": _publish,
}


async def run_command(args, transport: Optional[httpx.AsyncBaseTransport] = None) -> int:
    async with ConsoleApiClient(args.api, transport=transport) as client:
        try:
            return await _COMMANDS[args.command](client, args)
        except ConsoleError as exc:
            print(f"Error: {exc.message}", file=sys.stderr)
        except httpx.HTTPError as exc:
            print(f"Error: {error_message(exc)}", file=sys.stderr)
        except ValueError as exc:
            print(f"Error: {exc}", file=sys.stderr)
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    if args.command == "serve":
        from topic_console.server import run
        run(host=args.host, port=args.port, reload=args.reload)
        return 0
    LOG.debug("Running %s against %s", args.command, args.api)
    return asyncio.run(run_command(args))


if __name__ == "__main__":
    raise SystemExit(main())
