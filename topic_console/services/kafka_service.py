from __future__ import annotations
import logging
import time
import datetime as dt
from typing import Dict, Optional

from kafka import KafkaAdminClient, KafkaConsumer, KafkaProducer, TopicPartition
from kafka.admin import NewTopic
from kafka.errors import (
    KafkaTimeoutError,
    NoBrokersAvailable,
    NodeNotReadyError,
    RequestTimedOutError,
    TopicAlreadyExistsError,
    UnknownTopicOrPartitionError,
)

from topic_console.core.config import settings
from topic_console.core.exceptions import ApiError

logger = logging.getLogger(__name__)

_RETRYABLE = (KafkaTimeoutError, NoBrokersAvailable, NodeNotReadyError)
_TIMEOUTS = (KafkaTimeoutError, RequestTimedOutError)

OFFSET_EARLIEST = "earliest"
OFFSET_LATEST = "latest"


class KafkaService:
    """
    Lazy, retrying adapter around kafka-python Admin + Consumer + Producer APIs.
    Avoids network work at import-time and survives transient broker unavailability.
    """

    def __init__(self, bootstrap: Optional[str] = None) -> None:
        self.bootstrap = bootstrap or settings.kafka_bootstrap
        self._admin: KafkaAdminClient | None = None
        self._producer: KafkaProducer | None = None

    # ---------- bootstrap common kwargs ----------
    def _common_kwargs(self) -> dict:
        kw = dict(
            bootstrap_servers=self.bootstrap,
            client_id="topic-console-api",
            request_timeout_ms=settings.request_timeout_ms,
            metadata_max_age_ms=settings.metadata_max_age_ms,
            api_version_auto_timeout_ms=settings.api_version_auto_timeout_ms,
            security_protocol=settings.security_protocol,
        )
        if settings.kafka_api_version:
            kw["api_version"] = tuple(int(p) for p in settings.kafka_api_version.split("."))
        if settings.security_protocol.startswith("SASL"):
            kw.update(
                sasl_mechanism=settings.sasl_mechanism,
                sasl_plain_username=settings.sasl_plain_username,
                sasl_plain_password=settings.sasl_plain_password,
            )
        if settings.security_protocol.endswith("SSL"):
            kw.update(ssl_cafile=settings.ssl_cafile)
        return kw

    def _ensure_admin(self) -> KafkaAdminClient:
        if self._admin is not None:
            return self._admin

        last_exc: Exception | None = None
        for attempt in range(1, settings.admin_connect_max_tries + 1):
            try:
                self._admin = KafkaAdminClient(**self._common_kwargs())
                return self._admin
            except _RETRYABLE as exc:
                last_exc = exc
                logger.warning("Admin connect attempt %d/%d failed: %s",
                               attempt, settings.admin_connect_max_tries, exc)
                time.sleep(settings.admin_connect_backoff_sec * attempt)
        # give up
        raise ApiError(503, "Kafka brokers unavailable", str(last_exc) if last_exc else None)

    def _ensure_producer(self) -> KafkaProducer:
        if self._producer is None:
            self._producer = KafkaProducer(acks="all", **self._common_kwargs())
        return self._producer

    def _consumer(self, **kw) -> KafkaConsumer:
        return KafkaConsumer(**{**self._common_kwargs(), **kw})

    def close(self) -> None:
        if self._producer is not None:
            self._producer.close()
            self._producer = None
        if self._admin is not None:
            self._admin.close()
            self._admin = None

    # ---------- Topics ----------
    def list_topics(self) -> list[dict]:
        """
        Returns minimal topic info (name, numPartitions, replicationFactor).
        """
        admin = self._ensure_admin()
        names = sorted(admin.list_topics())
        out = []
        for t in admin.describe_topics(names):
            parts = t.get("partitions") or []
            rf = len(parts[0]["replicas"]) if parts else 0
            out.append({"name": t["topic"], "numPartitions": len(parts), "replicationFactor": rf})
        return out

    def topic_detail(self, topic: str) -> dict:
        d = self._describe(topic)
        parts = sorted(d.get("partitions") or [], key=lambda p: p["partition"])
        rf = len(parts[0]["replicas"]) if parts else 0
        return {
            "name": topic,
            "numPartitions": len(parts),
            "replicationFactor": rf,
            "partitions": [
                {
                    "id": p["partition"],
                    "leader": p.get("leader"),
                    "replicas": list(p.get("replicas", [])),
                    "isr": list(p.get("isr", [])),
                }
                for p in parts
            ],
        }

    def create_topic(self, name: str, num_partitions: int, replication_factor: int,
                     config: Dict[str, str] | None = None) -> None:
        new_topic = NewTopic(
            name=name,
            num_partitions=num_partitions,
            replication_factor=replication_factor,
            topic_configs=config or {},
        )
        try:
            self._ensure_admin().create_topics([new_topic])
        except TopicAlreadyExistsError as exc:
            raise ApiError(409, f"Topic already exists: {name}", str(exc)) from exc
        logger.info("Created topic %s (partitions=%d, rf=%d)", name, num_partitions, replication_factor)

    def delete_topic(self, name: str) -> None:
        try:
            self._ensure_admin().delete_topics([name])
        except UnknownTopicOrPartitionError as exc:
            raise ApiError(404, "Topic not found", str(exc)) from exc
        logger.info("Deleted topic %s", name)

    # ---------- Messages Explorer ----------
    def read_messages(self, topic: str, partition: int, offset: str, limit: int) -> list[dict]:
        """
        Read up to *limit* records from one partition.

        *offset* is ``"earliest"``, ``"latest"`` (the newest records before the
        high watermark) or a decimal absolute offset.
        """
        start = _parse_offset(offset)
        tp = TopicPartition(topic, partition)
        c = self._consumer(enable_auto_commit=False, consumer_timeout_ms=1000)
        try:
            self._check_partition(c, topic, partition)
            c.assign([tp])
            if start == OFFSET_EARLIEST:
                c.seek_to_beginning(tp)
            elif start == OFFSET_LATEST:
                low = c.beginning_offsets([tp])[tp]
                high = c.end_offsets([tp])[tp]
                if high <= low:
                    return []
                window = min(limit, settings.latest_window_max)
                c.seek(tp, max(low, high - window))
            else:
                c.seek(tp, start)
            return self._drain(c, limit)
        except _TIMEOUTS as exc:
            raise ApiError(504, "Timed out reading messages from Kafka", str(exc)) from exc
        finally:
            c.close()

    def publish_message(self, topic: str, value: str, key: str | None = None,
                        headers: Dict[str, str] | None = None,
                        partition: int | None = None) -> dict:
        c = self._consumer()
        try:
            known = c.partitions_for_topic(topic)
        finally:
            c.close()
        if known is None:
            raise ApiError(404, "Topic not found", f"topic '{topic}' not found")
        if partition is not None and partition not in known:
            raise ApiError(400, f"partition {partition} does not exist for topic '{topic}'")

        kafka_headers = [(k, v.encode("utf-8")) for k, v in (headers or {}).items()]
        try:
            future = self._ensure_producer().send(
                topic,
                value=value.encode("utf-8"),
                key=key.encode("utf-8") if key else None,
                headers=kafka_headers or None,
                partition=partition,
            )
            meta = future.get(timeout=settings.produce_timeout_sec)
        except _TIMEOUTS as exc:
            raise ApiError(504, "Timed out waiting for delivery report", str(exc)) from exc
        logger.debug("Published to %s[%d]@%d", topic, meta.partition, meta.offset)
        return {"topic": topic, "partition": meta.partition, "offset": meta.offset}

    # ---------- Helpers ----------
    def _describe(self, topic: str) -> dict:
        try:
            described = self._ensure_admin().describe_topics([topic])
        except UnknownTopicOrPartitionError as exc:
            raise ApiError(404, "Topic not found", str(exc)) from exc
        if not described or described[0].get("error_code", 0) != 0:
            raise ApiError(404, "Topic not found", f"topic '{topic}' not found")
        return described[0]

    @staticmethod
    def _check_partition(c: KafkaConsumer, topic: str, partition: int) -> None:
        known = c.partitions_for_topic(topic)
        if known is None:
            raise ApiError(404, "Topic or partition not found", f"topic '{topic}' not found")
        if partition not in known:
            raise ApiError(
                404,
                "Topic or partition not found",
                f"partition {partition} does not exist for topic '{topic}'",
            )

    @staticmethod
    def _drain(c: KafkaConsumer, limit: int) -> list[dict]:
        out: list[dict] = []
        empty_polls = 0
        deadline = time.monotonic() + settings.read_deadline_sec
        while len(out) < limit and time.monotonic() < deadline:
            batch = c.poll(timeout_ms=settings.read_poll_timeout_ms, max_records=limit - len(out))
            if not batch:
                empty_polls += 1
                if empty_polls >= settings.read_max_empty_polls:
                    break
                continue
            empty_polls = 0
            for _, records in batch.items():
                out.extend(_record_to_dict(r) for r in records)
        out.sort(key=lambda m: m["offset"])
        return out[:limit]


def _parse_offset(offset: str) -> str | int:
    if offset in (OFFSET_EARLIEST, OFFSET_LATEST):
        return offset
    try:
        value = int(offset)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid offset parameter: {offset!r}") from None
    if value < 0:
        raise ValueError(f"Invalid offset parameter: {offset!r}")
    return value


def _decode(raw: bytes | None) -> Optional[str]:
    if raw is None:
        return None
    return raw.decode("utf-8", errors="replace")


def _record_to_dict(r) -> dict:
    headers = {k: _decode(v) or "" for k, v in (r.headers or [])}
    return {
        "topic": r.topic,
        "partition": r.partition,
        "offset": r.offset,
        "timestamp": _fmt_iso(r.timestamp),
        "key": _decode(r.key),
        "value": _decode(r.value),
        "headers": headers or None,
    }


def _fmt_iso(ts_ms: Optional[int]) -> str:
    # brokers report -1 when the record carries no timestamp
    ms = ts_ms if ts_ms is not None and ts_ms >= 0 else 0
    return dt.datetime.fromtimestamp(ms / 1000.0, tz=dt.timezone.utc).isoformat()
