# topic_console/api/topics.py
"""Topic CRUD and message explorer/publish endpoints."""
from __future__ import annotations

import contextlib
from functools import lru_cache

from fastapi import APIRouter, Body, Depends, Path, Query, status

from topic_console.api.metrics import messages_published, messages_read, request_errors
from topic_console.core.exceptions import ApiError
from topic_console.models.messages import MessagesPage, PublishAck, PublishMessageRequest
from topic_console.models.topics import TopicCreateRequest
from topic_console.services.kafka_service import KafkaService

router = APIRouter(prefix="/topics", tags=["topics"])


# ---------- dependency helpers -------------------------------------------------
@lru_cache
def get_kafka_service() -> KafkaService:
    """Process-wide service; connections are opened lazily on first use."""
    return KafkaService()


@contextlib.contextmanager
def _counted(operation: str):
    try:
        yield
    except ApiError as exc:
        request_errors.labels(operation=operation, status=str(exc.status_code)).inc()
        raise


# ---------- routes -------------------------------------------------------------
@router.get("")
def list_topics(svc: KafkaService = Depends(get_kafka_service)) -> dict:
    with _counted("list_topics"):
        return {"topics": svc.list_topics()}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_topic(
    payload: TopicCreateRequest = Body(...),
    svc: KafkaService = Depends(get_kafka_service),
) -> dict:
    with _counted("create_topic"):
        svc.create_topic(payload.name, payload.numPartitions, payload.replicationFactor, payload.config)
    try:
        topic = svc.topic_detail(payload.name)
    except ApiError:
        # metadata can lag right after creation
        topic = {
            "name": payload.name,
            "numPartitions": payload.numPartitions,
            "replicationFactor": payload.replicationFactor,
        }
    return {"message": "Topic created successfully", "topic": topic}


@router.get("/{topic}")
def topic_detail(
    topic: str = Path(..., description="Topic name"),
    svc: KafkaService = Depends(get_kafka_service),
) -> dict:
    with _counted("topic_detail"):
        return {"topic": svc.topic_detail(topic)}


@router.delete("/{topic}")
def delete_topic(
    topic: str = Path(..., pattern=r"^[\w.\-]+$"),
    svc: KafkaService = Depends(get_kafka_service),
) -> dict:
    with _counted("delete_topic"):
        svc.delete_topic(topic)
    return {"message": "Topic deleted successfully", "topic": topic}


@router.get("/{topic}/messages", response_model=MessagesPage)
def read_messages(
    topic: str,
    partition: int = Query(0, ge=0, description="Partition number"),
    offset: str = Query("earliest", description='"earliest", "latest" or an absolute offset'),
    limit: int = Query(100, ge=1, le=1000),
    svc: KafkaService = Depends(get_kafka_service),
) -> dict:
    with _counted("read_messages"):
        out = svc.read_messages(topic=topic, partition=partition, offset=offset, limit=limit)
    messages_read.labels(topic=topic).inc(len(out))
    return {"topic": topic, "partition": partition, "offset": offset, "count": len(out), "messages": out}


@router.post("/{topic}/messages", response_model=PublishAck)
def publish_message(
    topic: str,
    payload: PublishMessageRequest = Body(...),
    svc: KafkaService = Depends(get_kafka_service),
) -> dict:
    with _counted("publish_message"):
        meta = svc.publish_message(
            topic,
            payload.value,
            key=payload.key,
            headers=payload.headers,
            partition=payload.partition,
        )
    messages_published.labels(topic=topic).inc()
    return {"message": "Message published successfully", **meta}
