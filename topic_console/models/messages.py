from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TopicMessage(BaseModel):
    """One record read from a partition. Timestamps accept ISO-8601 or epoch ms."""

    topic: Optional[str] = None
    partition: int
    offset: int = Field(..., ge=0)
    timestamp: datetime
    key: Optional[str] = None
    value: Optional[str] = None
    headers: Optional[dict[str, str]] = None


class MessagesPage(BaseModel):
    topic: str
    partition: int
    offset: str
    count: int
    messages: list[TopicMessage]


class PublishMessageRequest(BaseModel):
    key: Optional[str] = None
    value: str = Field(..., min_length=1)
    headers: Optional[dict[str, str]] = None
    partition: Optional[int] = Field(None, ge=0, description="Omit to let the broker pick")


class PublishAck(BaseModel):
    message: str = "Message published successfully"
    topic: Optional[str] = None
    partition: Optional[int] = None
    offset: Optional[int] = None
