"""Topic ownership record and drained message models."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TopicRecord(BaseModel):
    """Immutable ownership record for one broker topic."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = Field(default=None, description="Store-assigned identifier")
    name: str = Field(..., examples=["u1-orders"], description="Broker-qualified topic name")
    owner_id: str
    short_name: str = Field(..., examples=["orders"])
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Message(BaseModel):
    """One (key, value) pair observed during a drain window."""

    model_config = ConfigDict(frozen=True)

    key: Optional[str] = None
    value: Optional[str] = None


class TopicMessages(BaseModel):
    """A topic's qualified name with the messages drained from it."""

    topic: str
    messages: List[Message] = Field(default_factory=list)


class PublishResult(BaseModel):
    topic: str
    partition: int
    offset: int
