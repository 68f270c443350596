"""Document change events and their Redis Streams publisher.

Each committed write produces one event on the stream
``documents:{collection}:{kind}``. Trigger workers consume these streams
with a consumer group (see ``iplay.triggers.worker``).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Literal

import redis.asyncio as redis
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

ChangeKind = Literal["created", "updated", "deleted"]


def stream_name(collection: str, kind: str) -> str:
    """Stream key for a collection/kind pair, e.g. ``documents:users:deleted``."""
    return f"documents:{collection}:{kind}"


class ChangeEvent(BaseModel):
    """A committed change to one document, with before/after snapshots."""

    collection: str
    document_id: str
    kind: ChangeKind
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    ts: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def stream(self) -> str:
        return stream_name(self.collection, self.kind)


class ChangePublisher(ABC):
    """Receives change events after a batch commits."""

    @abstractmethod
    async def publish(self, event: ChangeEvent) -> None:
        ...


class RedisChangePublisher(ChangePublisher):
    """Publishes change events to Redis Streams, capped with MAXLEN."""

    def __init__(self, client: redis.Redis, maxlen: int = 100_000) -> None:
        self._client = client
        self._maxlen = maxlen
        self._events_published = 0
        self._events_failed = 0

    async def publish(self, event: ChangeEvent) -> None:
        fields = {
            "kind": event.kind,
            "collection": event.collection,
            "document_id": event.document_id,
            "ts": event.ts.isoformat(),
            "data": event.model_dump_json(),
        }
        try:
            await self._client.xadd(
                event.stream,
                fields,  # type: ignore[arg-type]
                maxlen=self._maxlen,
                approximate=True,
            )
            self._events_published += 1
        except redis.RedisError:
            self._events_failed += 1
            logger.exception("Failed to publish to Redis stream %s", event.stream)

    @property
    def stats(self) -> dict[str, int]:
        """Return publisher statistics."""
        return {
            "events_published": self._events_published,
            "events_failed": self._events_failed,
        }
