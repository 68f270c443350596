"""Handles shared by the arq workers.

The store, bucket and Redis client are opened on startup, kept in the arq
``ctx`` and passed explicitly to every job. ``ctx["redis"]`` belongs to arq,
so the change-stream client lives under ``ctx["events_redis"]``.
"""

from __future__ import annotations

import logging
from typing import Any

from iplay.config import Settings
from iplay.database import create_engine, create_session_factory
from iplay.middleware.logging import setup_logging
from iplay.redis_client import create_redis
from iplay.storage import SqlBucket
from iplay.store import RedisChangePublisher, SqlDocumentStore

logger = logging.getLogger(__name__)


async def open_handles(ctx: dict[str, Any], settings: Settings, service: str) -> None:
    """Create engine, document store, bucket and Redis client in ``ctx``."""
    setup_logging(settings, service=service)
    engine = create_engine(settings.database_url)
    session_factory = create_session_factory(engine)
    events_redis = create_redis(settings.redis_url)

    ctx["settings"] = settings
    ctx["engine"] = engine
    ctx["events_redis"] = events_redis
    ctx["store"] = SqlDocumentStore(
        session_factory,
        publisher=RedisChangePublisher(events_redis, maxlen=settings.change_stream_maxlen),
        max_batch_writes=settings.batch_max_writes,
    )
    ctx["bucket"] = SqlBucket(settings.bucket_name, session_factory)


async def close_handles(ctx: dict[str, Any]) -> None:
    """Release whatever ``open_handles`` created."""
    events_redis = ctx.get("events_redis")
    if events_redis is not None:
        await events_redis.aclose()
    engine = ctx.get("engine")
    if engine is not None:
        await engine.dispose()
