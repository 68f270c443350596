"""Trigger arq worker: consumes document change events from Redis Streams.

Usage: arq iplay.workers.settings.TriggerWorkerSettings
"""

from __future__ import annotations

import asyncio
import logging

import redis.asyncio as aioredis
from pydantic import ValidationError

from iplay.config import get_settings
from iplay.store import ChangeEvent
from iplay.triggers.dispatcher import TriggerDispatcher
from iplay.workers.context import close_handles, open_handles

logger = logging.getLogger(__name__)

CONSUMER_GROUP = "trigger-consumers"
CONSUMER_JOB_ID = "consume-change-events"


async def create_consumer_groups(redis_client: aioredis.Redis, streams: list[str]) -> None:
    """Create the consumer group on every stream (idempotent)."""
    for stream in streams:
        try:
            await redis_client.xgroup_create(stream, CONSUMER_GROUP, id="0", mkstream=True)
            logger.info("Created consumer group %s for %s", CONSUMER_GROUP, stream)
        except aioredis.ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise


async def trigger_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Open store, bucket and Redis handles; build the dispatcher; start the consumer job."""
    settings = get_settings()
    await open_handles(ctx, settings, "triggers")
    dispatcher = TriggerDispatcher(ctx["store"], ctx["bucket"], verify_base_url=settings.verify_base_url)
    await create_consumer_groups(ctx["events_redis"], dispatcher.streams)
    ctx["dispatcher"] = dispatcher
    ctx["consumer_name"] = settings.trigger_consumer_name
    # A fixed job id keeps a single consumer loop per worker pool.
    await ctx["redis"].enqueue_job("consume_change_events", _job_id=CONSUMER_JOB_ID)
    logger.info("Trigger worker started (consumer=%s)", settings.trigger_consumer_name)


async def trigger_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    await close_handles(ctx)
    logger.info("Trigger worker shut down")


async def process_messages(
    redis_client: aioredis.Redis,
    dispatcher: TriggerDispatcher,
    stream: str,
    messages: list[tuple[str, dict[str, str]]],
) -> int:
    """Dispatch and acknowledge one stream's messages. Returns the number handled."""
    handled = 0
    for msg_id, raw_data in messages:
        try:
            event = ChangeEvent.model_validate_json(raw_data.get("data", "{}"))
        except ValidationError:
            logger.error("Dropping malformed event %s from %s", msg_id, stream)
        else:
            if await dispatcher.dispatch(event):
                handled += 1
        await redis_client.xack(stream, CONSUMER_GROUP, msg_id)
    return handled


async def consume_change_events(ctx: dict) -> None:  # type: ignore[type-arg]
    """Main consumer loop: reads change events and runs their triggers."""
    redis_client: aioredis.Redis = ctx["events_redis"]
    dispatcher: TriggerDispatcher = ctx["dispatcher"]
    streams = {s: ">" for s in dispatcher.streams}

    while True:
        try:
            events = await redis_client.xreadgroup(
                groupname=CONSUMER_GROUP,
                consumername=ctx["consumer_name"],
                streams=streams,  # type: ignore[arg-type]
                count=100,
                block=5000,
            )
        except aioredis.ResponseError as e:
            logger.error("XREADGROUP error: %s", e)
            await asyncio.sleep(1)
            continue

        if not events:
            continue

        for stream, messages in events:
            stream_str = stream if isinstance(stream, str) else stream.decode()
            await process_messages(redis_client, dispatcher, stream_str, messages)


class TriggerWorkerSettings:
    """arq worker settings for the change-event consumer."""

    functions = [consume_change_events]
    on_startup = trigger_startup
    on_shutdown = trigger_shutdown
    max_jobs = 1
    job_timeout = 365 * 24 * 3600  # consume_change_events runs until shutdown
    keep_result = 0
    allow_abort_jobs = True
