"""Scheduler arq worker: daily and weekly maintenance jobs.

Cron times are wall-clock in the configured timezone (Asia/Kolkata by default).
Every job logs and swallows its own failure; nothing is retried.

Usage: arq iplay.workers.settings.WorkerSettings
"""

from __future__ import annotations

import logging
from typing import Any

from arq import cron

from iplay.backups import run_backup
from iplay.challenges import generate_daily_challenge
from iplay.cleanup import sweep_stale_records
from iplay.config import Settings, get_settings
from iplay.leaderboards import AggregationReport, refresh_leaderboards
from iplay.workers.context import close_handles, open_handles

logger = logging.getLogger(__name__)


async def scheduler_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Open store, bucket and Redis handles on worker startup."""
    await open_handles(ctx, get_settings(), "scheduler")
    logger.info("Scheduler worker started")


async def scheduler_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    await close_handles(ctx)
    logger.info("Scheduler worker shut down")


async def daily_leaderboard_update(ctx: dict) -> AggregationReport | None:  # type: ignore[type-arg]
    """Scheduled task: rebuild every leaderboard cache document at 02:00."""
    settings: Settings = ctx["settings"]
    try:
        report = await refresh_leaderboards(
            ctx["store"],
            limit=settings.leaderboard_size,
            prune_stale=settings.prune_stale_leaderboards,
        )
    except Exception:
        logger.exception("Failed to update leaderboards")
        return None
    logger.info(
        "Leaderboards updated: %d written, %d failed, %d pruned",
        len(report.written), len(report.failed), len(report.pruned),
    )
    return report


async def daily_challenge_generation(ctx: dict) -> str | None:  # type: ignore[type-arg]
    """Scheduled task: create today's challenge at 00:01."""
    settings: Settings = ctx["settings"]
    try:
        challenge: dict[str, Any] = await generate_daily_challenge(
            ctx["store"],
            settings.tz,
            question_count=settings.challenge_question_count,
            xp_reward=settings.challenge_xp_reward,
        )
    except Exception:
        logger.exception("Failed to generate daily challenge")
        return None
    return challenge["id"]


async def weekly_cleanup(ctx: dict) -> int:  # type: ignore[type-arg]
    """Scheduled task: Sunday 03:00 sweep of old join requests and expired announcements."""
    settings: Settings = ctx["settings"]
    try:
        result = await sweep_stale_records(ctx["store"], retention_days=settings.join_request_retention_days)
    except Exception:
        logger.exception("Failed to run weekly cleanup")
        return 0
    return result.deleted


async def weekly_backup(ctx: dict) -> dict[str, int]:  # type: ignore[type-arg]
    """Scheduled task: Sunday 03:00 JSON snapshot of the core collections."""
    settings: Settings = ctx["settings"]
    try:
        return await run_backup(ctx["store"], ctx["bucket"], settings.backup_collections)
    except Exception:
        logger.exception("Backup failed")
        return {}


class WorkerSettings:
    """arq worker settings for the scheduled jobs."""

    functions = [daily_leaderboard_update, daily_challenge_generation, weekly_cleanup, weekly_backup]
    cron_jobs = [
        cron(daily_leaderboard_update, hour=2, minute=0),
        cron(daily_challenge_generation, hour=0, minute=1),
        cron(weekly_cleanup, weekday="sun", hour=3, minute=0),
        cron(weekly_backup, weekday="sun", hour=3, minute=0),
    ]
    on_startup = scheduler_startup
    on_shutdown = scheduler_shutdown
    timezone = get_settings().tz
    max_jobs = 4
    job_timeout = 600
    allow_abort_jobs = True
