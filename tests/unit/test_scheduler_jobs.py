"""Unit tests for the scheduled arq jobs."""

from datetime import datetime, timedelta, timezone

import pytest

from iplay import collection_names as cn
from iplay.config import Settings
from iplay.storage import InMemoryBucket
from iplay.store import InMemoryDocumentStore
from iplay.workers.scheduler import (
    WorkerSettings,
    daily_challenge_generation,
    daily_leaderboard_update,
    weekly_backup,
    weekly_cleanup,
)


@pytest.fixture
def ctx() -> dict:
    return {
        "settings": Settings(log_format="console", backup_collections=["users"]),
        "store": InMemoryDocumentStore(),
        "bucket": InMemoryBucket(),
    }


def broken_store(monkeypatch, store: InMemoryDocumentStore) -> None:
    async def offline(*args, **kwargs):
        raise RuntimeError("store offline")

    monkeypatch.setattr(store, "list_documents", offline)
    monkeypatch.setattr(store, "query", offline)
    monkeypatch.setattr(store, "set", offline)


class TestDailyLeaderboardUpdate:
    @pytest.mark.asyncio
    async def test_writes_national_boards(self, ctx):
        ctx["store"].seed(cn.USERS, "u1", {"displayName": "Asha", "totalXP": 40})

        report = await daily_leaderboard_update(ctx)

        assert report is not None
        assert "national_all_allTime" in report.written
        assert "national_solo_allTime" in report.written

    @pytest.mark.asyncio
    async def test_failure_is_swallowed(self, ctx, monkeypatch):
        broken_store(monkeypatch, ctx["store"])
        assert await daily_leaderboard_update(ctx) is None


class TestDailyChallengeGeneration:
    @pytest.mark.asyncio
    async def test_stores_challenge(self, ctx):
        challenge_id = await daily_challenge_generation(ctx)

        assert challenge_id is not None
        assert challenge_id.startswith("challenge_")
        stored = await ctx["store"].list_documents(cn.DAILY_CHALLENGES)
        assert [doc.id for doc in stored] == [challenge_id]
        assert len(stored[0].data["questions"]) == 5

    @pytest.mark.asyncio
    async def test_failure_is_swallowed(self, ctx, monkeypatch):
        broken_store(monkeypatch, ctx["store"])
        assert await daily_challenge_generation(ctx) is None


class TestWeeklyJobs:
    @pytest.mark.asyncio
    async def test_cleanup_deletes_old_join_requests(self, ctx):
        now = datetime.now(timezone.utc)
        ctx["store"].seed(cn.JOIN_REQUESTS, "old", {"classroomId": "c1", "resolvedAt": now - timedelta(days=60)})
        ctx["store"].seed(cn.JOIN_REQUESTS, "recent", {"classroomId": "c1", "resolvedAt": now - timedelta(days=2)})

        assert await weekly_cleanup(ctx) == 1
        remaining = await ctx["store"].list_documents(cn.JOIN_REQUESTS)
        assert [doc.id for doc in remaining] == ["recent"]

    @pytest.mark.asyncio
    async def test_cleanup_failure_returns_zero(self, ctx, monkeypatch):
        broken_store(monkeypatch, ctx["store"])
        assert await weekly_cleanup(ctx) == 0

    @pytest.mark.asyncio
    async def test_backup_uses_configured_collections(self, ctx):
        ctx["store"].seed(cn.USERS, "u1", {"displayName": "Asha"})
        ctx["store"].seed(cn.SCHOOLS, "s1", {"name": "Green Valley"})

        assert await weekly_backup(ctx) == {"users": 1}
        assert len(ctx["bucket"].paths()) == 1

    @pytest.mark.asyncio
    async def test_backup_failure_returns_empty(self, ctx, monkeypatch):
        broken_store(monkeypatch, ctx["store"])
        assert await weekly_backup(ctx) == {}


def test_cron_table_covers_every_job():
    scheduled = {job.coroutine.__name__ for job in WorkerSettings.cron_jobs}
    assert scheduled == {
        "daily_leaderboard_update",
        "daily_challenge_generation",
        "weekly_cleanup",
        "weekly_backup",
    }
