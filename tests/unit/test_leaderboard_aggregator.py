"""Unit tests for leaderboard aggregation."""

from datetime import datetime, timezone

import pytest

from iplay import collection_names as cn
from iplay.leaderboards import cache_document_id, compute_partitions, rank_users, refresh_leaderboards
from iplay.store import Document, InMemoryDocumentStore

NOW = datetime(2026, 3, 1, 20, 30, tzinfo=timezone.utc)


def user(uid: str, xp, **fields) -> Document:
    return Document(cn.USERS, uid, {"displayName": uid.upper(), "totalXP": xp, **fields})


def entry_ids(entries) -> list[tuple[str, int]]:
    return [(e.user_id, e.rank) for e in entries]


class TestCacheDocumentId:
    def test_national_partition(self):
        assert cache_document_id("national", "all", "allTime") == "national_all_allTime"

    def test_grouped_partition_appends_identifier(self):
        assert cache_document_id("state", "all", "allTime", "Kerala") == "state_all_allTime_Kerala"

    def test_empty_identifier_is_skipped(self):
        assert cache_document_id("national", "solo", "allTime", "") == "national_solo_allTime"


class TestRankUsers:
    def test_orders_by_score_descending(self):
        entries = rank_users([user("a", 10), user("b", 30), user("c", 20)])
        assert entry_ids(entries) == [("b", 1), ("c", 2), ("a", 3)]

    def test_ties_break_on_user_id(self):
        entries = rank_users([user("zed", 50), user("amy", 50), user("max", 50)])
        assert [e.user_id for e in entries] == ["amy", "max", "zed"]

    def test_excludes_zero_missing_and_non_numeric_scores(self):
        users = [
            user("a", 0),
            Document(cn.USERS, "b", {"displayName": "B"}),
            user("c", "lots"),
            user("d", True),
            user("e", 5),
        ]
        assert entry_ids(rank_users(users)) == [("e", 1)]

    def test_truncates_to_limit_with_contiguous_ranks(self):
        users = [user(f"u{i:03d}", i + 1) for i in range(150)]
        entries = rank_users(users, limit=100)
        assert len(entries) == 100
        assert [e.rank for e in entries] == list(range(1, 101))
        scores = [e.total_xp for e in entries]
        assert scores == sorted(scores, reverse=True)
        assert entries[0].total_xp == 150

    def test_missing_display_name_is_anonymous(self):
        entries = rank_users([Document(cn.USERS, "a", {"totalXP": 5, "displayName": ""})])
        assert entries[0].display_name == "Anonymous"
        assert entries[0].avatar_url is None


class TestComputePartitions:
    def test_solo_and_classroom_scenario(self):
        users = [user("A", 500, classroomIds=["C1"]), user("B", 300)]
        classrooms = [Document(cn.CLASSROOMS, "C1", {})]

        partitions = {p.doc_id: p for p in compute_partitions(users, [], classrooms)}

        assert entry_ids(partitions["national_all_allTime"].entries) == [("A", 1), ("B", 2)]
        assert entry_ids(partitions["national_solo_allTime"].entries) == [("B", 1)]
        assert entry_ids(partitions["classroom_all_allTime_C1"].entries) == [("A", 1)]

    def test_classroom_members_never_appear_in_solo(self):
        users = [
            user("a", 10, classroomIds=["c1", "c2"]),
            user("b", 20, classroomIds=[]),
            user("c", 30),
        ]
        partitions = {p.doc_id: p for p in compute_partitions(users, [], [])}
        solo = [e.user_id for e in partitions["national_solo_allTime"].entries]
        assert solo == ["c", "b"]

    def test_national_partitions_exist_without_users(self):
        ids = [p.doc_id for p in compute_partitions([], [], [])]
        assert ids == ["national_all_allTime", "national_solo_allTime"]

    def test_state_and_school_grouping(self):
        users = [
            user("a", 10, state="Kerala", schoolTag="s1"),
            user("b", 20, state="Kerala"),
            user("c", 30, state="Goa", schoolTag="s1"),
            user("d", 40, state=""),
        ]
        schools = [Document(cn.SCHOOLS, "s1", {}), Document(cn.SCHOOLS, "s2", {})]
        partitions = {p.doc_id: p for p in compute_partitions(users, schools, [])}

        assert entry_ids(partitions["state_all_allTime_Kerala"].entries) == [("b", 1), ("a", 2)]
        assert entry_ids(partitions["state_all_allTime_Goa"].entries) == [("c", 1)]
        assert entry_ids(partitions["school_all_allTime_s1"].entries) == [("c", 1), ("a", 2)]
        assert "school_all_allTime_s2" not in partitions
        assert "state_all_allTime" not in partitions

    def test_unknown_classroom_ids_produce_no_partition(self):
        users = [user("a", 10, classroomIds=["ghost"])]
        ids = [p.doc_id for p in compute_partitions(users, [], [])]
        assert "classroom_all_allTime_ghost" not in ids

    def test_duplicate_classroom_ids_count_once(self):
        users = [user("a", 10, classroomIds=["c1", "c1"])]
        classrooms = [Document(cn.CLASSROOMS, "c1", {})]
        partitions = {p.doc_id: p for p in compute_partitions(users, [], classrooms)}
        assert entry_ids(partitions["classroom_all_allTime_c1"].entries) == [("a", 1)]


class TestRefreshLeaderboards:
    @pytest.mark.asyncio
    async def test_writes_cache_documents(self):
        store = InMemoryDocumentStore()
        store.seed(cn.USERS, "A", {"displayName": "Asha", "totalXP": 500, "classroomIds": ["C1"]})
        store.seed(cn.USERS, "B", {"displayName": "Bala", "totalXP": 300, "avatarUrl": "https://x/b.png"})
        store.seed(cn.CLASSROOMS, "C1", {"name": "7A"})

        report = await refresh_leaderboards(store, now=NOW)

        assert sorted(report.written) == [
            "classroom_all_allTime_C1",
            "national_all_allTime",
            "national_solo_allTime",
        ]
        doc = (await store.get(cn.LEADERBOARD_CACHE, "national_all_allTime")).data
        assert doc["scope"] == "national"
        assert doc["type"] == "all"
        assert doc["period"] == "allTime"
        assert doc["lastUpdatedAt"] == NOW
        assert doc["entries"][1] == {
            "userId": "B",
            "displayName": "Bala",
            "avatarUrl": "https://x/b.png",
            "totalXP": 300,
            "rank": 2,
        }

    @pytest.mark.asyncio
    async def test_rerun_is_identical_except_timestamp(self):
        store = InMemoryDocumentStore()
        for i in range(20):
            store.seed(cn.USERS, f"u{i}", {"displayName": f"U{i}", "totalXP": (i * 7) % 5, "state": "Goa"})

        await refresh_leaderboards(store, now=NOW)
        first = store.dump(cn.LEADERBOARD_CACHE)
        await refresh_leaderboards(store, now=datetime(2026, 3, 2, tzinfo=timezone.utc))
        second = store.dump(cn.LEADERBOARD_CACHE)

        assert first.keys() == second.keys()
        for doc_id in first:
            first[doc_id].pop("lastUpdatedAt")
            second[doc_id].pop("lastUpdatedAt")
            assert first[doc_id] == second[doc_id]

    @pytest.mark.asyncio
    async def test_prunes_grouped_partitions_that_lost_members(self):
        store = InMemoryDocumentStore()
        store.seed(cn.USERS, "a", {"displayName": "A", "totalXP": 10, "state": "Goa"})
        await refresh_leaderboards(store, now=NOW)
        assert await store.get(cn.LEADERBOARD_CACHE, "state_all_allTime_Goa") is not None

        await store.update(cn.USERS, "a", {"totalXP": 0})
        report = await refresh_leaderboards(store, now=NOW)

        assert report.pruned == ["state_all_allTime_Goa"]
        assert await store.get(cn.LEADERBOARD_CACHE, "state_all_allTime_Goa") is None
        assert (await store.get(cn.LEADERBOARD_CACHE, "national_all_allTime")).data["entries"] == []

    @pytest.mark.asyncio
    async def test_pruning_can_be_disabled(self):
        store = InMemoryDocumentStore()
        store.seed(cn.LEADERBOARD_CACHE, "state_all_allTime_Goa", {"scope": "state", "entries": []})
        report = await refresh_leaderboards(store, prune_stale=False, now=NOW)
        assert report.pruned == []
        assert await store.get(cn.LEADERBOARD_CACHE, "state_all_allTime_Goa") is not None

    @pytest.mark.asyncio
    async def test_failed_partition_write_does_not_stop_others(self, monkeypatch):
        store = InMemoryDocumentStore()
        store.seed(cn.USERS, "a", {"displayName": "A", "totalXP": 10})
        original_set = store.set

        async def flaky_set(collection, doc_id, data):
            if doc_id == "national_all_allTime":
                raise RuntimeError("write failed")
            await original_set(collection, doc_id, data)

        monkeypatch.setattr(store, "set", flaky_set)
        report = await refresh_leaderboards(store, now=NOW)

        assert report.failed == ["national_all_allTime"]
        assert report.written == ["national_solo_allTime"]

    @pytest.mark.asyncio
    async def test_read_failure_propagates(self, monkeypatch):
        store = InMemoryDocumentStore()

        async def broken(collection):
            raise RuntimeError("store offline")

        monkeypatch.setattr(store, "list_documents", broken)
        with pytest.raises(RuntimeError):
            await refresh_leaderboards(store, now=NOW)
