"""Leaderboard aggregation: full recompute of every cached leaderboard.

Partitions:
- national / all:   every user with XP
- national / solo:  users with XP and no classroom membership
- state / all:      one per distinct non-empty ``state``
- school / all:     one per school with at least one member with XP
- classroom / all:  one per classroom with at least one member with XP

Users are ranked by totalXP DESC, then by user id ASC as the tiebreaker,
so unchanged input always yields identical entries.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from iplay import collection_names as cn
from iplay.leaderboards.schemas import LeaderboardCacheDocument, LeaderboardEntry
from iplay.store import Document, DocumentStore

logger = logging.getLogger(__name__)

SCOPE_NATIONAL = "national"
SCOPE_STATE = "state"
SCOPE_SCHOOL = "school"
SCOPE_CLASSROOM = "classroom"
GROUPED_SCOPES = frozenset({SCOPE_STATE, SCOPE_SCHOOL, SCOPE_CLASSROOM})

AUDIENCE_ALL = "all"
AUDIENCE_SOLO = "solo"

PERIOD_ALL_TIME = "allTime"

DEFAULT_LIMIT = 100
ANONYMOUS_NAME = "Anonymous"


def cache_document_id(
    scope: str,
    audience: str,
    period: str,
    identifier: str | None = None,
) -> str:
    """Deterministic cache key, e.g. 'national_all_allTime' or 'state_all_allTime_Kerala'."""
    return "_".join(part for part in (scope, audience, period, identifier) if part)


def user_score(user: Document) -> int | float:
    """The user's totalXP, treating missing or non-numeric values as 0."""
    value = user.get("totalXP")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def qualifies(user: Document) -> bool:
    return user_score(user) > 0


def is_solo(user: Document) -> bool:
    return not user.get("classroomIds")


def build_entry(user: Document, rank: int) -> LeaderboardEntry:
    """Snapshot a user's public fields for a leaderboard row."""
    return LeaderboardEntry(
        user_id=user.id,
        display_name=user.get("displayName") or ANONYMOUS_NAME,
        avatar_url=user.get("avatarUrl") or None,
        total_xp=user_score(user),
        rank=rank,
    )


def rank_users(users: Iterable[Document], limit: int = DEFAULT_LIMIT) -> list[LeaderboardEntry]:
    """Rank qualifying users and keep the top ``limit``."""
    ranked = sorted(
        (u for u in users if qualifies(u)),
        key=lambda u: (-user_score(u), u.id),
    )
    return [build_entry(user, idx + 1) for idx, user in enumerate(ranked[:limit])]


@dataclass
class Partition:
    scope: str
    audience: str
    entries: list[LeaderboardEntry]
    identifier: str | None = None
    period: str = PERIOD_ALL_TIME

    @property
    def doc_id(self) -> str:
        return cache_document_id(self.scope, self.audience, self.period, self.identifier)

    def to_document(self, now: datetime) -> dict[str, Any]:
        return LeaderboardCacheDocument(
            id=self.doc_id,
            scope=self.scope,
            type=self.audience,
            period=self.period,
            identifier=self.identifier,
            entries=self.entries,
            last_updated_at=now,
        ).model_dump(by_alias=True)


def compute_partitions(
    users: list[Document],
    schools: list[Document],
    classrooms: list[Document],
    limit: int = DEFAULT_LIMIT,
) -> list[Partition]:
    """Compute every leaderboard partition in memory.

    National partitions are always produced; grouped partitions only when
    they have at least one qualifying member.
    """
    qualifying = [u for u in users if qualifies(u)]

    partitions = [
        Partition(SCOPE_NATIONAL, AUDIENCE_ALL, rank_users(qualifying, limit)),
        Partition(SCOPE_NATIONAL, AUDIENCE_SOLO, rank_users([u for u in qualifying if is_solo(u)], limit)),
    ]

    by_state: dict[str, list[Document]] = defaultdict(list)
    by_school: dict[str, list[Document]] = defaultdict(list)
    by_classroom: dict[str, list[Document]] = defaultdict(list)
    for user in qualifying:
        state = user.get("state")
        if isinstance(state, str) and state:
            by_state[state].append(user)
        school_tag = user.get("schoolTag")
        if school_tag:
            by_school[str(school_tag)].append(user)
        for classroom_id in {str(c) for c in user.get("classroomIds") or []}:
            by_classroom[classroom_id].append(user)

    for state in sorted(by_state):
        partitions.append(Partition(SCOPE_STATE, AUDIENCE_ALL, rank_users(by_state[state], limit), state))

    for school in sorted(schools, key=lambda d: d.id):
        members = by_school.get(school.id)
        if members:
            partitions.append(Partition(SCOPE_SCHOOL, AUDIENCE_ALL, rank_users(members, limit), school.id))

    for classroom in sorted(classrooms, key=lambda d: d.id):
        members = by_classroom.get(classroom.id)
        if members:
            partitions.append(
                Partition(SCOPE_CLASSROOM, AUDIENCE_ALL, rank_users(members, limit), classroom.id)
            )

    return partitions


@dataclass
class AggregationReport:
    written: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    pruned: list[str] = field(default_factory=list)


async def refresh_leaderboards(
    store: DocumentStore,
    *,
    limit: int = DEFAULT_LIMIT,
    prune_stale: bool = True,
    now: datetime | None = None,
) -> AggregationReport:
    """Recompute and overwrite every leaderboard cache document.

    A failure reading users, schools or classrooms propagates and aborts the
    run. A failure writing one partition is logged and the rest continue.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    users = await store.list_documents(cn.USERS)
    schools = await store.list_documents(cn.SCHOOLS)
    classrooms = await store.list_documents(cn.CLASSROOMS)

    partitions = compute_partitions(users, schools, classrooms, limit)
    report = AggregationReport()

    for partition in partitions:
        try:
            await store.set(cn.LEADERBOARD_CACHE, partition.doc_id, partition.to_document(now))
            report.written.append(partition.doc_id)
        except Exception:
            logger.exception("Failed to write leaderboard %s", partition.doc_id)
            report.failed.append(partition.doc_id)

    logger.info(
        "Leaderboards refreshed: %d written, %d failed (%d users)",
        len(report.written), len(report.failed), len(users),
    )

    if prune_stale:
        report.pruned = await prune_stale_leaderboards(store, {p.doc_id for p in partitions})

    return report


async def prune_stale_leaderboards(store: DocumentStore, current_ids: set[str]) -> list[str]:
    """Delete grouped cache documents whose partition no longer has members."""
    pruned: list[str] = []
    try:
        cached = await store.list_documents(cn.LEADERBOARD_CACHE)
    except Exception:
        logger.exception("Failed to list leaderboard cache for pruning")
        return pruned

    for doc in cached:
        if doc.get("scope") not in GROUPED_SCOPES or doc.id in current_ids:
            continue
        try:
            await store.delete(cn.LEADERBOARD_CACHE, doc.id)
            pruned.append(doc.id)
        except Exception:
            logger.exception("Failed to prune stale leaderboard %s", doc.id)

    if pruned:
        logger.info("Pruned %d stale leaderboards", len(pruned))
    return pruned
