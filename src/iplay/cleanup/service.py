"""Cascading cleanup for deleted users and classrooms, plus the weekly sweep.

Each job gathers every affected document first and commits a single batch,
so a cleanup either fully applies or leaves the store untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from iplay import collection_names as cn
from iplay.store import DocumentStore, array_remove, where

logger = logging.getLogger(__name__)

USER_OWNED_COLLECTIONS = (cn.PROGRESS, cn.CERTIFICATES, cn.DAILY_CHALLENGE_ATTEMPTS)
CLASSROOM_OWNED_COLLECTIONS = (cn.JOIN_REQUESTS, cn.ANNOUNCEMENTS, cn.ASSIGNMENTS)

JOIN_REQUEST_RETENTION_DAYS = 30


@dataclass
class CleanupResult:
    deleted: int = 0
    updated: int = 0


async def cleanup_deleted_user(store: DocumentStore, user_id: str) -> CleanupResult:
    """Delete a removed user's records and strip them from every classroom."""
    result = CleanupResult()
    batch = store.batch()

    for collection in USER_OWNED_COLLECTIONS:
        for doc in await store.query(collection, where("userId", "==", user_id)):
            batch.delete(collection, doc.id)
            result.deleted += 1

    for classroom in await store.query(cn.CLASSROOMS, where("studentIds", "array-contains", user_id)):
        batch.update(cn.CLASSROOMS, classroom.id, {"studentIds": array_remove(user_id)})
        result.updated += 1

    await batch.commit()
    logger.info(
        "User %s data cleaned up: %d deleted, %d classrooms updated",
        user_id, result.deleted, result.updated,
    )
    return result


async def cleanup_deleted_classroom(
    store: DocumentStore,
    classroom_id: str,
    snapshot: dict[str, Any] | None,
) -> CleanupResult:
    """Unlink a removed classroom from its students and delete its records.

    ``snapshot`` is the classroom as it was at deletion; a missing or partial
    snapshot only skips the student unlinking.
    """
    result = CleanupResult()
    batch = store.batch()

    student_ids = (snapshot or {}).get("studentIds")
    if isinstance(student_ids, list):
        for student_id in dict.fromkeys(str(s) for s in student_ids if s):
            # An update to a missing user fails the whole batch.
            if await store.get(cn.USERS, student_id) is None:
                continue
            batch.update(cn.USERS, student_id, {"classroomIds": array_remove(classroom_id)})
            result.updated += 1

    for collection in CLASSROOM_OWNED_COLLECTIONS:
        for doc in await store.query(collection, where("classroomId", "==", classroom_id)):
            batch.delete(collection, doc.id)
            result.deleted += 1

    await batch.commit()
    logger.info(
        "Classroom %s data cleaned up: %d deleted, %d students updated",
        classroom_id, result.deleted, result.updated,
    )
    return result


async def sweep_stale_records(
    store: DocumentStore,
    *,
    now: datetime | None = None,
    retention_days: int = JOIN_REQUEST_RETENTION_DAYS,
) -> CleanupResult:
    """Delete join requests resolved before the retention window and expired announcements."""
    if now is None:
        now = datetime.now(timezone.utc)
    cutoff = now - timedelta(days=retention_days)

    old_requests = await store.query(cn.JOIN_REQUESTS, where("resolvedAt", "<", cutoff))
    expired = await store.query(cn.ANNOUNCEMENTS, where("expiresAt", "<", now))

    batch = store.batch()
    for doc in old_requests:
        batch.delete(cn.JOIN_REQUESTS, doc.id)
    for doc in expired:
        batch.delete(cn.ANNOUNCEMENTS, doc.id)
    await batch.commit()

    logger.info(
        "Cleaned up %d old requests and %d expired announcements",
        len(old_requests), len(expired),
    )
    return CleanupResult(deleted=len(old_requests) + len(expired))
