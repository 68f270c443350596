"""Admin moderation: banning users and resolving content reports."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog

from iplay import collection_names as cn
from iplay.callables.access import require_admin, require_caller
from iplay.callables.errors import CallableError, callable_operation
from iplay.callables.schemas import OperationResult
from iplay.identity import CallerIdentity
from iplay.store import DocumentStore, array_remove, where

logger = structlog.get_logger()

DEFAULT_BAN_REASON = "Violation of terms"
DEFAULT_REPORT_BAN_REASON = "Policy violation"
MODERATION_ACTIONS = ("dismiss", "delete", "ban", "other")


def ban_fields(actor_id: str, reason: str, now: datetime) -> dict[str, Any]:
    return {
        "isBanned": True,
        "bannedAt": now,
        "bannedBy": actor_id,
        "banReason": reason,
    }


@callable_operation("banUser")
async def ban_user(
    store: DocumentStore,
    caller: CallerIdentity | None,
    target_user_id: str | None,
    reason: str | None = None,
    *,
    now: datetime | None = None,
) -> OperationResult:
    """Flag a user as banned and remove them from every classroom, atomically."""
    caller = require_caller(caller)
    if not target_user_id:
        raise CallableError("invalid-argument", "Missing targetUserId")

    await require_admin(store, caller)

    if await store.get(cn.USERS, target_user_id) is None:
        raise CallableError("not-found", "User not found")

    if now is None:
        now = datetime.now(timezone.utc)

    batch = store.batch()
    batch.update(cn.USERS, target_user_id, ban_fields(caller.uid, reason or DEFAULT_BAN_REASON, now))
    classrooms = await store.query(cn.CLASSROOMS, where("studentIds", "array-contains", target_user_id))
    for classroom in classrooms:
        batch.update(cn.CLASSROOMS, classroom.id, {"studentIds": array_remove(target_user_id)})
    await batch.commit()

    logger.info(
        "user_banned",
        target_user_id=target_user_id,
        banned_by=caller.uid,
        classrooms_left=len(classrooms),
    )
    return OperationResult(success=True, message="User banned successfully")


@callable_operation("moderateContent")
async def moderate_content(
    store: DocumentStore,
    caller: CallerIdentity | None,
    report_id: str | None,
    action: str | None,
    resolution: str | None = None,
    *,
    now: datetime | None = None,
) -> OperationResult:
    """Resolve a report and apply its side effect in one batch.

    Actions: dismiss, delete (removes the reported item from its
    collection), ban (bans the user who filed the report), other.
    """
    caller = await require_admin(store, caller)

    if not report_id:
        raise CallableError("invalid-argument", "Missing reportId")
    if action not in MODERATION_ACTIONS:
        raise CallableError(
            "invalid-argument",
            f"Unknown action '{action}'. Expected one of: {', '.join(MODERATION_ACTIONS)}",
        )

    report = await store.get(cn.REPORTS, report_id)
    if report is None:
        raise CallableError("not-found", "Report not found")

    if now is None:
        now = datetime.now(timezone.utc)

    batch = store.batch()
    batch.update(cn.REPORTS, report_id, {
        "status": "dismissed" if action == "dismiss" else "resolved",
        "reviewedAt": now,
        "reviewedBy": caller.uid,
        "resolution": resolution or f"Action: {action}",
    })

    if action == "delete":
        report_type = report.get("reportType")
        item_id = report.get("reportedItemId")
        if not report_type or not item_id:
            raise CallableError("invalid-argument", "Report does not reference an item")
        batch.delete(f"{report_type}s", item_id)
    elif action == "ban":
        reporter_id = report.get("reporterId")
        if not reporter_id:
            raise CallableError("invalid-argument", "Report has no reporter")
        # Bans the reporter, not the reported party.
        logger.warning("moderation_ban_targets_reporter", report_id=report_id, reporter_id=reporter_id)
        batch.update(cn.USERS, reporter_id, ban_fields(caller.uid, resolution or DEFAULT_REPORT_BAN_REASON, now))

    await batch.commit()
    logger.info("report_moderated", report_id=report_id, action=action, reviewed_by=caller.uid)
    return OperationResult(success=True)
