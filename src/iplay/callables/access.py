"""Caller checks shared by the callable operations."""

from __future__ import annotations

import structlog

from iplay import collection_names as cn
from iplay.callables.errors import CallableError
from iplay.identity import CallerIdentity
from iplay.store import DocumentStore

logger = structlog.get_logger()


def require_caller(caller: CallerIdentity | None) -> CallerIdentity:
    if caller is None:
        raise CallableError("unauthenticated", "The function must be called while authenticated")
    return caller


async def require_admin(store: DocumentStore, caller: CallerIdentity | None) -> CallerIdentity:
    """The caller's own user record must carry role 'admin'.

    The ``isAdmin`` token claim is logged on rejection but does not grant access.
    """
    caller = require_caller(caller)
    record = await store.get(cn.USERS, caller.uid)
    role = record.get("role") if record is not None else None
    if role != "admin":
        logger.warning("admin_check_failed", uid=caller.uid, role=role, admin_claim=caller.is_admin)
        raise CallableError("permission-denied", "Admin access required")
    return caller
