"""School ownership transfer.

Rules:
- Only the school's current principal may transfer it
- The new principal must have a user record
- School and both user records are updated in one atomic batch
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog

from iplay import collection_names as cn
from iplay.callables.access import require_caller
from iplay.callables.errors import CallableError, callable_operation
from iplay.callables.schemas import OperationResult
from iplay.identity import CallerIdentity
from iplay.store import DELETE_FIELD, DocumentStore

logger = structlog.get_logger()


@callable_operation("transferSchoolOwnership")
async def transfer_school_ownership(
    store: DocumentStore,
    caller: CallerIdentity | None,
    school_id: str | None,
    new_principal_id: str | None,
    *,
    now: datetime | None = None,
) -> OperationResult:
    """Hand a school's principal role from the caller to another user."""
    caller = require_caller(caller)
    if not school_id or not new_principal_id:
        raise CallableError("invalid-argument", "Missing required parameters")

    school = await store.get(cn.SCHOOLS, school_id)
    if school is None:
        raise CallableError("not-found", "School not found")

    if school.get("principalId") != caller.uid:
        raise CallableError("permission-denied", "Only the current principal can transfer ownership")

    if await store.get(cn.USERS, new_principal_id) is None:
        raise CallableError("not-found", "New principal not found")

    if now is None:
        now = datetime.now(timezone.utc)

    batch = store.batch()
    batch.update(cn.SCHOOLS, school_id, {"principalId": new_principal_id, "updatedAt": now})
    if new_principal_id != caller.uid:
        batch.update(cn.USERS, caller.uid, {"isPrincipal": False, "principalOfSchool": DELETE_FIELD})
    batch.update(cn.USERS, new_principal_id, {"isPrincipal": True, "principalOfSchool": school_id})
    await batch.commit()

    logger.info(
        "school_ownership_transferred",
        school_id=school_id,
        previous_principal=caller.uid,
        new_principal=new_principal_id,
    )
    return OperationResult(success=True, message="School ownership transferred")
