"""Callable endpoints exposed over HTTP.

Requests are ``{"data": {...}}``; responses are ``{"result": {...}}`` or,
via the error handlers, ``{"error": {"status", "message"}}``.
"""

from __future__ import annotations

from typing import Any, TypeVar

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ValidationError

from iplay.callables.errors import CallableError
from iplay.callables.join_codes import generate_classroom_code, generate_school_code
from iplay.callables.moderation import ban_user, moderate_content
from iplay.callables.schemas import (
    BanUserRequest,
    CallableRequest,
    CallableResponse,
    ModerateContentRequest,
    TransferSchoolOwnershipRequest,
)
from iplay.callables.schools import transfer_school_ownership
from iplay.config import Settings
from iplay.dependencies import get_app_settings, get_optional_caller, get_store
from iplay.identity import CallerIdentity
from iplay.store import DocumentStore

router = APIRouter(prefix="/callable", tags=["Callables"])

PayloadT = TypeVar("PayloadT", bound=BaseModel)


def parse_payload(model: type[PayloadT], data: dict[str, Any] | None) -> PayloadT:
    """Validate callable data, mapping failures to invalid-argument."""
    try:
        return model.model_validate(data or {})
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first["loc"]) or "data"
        raise CallableError("invalid-argument", f"Invalid '{field}': {first['msg']}") from e


def _respond(result: BaseModel) -> CallableResponse:
    return CallableResponse(result=result.model_dump(exclude_none=True))


@router.post("/transferSchoolOwnership", response_model=CallableResponse)
async def transfer_school_ownership_endpoint(
    body: CallableRequest,
    caller: CallerIdentity | None = Depends(get_optional_caller),
    store: DocumentStore = Depends(get_store),
):
    """Transfer a school's principal role (current principal only)."""
    payload = parse_payload(TransferSchoolOwnershipRequest, body.data)
    result = await transfer_school_ownership(store, caller, payload.school_id, payload.new_principal_id)
    return _respond(result)


@router.post("/banUser", response_model=CallableResponse)
async def ban_user_endpoint(
    body: CallableRequest,
    caller: CallerIdentity | None = Depends(get_optional_caller),
    store: DocumentStore = Depends(get_store),
):
    """Ban a user and remove them from all classrooms (admin only)."""
    payload = parse_payload(BanUserRequest, body.data)
    result = await ban_user(store, caller, payload.target_user_id, payload.reason)
    return _respond(result)


@router.post("/moderateContent", response_model=CallableResponse)
async def moderate_content_endpoint(
    body: CallableRequest,
    caller: CallerIdentity | None = Depends(get_optional_caller),
    store: DocumentStore = Depends(get_store),
):
    """Resolve a content report (admin only)."""
    payload = parse_payload(ModerateContentRequest, body.data)
    result = await moderate_content(store, caller, payload.report_id, payload.action, payload.resolution)
    return _respond(result)


@router.post("/generateClassroomCode", response_model=CallableResponse)
async def generate_classroom_code_endpoint(
    body: CallableRequest | None = None,
    caller: CallerIdentity | None = Depends(get_optional_caller),
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
):
    """Generate an unused classroom join code."""
    result = await generate_classroom_code(
        store, caller, length=settings.join_code_length, max_attempts=settings.join_code_max_attempts,
    )
    return _respond(result)


@router.post("/generateSchoolCode", response_model=CallableResponse)
async def generate_school_code_endpoint(
    body: CallableRequest | None = None,
    caller: CallerIdentity | None = Depends(get_optional_caller),
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
):
    """Generate an unused school join code."""
    result = await generate_school_code(
        store, caller, length=settings.join_code_length, max_attempts=settings.join_code_max_attempts,
    )
    return _respond(result)
