"""Pydantic schemas for callable payloads.

Request fields are optional so that missing arguments reach the operation
and fail with its own ``invalid-argument`` message.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CallableRequest(BaseModel):
    data: dict[str, Any] | None = None


class CallableResponse(BaseModel):
    result: dict[str, Any]


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TransferSchoolOwnershipRequest(_Payload):
    school_id: str | None = Field(None, alias="schoolId")
    new_principal_id: str | None = Field(None, alias="newPrincipalId")


class BanUserRequest(_Payload):
    target_user_id: str | None = Field(None, alias="targetUserId")
    reason: str | None = Field(None, max_length=500)


class ModerateContentRequest(_Payload):
    report_id: str | None = Field(None, alias="reportId")
    action: str | None = None
    resolution: str | None = Field(None, max_length=2000)


class OperationResult(BaseModel):
    success: bool
    message: str | None = None


class JoinCodeResult(BaseModel):
    code: str
