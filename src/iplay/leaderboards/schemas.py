"""Pydantic schemas for cached leaderboard documents."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class LeaderboardEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    display_name: str = Field(..., alias="displayName")
    avatar_url: str | None = Field(None, alias="avatarUrl")
    total_xp: int | float = Field(..., alias="totalXP")
    rank: int = Field(..., ge=1)


class LeaderboardCacheDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    scope: str
    type: str
    period: str
    identifier: str | None = None
    entries: list[LeaderboardEntry]
    last_updated_at: datetime = Field(..., alias="lastUpdatedAt")
