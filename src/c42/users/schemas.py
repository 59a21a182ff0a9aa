"""Pydantic models for user payloads.

The frontend speaks camelCase, so every model here serializes by alias.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UserBrief(CamelModel):
    """User fields embedded in chat messages and chat lists."""

    id: int
    username: str
    display_name: str
    avatar: str | None = None
    rank: str
    role: str
    is_online: bool = False


class UserResponse(UserBrief):
    gender: str | None = None
    activity_points: int = 0
    is_banned: bool = False
    is_muted: bool = False
    mute_end_time: datetime | None = None
    last_seen: datetime | None = None
    created_at: datetime | None = None


class ActionResult(CamelModel):
    message: str
