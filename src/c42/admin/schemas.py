"""Request/response models for admin endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from c42.users.schemas import CamelModel


class AddActivityRequest(CamelModel):
    # Range checks happen in the rank engine so they surface as 400, not 422.
    points: int


class ActivityAwardResponse(CamelModel):
    user_id: int
    activity_points: int
    rank: str
    rank_changed: bool
    pinned: bool


class RankResponse(CamelModel):
    id: int
    name: str
    description: str | None = None
    is_system: bool
    level: int
    gender: str | None = None
    created_by: int | None = None
    created_at: datetime | None = None


class CreateRankRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: str | None = None


class AssignRankRequest(CamelModel):
    rank_id: int
    is_active: bool = True


class UserRankResponse(CamelModel):
    user_id: int
    rank_id: int
    is_active: bool
    assigned_by: int | None = None
    assigned_at: datetime | None = None
    rank: RankResponse


class PrimaryRankRequest(CamelModel):
    rank: str


class RoleRequest(CamelModel):
    role: str


class BanRequest(CamelModel):
    reason: str = ""


class MuteRequest(CamelModel):
    duration: int = 0
    reason: str = ""
