"""Admin panel router: all /api/admin/* endpoints.

Every route requires an admin or owner. Services only flush; the route
commits once the whole operation succeeded.
"""

from __future__ import annotations

from dataclasses import asdict

import structlog
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from c42.admin.schemas import (
    ActivityAwardResponse,
    AddActivityRequest,
    AssignRankRequest,
    BanRequest,
    CreateRankRequest,
    MuteRequest,
    PrimaryRankRequest,
    RankResponse,
    RoleRequest,
    UserRankResponse,
)
from c42.auth.dependencies import require_admin
from c42.database import get_session
from c42.db.models import Rank, User, UserRank
from c42.ranks.service import (
    add_activity_points,
    assign_rank_to_user,
    create_rank,
    get_user_ranks,
    list_ranks,
    remove_rank_from_user,
    set_primary_rank,
)
from c42.users.schemas import ActionResult, UserResponse
from c42.users.service import (
    ban_user,
    change_role,
    list_users,
    mute_user,
    require_user,
    unban_user,
    unmute_user,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/admin", tags=["Admin"])


# ---------------------------------------------------------------------------
# Activity points and ranks
# ---------------------------------------------------------------------------


@router.post("/users/{user_id}/add-activity", response_model=ActivityAwardResponse)
async def add_activity(
    user_id: int,
    body: AddActivityRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> ActivityAwardResponse:
    """Award activity points; the displayed rank follows unless pinned."""
    award = await add_activity_points(db, user_id, body.points)
    await db.commit()
    return ActivityAwardResponse(**asdict(award))


@router.get("/ranks", response_model=list[RankResponse])
async def get_ranks(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[Rank]:
    return await list_ranks(db)


@router.post("/ranks", response_model=RankResponse, status_code=201)
async def post_rank(
    body: CreateRankRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> Rank:
    """Create a special rank."""
    rank = await create_rank(db, body.name, body.description, created_by=admin.id)
    await db.commit()
    return rank


@router.get("/users/{user_id}/ranks", response_model=list[UserRankResponse])
async def get_ranks_of_user(
    user_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[UserRank]:
    await require_user(db, user_id)
    return await get_user_ranks(db, user_id)


@router.post("/users/{user_id}/ranks", response_model=UserRankResponse)
async def assign_rank(
    user_id: int,
    body: AssignRankRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> UserRank:
    """Assign a rank (or update an existing assignment)."""
    await assign_rank_to_user(db, user_id, body.rank_id, assigned_by=admin.id, is_active=body.is_active)
    await db.commit()
    assignments = await get_user_ranks(db, user_id)
    return next(a for a in assignments if a.rank_id == body.rank_id)


@router.delete("/users/{user_id}/ranks/{rank_id}", response_model=ActionResult)
async def remove_rank(
    user_id: int,
    rank_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> ActionResult:
    displayed = await remove_rank_from_user(db, user_id, rank_id)
    await db.commit()
    return ActionResult(message=f"Rank removed; displayed rank is now {displayed}")


@router.post("/users/{user_id}/primary-rank", response_model=UserResponse)
async def primary_rank(
    user_id: int,
    body: PrimaryRankRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Override the displayed rank string."""
    user = await set_primary_rank(db, user_id, body.rank)
    await db.commit()
    return user


# ---------------------------------------------------------------------------
# Users and moderation
# ---------------------------------------------------------------------------


@router.get("/users", response_model=list[UserResponse])
async def get_users(
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[User]:
    return await list_users(db, offset=offset, limit=limit)


@router.post("/users/{user_id}/promote", response_model=UserResponse)
async def promote(
    user_id: int,
    body: RoleRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> User:
    user = await change_role(db, admin, user_id, body.role)
    await db.commit()
    return user


@router.post("/users/{user_id}/ban", response_model=UserResponse)
async def ban(
    user_id: int,
    body: BanRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> User:
    user = await ban_user(db, user_id, body.reason)
    await db.commit()
    logger.info("admin_ban", admin_id=admin.id, user_id=user_id)
    return user


@router.post("/users/{user_id}/unban", response_model=UserResponse)
async def unban(
    user_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> User:
    user = await unban_user(db, user_id)
    await db.commit()
    return user


@router.post("/users/{user_id}/mute", response_model=UserResponse)
async def mute(
    user_id: int,
    body: MuteRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> User:
    user = await mute_user(db, user_id, body.duration, body.reason)
    await db.commit()
    logger.info("admin_mute", admin_id=admin.id, user_id=user_id)
    return user


@router.post("/users/{user_id}/unmute", response_model=UserResponse)
async def unmute(
    user_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> User:
    user = await unmute_user(db, user_id)
    await db.commit()
    return user


# ---------------------------------------------------------------------------
# Realtime
# ---------------------------------------------------------------------------


@router.get("/ws/stats")
async def ws_stats(request: Request, _admin: User = Depends(require_admin)) -> dict[str, int]:
    """Live socket counters of this process."""
    return request.app.state.connection_registry.get_stats()
