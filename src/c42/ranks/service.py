"""Rank engine: activity points, rank resolution and admin rank assignment."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.orm import joinedload

from c42.config import get_settings
from c42.db.models import Rank, User, UserRank
from c42.errors import NotFound, RankLimitExceeded, ValidationError, storage_errors
from c42.ranks.system_ranks import resolve_rank
from c42.users.service import require_user

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


@dataclass(frozen=True)
class ActivityAward:
    """Outcome of an activity-points award."""

    user_id: int
    activity_points: int
    rank: str
    rank_changed: bool
    pinned: bool


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_system_ranks(db: AsyncSession) -> list[Rank]:
    result = await db.execute(select(Rank).where(Rank.is_system.is_(True)).order_by(Rank.level, Rank.id))
    return list(result.scalars().all())


async def get_rank(db: AsyncSession, rank_id: int) -> Rank | None:
    result = await db.execute(select(Rank).where(Rank.id == rank_id))
    return result.scalar_one_or_none()


async def list_ranks(db: AsyncSession) -> list[Rank]:
    """All ranks, system and special, ordered by name."""
    result = await db.execute(select(Rank).order_by(Rank.name))
    return list(result.scalars().all())


async def get_user_ranks(db: AsyncSession, user_id: int) -> list[UserRank]:
    """Rank assignments of a user with the rank rows loaded."""
    result = await db.execute(
        select(UserRank)
        .options(joinedload(UserRank.rank))
        .where(UserRank.user_id == user_id)
        .order_by(UserRank.assigned_at, UserRank.rank_id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_pinned_rank_name(db: AsyncSession, user_id: int) -> str | None:
    """Name of an active non-system rank assigned to the user, if any."""
    result = await db.execute(
        select(Rank.name)
        .join(UserRank, UserRank.rank_id == Rank.id)
        .where(
            UserRank.user_id == user_id,
            UserRank.is_active.is_(True),
            Rank.is_system.is_(False),
        )
        .order_by(UserRank.assigned_at, Rank.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Activity points
# ---------------------------------------------------------------------------


async def add_activity_points(db: AsyncSession, user_id: int, points: int) -> ActivityAward:
    """Award activity points and re-resolve the displayed rank.

    1. Atomically increment ``users.activity_points`` (no read-modify-write)
    2. Resolve the highest system rank for the new total and the user's gender
    3. Write the rank name if it changed, unless an admin pin is active

    Both writes share the caller's transaction.

    Raises:
        ValidationError: ``points`` is not a positive integer.
        NotFound: User does not exist.
        StorageError: The store failed.
    """
    if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
        msg = "Valid points value is required"
        raise ValidationError(msg)

    async with storage_errors("add activity points"):
        result = await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(activity_points=User.activity_points + points)
            .returning(User.activity_points, User.gender, User.rank)
        )
        row = result.one_or_none()
        if row is None:
            msg = f"User {user_id} not found"
            raise NotFound(msg)
        total, gender, current_rank = row

        pinned = await get_pinned_rank_name(db, user_id)
        if pinned is not None:
            logger.info("activity_points_added", user_id=user_id, points=points, total=total, pinned=pinned)
            return ActivityAward(user_id, total, current_rank, rank_changed=False, pinned=True)

        resolved = resolve_rank(total, gender, await get_system_ranks(db))
        new_rank = resolved.name if resolved is not None else current_rank
        changed = new_rank != current_rank
        if changed:
            await db.execute(update(User).where(User.id == user_id).values(rank=new_rank))
        await db.flush()

    logger.info(
        "activity_points_added",
        user_id=user_id,
        points=points,
        total=total,
        rank=new_rank,
        rank_changed=changed,
    )
    return ActivityAward(user_id, total, new_rank, rank_changed=changed, pinned=False)


# ---------------------------------------------------------------------------
# Admin rank management
# ---------------------------------------------------------------------------


async def create_rank(
    db: AsyncSession,
    name: str,
    description: str | None = None,
    created_by: int | None = None,
) -> Rank:
    """Create a special (non-system) rank that admins can assign."""
    name = name.strip()
    if not name:
        msg = "Rank name is required"
        raise ValidationError(msg)

    async with storage_errors("create rank"):
        existing = await db.execute(select(Rank.id).where(Rank.name == name))
        if existing.scalar_one_or_none() is not None:
            msg = f"Rank {name!r} already exists"
            raise ValidationError(msg)

        rank = Rank(name=name, description=description, is_system=False, level=0, created_by=created_by)
        db.add(rank)
        await db.flush()

    logger.info("rank_created", rank_id=rank.id, name=name, created_by=created_by)
    return rank


async def assign_rank_to_user(
    db: AsyncSession,
    user_id: int,
    rank_id: int,
    assigned_by: int | None,
    is_active: bool = True,
) -> UserRank:
    """Assign (or update) a rank held by a user.

    Re-assigning an already held rank updates it in place and is exempt from
    the per-user limit. An active assignment becomes the displayed rank.

    Raises:
        NotFound: User or rank does not exist.
        RankLimitExceeded: User already holds the maximum number of ranks.
    """
    settings = get_settings()

    async with storage_errors("assign rank"):
        user = await require_user(db, user_id)
        rank = await get_rank(db, rank_id)
        if rank is None:
            msg = f"Rank {rank_id} not found"
            raise NotFound(msg)

        assignment = await db.get(UserRank, (user_id, rank_id))
        if assignment is not None:
            assignment.is_active = is_active
            assignment.assigned_by = assigned_by
        else:
            count_result = await db.execute(
                select(func.count()).select_from(UserRank).where(UserRank.user_id == user_id)
            )
            if count_result.scalar_one() >= settings.max_ranks_per_user:
                msg = f"User already holds the maximum number of ranks ({settings.max_ranks_per_user})"
                raise RankLimitExceeded(msg)
            assignment = UserRank(
                user_id=user_id,
                rank_id=rank_id,
                is_active=is_active,
                assigned_by=assigned_by,
            )
            db.add(assignment)

        if is_active:
            user.rank = rank.name
        await db.flush()

    logger.info("rank_assigned", user_id=user_id, rank_id=rank_id, is_active=is_active, assigned_by=assigned_by)
    return assignment


async def remove_rank_from_user(db: AsyncSession, user_id: int, rank_id: int) -> str:
    """Remove a rank assignment. Returns the rank now displayed.

    When the removed rank was the displayed one, another active assignment is
    displayed instead, falling back to the default level-1 rank name.

    Raises:
        NotFound: The user does not hold this rank.
    """
    settings = get_settings()

    async with storage_errors("remove rank"):
        assignment = await db.get(UserRank, (user_id, rank_id))
        if assignment is None:
            msg = f"User {user_id} does not hold rank {rank_id}"
            raise NotFound(msg)
        await db.delete(assignment)
        await db.flush()

        user = await require_user(db, user_id)
        rank = await get_rank(db, rank_id)
        if rank is not None and user.rank == rank.name:
            result = await db.execute(
                select(Rank.name)
                .join(UserRank, UserRank.rank_id == Rank.id)
                .where(UserRank.user_id == user_id, UserRank.is_active.is_(True))
                .limit(1)
            )
            user.rank = result.scalar_one_or_none() or settings.default_rank_name
            await db.flush()

    logger.info("rank_removed", user_id=user_id, rank_id=rank_id, rank=user.rank)
    return user.rank


async def set_primary_rank(db: AsyncSession, user_id: int, rank_name: str) -> User:
    """Overwrite the displayed rank string directly."""
    if not rank_name:
        msg = "Rank is required"
        raise ValidationError(msg)
    user = await require_user(db, user_id)
    user.rank = rank_name
    await db.flush()
    return user
