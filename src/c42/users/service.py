"""User queries, presence and moderation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select, update

from c42.db.models import User
from c42.errors import Forbidden, NotFound, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

ASSIGNABLE_ROLES = frozenset({"user", "moderator", "admin"})
PROTECTED_ROLES = frozenset({"owner", "admin"})


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def require_user(db: AsyncSession, user_id: int) -> User:
    """Fetch a user by ID or raise NotFound."""
    user = await get_user_by_id(db, user_id)
    if user is None:
        msg = f"User {user_id} not found"
        raise NotFound(msg)
    return user


async def list_users(db: AsyncSession, offset: int = 0, limit: int = 50) -> list[User]:
    """Newest users first."""
    result = await db.execute(
        select(User).order_by(User.created_at.desc(), User.id.desc()).offset(offset).limit(limit)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Presence
# ---------------------------------------------------------------------------


async def set_online_status(db: AsyncSession, user_id: int, is_online: bool) -> None:
    """Flip the presence flag; going offline stamps ``last_seen``."""
    values: dict[str, object] = {"is_online": is_online}
    if not is_online:
        values["last_seen"] = datetime.now(timezone.utc)
    await db.execute(update(User).where(User.id == user_id).values(**values))


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------


async def change_role(db: AsyncSession, actor: User, user_id: int, role: str) -> User:
    """
    Change a user's role.

    Raises:
        ValidationError: Unknown role.
        NotFound: Target user does not exist.
        Forbidden: Target is the owner, or a non-owner tries to grant admin.
    """
    if role not in ASSIGNABLE_ROLES:
        msg = "Valid role is required (user, moderator, admin)"
        raise ValidationError(msg)

    target = await require_user(db, user_id)
    if target.role == "owner":
        msg = "Cannot modify owner's role"
        raise Forbidden(msg)
    if role == "admin" and actor.role != "owner":
        msg = "Only owner can promote to admin"
        raise Forbidden(msg)

    target.role = role
    await db.flush()
    logger.info("user_role_changed", user_id=user_id, role=role, actor_id=actor.id)
    return target


async def ban_user(db: AsyncSession, user_id: int, reason: str) -> User:
    if not reason:
        msg = "Ban reason is required"
        raise ValidationError(msg)
    target = await require_user(db, user_id)
    if target.role in PROTECTED_ROLES:
        msg = "Cannot ban owner or admin"
        raise Forbidden(msg)
    target.is_banned = True
    target.ban_reason = reason
    await db.flush()
    logger.info("user_banned", user_id=user_id)
    return target


async def unban_user(db: AsyncSession, user_id: int) -> User:
    target = await require_user(db, user_id)
    target.is_banned = False
    target.ban_reason = None
    await db.flush()
    return target


async def mute_user(db: AsyncSession, user_id: int, duration_seconds: int, reason: str) -> User:
    """Mute a user for ``duration_seconds``."""
    if duration_seconds <= 0 or not reason:
        msg = "Duration (in seconds) and reason are required"
        raise ValidationError(msg)
    target = await require_user(db, user_id)
    if target.role in PROTECTED_ROLES:
        msg = "Cannot mute owner or admin"
        raise Forbidden(msg)
    target.is_muted = True
    target.mute_end_time = datetime.now(timezone.utc) + timedelta(seconds=duration_seconds)
    target.mute_reason = reason
    await db.flush()
    logger.info("user_muted", user_id=user_id, duration_seconds=duration_seconds)
    return target


async def unmute_user(db: AsyncSession, user_id: int) -> User:
    target = await require_user(db, user_id)
    target.is_muted = False
    target.mute_end_time = None
    target.mute_reason = None
    await db.flush()
    return target
