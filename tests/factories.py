"""Row factories and auth helpers shared by the test modules."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from c42.auth.jwt import create_access_token
from c42.db.models import Chat, User


async def make_user(
    db: AsyncSession,
    username: str,
    *,
    gender: str | None = None,
    role: str = "user",
    activity_points: int = 0,
    is_banned: bool = False,
) -> User:
    """Insert and commit a user."""
    user = User(
        telegram_id=f"tg-{username}",
        username=username,
        display_name=username.title(),
        gender=gender,
        role=role,
        activity_points=activity_points,
        is_banned=is_banned,
    )
    db.add(user)
    await db.commit()
    return user


async def make_chat(db: AsyncSession, user1: User, user2: User) -> Chat:
    chat = Chat(user1_id=user1.id, user2_id=user2.id)
    db.add(chat)
    await db.commit()
    return chat


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
