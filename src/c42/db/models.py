"""ORM models for the rank engine and chat store.

Schema is owned by Alembic (``alembic/versions``); the metadata here is also
used directly by the test suite to build an SQLite schema.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from c42.db.base import Base, BigIntId


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Community member, authenticated through Telegram by the auth service."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    telegram_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(128), nullable=False)
    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)
    gender: Mapped[str | None] = mapped_column(String(8), nullable=True)  # male | female | other
    rank: Mapped[str] = mapped_column(String(128), nullable=False, default="Чебоксарец", server_default="Чебоксарец")
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="user", server_default="user")

    # --- Moderation ---
    is_banned: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    ban_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_muted: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    mute_end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    mute_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Presence / progression ---
    is_online: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    last_seen: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=_utcnow)
    activity_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )

    ranks: Mapped[list[UserRank]] = relationship(
        "UserRank", back_populates="user", foreign_keys="UserRank.user_id"
    )


# ---------------------------------------------------------------------------
# Ranks
# ---------------------------------------------------------------------------


class Rank(Base):
    """A displayable rank. System ranks drive activity progression."""

    __tablename__ = "ranks"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    # Only set on top-tier system ranks.
    gender: Mapped[str | None] = mapped_column(String(8), nullable=True)
    created_by: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )


class UserRank(Base):
    """Admin-assigned rank held by a user (max 10 per user)."""

    __tablename__ = "user_ranks"

    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    rank_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("ranks.id", ondelete="CASCADE"), primary_key=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    assigned_by: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )

    user: Mapped[User] = relationship("User", back_populates="ranks", foreign_keys=[user_id])
    rank: Mapped[Rank] = relationship("Rank")


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class Chat(Base):
    """One-to-one conversation between two users."""

    __tablename__ = "chats"
    __table_args__ = (Index("idx_chats_participants", "user1_id", "user2_id"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user1_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    user2_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    last_message_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def other_participant_id(self, user_id: int) -> int:
        return self.user2_id if self.user1_id == user_id else self.user1_id


class Message(Base):
    """Chat message. ``read`` only ever goes from False to True."""

    __tablename__ = "messages"
    __table_args__ = (Index("idx_messages_chat_created", "chat_id", "created_at"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    chat_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("chats.id", ondelete="CASCADE"), nullable=False)
    sender_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )

    sender: Mapped[User] = relationship("User")
