"""Chat store: one-to-one chats, messages and read state."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import or_, select, update
from sqlalchemy.orm import joinedload

from c42.config import get_settings
from c42.db.models import Chat, Message, User
from c42.errors import Forbidden, NotFound, ValidationError, storage_errors
from c42.users.service import require_user

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


@dataclass
class ChatOverview:
    chat: Chat
    other_user: User
    last_message: Message | None


# ---------------------------------------------------------------------------
# Chats
# ---------------------------------------------------------------------------


async def get_chat(db: AsyncSession, chat_id: int) -> Chat | None:
    result = await db.execute(select(Chat).where(Chat.id == chat_id))
    return result.scalar_one_or_none()


async def require_chat(db: AsyncSession, chat_id: int) -> Chat:
    chat = await get_chat(db, chat_id)
    if chat is None:
        msg = f"Chat {chat_id} not found"
        raise NotFound(msg)
    return chat


async def find_chat_between(db: AsyncSession, user_a: int, user_b: int) -> Chat | None:
    """Chat for an unordered pair of users."""
    result = await db.execute(
        select(Chat).where(
            or_(
                (Chat.user1_id == user_a) & (Chat.user2_id == user_b),
                (Chat.user1_id == user_b) & (Chat.user2_id == user_a),
            )
        )
    )
    return result.scalars().first()


async def create_chat(db: AsyncSession, user1_id: int, user2_id: int) -> tuple[Chat, bool]:
    """
    Get or create the chat between two users.

    Returns:
        Tuple of (chat, created).

    Raises:
        ValidationError: Both ids are the same user.
        NotFound: Either user does not exist.
    """
    if user1_id == user2_id:
        msg = "Cannot start a chat with yourself"
        raise ValidationError(msg)

    async with storage_errors("create chat"):
        await require_user(db, user1_id)
        await require_user(db, user2_id)

        chat = await find_chat_between(db, user1_id, user2_id)
        if chat is not None:
            return chat, False

        chat = Chat(user1_id=user1_id, user2_id=user2_id)
        db.add(chat)
        await db.flush()

    logger.info("chat_created", chat_id=chat.id, user1_id=user1_id, user2_id=user2_id)
    return chat, True


async def get_user_chats(db: AsyncSession, user_id: int) -> list[ChatOverview]:
    """Chats of a user, most recently active first."""
    result = await db.execute(
        select(Chat)
        .where(or_(Chat.user1_id == user_id, Chat.user2_id == user_id))
        .order_by(Chat.last_message_at.desc(), Chat.id.desc())
    )
    chats = list(result.scalars().all())
    if not chats:
        return []

    other_ids = {c.other_participant_id(user_id) for c in chats}
    users_result = await db.execute(select(User).where(User.id.in_(other_ids)))
    users = {u.id: u for u in users_result.scalars()}

    overviews = []
    for chat in chats:
        last = await db.execute(
            select(Message)
            .where(Message.chat_id == chat.id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(1)
        )
        overviews.append(
            ChatOverview(
                chat=chat,
                other_user=users[chat.other_participant_id(user_id)],
                last_message=last.scalar_one_or_none(),
            )
        )
    return overviews


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


def validate_content(content: object) -> str:
    """Reject empty, non-string or oversized message bodies."""
    if not isinstance(content, str) or not content:
        msg = "Message content must be a non-empty string"
        raise ValidationError(msg)
    limit = get_settings().message_max_length
    if len(content) > limit:
        msg = f"Message content exceeds {limit} characters"
        raise ValidationError(msg)
    return content


async def send_message(db: AsyncSession, chat_id: int, sender_id: int, content: str) -> Message:
    """
    Persist a message (unread) and advance the chat's ``last_message_at``.

    Raises:
        ValidationError: Empty or oversized content.
        NotFound: Chat does not exist.
        Forbidden: Sender is not a participant of the chat.
        StorageError: The store failed.
    """
    content = validate_content(content)

    async with storage_errors("send message"):
        chat = await require_chat(db, chat_id)
        if not chat.has_participant(sender_id):
            msg = "You are not a participant of this chat"
            raise Forbidden(msg)

        now = datetime.now(timezone.utc)
        message = Message(chat_id=chat_id, sender_id=sender_id, content=content, read=False, created_at=now)
        db.add(message)
        chat.last_message_at = now
        await db.flush()

    return message


async def get_message_with_sender(db: AsyncSession, message_id: int) -> Message | None:
    result = await db.execute(
        select(Message)
        .options(joinedload(Message.sender))
        .where(Message.id == message_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_chat_messages(db: AsyncSession, chat_id: int) -> list[Message]:
    """Chat history, oldest first, senders loaded."""
    result = await db.execute(
        select(Message)
        .options(joinedload(Message.sender))
        .where(Message.chat_id == chat_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
    )
    return list(result.scalars().all())


async def mark_messages_as_read(db: AsyncSession, chat_id: int, reader_id: int) -> int:
    """Mark messages the reader received (not sent) as read. Returns rows updated."""
    async with storage_errors("mark messages as read"):
        result = await db.execute(
            update(Message)
            .where(
                Message.chat_id == chat_id,
                Message.sender_id != reader_id,
                Message.read == False,  # noqa: E712
            )
            .values(read=True)
        )
    return result.rowcount or 0
