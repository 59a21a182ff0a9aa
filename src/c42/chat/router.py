"""Chat history endpoints: /api/chats/*.

Delivery of new messages happens over the WebSocket; these endpoints cover
the pull side: chat list, opening a chat, and history (which marks received
messages as read).
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from c42.auth.dependencies import get_current_user
from c42.chat.schemas import (
    ChatMessage,
    ChatMessageWithSender,
    ChatResponse,
    ChatSummary,
    CreateChatRequest,
)
from c42.chat.service import (
    create_chat,
    get_chat_messages,
    get_user_chats,
    mark_messages_as_read,
    require_chat,
)
from c42.database import get_session
from c42.db.models import User
from c42.errors import Forbidden
from c42.users.schemas import UserBrief

logger = structlog.get_logger()

router = APIRouter(prefix="/api/chats", tags=["Chat"])


@router.get("", response_model=list[ChatSummary])
async def list_chats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[ChatSummary]:
    """Chats of the current user, most recent first."""
    overviews = await get_user_chats(db, user.id)
    return [
        ChatSummary(
            **ChatResponse.model_validate(o.chat).model_dump(),
            other_user=UserBrief.model_validate(o.other_user),
            last_message=ChatMessage.model_validate(o.last_message) if o.last_message else None,
        )
        for o in overviews
    ]


@router.post("", response_model=ChatResponse, status_code=201)
async def open_chat(
    body: CreateChatRequest,
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ChatResponse:
    """Open (or return the existing) chat with another user."""
    chat, created = await create_chat(db, user.id, body.user_id)
    await db.commit()
    if not created:
        response.status_code = 200
    return ChatResponse.model_validate(chat)


@router.get("/{chat_id}/messages", response_model=list[ChatMessageWithSender])
async def chat_history(
    chat_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[ChatMessageWithSender]:
    """Full history, oldest first. Messages received by the caller are marked read afterwards."""
    chat = await require_chat(db, chat_id)
    if not chat.has_participant(user.id):
        msg = "You are not a participant of this chat"
        raise Forbidden(msg)

    history = [ChatMessageWithSender.model_validate(m) for m in await get_chat_messages(db, chat_id)]
    marked = await mark_messages_as_read(db, chat_id, user.id)
    await db.commit()
    if marked:
        logger.info("chat_messages_read", chat_id=chat_id, reader_id=user.id, count=marked)
    return history
