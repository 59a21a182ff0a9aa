"""Pydantic models for chats and messages (HTTP responses and WebSocket frames)."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from c42.users.schemas import CamelModel, UserBrief


class ChatMessage(CamelModel):
    id: int
    chat_id: int
    sender_id: int
    content: str
    read: bool
    created_at: datetime


class ChatMessageWithSender(ChatMessage):
    sender: UserBrief


class ChatResponse(CamelModel):
    id: int
    user1_id: int
    user2_id: int
    last_message_at: datetime
    created_at: datetime


class ChatSummary(ChatResponse):
    other_user: UserBrief
    last_message: ChatMessage | None = None


class CreateChatRequest(CamelModel):
    user_id: int = Field(..., gt=0)


def message_payload(message: object) -> dict:
    """JSON-ready dict for a Message row with its sender loaded."""
    return ChatMessageWithSender.model_validate(message).model_dump(mode="json", by_alias=True)
