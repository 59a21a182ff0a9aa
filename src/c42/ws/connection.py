"""Per-socket chat protocol state machine.

Protocol:
    Client -> Server:
        {"type": "auth", "userId": 1}
        {"type": "message", "chatId": 7, "content": "..."}

    Server -> Client:
        {"type": "new_message", "message": {...}}   (to the recipient)
        {"type": "message_sent", "message": {...}}  (to the sender)
        {"type": "error", "message": "..."}

A socket starts unauthenticated and only accepts ``auth``. Once bound to a
user it accepts ``message`` frames. Bad frames get an ``error`` reply and
never close the socket.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.websockets import WebSocket

from c42.chat.schemas import message_payload
from c42.chat.service import get_message_with_sender, require_chat, send_message, validate_content
from c42.errors import C42Error, StorageError, storage_errors
from c42.users.service import get_user_by_id, set_online_status
from c42.ws.registry import ConnectionRegistry

logger = structlog.get_logger()

SessionOpener = Callable[[], AsyncSession]


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class ChatConnection:
    """Handles the frames of one accepted WebSocket."""

    def __init__(
        self,
        websocket: WebSocket,
        registry: ConnectionRegistry,
        open_session: SessionOpener,
    ) -> None:
        self.websocket = websocket
        self.registry = registry
        self._open_session = open_session
        self.user_id: int | None = None

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None

    def _holds_no_other_socket(self, user_id: int) -> bool:
        """True when no socket other than this one is registered for ``user_id``."""
        current = self.registry.get(user_id)
        return current is None or current is self.websocket

    async def send(self, frame: dict) -> None:
        await self.websocket.send_text(json.dumps(frame, ensure_ascii=False))

    async def send_error(self, message: str) -> None:
        await self.send({"type": "error", "message": message})

    async def handle_text(self, raw: str) -> None:
        """Dispatch one text frame."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            await self.send_error("Invalid message format")
            return
        if not isinstance(data, dict):
            await self.send_error("Invalid message format")
            return

        frame_type = data.get("type")
        if frame_type == "auth":
            await self._handle_auth(data)
        elif not self.authenticated:
            await self.send_error("Not authenticated")
        elif frame_type == "message":
            await self._handle_message(data)
        else:
            await self.send_error(f"Unknown frame type: {frame_type}")

    async def _handle_auth(self, data: dict) -> None:
        user_id = data.get("userId")
        if not _is_int(user_id) or user_id <= 0:
            await self.send_error("Invalid userId")
            return

        try:
            async with self._open_session() as db, storage_errors("authenticate socket"):
                user = await get_user_by_id(db, user_id)
                if user is None:
                    await self.send_error("User not found")
                    return
                if user.is_banned:
                    await self.send_error("Account is banned")
                    return
                await set_online_status(db, user_id, True)
                previous_id = self.user_id if self.user_id != user_id else None
                # The previous user stays online only if another socket holds them.
                releases_previous = previous_id is not None and self._holds_no_other_socket(previous_id)
                if releases_previous:
                    await set_online_status(db, previous_id, False)
                await db.commit()
        except StorageError:
            logger.exception("ws_auth_failed", user_id=user_id)
            await self.send_error("Authentication failed")
            return

        if previous_id is not None:
            self.registry.unregister(previous_id, self.websocket)
            if releases_previous:
                logger.info("ws_rebound", previous_user_id=previous_id, user_id=user_id)
        self.user_id = user_id
        self.registry.register(user_id, self.websocket)

    async def _handle_message(self, data: dict) -> None:
        chat_id = data.get("chatId")
        if not _is_int(chat_id):
            await self.send_error("Invalid message format")
            return
        try:
            content = validate_content(data.get("content"))
        except C42Error as exc:
            await self.send_error(exc.message)
            return

        try:
            async with self._open_session() as db, storage_errors("send message"):
                message = await send_message(db, chat_id, self.user_id, content)
                await db.commit()
                full = await get_message_with_sender(db, message.id)
                chat = await require_chat(db, chat_id)
                recipient_id = chat.other_participant_id(self.user_id)
                payload = message_payload(full)
        except StorageError:
            logger.exception("ws_send_message_failed", user_id=self.user_id, chat_id=chat_id)
            await self.send_error("Failed to send message")
            return
        except C42Error as exc:
            await self.send_error(exc.message)
            return

        delivered = await self.registry.send_to_user(recipient_id, {"type": "new_message", "message": payload})
        await self.send({"type": "message_sent", "message": payload})
        logger.info(
            "chat_message_routed",
            chat_id=chat_id,
            message_id=payload["id"],
            sender_id=self.user_id,
            recipient_id=recipient_id,
            delivered=delivered,
        )

    async def close(self) -> None:
        """Release the registry entry and mark the user offline.

        A superseded socket leaves both the newer entry and the online flag
        alone. A socket already dropped after a failed push still marks the
        user offline.
        """
        if self.user_id is None:
            return
        if not self._holds_no_other_socket(self.user_id):
            return
        self.registry.unregister(self.user_id, self.websocket)
        try:
            async with self._open_session() as db, storage_errors("mark user offline"):
                await set_online_status(db, self.user_id, False)
                await db.commit()
        except StorageError:
            logger.warning("ws_offline_update_failed", user_id=self.user_id, exc_info=True)
