"""Connection registry: which live socket belongs to which user.

One socket per user. Registering again replaces the previous entry without
closing it; the old socket simply stops receiving routed messages.

The registry is process-local. With several API processes a recipient
connected to another process is treated as offline, and the message waits
for the next history fetch.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field

import structlog
from starlette.websockets import WebSocket

logger = structlog.get_logger()


@dataclass
class RegisteredConnection:
    """A live socket bound to a user."""

    websocket: WebSocket
    user_id: int
    connected_at: float = field(default_factory=time.time)
    messages_sent: int = 0


class ConnectionRegistry:
    """Maps user ids to their live socket.

    Mutations are plain dict operations on the event loop, so no locking.
    """

    def __init__(self) -> None:
        self._connections: dict[int, RegisteredConnection] = {}  # user_id -> connection

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def register(self, user_id: int, websocket: WebSocket) -> WebSocket | None:
        """Bind ``websocket`` to ``user_id``. Returns the superseded socket, if any."""
        previous = self._connections.get(user_id)
        self._connections[user_id] = RegisteredConnection(websocket=websocket, user_id=user_id)
        if previous is not None and previous.websocket is not websocket:
            logger.info("ws_connection_superseded", user_id=user_id)
            return previous.websocket
        logger.info("ws_registered", user_id=user_id)
        return None

    def unregister(self, user_id: int, websocket: WebSocket) -> bool:
        """Drop the entry only if it still points at ``websocket``."""
        current = self._connections.get(user_id)
        if current is None or current.websocket is not websocket:
            return False
        del self._connections[user_id]
        logger.info("ws_unregistered", user_id=user_id)
        return True

    def get(self, user_id: int) -> WebSocket | None:
        current = self._connections.get(user_id)
        return current.websocket if current else None

    def is_online(self, user_id: int) -> bool:
        return user_id in self._connections

    async def send_to_user(self, user_id: int, frame: dict) -> bool:
        """Push a JSON frame to the user's socket.

        Returns False if the user has no live socket or the send failed; a
        failed socket is dropped from the registry.
        """
        current = self._connections.get(user_id)
        if current is None:
            return False
        try:
            await current.websocket.send_text(json.dumps(frame, ensure_ascii=False))
        except Exception:
            logger.warning("ws_send_failed", user_id=user_id, exc_info=True)
            self.unregister(user_id, current.websocket)
            return False
        current.messages_sent += 1
        return True

    def get_stats(self) -> dict:
        """Get connection statistics."""
        return {
            "total_connections": len(self._connections),
            "messages_sent": sum(c.messages_sent for c in self._connections.values()),
        }
