"""Realtime chat WebSocket endpoint."""

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from c42.database import get_session_factory
from c42.ws.connection import ChatConnection
from c42.ws.registry import ConnectionRegistry

logger = structlog.get_logger()

router = APIRouter()


def get_registry(websocket: WebSocket) -> ConnectionRegistry:
    """The registry owned by the running application."""
    return websocket.app.state.connection_registry


@router.websocket("/ws")
async def chat_websocket(websocket: WebSocket) -> None:
    """Single chat socket. See ``c42.ws.connection`` for the frame protocol.

    Binary frames are answered with an ``error`` frame; only a disconnect
    ends the loop.
    """
    await websocket.accept()
    connection = ChatConnection(
        websocket,
        get_registry(websocket),
        open_session=lambda: get_session_factory()(),
    )

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            text = frame.get("text")
            if text is None:
                await connection.send_error("Invalid message format")
                continue
            await connection.handle_text(text)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("ws_error", user_id=connection.user_id)
    finally:
        await connection.close()
