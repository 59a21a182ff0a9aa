"""WebSocket endpoint tests for the frames that never reach the store."""

from __future__ import annotations

import pytest
from starlette.testclient import TestClient

from c42.main import create_app


@pytest.fixture
def test_client() -> TestClient:
    return TestClient(create_app())


class TestWebSocketProtocol:
    def test_invalid_json_keeps_socket_open(self, test_client: TestClient) -> None:
        with test_client.websocket_connect("/ws") as ws:
            ws.send_text("not json")
            assert ws.receive_json() == {"type": "error", "message": "Invalid message format"}
            ws.send_json({"type": "message", "chatId": 1, "content": "hi"})
            assert ws.receive_json() == {"type": "error", "message": "Not authenticated"}

    def test_binary_frame_keeps_socket_open(self, test_client: TestClient) -> None:
        with test_client.websocket_connect("/ws") as ws:
            ws.send_bytes(b"\x00\x01")
            assert ws.receive_json() == {"type": "error", "message": "Invalid message format"}
            ws.send_text("not json")
            assert ws.receive_json() == {"type": "error", "message": "Invalid message format"}

    def test_invalid_user_id(self, test_client: TestClient) -> None:
        with test_client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "auth", "userId": "me"})
            assert ws.receive_json() == {"type": "error", "message": "Invalid userId"}

    def test_unknown_type_before_auth(self, test_client: TestClient) -> None:
        with test_client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "typing"})
            assert ws.receive_json() == {"type": "error", "message": "Not authenticated"}

    def test_registry_is_per_app(self, test_client: TestClient) -> None:
        assert test_client.app.state.connection_registry.connection_count == 0
