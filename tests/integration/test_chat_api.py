"""HTTP chat endpoints: chat list, opening chats, history and read state."""

from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from c42.chat.service import send_message
from tests.factories import auth_headers, make_chat, make_user


class TestOpenChat:
    @pytest.mark.asyncio
    async def test_create_and_reuse(self, client: AsyncClient, db_session: AsyncSession) -> None:
        alice = await make_user(db_session, "alice")
        bob = await make_user(db_session, "bob")

        response = await client.post("/api/chats", json={"userId": bob.id}, headers=auth_headers(alice))
        assert response.status_code == 201
        chat = response.json()
        assert {chat["user1Id"], chat["user2Id"]} == {alice.id, bob.id}

        again = await client.post("/api/chats", json={"userId": alice.id}, headers=auth_headers(bob))
        assert again.status_code == 200
        assert again.json()["id"] == chat["id"]

    @pytest.mark.asyncio
    async def test_self_chat(self, client: AsyncClient, db_session: AsyncSession) -> None:
        alice = await make_user(db_session, "alice")
        response = await client.post("/api/chats", json={"userId": alice.id}, headers=auth_headers(alice))
        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot start a chat with yourself"

    @pytest.mark.asyncio
    async def test_unknown_peer(self, client: AsyncClient, db_session: AsyncSession) -> None:
        alice = await make_user(db_session, "alice")
        response = await client.post("/api/chats", json={"userId": 9999}, headers=auth_headers(alice))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_requires_token(self, client: AsyncClient) -> None:
        response = await client.post("/api/chats", json={"userId": 1})
        assert response.status_code in (401, 403)


class TestHistory:
    @pytest.mark.asyncio
    async def test_history_then_marks_read(self, client: AsyncClient, db_session: AsyncSession) -> None:
        alice = await make_user(db_session, "alice")
        bob = await make_user(db_session, "bob")
        chat = await make_chat(db_session, alice, bob)
        await send_message(db_session, chat.id, alice.id, "first")
        await send_message(db_session, chat.id, bob.id, "reply")
        await send_message(db_session, chat.id, alice.id, "second")
        await db_session.commit()

        response = await client.get(f"/api/chats/{chat.id}/messages", headers=auth_headers(bob))
        assert response.status_code == 200
        history = response.json()
        assert [m["content"] for m in history] == ["first", "reply", "second"]
        # The response reflects the state before this fetch.
        assert all(m["read"] is False for m in history)
        assert history[0]["sender"]["username"] == "alice"

        response = await client.get(f"/api/chats/{chat.id}/messages", headers=auth_headers(bob))
        read_state = {m["content"]: m["read"] for m in response.json()}
        assert read_state == {"first": True, "reply": False, "second": True}

    @pytest.mark.asyncio
    async def test_own_messages_stay_unread(self, client: AsyncClient, db_session: AsyncSession) -> None:
        alice = await make_user(db_session, "alice")
        bob = await make_user(db_session, "bob")
        chat = await make_chat(db_session, alice, bob)
        await send_message(db_session, chat.id, alice.id, "hello?")
        await db_session.commit()

        await client.get(f"/api/chats/{chat.id}/messages", headers=auth_headers(alice))
        response = await client.get(f"/api/chats/{chat.id}/messages", headers=auth_headers(alice))
        assert response.json()[0]["read"] is False

    @pytest.mark.asyncio
    async def test_non_participant_forbidden(self, client: AsyncClient, db_session: AsyncSession) -> None:
        alice = await make_user(db_session, "alice")
        bob = await make_user(db_session, "bob")
        eve = await make_user(db_session, "eve")
        chat = await make_chat(db_session, alice, bob)
        response = await client.get(f"/api/chats/{chat.id}/messages", headers=auth_headers(eve))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_chat(self, client: AsyncClient, db_session: AsyncSession) -> None:
        alice = await make_user(db_session, "alice")
        response = await client.get("/api/chats/9999/messages", headers=auth_headers(alice))
        assert response.status_code == 404


class TestChatList:
    @pytest.mark.asyncio
    async def test_list_with_peer_and_last_message(self, client: AsyncClient, db_session: AsyncSession) -> None:
        alice = await make_user(db_session, "alice")
        bob = await make_user(db_session, "bob")
        chat = await make_chat(db_session, alice, bob)
        await send_message(db_session, chat.id, bob.id, "последнее")
        await db_session.commit()

        response = await client.get("/api/chats", headers=auth_headers(alice))
        assert response.status_code == 200
        chats = response.json()
        assert len(chats) == 1
        assert chats[0]["otherUser"]["username"] == "bob"
        assert chats[0]["lastMessage"]["content"] == "последнее"
