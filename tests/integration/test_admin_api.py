"""Admin endpoints: activity points, ranks, moderation and role checks."""

from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from c42.db.models import Rank, User
from tests.factories import auth_headers, make_user


async def _admin(db: AsyncSession) -> User:
    return await make_user(db, "admin", role="admin")


async def _rank_id(db: AsyncSession, name: str) -> int:
    return (await db.execute(select(Rank.id).where(Rank.name == name))).scalar_one()


class TestAccess:
    @pytest.mark.asyncio
    async def test_regular_user_forbidden(self, client: AsyncClient, db_session: AsyncSession) -> None:
        user = await make_user(db_session, "user")
        response = await client.get("/api/admin/ranks", headers=auth_headers(user))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_banned_admin_forbidden(self, client: AsyncClient, db_session: AsyncSession) -> None:
        admin = await make_user(db_session, "fallen", role="admin", is_banned=True)
        response = await client.get("/api/admin/ranks", headers=auth_headers(admin))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_garbage_token(self, client: AsyncClient) -> None:
        response = await client.get("/api/admin/ranks", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401


class TestAddActivity:
    @pytest.mark.asyncio
    async def test_add_activity(self, client: AsyncClient, db_session: AsyncSession) -> None:
        admin = await _admin(db_session)
        user = await make_user(db_session, "active", gender="male", activity_points=95)

        response = await client.post(
            f"/api/admin/users/{user.id}/add-activity", json={"points": 5}, headers=auth_headers(admin)
        )
        assert response.status_code == 200
        assert response.json() == {
            "userId": user.id,
            "activityPoints": 100,
            "rank": "42-БРАТУХА",
            "rankChanged": True,
            "pinned": False,
        }

    @pytest.mark.parametrize("points", [0, -1])
    @pytest.mark.asyncio
    async def test_non_positive_points(self, client: AsyncClient, db_session: AsyncSession, points: int) -> None:
        admin = await _admin(db_session)
        user = await make_user(db_session, "active")
        response = await client.post(
            f"/api/admin/users/{user.id}/add-activity", json={"points": points}, headers=auth_headers(admin)
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Valid points value is required"

    @pytest.mark.asyncio
    async def test_unknown_user(self, client: AsyncClient, db_session: AsyncSession) -> None:
        admin = await _admin(db_session)
        response = await client.post(
            "/api/admin/users/9999/add-activity", json={"points": 5}, headers=auth_headers(admin)
        )
        assert response.status_code == 404


class TestRanks:
    @pytest.mark.asyncio
    async def test_list_and_create(self, client: AsyncClient, db_session: AsyncSession) -> None:
        admin = await _admin(db_session)
        headers = auth_headers(admin)

        response = await client.post("/api/admin/ranks", json={"name": "Легенда чата"}, headers=headers)
        assert response.status_code == 201
        created = response.json()
        assert created["isSystem"] is False
        assert created["createdBy"] == admin.id

        names = [r["name"] for r in (await client.get("/api/admin/ranks", headers=headers)).json()]
        assert "Легенда чата" in names
        assert len(names) == 12

        duplicate = await client.post("/api/admin/ranks", json={"name": "Легенда чата"}, headers=headers)
        assert duplicate.status_code == 400

    @pytest.mark.asyncio
    async def test_assign_list_remove(self, client: AsyncClient, db_session: AsyncSession) -> None:
        admin = await _admin(db_session)
        user = await make_user(db_session, "ranked")
        headers = auth_headers(admin)
        rank_id = await _rank_id(db_session, "Радиант")

        response = await client.post(
            f"/api/admin/users/{user.id}/ranks", json={"rankId": rank_id}, headers=headers
        )
        assert response.status_code == 200
        body = response.json()
        assert body["isActive"] is True
        assert body["assignedBy"] == admin.id
        assert body["rank"]["name"] == "Радиант"

        held = (await client.get(f"/api/admin/users/{user.id}/ranks", headers=headers)).json()
        assert [a["rank"]["name"] for a in held] == ["Радиант"]

        profile = (await client.get(f"/api/users/{user.id}")).json()
        assert profile["rank"] == "Радиант"

        removed = await client.delete(f"/api/admin/users/{user.id}/ranks/{rank_id}", headers=headers)
        assert removed.status_code == 200
        assert (await client.get(f"/api/users/{user.id}")).json()["rank"] == "Чебоксарец"

        again = await client.delete(f"/api/admin/users/{user.id}/ranks/{rank_id}", headers=headers)
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_limit_returns_conflict(self, client: AsyncClient, db_session: AsyncSession) -> None:
        admin = await _admin(db_session)
        user = await make_user(db_session, "greedy")
        headers = auth_headers(admin)
        for i in range(11):
            await client.post("/api/admin/ranks", json={"name": f"Звание {i}"}, headers=headers)
        ranks = (await client.get("/api/admin/ranks", headers=headers)).json()
        custom = [r["id"] for r in ranks if r["name"].startswith("Звание")]

        for rank_id in custom[:10]:
            ok = await client.post(
                f"/api/admin/users/{user.id}/ranks", json={"rankId": rank_id, "isActive": False}, headers=headers
            )
            assert ok.status_code == 200

        response = await client.post(f"/api/admin/users/{user.id}/ranks", json={"rankId": custom[10]}, headers=headers)
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_primary_rank(self, client: AsyncClient, db_session: AsyncSession) -> None:
        admin = await _admin(db_session)
        user = await make_user(db_session, "primary")
        response = await client.post(
            f"/api/admin/users/{user.id}/primary-rank", json={"rank": "Сырок"}, headers=auth_headers(admin)
        )
        assert response.status_code == 200
        assert response.json()["rank"] == "Сырок"

    @pytest.mark.asyncio
    async def test_pinned_rank_survives_activity(self, client: AsyncClient, db_session: AsyncSession) -> None:
        admin = await _admin(db_session)
        user = await make_user(db_session, "pinned", gender="female")
        headers = auth_headers(admin)
        await client.post(
            f"/api/admin/users/{user.id}/ranks",
            json={"rankId": await _rank_id(db_session, "Сырок")},
            headers=headers,
        )
        response = await client.post(
            f"/api/admin/users/{user.id}/add-activity", json={"points": 200}, headers=headers
        )
        assert response.json()["pinned"] is True
        assert response.json()["rank"] == "Сырок"


class TestModeration:
    @pytest.mark.asyncio
    async def test_ban_and_unban(self, client: AsyncClient, db_session: AsyncSession) -> None:
        admin = await _admin(db_session)
        user = await make_user(db_session, "troll")
        headers = auth_headers(admin)

        banned = await client.post(f"/api/admin/users/{user.id}/ban", json={"reason": "spam"}, headers=headers)
        assert banned.json()["isBanned"] is True
        assert (await client.get("/api/users/me", headers=auth_headers(user))).status_code == 403

        unbanned = await client.post(f"/api/admin/users/{user.id}/unban", headers=headers)
        assert unbanned.json()["isBanned"] is False

    @pytest.mark.asyncio
    async def test_cannot_ban_admin(self, client: AsyncClient, db_session: AsyncSession) -> None:
        admin = await _admin(db_session)
        other = await make_user(db_session, "other-admin", role="admin")
        response = await client.post(
            f"/api/admin/users/{other.id}/ban", json={"reason": "coup"}, headers=auth_headers(admin)
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_mute_and_unmute(self, client: AsyncClient, db_session: AsyncSession) -> None:
        admin = await _admin(db_session)
        user = await make_user(db_session, "loud")
        headers = auth_headers(admin)
        muted = await client.post(
            f"/api/admin/users/{user.id}/mute", json={"duration": 600, "reason": "flood"}, headers=headers
        )
        assert muted.json()["isMuted"] is True
        assert muted.json()["muteEndTime"] is not None

        unmuted = await client.post(f"/api/admin/users/{user.id}/unmute", headers=headers)
        assert unmuted.json()["isMuted"] is False

    @pytest.mark.asyncio
    async def test_promote(self, client: AsyncClient, db_session: AsyncSession) -> None:
        admin = await _admin(db_session)
        owner = await make_user(db_session, "owner", role="owner")
        user = await make_user(db_session, "helper")

        ok = await client.post(
            f"/api/admin/users/{user.id}/promote", json={"role": "moderator"}, headers=auth_headers(admin)
        )
        assert ok.json()["role"] == "moderator"

        denied = await client.post(
            f"/api/admin/users/{user.id}/promote", json={"role": "admin"}, headers=auth_headers(admin)
        )
        assert denied.status_code == 403

        by_owner = await client.post(
            f"/api/admin/users/{user.id}/promote", json={"role": "admin"}, headers=auth_headers(owner)
        )
        assert by_owner.json()["role"] == "admin"

    @pytest.mark.asyncio
    async def test_list_users(self, client: AsyncClient, db_session: AsyncSession) -> None:
        admin = await _admin(db_session)
        for i in range(3):
            await make_user(db_session, f"member{i}")
        response = await client.get("/api/admin/users?limit=2", headers=auth_headers(admin))
        assert response.status_code == 200
        assert len(response.json()) == 2


class TestWsStats:
    @pytest.mark.asyncio
    async def test_stats_empty(self, client: AsyncClient, db_session: AsyncSession) -> None:
        admin = await _admin(db_session)
        response = await client.get("/api/admin/ws/stats", headers=auth_headers(admin))
        assert response.json() == {"total_connections": 0, "messages_sent": 0}
