"""
通知路由测试
"""

import pytest
from httpx import AsyncClient

from services.notification_bridge import NotificationBridge
from tests.test_conftest import auth_headers


@pytest.mark.asyncio
class TestNotificationRouter:
    """通知接口"""

    async def _seed(self, client, db_session):
        await client.post(
            "/api/v1/messages", json={"recipient_id": 5, "body": "新消息"}, headers=auth_headers(1, "manager")
        )
        bridge = NotificationBridge(db_session)
        await bridge.notify(5, "系统维护", type="WARNING")
        await bridge.notify(9, "别人的通知")

    async def test_list_notifications(self, client: AsyncClient, db_session, accounts):
        await self._seed(client, db_session)

        response = await client.get("/api/v1/notifications", headers=auth_headers(5))
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == 2
        assert data["unread_count"] == 2
        assert data["page"] == 1
        assert data["items"][0]["title"] == "系统维护"
        assert data["items"][1]["type"] == "MESSAGE"
        assert data["items"][1]["link_to"] == "/messages?conversation=dm:1:5"

    async def test_filter_notifications(self, client: AsyncClient, db_session, accounts):
        await self._seed(client, db_session)

        response = await client.get(
            "/api/v1/notifications", params={"type": "MESSAGE"}, headers=auth_headers(5)
        )
        assert response.json()["data"]["total"] == 1

        response = await client.get(
            "/api/v1/notifications", params={"is_read": "true"}, headers=auth_headers(5)
        )
        assert response.json()["data"]["total"] == 0

    async def test_invalid_type_filter(self, client: AsyncClient, accounts):
        response = await client.get(
            "/api/v1/notifications", params={"type": "spam"}, headers=auth_headers(5)
        )
        assert response.status_code == 400

    async def test_mark_read(self, client: AsyncClient, db_session, accounts):
        await self._seed(client, db_session)
        items = (await client.get("/api/v1/notifications", headers=auth_headers(5))).json()["data"]["items"]

        response = await client.put(f"/api/v1/notifications/{items[0]['id']}/read", headers=auth_headers(5))
        assert response.status_code == 200
        assert response.json()["data"]["is_read"] is True

        count = await client.get("/api/v1/notifications/unread-count", headers=auth_headers(5))
        assert count.json()["data"]["count"] == 1

    async def test_mark_read_other_recipient(self, client: AsyncClient, db_session, accounts):
        await self._seed(client, db_session)
        items = (await client.get("/api/v1/notifications", headers=auth_headers(9))).json()["data"]["items"]

        response = await client.put(f"/api/v1/notifications/{items[0]['id']}/read", headers=auth_headers(5))
        assert response.status_code == 403

    async def test_mark_read_unknown(self, client: AsyncClient, accounts):
        response = await client.put("/api/v1/notifications/999/read", headers=auth_headers(5))
        assert response.status_code == 404
        assert response.json()["code"] == 4301

    async def test_mark_all_read(self, client: AsyncClient, db_session, accounts):
        await self._seed(client, db_session)

        first = await client.put("/api/v1/notifications/read-all", headers=auth_headers(5))
        assert first.json()["data"]["count"] == 2
        second = await client.put("/api/v1/notifications/read-all", headers=auth_headers(5))
        assert second.json()["data"]["count"] == 0

        count = await client.get("/api/v1/notifications/unread-count", headers=auth_headers(9))
        assert count.json()["data"]["count"] == 1

    async def test_director_creates_notification(self, client: AsyncClient, accounts):
        response = await client.post(
            "/api/v1/notifications",
            json={"recipient_id": 5, "title": "请假已批准", "type": "APPROVAL", "meta": {"leave_id": 3}},
            headers=auth_headers(2, "director")
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["type"] == "APPROVAL"
        assert data["sender_id"] == 2
        assert data["meta"] == {"leave_id": 3}

    async def test_message_type_reserved(self, client: AsyncClient, accounts):
        response = await client.post(
            "/api/v1/notifications",
            json={"recipient_id": 5, "title": "伪造", "type": "MESSAGE"},
            headers=auth_headers(2, "director")
        )
        assert response.status_code == 400
        assert response.json()["code"] == 4302

    async def test_only_director_creates_notification(self, client: AsyncClient, accounts):
        response = await client.post(
            "/api/v1/notifications",
            json={"recipient_id": 5, "title": "通知"},
            headers=auth_headers(1, "manager")
        )
        assert response.status_code == 403

    async def test_unknown_recipient(self, client: AsyncClient, accounts):
        response = await client.post(
            "/api/v1/notifications",
            json={"recipient_id": 404, "title": "通知"},
            headers=auth_headers(2, "director")
        )
        assert response.status_code == 404
