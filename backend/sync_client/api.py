"""
消息接口客户端
基于 httpx.AsyncClient 调用 /api/v1 下的消息接口，并解开统一响应信封
"""

import logging
from typing import Any, List, Optional

import httpx

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class SyncError(Exception):
    """
    同步失败（可恢复）

    网络错误时 status_code 为 None；接口返回错误时携带 HTTP 状态码和业务错误码
    """

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)

    @property
    def is_transport_error(self) -> bool:
        return self.status_code is None


class MessagingApiClient:
    """消息接口客户端"""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self.token = token

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self):
        """关闭底层连接（外部传入的客户端由调用方关闭）"""
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> dict:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """发送请求并返回信封中的 data"""
        try:
            response = await self._client.request(
                method, f"{API_PREFIX}{path}", headers=self._headers(), **kwargs
            )
        except httpx.HTTPError as e:
            logger.warning(f"请求 {method} {path} 失败: {e}")
            raise SyncError(f"网络错误: {e.__class__.__name__}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.is_error:
            raise SyncError(
                payload.get("message") or f"HTTP {response.status_code}",
                status_code=response.status_code,
                code=payload.get("code")
            )

        return payload.get("data")

    # ==================== 消息 ====================

    async def list_conversations(self) -> List[dict]:
        return await self._request("GET", "/messages/conversations")

    async def list_messages(self, conversation_key: str) -> List[dict]:
        return await self._request("GET", f"/messages/conversations/{conversation_key}")

    async def mark_conversation_read(self, conversation_key: str) -> int:
        data = await self._request("PUT", f"/messages/conversations/{conversation_key}/read")
        return data["count"]

    async def send_message(
        self,
        body: str,
        recipient_id: Optional[int] = None,
        recipient_role: Optional[str] = None,
        subject: Optional[str] = None,
        reply_to_id: Optional[int] = None,
        priority: str = "normal"
    ) -> dict:
        """发送消息，返回 {id, conversation_key, created_at, broadcast}"""
        payload = {"body": body, "priority": priority}
        if recipient_id is not None:
            payload["recipient_id"] = recipient_id
        if recipient_role is not None:
            payload["recipient_role"] = recipient_role
        if subject:
            payload["subject"] = subject
        if reply_to_id is not None:
            payload["reply_to_id"] = reply_to_id
        return await self._request("POST", "/messages", json=payload)

    async def unread_count(self) -> int:
        data = await self._request("GET", "/messages/unread-count")
        return data["count"]

    # ==================== 通知 ====================

    async def list_notifications(self, is_read: Optional[bool] = None, page: int = 1, size: int = 20) -> dict:
        params = {"page": page, "size": size}
        if is_read is not None:
            params["is_read"] = str(is_read).lower()
        return await self._request("GET", "/notifications", params=params)
