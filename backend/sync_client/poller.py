"""
客户端同步轮询器
定时拉取会话列表与当前打开的会话；没有推送通道，下一次轮询就是失败后的重试
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, List, Optional

from core.config import get_settings
from .api import MessagingApiClient, SyncError
from .cache import ConversationCache

logger = logging.getLogger(__name__)


class ClientSyncPoller:
    """
    轮询同步

    Usage:
        poller = ClientSyncPoller(api, on_conversations=render_list, on_thread=render_thread)
        await poller.start()
        await poller.open_thread("dm:1:5")
        ...
        await poller.stop()
    """

    def __init__(
        self,
        api: MessagingApiClient,
        interval: Optional[float] = None,
        cache_ttl: float = 60.0,
        account_id: Optional[int] = None,
        on_conversations: Optional[Callable] = None,
        on_thread: Optional[Callable] = None,
        on_error: Optional[Callable] = None,
        cache: Optional[ConversationCache] = None
    ):
        self.api = api
        self.interval = interval if interval is not None else get_settings().poll_interval_seconds
        self.account_id = account_id
        self.cache = cache or ConversationCache(ttl=cache_ttl)
        self.on_conversations = on_conversations
        self.on_thread = on_thread
        self.on_error = on_error

        self.current_key: Optional[str] = None
        self.conversations: List[dict] = []
        self.running = False
        self._task: Optional[asyncio.Task] = None

    # ==================== 生命周期 ====================

    async def start(self):
        """启动轮询（立即执行第一次）"""
        if self.running:
            return
        self.running = True
        self._task = asyncio.create_task(self._run())
        logger.debug(f"同步轮询已启动，间隔 {self.interval} 秒")

    async def stop(self, timeout: float = 5.0):
        """停止轮询"""
        self.running = False
        if self._task is None:
            return

        self._task.cancel()
        try:
            await asyncio.wait_for(asyncio.gather(self._task, return_exceptions=True), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"同步轮询停止超时（{timeout}s）")
        self._task = None
        logger.debug("同步轮询已停止")

    async def _run(self):
        while self.running:
            try:
                await self.tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                # 回调或响应数据出错也不能终止轮询
                logger.error(f"同步轮询出错: {e}", exc_info=True)
                try:
                    await self._emit(self.on_error, e)
                except Exception as callback_error:
                    logger.error(f"错误回调执行失败: {callback_error}", exc_info=True)

            try:
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break

    # ==================== 同步 ====================

    async def tick(self) -> bool:
        """
        执行一次同步：刷新会话列表，再刷新当前打开的会话

        失败只记录并通知界面，返回 False；下一次轮询即为重试
        """
        try:
            await self.refresh_conversations()
            if self.current_key:
                await self.refresh_thread(self.current_key)
            return True
        except SyncError as e:
            logger.warning(f"同步失败: {e.message}")
            await self._emit(self.on_error, e)
            return False

    async def refresh_conversations(self) -> List[dict]:
        conversations = await self.api.list_conversations()
        self.conversations = conversations
        self.cache.put_conversations(conversations)
        await self._emit(self.on_conversations, conversations)
        return conversations

    async def refresh_thread(self, conversation_key: str) -> List[dict]:
        messages = await self.api.list_messages(conversation_key)
        self.cache.put_thread(conversation_key, messages)
        await self._emit(self.on_thread, conversation_key, messages)
        return messages

    async def open_thread(self, conversation_key: str) -> List[dict]:
        """
        打开会话：先渲染缓存（可能过期），再拉取最新消息，渲染后标记已读

        拉取失败时返回缓存内容；标记失败不影响已拉到的消息，本地未读数保持不变
        """
        self.current_key = conversation_key

        cached = self.cache.get_thread(conversation_key)
        if cached is not None:
            await self._emit(self.on_thread, conversation_key, cached)

        try:
            messages = await self.refresh_thread(conversation_key)
        except SyncError as e:
            logger.warning(f"拉取会话 {conversation_key} 失败: {e.message}")
            await self._emit(self.on_error, e)
            return cached or []

        try:
            await self.api.mark_conversation_read(conversation_key)
        except SyncError as e:
            logger.warning(f"标记会话 {conversation_key} 已读失败: {e.message}")
            await self._emit(self.on_error, e)
            return messages

        self.cache.mark_thread_read(conversation_key, self.account_id)
        for item in self.conversations:
            if item.get("conversation_key") == conversation_key:
                item["unread_count"] = 0
        await self._emit(self.on_conversations, self.conversations)
        return messages

    def close_thread(self):
        self.current_key = None

    async def send(
        self,
        body: str,
        recipient_id: Optional[int] = None,
        recipient_role: Optional[str] = None,
        subject: Optional[str] = None,
        reply_to_id: Optional[int] = None,
        priority: str = "normal"
    ) -> dict:
        """发送后立即刷新会话列表和对应会话，不等下一次轮询"""
        result = await self.api.send_message(
            body,
            recipient_id=recipient_id,
            recipient_role=recipient_role,
            subject=subject,
            reply_to_id=reply_to_id,
            priority=priority
        )

        try:
            await self.refresh_conversations()
            key = result.get("conversation_key")
            if key:
                await self.refresh_thread(key)
        except SyncError as e:
            logger.warning(f"发送后刷新失败: {e.message}")
            await self._emit(self.on_error, e)

        return result

    @property
    def unread_total(self) -> int:
        return sum(item.get("unread_count", 0) for item in self.conversations)

    @staticmethod
    async def _emit(callback: Optional[Callable], *args: Any):
        if callback is None:
            return
        result = callback(*args)
        if inspect.isawaitable(result):
            await result
