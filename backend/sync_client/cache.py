"""
会话缓存
客户端的短期缓存，只用于在请求返回前先渲染旧数据，从不作为数据源
"""

import time
from typing import Callable, List, Optional

from cachetools import TTLCache

# 会话列表在缓存中的键
_CONVERSATIONS = "__conversations__"


class ConversationCache:
    """会话列表与会话消息的 TTL 缓存（消息按条复制存取，已渲染的列表不受本地已读标记影响）"""

    def __init__(self, ttl: float = 60.0, maxsize: int = 128, timer: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._threads = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        self._lists = TTLCache(maxsize=1, ttl=ttl, timer=timer)

    def get_thread(self, conversation_key: str) -> Optional[List[dict]]:
        thread = self._threads.get(conversation_key)
        return None if thread is None else [dict(m) for m in thread]

    def put_thread(self, conversation_key: str, messages: List[dict]):
        self._threads[conversation_key] = [dict(m) for m in messages]

    def get_conversations(self) -> Optional[List[dict]]:
        return self._lists.get(_CONVERSATIONS)

    def put_conversations(self, conversations: List[dict]):
        self._lists[_CONVERSATIONS] = list(conversations)

    def mark_thread_read(self, conversation_key: str, reader_id: Optional[int] = None):
        """标记已读成功后同步本地副本：会话未读数清零，发给读者的消息置为已读"""
        conversations = self.get_conversations()
        if conversations is not None:
            for item in conversations:
                if item.get("conversation_key") == conversation_key:
                    item["unread_count"] = 0

        thread = self._threads.get(conversation_key)
        if thread is not None and reader_id is not None:
            for message in thread:
                if message.get("recipient_id") == reader_id:
                    message["is_read"] = True

    def invalidate(self, conversation_key: Optional[str] = None):
        """丢弃单个会话（或全部）缓存"""
        if conversation_key is None:
            self._threads.clear()
            self._lists.clear()
        else:
            self._threads.pop(conversation_key, None)

    def clear(self):
        self.invalidate()
