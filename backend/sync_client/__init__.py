"""
客户端同步
轮询消息接口，为界面维护会话列表与当前会话的本地视图
"""

from .api import MessagingApiClient, SyncError
from .cache import ConversationCache
from .poller import ClientSyncPoller

__all__ = [
    "MessagingApiClient",
    "SyncError",
    "ConversationCache",
    "ClientSyncPoller"
]
