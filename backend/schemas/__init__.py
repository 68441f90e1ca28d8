"""
Schema 目录
"""

from .account import AccountInfo
from .message import (
    MessageInfo, MessageSend, MessageSendResponse,
    BroadcastFailure, BroadcastSummary, ConversationSummary
)
from .notification import NotificationInfo, NotificationCreate, NotificationListResponse
from .response import ApiResponse, success

__all__ = [
    "AccountInfo",
    "MessageInfo", "MessageSend", "MessageSendResponse",
    "BroadcastFailure", "BroadcastSummary", "ConversationSummary",
    "NotificationInfo", "NotificationCreate", "NotificationListResponse",
    "ApiResponse", "success"
]
