"""
数据模型目录
"""

from .account import Account, AccountRole
from .message import Message, MessageType, MessagePriority
from .notification import Notification, NotificationType

__all__ = [
    "Account", "AccountRole",
    "Message", "MessageType", "MessagePriority",
    "Notification", "NotificationType"
]
