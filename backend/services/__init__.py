"""
消息与通知核心服务
"""

from .conversation import key_for, parse_key, is_participant, other_participant
from .directory import AccountDirectory, normalize_role
from .message_store import MessageStore
from .broadcast import BroadcastFanout, BroadcastResult
from .read_state import ReadStateTracker
from .notification_bridge import NotificationBridge

__all__ = [
    "key_for", "parse_key", "is_participant", "other_participant",
    "AccountDirectory", "normalize_role",
    "MessageStore",
    "BroadcastFanout", "BroadcastResult",
    "ReadStateTracker",
    "NotificationBridge"
]
