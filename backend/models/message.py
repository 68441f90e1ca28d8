"""
消息数据模型
会话不单独建表，由 conversation_key 聚合得到
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from sqlalchemy import String, Integer, Text, DateTime, ForeignKey, Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base
from utils.timezone import get_utc_now


class MessageType(str, Enum):
    """消息类型"""
    DIRECT = "direct"
    BROADCAST = "broadcast"


class MessagePriority(str, Enum):
    """消息优先级"""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class Message(Base):
    """消息表（每行只有一个接收者，群发会拆成多行）"""
    __tablename__ = "msg_messages"
    __table_args__ = (
        Index("idx_msg_recipient_read", "recipient_id", "is_read"),
        Index("idx_msg_conversation_created", "conversation_key", "created_at"),
        {"comment": "站内消息表"}
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, comment="主键ID")
    conversation_key: Mapped[str] = mapped_column(String(64), comment="会话键 dm:<小ID>:<大ID>")
    sender_id: Mapped[int] = mapped_column(Integer, ForeignKey("sys_accounts.id"), index=True, comment="发送者ID")
    recipient_id: Mapped[int] = mapped_column(Integer, ForeignKey("sys_accounts.id"), nullable=False, comment="接收者ID")
    # 发送时的身份快照，角色变更后历史会话仍能正确展示
    sender_email: Mapped[str] = mapped_column(String(255), default="", comment="发送者邮箱")
    sender_role: Mapped[str] = mapped_column(String(20), default="", comment="发送者角色")
    recipient_email: Mapped[str] = mapped_column(String(255), default="", comment="接收者邮箱")
    recipient_role: Mapped[str] = mapped_column(String(20), default="", comment="接收者角色")
    subject: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, comment="主题")
    body: Mapped[str] = mapped_column(Text, comment="正文")
    message_type: Mapped[str] = mapped_column(String(20), default=MessageType.DIRECT.value, comment="消息类型")
    priority: Mapped[str] = mapped_column(String(20), default=MessagePriority.NORMAL.value, comment="优先级")
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, comment="是否已读")
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, comment="阅读时间")
    reply_to_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("msg_messages.id"), nullable=True, comment="回复的消息ID")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=get_utc_now, comment="创建时间")
