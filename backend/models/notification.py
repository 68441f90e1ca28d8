"""
通知系统数据模型
"""

from typing import Optional
from datetime import datetime
from enum import Enum
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Text, DateTime, ForeignKey, Boolean, JSON, Index

from core.database import Base
from utils.timezone import get_utc_now


class NotificationType(str, Enum):
    """通知类型"""
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    MESSAGE = "MESSAGE"  # 仅由消息系统生成
    APPROVAL = "APPROVAL"
    LEAVE = "LEAVE"


class Notification(Base):
    """通知表"""
    __tablename__ = "sys_notifications"
    __table_args__ = (
        Index("idx_notify_recipient_read", "recipient_id", "is_read"),
        Index("idx_notify_recipient_created", "recipient_id", "created_at"),
        {"comment": "系统通知表"}
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, comment="主键ID")
    recipient_id: Mapped[int] = mapped_column(Integer, ForeignKey("sys_accounts.id"), comment="接收账户ID")
    sender_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("sys_accounts.id"), nullable=True, comment="发送者ID")
    title: Mapped[str] = mapped_column(String(200), comment="通知标题")
    message: Mapped[str] = mapped_column(Text, default="", comment="通知内容")
    type: Mapped[str] = mapped_column(String(20), default=NotificationType.INFO.value, comment="通知类型")
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, comment="是否已读")
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, comment="阅读时间")
    link_to: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, comment="前端跳转链接")
    meta: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True, comment="附加数据")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=get_utc_now, comment="创建时间")
