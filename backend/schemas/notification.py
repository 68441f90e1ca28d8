"""
通知系统 Schema
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime

from models.notification import NotificationType


class NotificationInfo(BaseModel):
    """通知信息"""
    id: int
    recipient_id: int
    sender_id: Optional[int] = None
    title: str
    message: str = ""
    type: str = NotificationType.INFO.value
    is_read: bool = False
    read_at: Optional[datetime] = None
    link_to: Optional[str] = None
    meta: Optional[dict] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationCreate(BaseModel):
    """创建通知请求（请假审批、访问告警等其他子系统使用）"""
    recipient_id: int = Field(..., description="接收账户ID")
    title: str = Field(..., min_length=1, max_length=200)
    message: str = ""
    type: NotificationType = NotificationType.INFO
    link_to: Optional[str] = Field(None, max_length=500)
    meta: Optional[dict] = None


class NotificationListResponse(BaseModel):
    """通知列表响应"""
    items: list[NotificationInfo]
    total: int
    unread_count: int
    page: int
    size: int
