"""
消息系统 Schema
"""

from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime

from models.message import MessagePriority


class MessageInfo(BaseModel):
    """消息"""
    id: int
    conversation_key: str
    sender_id: int
    recipient_id: int
    sender_email: str = ""
    sender_role: str = ""
    recipient_email: str = ""
    recipient_role: str = ""
    subject: Optional[str] = None
    body: str
    message_type: str = "direct"
    priority: str = "normal"
    is_read: bool = False
    read_at: Optional[datetime] = None
    reply_to_id: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MessageSend(BaseModel):
    """发送消息请求"""
    body: str = Field(..., description="消息正文")
    subject: Optional[str] = Field(None, max_length=200)
    recipient_id: Optional[int] = Field(None, description="接收账户ID")
    recipient_role: Optional[str] = Field(None, description="接收角色（群发）")
    reply_to_id: Optional[int] = Field(None, description="回复的消息ID")
    priority: MessagePriority = MessagePriority.NORMAL


class BroadcastFailure(BaseModel):
    """群发失败项"""
    recipient_id: int
    reason: str


class BroadcastSummary(BaseModel):
    """群发结果摘要"""
    sent: int
    failed: List[BroadcastFailure] = []


class MessageSendResponse(BaseModel):
    """发送消息响应"""
    id: Optional[int] = None
    conversation_key: Optional[str] = None
    created_at: Optional[datetime] = None
    broadcast: Optional[BroadcastSummary] = None


class ConversationSummary(BaseModel):
    """会话列表项"""
    conversation_key: str
    participant_id: int
    participant_email: str = ""
    participant_role: str = ""
    last_message: str
    last_message_id: int
    last_message_time: datetime
    unread_count: int = 0
