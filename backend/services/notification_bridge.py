"""
通知桥接
消息落库时为接收者生成 MESSAGE 通知，同时提供通用通知收件箱
（请假审批、访问告警等子系统也通过这里写入通知）
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, func, desc, and_, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.errors import (
    NotFoundException, PermissionException, ValidationException, ErrorCode
)
from models.message import Message
from models.notification import Notification, NotificationType
from schemas.account import AccountInfo
from utils.text import truncate
from utils.timezone import get_utc_now

logger = logging.getLogger(__name__)


def conversation_link(conversation_key: str) -> str:
    """会话在前端的跳转地址"""
    return f"/messages?conversation={conversation_key}"


class NotificationBridge:
    """通知服务"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()

    # ==================== 写入 ====================

    def on_message_persisted(self, message: Message, sender: AccountInfo) -> Notification:
        """
        消息落库后为接收者生成通知

        与消息处于同一事务中，由调用方负责提交
        """
        notification = Notification(
            recipient_id=message.recipient_id,
            sender_id=message.sender_id,
            title=f"{sender.display_name} 发来新消息",
            message=truncate(message.body, self.settings.notification_preview_length),
            type=NotificationType.MESSAGE.value,
            link_to=conversation_link(message.conversation_key),
            meta={
                "message_id": message.id,
                "conversation_key": message.conversation_key,
                "message_type": message.message_type
            },
            is_read=False
        )
        self.db.add(notification)
        return notification

    async def notify(
        self,
        recipient_id: int,
        title: str,
        message: str = "",
        type: str = NotificationType.INFO.value,
        link_to: Optional[str] = None,
        sender_id: Optional[int] = None,
        meta: Optional[dict] = None
    ) -> Notification:
        """其他子系统写入通知的入口"""
        notification_type = self._parse_type(type)
        if notification_type == NotificationType.MESSAGE:
            raise ValidationException(code=ErrorCode.NOTIFICATION_TYPE_RESERVED)

        notification = Notification(
            recipient_id=recipient_id,
            sender_id=sender_id,
            title=title,
            message=message or "",
            type=notification_type.value,
            link_to=link_to,
            meta=meta,
            is_read=False
        )
        self.db.add(notification)
        await self.db.commit()
        await self.db.refresh(notification)
        logger.info(f"已向账户 {recipient_id} 发送 {notification_type.value} 通知")
        return notification

    # ==================== 查询 ====================

    async def list_notifications(
        self,
        account_id: int,
        type: Optional[str] = None,
        is_read: Optional[bool] = None,
        page: int = 1,
        size: int = 20
    ) -> Tuple[List[Notification], int, int]:
        """获取通知列表，返回 (当前页, 总数, 未读数)"""
        query = select(Notification).where(Notification.recipient_id == account_id)

        if type:
            query = query.where(Notification.type == self._parse_type(type).value)

        if is_read is not None:
            query = query.where(Notification.is_read == is_read)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar_one()

        query = query.order_by(desc(Notification.created_at), desc(Notification.id))
        query = query.offset((page - 1) * size).limit(size)
        result = await self.db.execute(query)

        return list(result.scalars().all()), total, await self.unread_count(account_id)

    async def unread_count(self, account_id: int) -> int:
        """未读通知数量"""
        result = await self.db.execute(
            select(func.count()).where(
                and_(
                    Notification.recipient_id == account_id,
                    Notification.is_read == False  # noqa: E712
                )
            )
        )
        return result.scalar_one()

    # ==================== 已读状态 ====================

    async def mark_read(self, notification_id: int, account_id: int) -> Notification:
        """标记单条通知已读（仅接收者本人）"""
        result = await self.db.execute(
            select(Notification).where(Notification.id == notification_id)
        )
        notification = result.scalar_one_or_none()

        if not notification:
            raise NotFoundException("通知", notification_id, code=ErrorCode.NOTIFICATION_NOT_FOUND)

        if notification.recipient_id != account_id:
            raise PermissionException("只能标记自己的通知")

        if not notification.is_read:
            await self.db.execute(
                update(Notification).where(
                    and_(
                        Notification.id == notification_id,
                        Notification.is_read == False  # noqa: E712
                    )
                ).values(is_read=True, read_at=get_utc_now())
            )
            await self.db.commit()
            await self.db.refresh(notification)

        return notification

    async def mark_all_read(self, account_id: int) -> int:
        """标记全部通知已读，返回本次更新的数量"""
        result = await self.db.execute(
            update(Notification).where(
                and_(
                    Notification.recipient_id == account_id,
                    Notification.is_read == False  # noqa: E712
                )
            ).values(is_read=True, read_at=get_utc_now())
        )
        await self.db.commit()
        return result.rowcount or 0

    @staticmethod
    def _parse_type(value) -> NotificationType:
        try:
            return NotificationType(value.value if isinstance(value, NotificationType) else str(value).upper())
        except ValueError:
            raise ValidationException(f"不支持的通知类型: {value}")
