"""
消息存储
只追加的消息日志，按会话键聚合出会话列表和会话内消息
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import select, func, and_, or_, exists
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.errors import (
    ValidationException, PermissionException, NotFoundException, ErrorCode
)
from models.account import Account
from models.message import Message, MessageType, MessagePriority
from schemas.message import ConversationSummary
from utils.text import normalize_body, truncate
from utils.timezone import ensure_utc
from .conversation import key_for, is_participant, other_participant
from .directory import AccountDirectory, normalize_role
from .notification_bridge import NotificationBridge

logger = logging.getLogger(__name__)

# 会话列表中最后一条消息的预览长度
LAST_MESSAGE_PREVIEW_LENGTH = 120


class MessageStore:
    """消息存储服务"""

    def __init__(
        self,
        db: AsyncSession,
        directory: Optional[AccountDirectory] = None,
        bridge: Optional[NotificationBridge] = None
    ):
        self.db = db
        self.directory = directory or AccountDirectory(db)
        self.bridge = bridge or NotificationBridge(db)
        self.settings = get_settings()

    # ==================== 写入 ====================

    def validate_body(self, body: str) -> str:
        """校验并规范化消息正文"""
        body = normalize_body(body)
        if not body:
            raise ValidationException(code=ErrorCode.MESSAGE_EMPTY_BODY)
        if len(body) > self.settings.message_max_length:
            raise ValidationException(f"消息内容不能超过 {self.settings.message_max_length} 个字符")
        return body

    def validate_priority(self, priority: str) -> str:
        try:
            return MessagePriority(priority).value
        except ValueError:
            raise ValidationException(f"不支持的消息优先级: {priority}")

    async def append(
        self,
        sender_id: int,
        recipient_id: int,
        body: str,
        subject: Optional[str] = None,
        reply_to_id: Optional[int] = None,
        message_type: str = MessageType.DIRECT.value,
        priority: str = MessagePriority.NORMAL.value
    ) -> Message:
        """
        追加一条消息

        校验通过后写入一行消息并同步生成接收者的 MESSAGE 通知，二者在同一事务中提交
        """
        body = self.validate_body(body)

        if recipient_id == sender_id:
            raise ValidationException(code=ErrorCode.MESSAGE_SELF_ADDRESSED)

        sender = await self.directory.get_account(sender_id)
        recipient = await self.directory.get_account(recipient_id)
        if not recipient.is_active:
            raise ValidationException(f"接收账户 {recipient_id} 已停用")

        conversation_key = key_for(sender_id, recipient_id)

        if reply_to_id is not None:
            result = await self.db.execute(
                select(Message.conversation_key).where(Message.id == reply_to_id)
            )
            target_key = result.scalar_one_or_none()
            if target_key != conversation_key:
                raise ValidationException(code=ErrorCode.MESSAGE_REPLY_OUTSIDE_CONVERSATION)

        message = Message(
            conversation_key=conversation_key,
            sender_id=sender_id,
            recipient_id=recipient_id,
            sender_email=sender.email,
            sender_role=sender.role,
            recipient_email=recipient.email,
            recipient_role=recipient.role,
            subject=subject.strip() if subject and subject.strip() else None,
            body=body,
            message_type=MessageType(message_type).value,
            priority=self.validate_priority(priority),
            is_read=False,
            reply_to_id=reply_to_id
        )

        try:
            self.db.add(message)
            await self.db.flush()

            self.bridge.on_message_persisted(message, sender)

            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        logger.debug(f"消息 {message.id} 已写入会话 {conversation_key}")
        return message

    # ==================== 查询 ====================

    async def ensure_participant(self, conversation_key: str, account_id: int) -> None:
        """
        校验调用者可以访问该会话

        键格式不合法或会话中没有任何消息视为不存在；调用者不是参与者则无权访问
        """
        if not is_participant(conversation_key, account_id):
            raise PermissionException("无权访问该会话")

        found = await self.db.execute(
            select(exists().where(Message.conversation_key == conversation_key))
        )
        if not found.scalar():
            raise NotFoundException("会话", conversation_key, code=ErrorCode.CONVERSATION_NOT_FOUND)

    async def list_messages(self, conversation_key: str, account_id: int) -> List[Message]:
        """获取会话内全部消息，按 (created_at, id) 升序"""
        await self.ensure_participant(conversation_key, account_id)

        stmt = select(Message).where(
            Message.conversation_key == conversation_key
        ).order_by(Message.created_at, Message.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_conversations_for(self, account_id: int) -> List[ConversationSummary]:
        """
        获取账户参与的全部会话

        每个会话取 (created_at, id) 最大的一条作为最后消息，最近活跃的会话在前
        """
        involved = or_(Message.sender_id == account_id, Message.recipient_id == account_id)

        ranked = select(
            Message.id.label("id"),
            func.row_number().over(
                partition_by=Message.conversation_key,
                order_by=(Message.created_at.desc(), Message.id.desc())
            ).label("rn")
        ).where(involved).subquery()

        stmt = select(Message).join(
            ranked, ranked.c.id == Message.id
        ).where(ranked.c.rn == 1).order_by(Message.created_at.desc(), Message.id.desc())
        result = await self.db.execute(stmt)
        latest = list(result.scalars().all())

        if not latest:
            return []

        unread = await self._unread_by_conversation(account_id)
        others = await self._load_participants(
            {other_participant(m.conversation_key, account_id) for m in latest}
        )

        summaries = []
        for message in latest:
            other_id = other_participant(message.conversation_key, account_id)
            other = others.get(other_id)
            if other is not None:
                email, role = other.email, normalize_role(other.role)
            elif message.sender_id == other_id:
                email, role = message.sender_email, message.sender_role
            else:
                email, role = message.recipient_email, message.recipient_role

            summaries.append(ConversationSummary(
                conversation_key=message.conversation_key,
                participant_id=other_id,
                participant_email=email,
                participant_role=role,
                last_message=truncate(message.body, LAST_MESSAGE_PREVIEW_LENGTH),
                last_message_id=message.id,
                last_message_time=ensure_utc(message.created_at),
                unread_count=unread.get(message.conversation_key, 0)
            ))
        return summaries

    async def unread_count(self, account_id: int) -> int:
        """账户的未读消息总数"""
        result = await self.db.execute(
            select(func.count()).where(
                and_(
                    Message.recipient_id == account_id,
                    Message.is_read == False  # noqa: E712
                )
            )
        )
        return result.scalar_one()

    async def _unread_by_conversation(self, account_id: int) -> Dict[str, int]:
        """按会话统计调用者的未读数"""
        stmt = select(Message.conversation_key, func.count()).where(
            and_(
                Message.recipient_id == account_id,
                Message.is_read == False  # noqa: E712
            )
        ).group_by(Message.conversation_key)
        result = await self.db.execute(stmt)
        return {key: count for key, count in result.all()}

    async def _load_participants(self, account_ids) -> Dict[int, Account]:
        """批量加载会话对方的当前账户信息"""
        result = await self.db.execute(select(Account).where(Account.id.in_(account_ids)))
        return {account.id: account for account in result.scalars().all()}
