"""
群发扇出
把一次"按角色发送"展开为每个收件人一条独立消息，逐个收件人记录成功与失败
"""

import logging
from datetime import datetime
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.errors import AppException, PermissionException, ErrorCode
from models.message import Message, MessageType, MessagePriority
from schemas.message import BroadcastFailure, BroadcastSummary
from .directory import AccountDirectory, normalize_role
from .message_store import MessageStore

logger = logging.getLogger(__name__)

# 可重试的瞬时存储错误
TRANSIENT_ERRORS = (OperationalError, PoolTimeoutError)


@dataclass
class BroadcastResult:
    """群发结果：部分失败是正常返回，不是异常"""
    sent: int = 0
    failed: List[BroadcastFailure] = field(default_factory=list)
    message_ids: List[int] = field(default_factory=list)
    recipient_ids: List[int] = field(default_factory=list)
    conversation_keys: List[str] = field(default_factory=list)
    # 只保留标量值：后续收件人失败回滚会使会话中的 ORM 对象过期
    first_message_id: Optional[int] = None
    first_created_at: Optional[datetime] = None

    def record_success(self, message: Message):
        self.sent += 1
        self.message_ids.append(message.id)
        self.recipient_ids.append(message.recipient_id)
        self.conversation_keys.append(message.conversation_key)
        if self.first_message_id is None:
            self.first_message_id = message.id
            self.first_created_at = message.created_at

    def record_failure(self, recipient_id: int, reason: str):
        self.failed.append(BroadcastFailure(recipient_id=recipient_id, reason=reason))

    @property
    def failed_ids(self) -> List[int]:
        return [item.recipient_id for item in self.failed]

    def summary(self) -> BroadcastSummary:
        return BroadcastSummary(sent=self.sent, failed=list(self.failed))


class BroadcastFanout:
    """消息发送服务（单发直接写入，群发逐个收件人扇出）"""

    def __init__(self, db: AsyncSession, store: Optional[MessageStore] = None):
        self.db = db
        self.store = store or MessageStore(db)
        self.directory: AccountDirectory = self.store.directory
        self.settings = get_settings()

    async def send_direct(
        self,
        sender_id: int,
        recipient_id: int,
        body: str,
        subject: Optional[str] = None,
        reply_to_id: Optional[int] = None,
        priority: str = MessagePriority.NORMAL.value
    ) -> Message:
        """单发：不经过扇出，直接写入一条消息"""
        return await self.store.append(
            sender_id,
            recipient_id,
            body,
            subject=subject,
            reply_to_id=reply_to_id,
            message_type=MessageType.DIRECT.value,
            priority=priority
        )

    async def send_broadcast(
        self,
        sender_id: int,
        role: str,
        body: str,
        subject: Optional[str] = None,
        priority: str = MessagePriority.NORMAL.value,
        only_recipient_ids: Optional[Iterable[int]] = None
    ) -> BroadcastResult:
        """
        按角色群发

        收件人名单在调用时从账户目录取快照并排除发送者；
        only_recipient_ids 用于只重发上一次失败的那部分收件人。
        每个收件人独立提交，一个失败不会中断其他收件人。
        """
        sender = await self.directory.get_account(sender_id)
        allowed_roles = {normalize_role(r) for r in self.settings.broadcast_roles}
        if sender.role not in allowed_roles:
            raise PermissionException(code=ErrorCode.BROADCAST_ROLE_FORBIDDEN,
                                      message="只有经理或主管可以按角色群发消息")

        target_role = normalize_role(role)
        body = self.store.validate_body(body)
        priority = self.store.validate_priority(priority)

        roster = [a for a in await self.directory.list_by_role(target_role) if a.id != sender_id]
        if only_recipient_ids is not None:
            wanted = set(only_recipient_ids)
            roster = [a for a in roster if a.id in wanted]

        result = BroadcastResult()
        for recipient in roster:
            await self._deliver(result, sender_id, recipient.id, body, subject, priority)

        logger.info(
            f"账户 {sender_id} 向角色 {target_role} 群发消息: "
            f"成功 {result.sent}, 失败 {len(result.failed)}, 名单 {len(roster)}"
        )
        return result

    async def _deliver(
        self,
        result: BroadcastResult,
        sender_id: int,
        recipient_id: int,
        body: str,
        subject: Optional[str],
        priority: str
    ):
        """投递单个收件人，瞬时存储错误重试后仍失败则记为失败"""
        retries_left = self.settings.broadcast_retry_attempts
        while True:
            try:
                message = await self.store.append(
                    sender_id,
                    recipient_id,
                    body,
                    subject=subject,
                    message_type=MessageType.BROADCAST.value,
                    priority=priority
                )
                result.record_success(message)
                return
            except AppException as e:
                await self.db.rollback()
                logger.warning(f"群发收件人 {recipient_id} 失败: {e.message}")
                result.record_failure(recipient_id, e.message)
                return
            except TRANSIENT_ERRORS as e:
                await self.db.rollback()
                if retries_left > 0:
                    retries_left -= 1
                    logger.warning(f"群发收件人 {recipient_id} 遇到瞬时存储错误，重试: {e}")
                    continue
                logger.warning(f"群发收件人 {recipient_id} 重试后仍失败: {e}")
                result.record_failure(recipient_id, f"存储错误: {e.__class__.__name__}")
                return
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.warning(f"群发收件人 {recipient_id} 写入失败: {e}")
                result.record_failure(recipient_id, f"存储错误: {e.__class__.__name__}")
                return
