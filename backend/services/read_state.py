"""
已读状态
把会话中发给调用者的未读消息批量标记为已读
"""

import logging
from typing import Optional

from sqlalchemy import update, and_
from sqlalchemy.ext.asyncio import AsyncSession

from models.message import Message
from utils.timezone import get_utc_now
from .message_store import MessageStore

logger = logging.getLogger(__name__)


class ReadStateTracker:
    """已读状态服务"""

    def __init__(self, db: AsyncSession, store: Optional[MessageStore] = None):
        self.db = db
        self.store = store or MessageStore(db)

    async def mark_conversation_read(self, conversation_key: str, account_id: int) -> int:
        """
        标记会话已读，返回本次更新的消息数

        单条带 is_read = false 条件的批量更新，重复调用或并发调用都只会收敛到同一结果
        """
        await self.store.ensure_participant(conversation_key, account_id)

        result = await self.db.execute(
            update(Message).where(
                and_(
                    Message.conversation_key == conversation_key,
                    Message.recipient_id == account_id,
                    Message.is_read == False  # noqa: E712
                )
            ).values(is_read=True, read_at=get_utc_now())
        )
        await self.db.commit()

        count = result.rowcount or 0
        if count:
            logger.debug(f"账户 {account_id} 已读会话 {conversation_key} 中 {count} 条消息")
        return count
