"""
消息系统路由
发送消息（单发/按角色群发）、会话列表、会话消息、标记会话已读
"""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.deps import get_current_account
from core.errors import ValidationException, ErrorCode
from schemas.account import AccountInfo
from schemas.message import MessageInfo, MessageSend, MessageSendResponse
from schemas.response import success
from services.broadcast import BroadcastFanout
from services.message_store import MessageStore
from services.read_state import ReadStateTracker
from utils.timezone import ensure_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/messages", tags=["消息系统"])


def _message_info(message) -> dict:
    info = MessageInfo.model_validate(message)
    info.created_at = ensure_utc(info.created_at)
    info.read_at = ensure_utc(info.read_at)
    return info.model_dump(mode="json")


@router.post("")
async def send_message(
    data: MessageSend,
    account: AccountInfo = Depends(get_current_account),
    db: AsyncSession = Depends(get_db)
):
    """
    发送消息

    - recipient_id: 单发给指定账户
    - recipient_role: 按角色群发（仅经理/主管），部分失败以摘要形式返回
    """
    # 接收用户与接收角色必须且只能指定一个
    if (data.recipient_id is None) == (data.recipient_role is None):
        raise ValidationException(code=ErrorCode.MESSAGE_RECIPIENT_AMBIGUOUS)
    if data.recipient_role is not None and data.reply_to_id is not None:
        raise ValidationException("群发消息不支持回复")

    fanout = BroadcastFanout(db)

    if data.recipient_id is not None:
        message = await fanout.send_direct(
            account.id,
            data.recipient_id,
            data.body,
            subject=data.subject,
            reply_to_id=data.reply_to_id,
            priority=data.priority.value
        )
        response = MessageSendResponse(
            id=message.id,
            conversation_key=message.conversation_key,
            created_at=ensure_utc(message.created_at)
        )
        return success(response.model_dump(mode="json"), "消息已发送")

    result = await fanout.send_broadcast(
        account.id,
        data.recipient_role,
        data.body,
        subject=data.subject,
        priority=data.priority.value
    )
    # 返回第一个成功收件人的会话，供前端跳转
    response = MessageSendResponse(
        id=result.first_message_id,
        conversation_key=result.conversation_keys[0] if result.conversation_keys else None,
        created_at=ensure_utc(result.first_created_at),
        broadcast=result.summary()
    )
    return success(
        response.model_dump(mode="json"),
        f"已发送 {result.sent} 条，失败 {len(result.failed)} 条"
    )


@router.get("/conversations")
async def list_conversations(
    account: AccountInfo = Depends(get_current_account),
    db: AsyncSession = Depends(get_db)
):
    """获取当前账户的会话列表（最近活跃的在前）"""
    conversations = await MessageStore(db).list_conversations_for(account.id)
    return success([c.model_dump(mode="json") for c in conversations])


@router.get("/unread-count")
async def get_unread_count(
    account: AccountInfo = Depends(get_current_account),
    db: AsyncSession = Depends(get_db)
):
    """获取未读消息总数"""
    count = await MessageStore(db).unread_count(account.id)
    return success({"count": count})


@router.get("/conversations/{conversation_key}")
async def list_messages(
    conversation_key: str,
    account: AccountInfo = Depends(get_current_account),
    db: AsyncSession = Depends(get_db)
):
    """获取会话内消息（按时间升序），只有会话参与者可以访问"""
    messages = await MessageStore(db).list_messages(conversation_key, account.id)
    return success([_message_info(m) for m in messages])


@router.put("/conversations/{conversation_key}/read")
async def mark_conversation_read(
    conversation_key: str,
    account: AccountInfo = Depends(get_current_account),
    db: AsyncSession = Depends(get_db)
):
    """标记会话中发给自己的消息为已读"""
    count = await ReadStateTracker(db).mark_conversation_read(conversation_key, account.id)
    return success({"count": count}, f"已标记 {count} 条消息为已读")
