"""
通知系统路由
处理通知的查询、标记已读，以及其他子系统写入通知
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.deps import get_current_account, require_roles
from models.account import AccountRole
from models.notification import NotificationType
from schemas.account import AccountInfo
from schemas.notification import NotificationInfo, NotificationCreate, NotificationListResponse
from schemas.response import success
from services.directory import AccountDirectory
from services.notification_bridge import NotificationBridge

router = APIRouter(prefix="/api/v1/notifications", tags=["通知系统"])


@router.post("")
async def create_notification(
    data: NotificationCreate,
    account: AccountInfo = Depends(require_roles(AccountRole.DIRECTOR.value)),
    db: AsyncSession = Depends(get_db)
):
    """
    创建通知

    仅主管可执行；MESSAGE 类型保留给消息系统
    """
    await AccountDirectory(db).get_account(data.recipient_id)
    notification = await NotificationBridge(db).notify(
        data.recipient_id,
        data.title,
        message=data.message,
        type=data.type.value,
        link_to=data.link_to,
        sender_id=account.id,
        meta=data.meta
    )
    return success(NotificationInfo.model_validate(notification).model_dump(mode="json"), "通知已创建")


@router.get("")
async def list_notifications(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    is_read: Optional[bool] = None,
    type: Optional[NotificationType] = None,
    account: AccountInfo = Depends(get_current_account),
    db: AsyncSession = Depends(get_db)
):
    """获取当前账户的通知列表（可按类型、已读状态筛选）"""
    items, total, unread_count = await NotificationBridge(db).list_notifications(
        account.id,
        type=type.value if type else None,
        is_read=is_read,
        page=page,
        size=size
    )
    return success(
        NotificationListResponse(
            items=[NotificationInfo.model_validate(n) for n in items],
            total=total,
            unread_count=unread_count,
            page=page,
            size=size
        ).model_dump(mode="json")
    )


@router.get("/unread-count")
async def get_unread_count(
    account: AccountInfo = Depends(get_current_account),
    db: AsyncSession = Depends(get_db)
):
    """获取未读通知数量"""
    count = await NotificationBridge(db).unread_count(account.id)
    return success({"count": count})


@router.put("/read-all")
async def mark_all_as_read(
    account: AccountInfo = Depends(get_current_account),
    db: AsyncSession = Depends(get_db)
):
    """标记所有通知为已读"""
    count = await NotificationBridge(db).mark_all_read(account.id)
    return success({"count": count}, f"已标记 {count} 条通知为已读")


@router.put("/{notification_id}/read")
async def mark_as_read(
    notification_id: int,
    account: AccountInfo = Depends(get_current_account),
    db: AsyncSession = Depends(get_db)
):
    """标记通知为已读（仅接收者本人）"""
    notification = await NotificationBridge(db).mark_read(notification_id, account.id)
    return success(NotificationInfo.model_validate(notification).model_dump(mode="json"), "已标记为已读")
