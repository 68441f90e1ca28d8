"""
依赖注入
提供全局可复用的依赖项
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_db
from .errors import AuthException, PermissionException, ErrorCode, NotFoundException
from .security import get_current_user, TokenData
from .config import get_settings


__all__ = [
    "get_db",
    "get_current_user",
    "get_current_account",
    "require_roles",
    "get_settings"
]


async def get_current_account(
    token: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    解析调用者账户

    令牌只证明身份，角色和状态以账户目录中的当前数据为准；
    之后的所有操作都显式使用这里得到的账户ID
    """
    from services.directory import AccountDirectory

    try:
        account = await AccountDirectory(db).get_account(token.user_id)
    except NotFoundException:
        raise AuthException(ErrorCode.TOKEN_INVALID, "账户不存在或已被删除")

    if not account.is_active:
        raise PermissionException("账户已被禁用", code=ErrorCode.ACCOUNT_DISABLED)

    return account


def require_roles(*roles: str):
    """仅允许指定角色访问"""
    async def role_checker(account=Depends(get_current_account)):
        if account.role not in roles:
            raise PermissionException()
        return account
    return role_checker
