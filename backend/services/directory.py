"""
账户目录
外部账户服务在消息核心中的适配层：按ID查询账户、按角色列出账户
"""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import NotFoundException, ValidationException, ErrorCode
from models.account import Account, AccountRole
from schemas.account import AccountInfo

logger = logging.getLogger(__name__)

# 历史数据中的 admin 等同于 director
ROLE_ALIASES = {"admin": AccountRole.DIRECTOR.value}


def normalize_role(role: str) -> str:
    """规范化角色名称"""
    value = (role or "").strip().lower()
    value = ROLE_ALIASES.get(value, value)
    if value not in {r.value for r in AccountRole}:
        raise ValidationException(f"未知角色: {role}")
    return value


class AccountDirectory:
    """账户目录（只读）"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_account(self, account_id: int) -> AccountInfo:
        """按ID获取账户"""
        result = await self.db.execute(select(Account).where(Account.id == account_id))
        account = result.scalar_one_or_none()
        if not account:
            raise NotFoundException("账户", account_id, code=ErrorCode.ACCOUNT_NOT_FOUND)

        info = AccountInfo.model_validate(account)
        info.role = normalize_role(info.role)
        return info

    async def list_by_role(self, role: str) -> List[AccountInfo]:
        """
        列出某角色当前的全部有效账户

        群发在调用时取快照，之后的角色变更不会影响已发出的消息
        """
        target = normalize_role(role)
        roles = [target] + [alias for alias, canonical in ROLE_ALIASES.items() if canonical == target]

        stmt = select(Account).where(
            Account.role.in_(roles),
            Account.is_active == True  # noqa: E712
        ).order_by(Account.id)
        result = await self.db.execute(stmt)

        accounts = []
        for account in result.scalars().all():
            info = AccountInfo.model_validate(account)
            info.role = target
            accounts.append(info)

        logger.debug(f"角色 {target} 当前共有 {len(accounts)} 个账户")
        return accounts
