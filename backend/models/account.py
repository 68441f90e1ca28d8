"""
账户数据模型
账户由外部账户服务维护，消息核心只读
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from sqlalchemy import String, Integer, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base
from utils.timezone import get_utc_now


class AccountRole(str, Enum):
    """账户角色"""
    DIRECTOR = "director"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class Account(Base):
    """账户表"""
    __tablename__ = "sys_accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    nickname: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    role: Mapped[str] = mapped_column(String(20), default=AccountRole.EMPLOYEE.value, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=get_utc_now)
