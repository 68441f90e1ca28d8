"""
账户 Schema
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict


class AccountInfo(BaseModel):
    """账户目录返回的账户信息"""
    id: int
    email: str
    role: str
    nickname: Optional[str] = None
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)

    @property
    def display_name(self) -> str:
        return self.nickname or self.email
