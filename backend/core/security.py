"""
统一鉴权边界
令牌由外部账户服务签发，这里只负责校验并解析出调用者身份
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from .config import get_settings
from .errors import AuthException, ErrorCode

# Bearer令牌认证（缺失凭据时由我们自己返回统一格式的 401）
security = HTTPBearer(auto_error=False)


class TokenData(BaseModel):
    """令牌数据"""
    user_id: int
    email: str = ""
    role: str = "employee"


def create_token(data: TokenData, expires_delta: Optional[timedelta] = None) -> str:
    """
    创建JWT令牌

    正式环境中由账户服务签发，这里提供给测试和本地调试使用
    """
    settings = get_settings()
    to_encode = data.model_dump()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt_expire_minutes)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[TokenData]:
    """
    解码JWT令牌
    支持密钥轮换：先尝试新密钥，失败则尝试旧密钥
    """
    settings = get_settings()

    def _decode(secret: str):
        payload = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
        if payload.get("type", "access") != "access":
            raise JWTError("token type mismatch")
        return TokenData(**payload)

    try:
        return _decode(settings.jwt_secret)
    except JWTError:
        if settings.jwt_secret_old:
            try:
                return _decode(settings.jwt_secret_old)
            except JWTError:
                return None
        return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenData:
    """获取令牌中的调用者（依赖注入用）"""
    if credentials is None:
        raise AuthException(ErrorCode.UNAUTHORIZED)

    token_data = decode_token(credentials.credentials)
    if token_data is None:
        raise AuthException(ErrorCode.TOKEN_INVALID)

    return token_data
