"""
安全模块单元测试
"""

from datetime import timedelta

from jose import jwt

from core.config import get_settings
from core.security import create_token, decode_token, TokenData


class TestToken:
    """令牌校验"""

    def test_create_and_decode(self):
        token = create_token(TokenData(user_id=5, email="emp5@corp.example", role="employee"))
        data = decode_token(token)

        assert data is not None
        assert data.user_id == 5
        assert data.email == "emp5@corp.example"

    def test_expired_token(self):
        token = create_token(TokenData(user_id=5), expires_delta=timedelta(seconds=-1))
        assert decode_token(token) is None

    def test_invalid_token(self):
        assert decode_token("invalid.token.value") is None

    def test_wrong_secret(self):
        settings = get_settings()
        token = jwt.encode({"user_id": 5, "type": "access"}, "other-secret", algorithm=settings.jwt_algorithm)
        assert decode_token(token) is None

    def test_refresh_token_rejected(self):
        settings = get_settings()
        token = jwt.encode(
            {"user_id": 5, "type": "refresh"}, settings.jwt_secret, algorithm=settings.jwt_algorithm
        )
        assert decode_token(token) is None

    def test_old_secret_accepted(self, monkeypatch):
        """密钥轮换期间旧密钥签发的令牌仍然有效"""
        settings = get_settings()
        token = jwt.encode({"user_id": 7, "type": "access"}, "retired-secret", algorithm=settings.jwt_algorithm)
        monkeypatch.setattr(settings, "jwt_secret_old", "retired-secret")

        data = decode_token(token)
        assert data is not None
        assert data.user_id == 7
