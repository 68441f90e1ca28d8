"""
系统配置管理
统一管理所有配置项，支持环境变量覆盖
"""

import logging
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from urllib.parse import quote_plus

# 获取backend目录的绝对路径
BACKEND_DIR = Path(__file__).parent.parent.resolve()
ENV_FILE = BACKEND_DIR / ".env"

DEFAULT_JWT_SECRET = "your-secret-key-change-in-production"


class Settings(BaseSettings):
    """系统配置"""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # 应用信息
    app_name: str = "Staff Portal Messaging"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # 数据库配置
    # database_url 优先级最高（测试/开发可直接指定 sqlite+aiosqlite）
    database_url: Optional[str] = None
    db_host: str = "localhost"
    db_port: int = 3306
    db_user: str = "root"
    db_password: str = ""
    db_name: str = "staff_portal"
    db_time_zone: str = "+00:00"  # 数据库会话时区，统一写入 UTC

    @property
    def db_url(self) -> str:
        if self.database_url:
            return self.database_url
        encoded_user = quote_plus(self.db_user)
        encoded_pwd = quote_plus(self.db_password)
        return f"mysql+aiomysql://{encoded_user}:{encoded_pwd}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def db_url_sync(self) -> str:
        if self.database_url:
            # 迁移使用同步驱动
            return self.database_url.replace("+aiosqlite", "").replace("+aiomysql", "+pymysql")
        encoded_user = quote_plus(self.db_user)
        encoded_pwd = quote_plus(self.db_password)
        return f"mysql+pymysql://{encoded_user}:{encoded_pwd}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def is_sqlite(self) -> bool:
        return self.db_url.startswith("sqlite")

    # JWT令牌配置（令牌由外部账户服务签发，这里只负责校验）
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_secret_old: Optional[str] = None  # 旧密钥（用于密钥轮换）
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60

    # 消息配置
    broadcast_roles: List[str] = ["manager", "director"]  # 允许按角色群发的角色
    broadcast_retry_attempts: int = 1  # 群发单个收件人遇到瞬时存储错误时的重试次数
    message_max_length: int = 5000
    notification_preview_length: int = 100  # 消息通知中正文预览的截断长度

    # 客户端轮询间隔（秒）
    poll_interval_seconds: int = 15


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """
    获取配置单例
    支持运行时重新加载（用于密钥轮换）
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()

        # 安全检查: 如果是生产环境且使用默认密钥，发出警告
        if not _settings_instance.debug and _settings_instance.jwt_secret == DEFAULT_JWT_SECRET:
            logging.getLogger("core.config").warning(
                "[安全警告] 您正在生产环境模式下使用默认的 JWT_SECRET，"
                "请在 .env 文件中配置 JWT_SECRET。"
            )
    return _settings_instance


def reload_settings():
    """
    重新加载配置（用于密钥轮换等场景）
    仅重新加载配置，不清理已签发的Token
    """
    global _settings_instance
    _settings_instance = Settings()
    return _settings_instance
