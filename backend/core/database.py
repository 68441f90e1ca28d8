"""
数据库连接管理
提供异步数据库连接和会话管理
"""

import logging
from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import event
from typing import AsyncGenerator

from .config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def _engine_options() -> dict:
    """根据数据库类型生成引擎参数"""
    if settings.is_sqlite:
        return {
            "echo": False,
            "connect_args": {"check_same_thread": False}
        }
    return {
        "echo": False,  # 禁用 SQL 详细输出，避免日志过多
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
        "connect_args": {
            "init_command": f"SET time_zone = '{settings.db_time_zone}'"
        }
    }


# 创建异步引擎
engine = create_async_engine(settings.db_url, **_engine_options())


if not settings.is_sqlite:
    @event.listens_for(engine.sync_engine, "connect")
    def _set_session_time_zone(dbapi_connection, connection_record):
        """确保每个连接会话时区一致"""
        with dbapi_connection.cursor() as cursor:
            cursor.execute(f"SET time_zone = '{settings.db_time_zone}'")


# 会话工厂
async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False
)


class Base(DeclarativeBase):
    """模型基类"""
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """获取数据库会话（依赖注入用）"""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """在请求之外获取数据库会话（脚本/启动阶段使用）"""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db():
    """初始化数据库（创建所有表，已存在的表跳过）"""
    # 确保模型已注册到元数据
    import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.debug(f"数据库表初始化完成（共 {len(Base.metadata.sorted_tables)} 张表）")


async def close_db():
    """关闭数据库连接"""
    await engine.dispose()
