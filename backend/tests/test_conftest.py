"""
测试配置和 Fixtures
提供测试用的数据库会话、客户端、账户和令牌
"""

import os
import sys

# 立即设置测试环境变量，确保核心模块加载时使用测试配置
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DEBUG", "true")

from typing import AsyncGenerator, Dict

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# 确保可以导入项目模块
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.database import Base, get_db
from core.security import create_token, TokenData
import models  # noqa: F401  强制加载模型以注册 Base.metadata
from models.account import Account
from main import app


# ==================== 配置 ====================

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# 测试账户：1 经理，2 主管，5/7/9 普通员工
TEST_ACCOUNTS = [
    {"id": 1, "email": "manager1@corp.example", "nickname": "王经理", "role": "manager"},
    {"id": 2, "email": "director2@corp.example", "nickname": "李主管", "role": "director"},
    {"id": 5, "email": "emp5@corp.example", "nickname": "员工五", "role": "employee"},
    {"id": 7, "email": "emp7@corp.example", "nickname": "员工七", "role": "employee"},
    {"id": 9, "email": "emp9@corp.example", "nickname": "员工九", "role": "employee"},
]


def make_session_factory(engine):
    """测试用会话工厂（与 core.database 中的配置一致）"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False
    )


# ==================== Fixtures ====================

@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """
    每个测试独立的内存数据库
    StaticPool 保证同一个测试内的所有连接看到同一份数据
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    创建测试用数据库会话
    每个测试函数使用独立的会话，并自动注入到 FastAPI 中
    """
    async with make_session_factory(test_engine)() as session:
        async def _get_test_db():
            yield session

        app.dependency_overrides[get_db] = _get_test_db

        yield session
        await session.rollback()

        app.dependency_overrides.clear()


@pytest.fixture
def db(db_session):
    """db_session 测试夹具的别名"""
    return db_session


@pytest_asyncio.fixture(scope="function")
async def accounts(db_session: AsyncSession) -> Dict[int, Account]:
    """写入测试账户，返回 {id: Account}"""
    created = {}
    for data in TEST_ACCOUNTS:
        account = Account(is_active=True, **data)
        db_session.add(account)
        created[data["id"]] = account
    await db_session.commit()
    return created


@pytest_asyncio.fixture(scope="function")
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """创建异步测试客户端"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ==================== 工具函数 ====================

def token_for(account_id: int, role: str = "employee") -> str:
    """签发测试令牌（正式环境由账户服务签发）"""
    return create_token(TokenData(user_id=account_id, role=role))


def auth_headers(account_id: int, role: str = "employee") -> dict:
    """构造带令牌的请求头"""
    return {"Authorization": f"Bearer {token_for(account_id, role)}"}


async def create_account(
    session: AsyncSession,
    account_id: int,
    role: str = "employee",
    is_active: bool = True,
    nickname: str = None
) -> Account:
    """创建单个测试账户"""
    account = Account(
        id=account_id,
        email=f"user{account_id}@corp.example",
        nickname=nickname,
        role=role,
        is_active=is_active
    )
    session.add(account)
    await session.commit()
    return account
