"""
已读状态测试
"""

import asyncio

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from core.database import Base
from core.errors import PermissionException, NotFoundException
from models.account import Account
from models.message import Message
from services.message_store import MessageStore
from services.read_state import ReadStateTracker
from tests.test_conftest import TEST_ACCOUNTS, make_session_factory


class TestMarkConversationRead:
    """标记会话已读"""

    @pytest.mark.asyncio
    async def test_mark_read_is_idempotent(self, db_session: AsyncSession, accounts):
        """第二次标记返回 0，未读数为 0，不报错"""
        store = MessageStore(db_session)
        await store.append(1, 5, "一")
        await store.append(1, 5, "二")
        tracker = ReadStateTracker(db_session, store=store)

        assert await tracker.mark_conversation_read("dm:1:5", 5) == 2
        assert await tracker.mark_conversation_read("dm:1:5", 5) == 0

        summary = (await store.list_conversations_for(5))[0]
        assert summary.unread_count == 0

    @pytest.mark.asyncio
    async def test_only_callers_messages_marked(self, db_session: AsyncSession, accounts):
        """只标记发给调用者的消息，对方的未读不受影响"""
        store = MessageStore(db_session)
        await store.append(1, 5, "给 5")
        await store.append(5, 1, "给 1")

        count = await ReadStateTracker(db_session, store=store).mark_conversation_read("dm:1:5", 5)

        assert count == 1
        assert await store.unread_count(5) == 0
        assert await store.unread_count(1) == 1

        messages = await store.list_messages("dm:1:5", 5)
        to_five = [m for m in messages if m.recipient_id == 5][0]
        assert to_five.is_read is True
        assert to_five.read_at is not None

    @pytest.mark.asyncio
    async def test_non_participant_denied(self, db_session: AsyncSession, accounts):
        await MessageStore(db_session).append(1, 5, "你好")
        with pytest.raises(PermissionException):
            await ReadStateTracker(db_session).mark_conversation_read("dm:1:5", 9)

    @pytest.mark.asyncio
    async def test_unknown_conversation(self, db_session: AsyncSession, accounts):
        with pytest.raises(NotFoundException):
            await ReadStateTracker(db_session).mark_conversation_read("dm:1:5", 5)


class TestConcurrentRead:
    """并发标记已读"""

    @pytest.mark.asyncio
    async def test_concurrent_mark_read(self, tmp_path):
        """两个会话同时标记 dm:1:5 已读：都成功，最终未读为 0"""
        engine = create_async_engine(
            f"sqlite+aiosqlite:///{tmp_path / 'concurrent.db'}",
            connect_args={"check_same_thread": False, "timeout": 10}
        )
        factory = make_session_factory(engine)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            async with factory() as session:
                for data in TEST_ACCOUNTS:
                    session.add(Account(is_active=True, **data))
                await session.commit()
                store = MessageStore(session)
                for i in range(5):
                    await store.append(1, 5, f"消息 {i}")

            async def mark():
                async with factory() as session:
                    return await ReadStateTracker(session).mark_conversation_read("dm:1:5", 5)

            counts = await asyncio.gather(mark(), mark())

            assert sum(counts) == 5
            async with factory() as session:
                unread = (await session.execute(
                    select(Message).where(Message.recipient_id == 5, Message.is_read == False)  # noqa: E712
                )).scalars().all()
                assert unread == []
        finally:
            await engine.dispose()
