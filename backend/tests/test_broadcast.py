"""
群发扇出测试
"""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import PermissionException, ValidationException, ErrorCode
from models.message import Message
from models.notification import Notification
from services.broadcast import BroadcastFanout
from services.message_store import MessageStore
from tests.test_conftest import create_account


def flaky_store(db_session, failures):
    """
    构造一个在指定收件人上抛出异常的消息存储

    failures: {recipient_id: [异常, ...]}，每次调用依次弹出一个异常，弹完后正常写入
    """
    store = MessageStore(db_session)
    original = store.append
    calls = {}

    async def append(sender_id, recipient_id, body, **kwargs):
        calls[recipient_id] = calls.get(recipient_id, 0) + 1
        pending = failures.get(recipient_id)
        if pending:
            raise pending.pop(0)
        return await original(sender_id, recipient_id, body, **kwargs)

    store.append = append
    return store, calls


def storage_error(cls):
    return cls("INSERT INTO msg_messages", {}, Exception("forced"))


class TestSendBroadcast:
    """按角色群发"""

    @pytest.mark.asyncio
    async def test_manager_broadcast_to_employees(self, db_session: AsyncSession, accounts):
        """经理 1 群发给员工，名单 [5, 7, 9] 各得到一条两人会话中的消息"""
        fanout = BroadcastFanout(db_session)
        result = await fanout.send_broadcast(1, "employee", "周五下午团建")

        assert result.sent == 3
        assert result.failed == []
        assert result.recipient_ids == [5, 7, 9]
        assert result.conversation_keys == ["dm:1:5", "dm:1:7", "dm:1:9"]
        assert result.first_message_id == result.message_ids[0]

        rows = (await db_session.execute(select(Message).order_by(Message.id))).scalars().all()
        assert len(rows) == 3
        assert {m.message_type for m in rows} == {"broadcast"}
        assert all(m.sender_id == 1 for m in rows)

        notifications = (await db_session.execute(
            select(Notification).where(Notification.type == "MESSAGE")
        )).scalars().all()
        assert sorted(n.recipient_id for n in notifications) == [5, 7, 9]

    @pytest.mark.asyncio
    async def test_roster_of_two(self, db_session: AsyncSession):
        """名单恰为 [5, 7] 时得到 dm:1:5 与 dm:1:7"""
        await create_account(db_session, 1, role="manager")
        await create_account(db_session, 5)
        await create_account(db_session, 7)

        result = await BroadcastFanout(db_session).send_broadcast(1, "employee", "通知")

        assert result.sent == 2
        assert result.failed == []
        assert result.conversation_keys == ["dm:1:5", "dm:1:7"]
        summary = result.summary()
        assert summary.sent == 2
        assert summary.failed == []

    @pytest.mark.asyncio
    async def test_sender_excluded_from_roster(self, db_session: AsyncSession, accounts):
        await create_account(db_session, 3, role="manager")
        result = await BroadcastFanout(db_session).send_broadcast(1, "manager", "经理例会")

        assert result.recipient_ids == [3]

    @pytest.mark.asyncio
    async def test_employee_cannot_broadcast(self, db_session: AsyncSession, accounts):
        with pytest.raises(PermissionException) as exc_info:
            await BroadcastFanout(db_session).send_broadcast(5, "employee", "大家好")
        assert exc_info.value.code == ErrorCode.BROADCAST_ROLE_FORBIDDEN

    @pytest.mark.asyncio
    async def test_legacy_admin_can_broadcast(self, db_session: AsyncSession, accounts):
        """历史 admin 角色按主管处理"""
        await create_account(db_session, 12, role="admin")
        result = await BroadcastFanout(db_session).send_broadcast(12, "manager", "请提交周报")
        assert result.recipient_ids == [1]

    @pytest.mark.asyncio
    async def test_unknown_role_rejected(self, db_session: AsyncSession, accounts):
        with pytest.raises(ValidationException):
            await BroadcastFanout(db_session).send_broadcast(1, "intern", "你好")

    @pytest.mark.asyncio
    async def test_empty_body_rejected_before_fanout(self, db_session: AsyncSession, accounts):
        with pytest.raises(ValidationException):
            await BroadcastFanout(db_session).send_broadcast(1, "employee", "  ")
        rows = (await db_session.execute(select(Message))).scalars().all()
        assert rows == []

    @pytest.mark.asyncio
    async def test_invalid_priority_rejected_before_fanout(self, db_session: AsyncSession, accounts):
        with pytest.raises(ValidationException):
            await BroadcastFanout(db_session).send_broadcast(1, "employee", "请提交周报", priority="critical")
        rows = (await db_session.execute(select(Message))).scalars().all()
        assert rows == []

    @pytest.mark.asyncio
    async def test_empty_roster(self, db_session: AsyncSession, accounts):
        result = await BroadcastFanout(db_session).send_broadcast(2, "director", "无人接收")
        assert result.sent == 0
        assert result.failed == []
        assert result.first_message_id is None

    @pytest.mark.asyncio
    async def test_inactive_accounts_not_in_roster(self, db_session: AsyncSession, accounts):
        await create_account(db_session, 11, is_active=False)
        result = await BroadcastFanout(db_session).send_broadcast(1, "employee", "通知")
        assert 11 not in result.recipient_ids


class TestPartialFailure:
    """部分失败"""

    @pytest.mark.asyncio
    async def test_single_failure_does_not_abort_others(self, db_session: AsyncSession, accounts):
        """一个收件人写入失败：其余照常发送，失败者记录在结果中"""
        store, calls = flaky_store(db_session, {7: [storage_error(IntegrityError)]})
        result = await BroadcastFanout(db_session, store=store).send_broadcast(1, "employee", "通知")

        assert result.sent == 2
        assert result.failed_ids == [7]
        assert "IntegrityError" in result.failed[0].reason
        assert calls[7] == 1

        rows = (await db_session.execute(select(Message.recipient_id))).scalars().all()
        assert sorted(rows) == [5, 9]

    @pytest.mark.asyncio
    async def test_transient_error_retried_once(self, db_session: AsyncSession, accounts):
        store, calls = flaky_store(db_session, {5: [storage_error(OperationalError)]})
        result = await BroadcastFanout(db_session, store=store).send_broadcast(1, "employee", "通知")

        assert result.sent == 3
        assert result.failed == []
        assert calls[5] == 2

    @pytest.mark.asyncio
    async def test_transient_error_recorded_after_retry(self, db_session: AsyncSession, accounts):
        store, calls = flaky_store(db_session, {
            5: [storage_error(OperationalError), storage_error(OperationalError)]
        })
        result = await BroadcastFanout(db_session, store=store).send_broadcast(1, "employee", "通知")

        assert result.sent == 2
        assert result.failed_ids == [5]
        assert calls[5] == 2

    @pytest.mark.asyncio
    async def test_validation_failure_recorded(self, db_session: AsyncSession, accounts):
        store, _ = flaky_store(db_session, {9: [ValidationException("收件人暂不可用")]})
        result = await BroadcastFanout(db_session, store=store).send_broadcast(1, "employee", "通知")

        assert result.sent == 2
        assert result.failed[0].recipient_id == 9
        assert result.failed[0].reason == "收件人暂不可用"

    @pytest.mark.asyncio
    async def test_retry_only_failed_subset(self, db_session: AsyncSession, accounts):
        """只对上次失败的收件人重发"""
        store, _ = flaky_store(db_session, {7: [storage_error(IntegrityError)]})
        fanout = BroadcastFanout(db_session, store=store)
        first = await fanout.send_broadcast(1, "employee", "通知")

        retry = await fanout.send_broadcast(1, "employee", "通知", only_recipient_ids=first.failed_ids)

        assert retry.sent == 1
        assert retry.recipient_ids == [7]
        rows = (await db_session.execute(select(Message.recipient_id))).scalars().all()
        assert sorted(rows) == [5, 7, 9]


class TestSendDirect:
    """单发"""

    @pytest.mark.asyncio
    async def test_send_direct(self, db_session: AsyncSession, accounts):
        message = await BroadcastFanout(db_session).send_direct(5, 9, "午饭一起吗", priority="high")
        assert message.conversation_key == "dm:5:9"
        assert message.message_type == "direct"
        assert message.priority == "high"
