"""create_messaging_tables

Revision ID: 3f1a9c2d7b10
Revises:
Create Date: 2026-10-12 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2d7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """升级迁移：创建账户、消息、通知表"""

    # 账户表（由账户服务同步写入）
    op.create_table(
        'sys_accounts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('nickname', sa.String(length=50), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='employee'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        mysql_engine='InnoDB',
        mysql_charset='utf8mb4',
        comment='账户表'
    )
    op.create_index('ix_sys_accounts_email', 'sys_accounts', ['email'], unique=True)
    op.create_index('ix_sys_accounts_role', 'sys_accounts', ['role'])

    # 消息表（只追加）
    op.create_table(
        'msg_messages',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False, comment='主键ID'),
        sa.Column('conversation_key', sa.String(length=64), nullable=False, comment='会话键 dm:<小ID>:<大ID>'),
        sa.Column('sender_id', sa.Integer(), nullable=False, comment='发送者ID'),
        sa.Column('recipient_id', sa.Integer(), nullable=False, comment='接收者ID'),
        sa.Column('sender_email', sa.String(length=255), nullable=False, server_default='', comment='发送者邮箱'),
        sa.Column('sender_role', sa.String(length=20), nullable=False, server_default='', comment='发送者角色'),
        sa.Column('recipient_email', sa.String(length=255), nullable=False, server_default='', comment='接收者邮箱'),
        sa.Column('recipient_role', sa.String(length=20), nullable=False, server_default='', comment='接收者角色'),
        sa.Column('subject', sa.String(length=200), nullable=True, comment='主题'),
        sa.Column('body', sa.Text(), nullable=False, comment='正文'),
        sa.Column('message_type', sa.String(length=20), nullable=False, server_default='direct', comment='消息类型'),
        sa.Column('priority', sa.String(length=20), nullable=False, server_default='normal', comment='优先级'),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default='0', comment='是否已读'),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True, comment='阅读时间'),
        sa.Column('reply_to_id', sa.Integer(), nullable=True, comment='回复的消息ID'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='创建时间'),
        sa.ForeignKeyConstraint(['sender_id'], ['sys_accounts.id'], ),
        sa.ForeignKeyConstraint(['recipient_id'], ['sys_accounts.id'], ),
        sa.ForeignKeyConstraint(['reply_to_id'], ['msg_messages.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.Index('idx_msg_recipient_read', 'recipient_id', 'is_read'),
        sa.Index('idx_msg_conversation_created', 'conversation_key', 'created_at'),
        mysql_engine='InnoDB',
        mysql_charset='utf8mb4',
        comment='站内消息表'
    )
    op.create_index('ix_msg_messages_sender_id', 'msg_messages', ['sender_id'])

    # 通知表
    op.create_table(
        'sys_notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False, comment='主键ID'),
        sa.Column('recipient_id', sa.Integer(), nullable=False, comment='接收账户ID'),
        sa.Column('sender_id', sa.Integer(), nullable=True, comment='发送者ID'),
        sa.Column('title', sa.String(length=200), nullable=False, comment='通知标题'),
        sa.Column('message', sa.Text(), nullable=False, comment='通知内容'),
        sa.Column('type', sa.String(length=20), nullable=False, server_default='INFO', comment='通知类型'),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default='0', comment='是否已读'),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True, comment='阅读时间'),
        sa.Column('link_to', sa.String(length=500), nullable=True, comment='前端跳转链接'),
        sa.Column('meta', sa.JSON(), nullable=True, comment='附加数据'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='创建时间'),
        sa.ForeignKeyConstraint(['recipient_id'], ['sys_accounts.id'], ),
        sa.ForeignKeyConstraint(['sender_id'], ['sys_accounts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.Index('idx_notify_recipient_read', 'recipient_id', 'is_read'),
        sa.Index('idx_notify_recipient_created', 'recipient_id', 'created_at'),
        mysql_engine='InnoDB',
        mysql_charset='utf8mb4',
        comment='系统通知表'
    )


def downgrade() -> None:
    """回滚迁移：删除消息相关表"""
    op.drop_table('sys_notifications')
    op.drop_index('ix_msg_messages_sender_id', table_name='msg_messages')
    op.drop_table('msg_messages')
    op.drop_index('ix_sys_accounts_role', table_name='sys_accounts')
    op.drop_index('ix_sys_accounts_email', table_name='sys_accounts')
    op.drop_table('sys_accounts')
