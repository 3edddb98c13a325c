"""Initial teamchat schema

Revision ID: a1f4c9d2e7b3
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1f4c9d2e7b3'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('image', sa.String(length=500), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_table(
        'auth_sessions',
        sa.Column('token', sa.String(length=100), nullable=False),
        sa.Column('user_id', sa.String(length=50), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('token'),
    )
    op.create_index('ix_auth_sessions_user_id', 'auth_sessions', ['user_id'], unique=False)

    op.create_table(
        'workspaces',
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('user_id', sa.String(length=50), nullable=False),
        sa.Column('join_code', sa.String(length=6), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'members',
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('user_id', sa.String(length=50), nullable=False),
        sa.Column('workspace_id', sa.String(length=50), nullable=False),
        sa.Column(
            'role',
            sa.Enum('admin', 'member', name='member_role_enum'),
            nullable=False,
        ),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('workspace_id', 'user_id', name='uq_member_workspace_user'),
    )
    op.create_index('ix_members_user_id', 'members', ['user_id'], unique=False)
    op.create_index('ix_members_workspace_id', 'members', ['workspace_id'], unique=False)

    op.create_table(
        'channels',
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=80), nullable=False),
        sa.Column('workspace_id', sa.String(length=50), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_channels_workspace_id', 'channels', ['workspace_id'], unique=False)

    op.create_table(
        'conversations',
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('workspace_id', sa.String(length=50), nullable=False),
        sa.Column('member_one_id', sa.String(length=50), nullable=False),
        sa.Column('member_two_id', sa.String(length=50), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['member_one_id'], ['members.id']),
        sa.ForeignKeyConstraint(['member_two_id'], ['members.id']),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_conversations_workspace_id', 'conversations', ['workspace_id'], unique=False
    )

    op.create_table(
        'messages',
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('image', sa.String(length=50), nullable=True),
        sa.Column('member_id', sa.String(length=50), nullable=False),
        sa.Column('workspace_id', sa.String(length=50), nullable=False),
        sa.Column('channel_id', sa.String(length=50), nullable=True),
        sa.Column('conversation_id', sa.String(length=50), nullable=True),
        sa.Column('parent_message_id', sa.String(length=50), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['channel_id'], ['channels.id']),
        sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id']),
        sa.ForeignKeyConstraint(['member_id'], ['members.id']),
        sa.ForeignKeyConstraint(['parent_message_id'], ['messages.id']),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_messages_member_id', 'messages', ['member_id'], unique=False)
    op.create_index('ix_messages_workspace_id', 'messages', ['workspace_id'], unique=False)
    op.create_index('ix_messages_channel_id', 'messages', ['channel_id'], unique=False)
    op.create_index(
        'ix_messages_conversation_id', 'messages', ['conversation_id'], unique=False
    )
    op.create_index(
        'ix_messages_parent_message_id', 'messages', ['parent_message_id'], unique=False
    )
    op.create_index(
        'ix_messages_container',
        'messages',
        ['channel_id', 'parent_message_id', 'conversation_id'],
        unique=False,
    )

    op.create_table(
        'reactions',
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('workspace_id', sa.String(length=50), nullable=False),
        sa.Column('message_id', sa.String(length=50), nullable=False),
        sa.Column('member_id', sa.String(length=50), nullable=False),
        sa.Column('value', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['member_id'], ['members.id']),
        sa.ForeignKeyConstraint(['message_id'], ['messages.id']),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'message_id', 'member_id', 'value', name='uq_reaction_message_member_value'
        ),
    )
    op.create_index('ix_reactions_workspace_id', 'reactions', ['workspace_id'], unique=False)
    op.create_index('ix_reactions_message_id', 'reactions', ['message_id'], unique=False)
    op.create_index('ix_reactions_member_id', 'reactions', ['member_id'], unique=False)

    op.create_table(
        'stored_files',
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('content_type', sa.String(length=100), nullable=True),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('path', sa.String(length=500), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'upload_tickets',
        sa.Column('token', sa.String(length=100), nullable=False),
        sa.Column('user_id', sa.String(length=50), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('used_at', sa.DateTime(), nullable=True),
        sa.Column('storage_id', sa.String(length=50), nullable=True),
        sa.ForeignKeyConstraint(['storage_id'], ['stored_files.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('token'),
    )


def downgrade() -> None:
    op.drop_table('upload_tickets')
    op.drop_table('stored_files')
    op.drop_index('ix_reactions_member_id', table_name='reactions')
    op.drop_index('ix_reactions_message_id', table_name='reactions')
    op.drop_index('ix_reactions_workspace_id', table_name='reactions')
    op.drop_table('reactions')
    op.drop_index('ix_messages_container', table_name='messages')
    op.drop_index('ix_messages_parent_message_id', table_name='messages')
    op.drop_index('ix_messages_conversation_id', table_name='messages')
    op.drop_index('ix_messages_channel_id', table_name='messages')
    op.drop_index('ix_messages_workspace_id', table_name='messages')
    op.drop_index('ix_messages_member_id', table_name='messages')
    op.drop_table('messages')
    op.drop_index('ix_conversations_workspace_id', table_name='conversations')
    op.drop_table('conversations')
    op.drop_index('ix_channels_workspace_id', table_name='channels')
    op.drop_table('channels')
    op.drop_index('ix_members_workspace_id', table_name='members')
    op.drop_index('ix_members_user_id', table_name='members')
    op.drop_table('members')
    op.drop_table('workspaces')
    op.drop_index('ix_auth_sessions_user_id', table_name='auth_sessions')
    op.drop_table('auth_sessions')
    op.drop_table('users')
    sa.Enum(name='member_role_enum').drop(op.get_bind(), checkfirst=True)
