"""initial eventsphere schema

Revision ID: 20261019_000000
Revises:
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa

revision = '20261019_000000'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('login_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('lock_until', sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('location', sa.String(200), nullable=True),
        sa.Column('start_date', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('end_date', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('max_participants', sa.Integer(), nullable=False, server_default='100'),
        *_timestamps(),
    )
    op.create_index('ix_events_id', 'events', ['id'])
    op.create_index('ix_events_start_date', 'events', ['start_date'])
    op.create_index('ix_events_end_date', 'events', ['end_date'])
    op.create_index('ix_events_status', 'events', ['status'])

    # Both sides of the membership relation; no ON DELETE, integrity is kept by the application
    op.create_table(
        'event_users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('role', sa.String(30), nullable=False),
        sa.UniqueConstraint('event_id', 'user_id', name='uq_event_user'),
    )
    op.create_index('ix_event_users_id', 'event_users', ['id'])
    op.create_index('ix_event_users_event_id', 'event_users', ['event_id'])
    op.create_index('ix_event_users_user_id', 'event_users', ['user_id'])

    op.create_table(
        'user_events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id'), nullable=False),
        sa.Column('role', sa.String(30), nullable=False),
        sa.UniqueConstraint('user_id', 'event_id', name='uq_user_event'),
    )
    op.create_index('ix_user_events_id', 'user_events', ['id'])
    op.create_index('ix_user_events_user_id', 'user_events', ['user_id'])
    op.create_index('ix_user_events_event_id', 'user_events', ['event_id'])

    op.create_table(
        'tasks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id'), nullable=False),
        sa.Column('assigned_to', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='todo'),
        sa.Column('priority', sa.String(20), nullable=False, server_default='medium'),
        sa.Column('deadline', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('completed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('estimated_hours', sa.Float(), nullable=True),
        sa.Column('actual_hours', sa.Float(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_tasks_id', 'tasks', ['id'])
    op.create_index('ix_tasks_event_id', 'tasks', ['event_id'])
    op.create_index('ix_tasks_assigned_to', 'tasks', ['assigned_to'])
    op.create_index('ix_tasks_status', 'tasks', ['status'])

    op.create_table(
        'archive_links',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('drive_url', sa.String(1000), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('file_type', sa.String(20), nullable=False, server_default='other'),
        sa.Column('size', sa.BigInteger(), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('access_level', sa.String(20), nullable=False, server_default='event_members'),
        sa.Column('download_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_accessed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_archive_links_id', 'archive_links', ['id'])
    op.create_index('ix_archive_links_event_id', 'archive_links', ['event_id'])


def downgrade() -> None:
    op.drop_table('archive_links')
    op.drop_table('tasks')
    op.drop_table('user_events')
    op.drop_table('event_users')
    op.drop_table('events')
    op.drop_table('users')
