"""Notification engine tables

Revision ID: 001
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = '001'
down_revision = None  # This is the first migration
branch_labels = None
depends_on = None

JSON_PAYLOAD = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade():
    # Notification records: the engine's durable work queue
    op.create_table('notifications',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=100), nullable=False),
        sa.Column('task_id', sa.Integer(), nullable=True),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('channel', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('html_content', sa.Text(), nullable=True),
        sa.Column('data', JSON_PAYLOAD, nullable=False),
        sa.Column('scheduled_for', sa.DateTime(), nullable=False),
        sa.Column('next_attempt_at', sa.DateTime(), nullable=True),
        sa.Column('deferred_at', sa.DateTime(), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('clicked_at', sa.DateTime(), nullable=True),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_retries', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('retry_count <= max_retries', name='ck_notifications_retry_bound'),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_task_id', 'notifications', ['task_id'])
    op.create_index('idx_notifications_scheduled_for_status', 'notifications', ['scheduled_for', 'status'])

    # One preference row per user
    op.create_table('notification_preferences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=100), nullable=False),
        sa.Column('due_date_reminders', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('task_assignments', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('task_completions', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('status_changes', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('priority_changes', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('comment_notifications', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('daily_summaries', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('weekly_summaries', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reminder_intervals', sa.JSON(), nullable=False),
        sa.Column('preferred_channels', sa.JSON(), nullable=False),
        sa.Column('quiet_hours_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('quiet_start_time', sa.String(length=5), nullable=False, server_default='22:00'),
        sa.Column('quiet_end_time', sa.String(length=5), nullable=False, server_default='08:00'),
        sa.Column('quiet_timezone', sa.String(length=50), nullable=False, server_default='UTC'),
        sa.Column('digest_frequency', sa.String(length=20), nullable=False, server_default='immediate'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notification_preferences_user_id', 'notification_preferences', ['user_id'], unique=True)

    # Templates keyed by type, channel and language
    op.create_table('notification_templates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('channel', sa.String(length=20), nullable=False),
        sa.Column('language', sa.String(length=10), nullable=False, server_default='en'),
        sa.Column('subject_template', sa.Text(), nullable=False),
        sa.Column('message_template', sa.Text(), nullable=False),
        sa.Column('html_template', sa.Text(), nullable=True),
        sa.Column('variables', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('type', 'channel', 'language', name='uq_notification_templates_key'),
    )


def downgrade():
    op.drop_table('notification_templates')
    op.drop_index('ix_notification_preferences_user_id', table_name='notification_preferences')
    op.drop_table('notification_preferences')
    op.drop_index('idx_notifications_scheduled_for_status', table_name='notifications')
    op.drop_index('ix_notifications_task_id', table_name='notifications')
    op.drop_index('ix_notifications_user_id', table_name='notifications')
    op.drop_table('notifications')
