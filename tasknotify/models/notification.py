"""Notification model for SQLModel."""
import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column, Index, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

# JSONB on PostgreSQL, plain JSON text elsewhere (SQLite in development and tests)
JSON_PAYLOAD = JSON().with_variant(JSONB(), "postgresql")


class NotificationType(str, Enum):
    DUE_REMINDER = "due_reminder"
    OVERDUE_ALERT = "overdue_alert"
    ASSIGNMENT = "assignment"
    COMPLETION = "completion"
    STATUS_CHANGE = "status_change"
    PRIORITY_CHANGE = "priority_change"
    DAILY_SUMMARY = "daily_summary"
    WEEKLY_SUMMARY = "weekly_summary"
    COMMENT = "comment"


class NotificationChannel(str, Enum):
    EMAIL = "email"
    PUSH = "push"
    IN_APP = "in_app"
    SMS = "sms"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ReminderInterval(str, Enum):
    FIFTEEN_MINUTES = "15min"
    ONE_HOUR = "1hour"
    ONE_DAY = "1day"
    THREE_DAYS = "3days"
    ONE_WEEK = "1week"

    @property
    def offset(self) -> timedelta:
        return REMINDER_OFFSETS[self]


REMINDER_OFFSETS = {
    ReminderInterval.FIFTEEN_MINUTES: timedelta(minutes=15),
    ReminderInterval.ONE_HOUR: timedelta(hours=1),
    ReminderInterval.ONE_DAY: timedelta(days=1),
    ReminderInterval.THREE_DAYS: timedelta(days=3),
    ReminderInterval.ONE_WEEK: timedelta(weeks=1),
}

TERMINAL_STATUSES = frozenset({
    NotificationStatus.DELIVERED.value,
    NotificationStatus.FAILED.value,
    NotificationStatus.CANCELLED.value,
})

# pending -> pending (retry) is a bookkeeping update, not a status change
ALLOWED_TRANSITIONS = {
    NotificationStatus.PENDING.value: frozenset({
        NotificationStatus.SENT.value,
        NotificationStatus.DELIVERED.value,
        NotificationStatus.FAILED.value,
        NotificationStatus.CANCELLED.value,
    }),
    NotificationStatus.SENT.value: frozenset({NotificationStatus.DELIVERED.value}),
}


def can_transition(current: str, target: str) -> bool:
    """Return True if ``current -> target`` is a legal lifecycle transition."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class Notification(SQLModel, table=True):
    """Notification record: one scheduled delivery of rendered content on one channel."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notifications_scheduled_for_status", "scheduled_for", "status"),
    )

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        max_length=36,
    )
    user_id: str = Field(max_length=100, index=True)
    task_id: Optional[int] = Field(default=None, index=True)  # null for digests
    type: str = Field(max_length=50)
    channel: str = Field(max_length=20)
    status: str = Field(default=NotificationStatus.PENDING.value, max_length=20)

    # Rendered content snapshot, never re-rendered on retry
    title: str = Field(sa_column=Column(Text, nullable=False))
    message: str = Field(sa_column=Column(Text, nullable=False))
    html_content: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON_PAYLOAD, nullable=False))

    scheduled_for: datetime
    next_attempt_at: Optional[datetime] = Field(default=None)  # retry backoff gate
    deferred_at: Optional[datetime] = Field(default=None)  # quiet-hours deferral, at most once
    sent_at: Optional[datetime] = Field(default=None)
    delivered_at: Optional[datetime] = Field(default=None)
    read_at: Optional[datetime] = Field(default=None)
    clicked_at: Optional[datetime] = Field(default=None)

    retry_count: int = Field(default=0)
    max_retries: int = Field(default=3)
    error_message: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
