"""Notification preference model for SQLModel."""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

DEFAULT_REMINDER_INTERVALS = ["1day", "1hour"]
DEFAULT_PREFERRED_CHANNELS = ["email", "in_app"]


class NotificationPreference(SQLModel, table=True):
    """Per-user delivery configuration; one row per user, created lazily with defaults."""

    __tablename__ = "notification_preferences"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(max_length=100, unique=True, index=True)

    # Category toggles
    due_date_reminders: bool = Field(default=True)
    task_assignments: bool = Field(default=True)
    task_completions: bool = Field(default=True)
    status_changes: bool = Field(default=False)
    priority_changes: bool = Field(default=True)
    comment_notifications: bool = Field(default=True)
    daily_summaries: bool = Field(default=False)
    weekly_summaries: bool = Field(default=False)

    # Ordered offsets before the due date: 15min, 1hour, 1day, 3days, 1week
    reminder_intervals: List[str] = Field(
        default_factory=lambda: list(DEFAULT_REMINDER_INTERVALS),
        sa_column=Column(JSON, nullable=False),
    )
    # First channel is primary
    preferred_channels: List[str] = Field(
        default_factory=lambda: list(DEFAULT_PREFERRED_CHANNELS),
        sa_column=Column(JSON, nullable=False),
    )

    # Quiet hours, local wall-clock HH:MM in quiet_timezone
    quiet_hours_enabled: bool = Field(default=False)
    quiet_start_time: str = Field(default="22:00", max_length=5)
    quiet_end_time: str = Field(default="08:00", max_length=5)
    quiet_timezone: str = Field(default="UTC", max_length=50)

    digest_frequency: str = Field(default="immediate", max_length=20)  # immediate, hourly, daily, weekly

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
