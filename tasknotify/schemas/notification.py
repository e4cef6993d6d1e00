"""Notification schemas for the engine's public operations."""
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytz
from pydantic import BaseModel, ConfigDict, Field, field_validator

from tasknotify.models.notification import NotificationChannel, NotificationType, ReminderInterval
from tasknotify.utils.timeutils import to_naive_utc

_CLOCK_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class ScheduleNotificationInput(BaseModel):
    """Request to render and persist one pending notification."""
    user_id: str = Field(..., min_length=1)
    task_id: Optional[int] = None
    type: NotificationType
    channel: NotificationChannel
    variables: Dict[str, Any] = Field(default_factory=dict)
    scheduled_for: Optional[datetime] = None  # defaults to now
    language: Optional[str] = Field(None, max_length=10)
    max_retries: Optional[int] = Field(None, ge=1, le=10)

    @field_validator("scheduled_for")
    @classmethod
    def _as_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)


class PreferenceUpdate(BaseModel):
    """Partial preference update; only fields that are set are written."""
    due_date_reminders: Optional[bool] = None
    task_assignments: Optional[bool] = None
    task_completions: Optional[bool] = None
    status_changes: Optional[bool] = None
    priority_changes: Optional[bool] = None
    comment_notifications: Optional[bool] = None
    daily_summaries: Optional[bool] = None
    weekly_summaries: Optional[bool] = None
    reminder_intervals: Optional[List[ReminderInterval]] = Field(None, max_length=5)
    preferred_channels: Optional[List[NotificationChannel]] = Field(None, min_length=1, max_length=4)
    quiet_hours_enabled: Optional[bool] = None
    quiet_start_time: Optional[str] = None  # HH:MM
    quiet_end_time: Optional[str] = None  # HH:MM
    quiet_timezone: Optional[str] = None
    digest_frequency: Optional[str] = Field(None, pattern=r"^(immediate|hourly|daily|weekly)$")

    @field_validator("reminder_intervals", "preferred_channels")
    @classmethod
    def _dedupe_keep_order(cls, value):
        if value is None:
            return value
        seen = []
        for item in value:
            if item not in seen:
                seen.append(item)
        return seen

    @field_validator("quiet_start_time", "quiet_end_time")
    @classmethod
    def _valid_clock(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not _CLOCK_PATTERN.match(value):
            raise ValueError("must be a 24-hour HH:MM time")
        return value

    @field_validator("quiet_timezone")
    @classmethod
    def _valid_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in pytz.all_timezones_set:
            raise ValueError(f"unknown timezone: {value}")
        return value

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly provided by the caller, JSON-ready."""
        return self.model_dump(exclude_unset=True, exclude_none=True, mode="json")


class NotificationResponse(BaseModel):
    """Read model of a notification record."""
    id: str
    user_id: str
    task_id: Optional[int] = None
    type: str
    channel: str
    status: str
    title: str
    message: str
    html_content: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    scheduled_for: datetime
    sent_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    clicked_at: Optional[datetime] = None
    retry_count: int = 0
    max_retries: int = 3
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationStats(BaseModel):
    total: int = 0
    unread: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
