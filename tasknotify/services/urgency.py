"""Urgency classification and human-readable due-time phrases."""
from datetime import datetime, timedelta
from enum import Enum


class UrgencyLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def classify_urgency(now: datetime, due_date: datetime) -> UrgencyLevel:
    """
    Classify how urgent a task is at ``now``.

    ``critical`` once the due time has passed, ``high`` within the last hour,
    ``medium`` within the last day, ``low`` otherwise.
    """
    remaining = due_date - now
    if remaining <= timedelta(0):
        return UrgencyLevel.CRITICAL
    if remaining <= timedelta(hours=1):
        return UrgencyLevel.HIGH
    if remaining <= timedelta(hours=24):
        return UrgencyLevel.MEDIUM
    return UrgencyLevel.LOW


def format_time_until_due(from_time: datetime, due_date: datetime) -> str:
    """Phrase like ``in 2 days``, ``in 1 hour`` or ``now (overdue)``."""
    remaining = due_date - from_time
    if remaining <= timedelta(0):
        return "now (overdue)"

    days = remaining.days
    hours = remaining.seconds // 3600
    if days > 0:
        return f"in {days} day{'s' if days > 1 else ''}"
    if hours > 0:
        return f"in {hours} hour{'s' if hours > 1 else ''}"
    return "in less than an hour"


def days_overdue(now: datetime, due_date: datetime) -> int:
    """Whole days past the due date; 0 on the day it became overdue."""
    return max((now - due_date).days, 0)
