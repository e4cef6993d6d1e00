"""Quiet-hours window checks in the recipient's local timezone."""
from datetime import datetime, time, timedelta
from typing import Optional

import pytz

from tasknotify.models.preference import NotificationPreference


def _parse_clock(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def _local_now(preference: NotificationPreference, now: datetime):
    tz = pytz.timezone(preference.quiet_timezone or "UTC")
    return tz, pytz.utc.localize(now).astimezone(tz)


def is_within_quiet_hours(preference: Optional[NotificationPreference], now: datetime) -> bool:
    """
    True if ``now`` (naive UTC) falls inside the user's quiet window.

    The window is ``[start, end)`` in local wall-clock time and may wrap
    midnight (22:00-08:00). A window whose start equals its end is empty.
    """
    if preference is None or not preference.quiet_hours_enabled:
        return False

    start = _parse_clock(preference.quiet_start_time)
    end = _parse_clock(preference.quiet_end_time)
    if start == end:
        return False

    _, local = _local_now(preference, now)
    current = local.time().replace(tzinfo=None)
    if start < end:
        return start <= current < end
    return current >= start or current < end


def next_quiet_end(preference: NotificationPreference, now: datetime) -> datetime:
    """The next local ``quiet_end_time`` after ``now``, as naive UTC."""
    end = _parse_clock(preference.quiet_end_time)
    tz, local = _local_now(preference, now)

    candidate = datetime.combine(local.date(), end)
    if candidate <= local.replace(tzinfo=None):
        candidate += timedelta(days=1)

    # Ambiguous or skipped DST wall-clock times resolve to standard time
    localized = tz.normalize(tz.localize(candidate, is_dst=False))
    return localized.astimezone(pytz.utc).replace(tzinfo=None)
