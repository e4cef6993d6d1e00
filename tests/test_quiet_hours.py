"""Tests for quiet-hours window checks."""

from datetime import datetime

from tasknotify.models.preference import NotificationPreference
from tasknotify.services.quiet_hours import is_within_quiet_hours, next_quiet_end


def _preference(**overrides):
    fields = {
        "user_id": "u1",
        "quiet_hours_enabled": True,
        "quiet_start_time": "22:00",
        "quiet_end_time": "08:00",
        "quiet_timezone": "UTC",
    }
    fields.update(overrides)
    return NotificationPreference(**fields)


class TestIsWithinQuietHours:

    def test_disabled(self):
        preference = _preference(quiet_hours_enabled=False)
        assert not is_within_quiet_hours(preference, datetime(2026, 3, 10, 23, 0))

    def test_no_preference(self):
        assert not is_within_quiet_hours(None, datetime(2026, 3, 10, 23, 0))

    def test_wrapping_window(self):
        preference = _preference()
        assert is_within_quiet_hours(preference, datetime(2026, 3, 10, 22, 0))
        assert is_within_quiet_hours(preference, datetime(2026, 3, 10, 23, 30))
        assert is_within_quiet_hours(preference, datetime(2026, 3, 11, 7, 59))
        assert not is_within_quiet_hours(preference, datetime(2026, 3, 11, 8, 0))
        assert not is_within_quiet_hours(preference, datetime(2026, 3, 10, 12, 0))

    def test_same_day_window(self):
        preference = _preference(quiet_start_time="12:00", quiet_end_time="14:00")
        assert is_within_quiet_hours(preference, datetime(2026, 3, 10, 13, 0))
        assert not is_within_quiet_hours(preference, datetime(2026, 3, 10, 14, 0))
        assert not is_within_quiet_hours(preference, datetime(2026, 3, 10, 11, 59))

    def test_empty_window(self):
        preference = _preference(quiet_start_time="09:00", quiet_end_time="09:00")
        assert not is_within_quiet_hours(preference, datetime(2026, 3, 10, 9, 0))

    def test_local_timezone(self):
        # 03:00 UTC is 22:00 in New York (EST, UTC-5)
        preference = _preference(quiet_timezone="America/New_York")
        assert is_within_quiet_hours(preference, datetime(2026, 1, 15, 3, 0))
        assert not is_within_quiet_hours(preference, datetime(2026, 1, 15, 2, 0))


class TestNextQuietEnd:

    def test_after_midnight_ends_same_day(self):
        preference = _preference()
        assert next_quiet_end(preference, datetime(2026, 3, 11, 2, 0)) == datetime(2026, 3, 11, 8, 0)

    def test_before_midnight_ends_next_day(self):
        preference = _preference()
        assert next_quiet_end(preference, datetime(2026, 3, 10, 23, 0)) == datetime(2026, 3, 11, 8, 0)

    def test_converted_back_to_utc(self):
        # 08:00 EST is 13:00 UTC
        preference = _preference(quiet_timezone="America/New_York")
        assert next_quiet_end(preference, datetime(2026, 1, 15, 3, 0)) == datetime(2026, 1, 15, 13, 0)
