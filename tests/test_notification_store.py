"""Tests for notification lifecycle transitions, due selection and retention."""

from datetime import timedelta

import pytest

from conftest import NOW
from tasknotify.schemas.notification import NotificationResponse
from tasknotify.services.exceptions import NotificationNotFoundError
from tasknotify.services.notification_store import retry_delay


# ============================================================================
# Transitions
# ============================================================================

class TestTransitions:
    """pending -> sent/delivered/failed/cancelled; sent -> delivered; terminal states stay put."""

    def test_mark_sent(self, service, user, make_notification):
        notification = make_notification(user.id)
        updated = service.store.mark_sent(notification.id, confirmed=False, now=NOW)
        assert updated.status == "sent"
        assert updated.sent_at == NOW
        assert updated.delivered_at is None

    def test_mark_sent_confirmed_is_delivered(self, service, user, make_notification):
        notification = make_notification(user.id)
        updated = service.store.mark_sent(notification.id, confirmed=True, now=NOW)
        assert updated.status == "delivered"
        assert updated.sent_at == NOW
        assert updated.delivered_at == NOW

    def test_confirm_delivery_after_sent(self, service, user, make_notification):
        notification = make_notification(user.id)
        service.store.mark_sent(notification.id, confirmed=False, now=NOW)
        later = NOW + timedelta(minutes=5)
        updated = service.store.confirm_delivery(notification.id, now=later)
        assert updated.status == "delivered"
        assert updated.sent_at == NOW
        assert updated.delivered_at == later

    def test_confirm_delivery_unknown(self, service):
        with pytest.raises(NotificationNotFoundError):
            service.store.confirm_delivery("missing")

    def test_terminal_state_is_not_changed(self, service, user, make_notification):
        notification = make_notification(user.id)
        assert service.store.cancel(notification.id, now=NOW) is True
        updated = service.store.mark_sent(notification.id, confirmed=True, now=NOW)
        assert updated.status == "cancelled"
        assert updated.sent_at is None

    def test_cancel_twice(self, service, user, make_notification):
        notification = make_notification(user.id)
        assert service.store.cancel(notification.id, now=NOW) is True
        assert service.store.cancel(notification.id, now=NOW) is False

    def test_cancel_unknown(self, service):
        with pytest.raises(NotificationNotFoundError):
            service.store.cancel("missing")

    def test_cancel_pending_for_task(self, service, user, make_task, make_notification):
        task = make_task(user)
        reminder = make_notification(user.id, task_id=task.id, type="due_reminder")
        alert = make_notification(user.id, task_id=task.id, type="overdue_alert")
        sent = make_notification(user.id, task_id=task.id, type="due_reminder")
        service.store.mark_sent(sent.id, confirmed=False, now=NOW)

        assert service.store.cancel_pending_for_task(task.id, "due_reminder", now=NOW) == 1
        assert service.store.get(reminder.id).status == "cancelled"
        assert service.store.get(alert.id).status == "pending"
        assert service.store.get(sent.id).status == "sent"

        assert service.store.cancel_pending_for_task(task.id, now=NOW) == 1
        assert service.store.get(alert.id).status == "cancelled"


# ============================================================================
# Failures and Backoff
# ============================================================================

class TestRecordFailure:

    def test_retry_delay_doubles(self):
        assert retry_delay(60, 1) == timedelta(seconds=60)
        assert retry_delay(60, 2) == timedelta(seconds=120)
        assert retry_delay(60, 3) == timedelta(seconds=240)

    def test_failure_keeps_record_pending_behind_gate(self, service, user, make_notification):
        notification = make_notification(user.id)
        updated = service.store.record_failure(notification.id, "smtp down", NOW, backoff_seconds=60)
        assert updated.status == "pending"
        assert updated.retry_count == 1
        assert updated.error_message == "smtp down"
        assert updated.next_attempt_at == NOW + timedelta(seconds=60)
        assert updated.sent_at == NOW
        assert updated.scheduled_for == NOW

    def test_exhausted_retries_fail(self, service, user, make_notification):
        notification = make_notification(user.id, max_retries=2)
        service.store.record_failure(notification.id, "first", NOW, backoff_seconds=0)
        updated = service.store.record_failure(notification.id, "second", NOW, backoff_seconds=0)
        assert updated.status == "failed"
        assert updated.retry_count == 2
        assert updated.error_message == "second"

    def test_retry_count_never_exceeds_max(self, service, user, make_notification):
        notification = make_notification(user.id, max_retries=1)
        service.store.record_failure(notification.id, "first", NOW, backoff_seconds=0)
        updated = service.store.record_failure(notification.id, "again", NOW, backoff_seconds=0)
        assert updated.status == "failed"
        assert updated.retry_count == 1


# ============================================================================
# Due Selection
# ============================================================================

class TestFetchDue:

    def test_orders_by_scheduled_for(self, service, user, make_notification):
        late = make_notification(user.id, scheduled_for=NOW - timedelta(minutes=1))
        early = make_notification(user.id, scheduled_for=NOW - timedelta(hours=1))
        make_notification(user.id, scheduled_for=NOW + timedelta(minutes=1))

        due = service.store.fetch_due(NOW, limit=10)
        assert [n.id for n in due] == [early.id, late.id]

    def test_respects_limit(self, service, user, make_notification):
        for minutes in range(5):
            make_notification(user.id, scheduled_for=NOW - timedelta(minutes=minutes))
        assert len(service.store.fetch_due(NOW, limit=3)) == 3

    def test_skips_backoff_and_terminal(self, service, user, make_notification):
        gated = make_notification(user.id)
        service.store.record_failure(gated.id, "boom", NOW, backoff_seconds=60)
        cancelled = make_notification(user.id)
        service.store.cancel(cancelled.id, now=NOW)

        assert service.store.fetch_due(NOW, limit=10) == []
        due = service.store.fetch_due(NOW + timedelta(seconds=60), limit=10)
        assert [n.id for n in due] == [gated.id]


# ============================================================================
# Engagement and Queries
# ============================================================================

class TestEngagement:

    def test_mark_read_once(self, service, user, make_notification):
        notification = make_notification(user.id)
        first = service.store.mark_read(notification.id, user.id, now=NOW)
        second = service.store.mark_read(notification.id, user.id, now=NOW + timedelta(hours=1))
        assert first.read_at == NOW
        assert second.read_at == NOW
        assert second.status == "pending"

    def test_mark_read_foreign_owner(self, service, user, make_user, make_notification):
        other = make_user()
        notification = make_notification(user.id)
        with pytest.raises(NotificationNotFoundError):
            service.store.mark_read(notification.id, other.id)

    def test_click_counts_as_read(self, service, user, make_notification):
        notification = make_notification(user.id)
        updated = service.store.mark_clicked(notification.id, user.id, now=NOW)
        assert updated.clicked_at == NOW
        assert updated.read_at == NOW


class TestQueries:

    def test_list_newest_first_and_unread(self, service, user, make_notification):
        older = make_notification(user.id, created_at=NOW - timedelta(hours=2))
        newer = make_notification(user.id, created_at=NOW)
        service.store.mark_read(older.id, user.id, now=NOW)

        assert [n.id for n in service.store.list_for_user(user.id)] == [newer.id, older.id]
        assert [n.id for n in service.store.list_for_user(user.id, unread_only=True)] == [newer.id]
        assert [n.id for n in service.store.list_for_user(user.id, limit=1, offset=1)] == [older.id]

    def test_stats_zero_filled(self, service, user, make_notification):
        first = make_notification(user.id, type="assignment")
        make_notification(user.id, type="assignment")
        make_notification(user.id, type="comment")
        service.store.mark_read(first.id, user.id, now=NOW)

        stats = service.store.stats(user.id)
        assert stats.total == 3
        assert stats.unread == 2
        assert stats.by_type["assignment"] == 2
        assert stats.by_type["comment"] == 1
        assert stats.by_type["weekly_summary"] == 0
        assert len(stats.by_type) == 9

    def test_stats_for_unknown_user(self, service):
        stats = service.store.stats("nobody")
        assert stats.total == 0
        assert stats.unread == 0


class TestRetention:

    def test_deletes_only_old_terminal_records(self, service, user, make_notification):
        old_sent = make_notification(user.id, created_at=NOW - timedelta(days=40))
        service.store.mark_sent(old_sent.id, confirmed=True, now=NOW)
        old_pending = make_notification(user.id, created_at=NOW - timedelta(days=40))
        recent = make_notification(user.id, created_at=NOW - timedelta(days=1))
        service.store.cancel(recent.id, now=NOW)

        deleted = service.store.delete_terminal_older_than(NOW - timedelta(days=30))
        assert deleted == 1
        assert service.store.get(old_sent.id) is None
        assert service.store.get(old_pending.id) is not None
        assert service.store.get(recent.id) is not None

    def test_zero_day_retention_removes_all_terminal_records(self, service, user, make_notification):
        delivered = make_notification(user.id, created_at=NOW - timedelta(days=2))
        service.store.mark_sent(delivered.id, confirmed=True, now=NOW - timedelta(days=2))
        pending = make_notification(user.id, created_at=NOW - timedelta(days=2))

        assert service.cleanup_old(0, now=NOW) == 1
        assert service.store.get(delivered.id) is None
        assert service.store.get(pending.id) is not None

    def test_default_retention_from_settings(self, service, user, make_notification):
        delivered = make_notification(user.id, created_at=NOW - timedelta(days=2))
        service.store.mark_sent(delivered.id, confirmed=True, now=NOW)
        assert service.cleanup_old(now=NOW) == 0
        assert service.store.get(delivered.id) is not None


class TestReadModel:

    def test_response_from_record(self, service, user, make_notification):
        notification = make_notification(user.id, data={"task_title": "Report"})
        service.store.cancel(notification.id, now=NOW)
        stored = service.store.get(notification.id)

        response = NotificationResponse.model_validate(stored)
        assert stored.is_terminal
        assert response.status == "cancelled"
        assert response.data == {"task_title": "Report"}
        assert response.scheduled_for == NOW

    def test_listing_returns_read_models(self, service, user, make_notification):
        notification = make_notification(user.id)
        [listed] = service.list_notifications(user.id)
        assert isinstance(listed, NotificationResponse)
        assert listed.id == notification.id
        assert listed.status == "pending"
