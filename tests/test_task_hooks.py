"""Tests for the task lifecycle hooks."""

from datetime import timedelta

import pytest

from conftest import NOW
from tasknotify.schemas.events import FieldChange, TaskEvent
from tasknotify.services.task_hooks import TaskNotificationHooks, is_priority_escalation


@pytest.fixture
def hooks(service):
    return TaskNotificationHooks(service)


@pytest.fixture
def assignee(make_user):
    return make_user(name="Grace Hopper")


def _types(service, user_id, status=None):
    return sorted(
        n.type for n in service.list_notifications(user_id, limit=500)
        if status is None or n.status == status
    )


class TestPriorityEscalation:

    @pytest.mark.parametrize("old,new,expected", [
        ("low", "medium", False),
        ("low", "high", True),
        ("medium", "high", True),
        ("high", "urgent", True),
        ("low", "urgent", True),
        ("urgent", "low", False),
        ("medium", "medium", False),
    ])
    def test_levels(self, old, new, expected):
        assert is_priority_escalation(old, new) is expected


class TestTaskCreated:

    def test_schedules_reminders_and_assignment(self, service, hooks, user, assignee, make_task):
        task = make_task(user, assigned_to=assignee.id)
        assert hooks.on_task_created(task.id, user.id, now=NOW) is True

        assert _types(service, user.id) == ["due_reminder"] * 4
        assert _types(service, assignee.id) == ["assignment", "assignment"]

    def test_self_assignment_not_notified(self, service, hooks, user, make_task):
        task = make_task(user, assigned_to=user.id, due_date=None)
        assert hooks.on_task_created(task.id, user.id, now=NOW) is True
        assert _types(service, user.id) == []

    def test_unknown_task_returns_false(self, hooks):
        assert hooks.on_task_created(12345, None, now=NOW) is False


class TestTaskUpdated:

    def test_due_date_change_reschedules(self, service, hooks, user, make_task, update_task, set_preferences):
        set_preferences(user.id, preferred_channels=["email"])
        task = make_task(user)
        service.schedule_due_reminders(task.id, user.id, now=NOW)

        new_due = NOW + timedelta(days=3)
        update_task(task.id, due_date=new_due)
        changes = {"due_date": FieldChange(old=(NOW + timedelta(hours=25)).isoformat(), new=new_due.isoformat())}
        assert hooks.on_task_updated(task.id, user.id, changes, now=NOW) is True

        reminders = service.list_notifications(user.id)
        pending = sorted(n.scheduled_for for n in reminders if n.status == "pending")
        assert pending == [new_due - timedelta(days=1), new_due - timedelta(hours=1)]
        assert [n.status for n in reminders].count("cancelled") == 2

    def test_due_date_change_tells_assignee(self, service, hooks, user, assignee, make_task, set_preferences):
        set_preferences(assignee.id, status_changes=True, preferred_channels=["in_app"])
        task = make_task(user, assigned_to=assignee.id, due_date=NOW + timedelta(days=2))
        changes = {"due_date": FieldChange(old="2026-03-11T13:00:00", new="2026-03-12T12:00:00")}
        hooks.on_task_updated(task.id, user.id, changes, now=NOW)

        [notice] = service.list_notifications(assignee.id)
        assert notice.type == "status_change"
        assert notice.data["change_type"] == "due_date"
        assert notice.data["old_value"] == "2026-03-11"
        assert notice.data["new_value"] == "2026-03-12"

    def test_status_change_respects_toggle(self, service, hooks, user, assignee, make_task, set_preferences):
        task = make_task(user, assigned_to=assignee.id)
        changes = {"status": FieldChange(old="pending", new="in_progress")}
        hooks.on_task_updated(task.id, assignee.id, changes, now=NOW)
        assert _types(service, user.id) == []

        set_preferences(user.id, status_changes=True)
        hooks.on_task_updated(task.id, assignee.id, changes, now=NOW)
        assert _types(service, user.id) == ["status_change", "status_change"]
        assert _types(service, assignee.id) == []

    def test_priority_escalation_notifies(self, service, hooks, user, assignee, make_task):
        task = make_task(user, assigned_to=assignee.id, priority="urgent")
        hooks.on_task_updated(task.id, user.id, {"priority": FieldChange(old="medium", new="urgent")}, now=NOW)
        assert _types(service, assignee.id) == ["priority_change", "priority_change"]

        hooks.on_task_updated(task.id, user.id, {"priority": FieldChange(old="urgent", new="low")}, now=NOW)
        assert len(_types(service, assignee.id)) == 2

    def test_reassignment(self, service, hooks, user, assignee, make_user, make_task, set_preferences):
        previous = make_user(name="Linus")
        set_preferences(previous.id, status_changes=True, preferred_channels=["email"])
        task = make_task(user, assigned_to=assignee.id)
        changes = {"assigned_to": FieldChange(old=previous.id, new=assignee.id)}
        hooks.on_task_updated(task.id, user.id, changes, now=NOW)

        assert _types(service, assignee.id) == ["assignment", "assignment"]
        [notice] = service.list_notifications(previous.id)
        assert notice.data["change_type"] == "reassignment"
        assert notice.data["new_value"] == "Grace Hopper"

    def test_no_changes_is_a_no_op(self, hooks):
        assert hooks.on_task_updated(12345, None, {}, now=NOW) is True


class TestTaskCompleted:

    def test_cancels_reminders_and_notifies_owner(self, service, hooks, user, assignee, make_task):
        task = make_task(user, assigned_to=assignee.id)
        service.schedule_due_reminders(task.id, user.id, now=NOW)

        assert hooks.on_task_completed(task.id, assignee.id, now=NOW) is True
        assert _types(service, user.id, status="pending") == ["completion", "completion"]
        assert _types(service, user.id, status="cancelled") == ["due_reminder"] * 4
        [completion, _] = [n for n in service.list_notifications(user.id) if n.type == "completion"]
        assert completion.data["completer_name"] == "Grace Hopper"
        assert _types(service, assignee.id) == []

    def test_status_completed_routes_to_completion(self, service, hooks, user, assignee, make_task):
        task = make_task(user, assigned_to=assignee.id)
        hooks.on_task_updated(task.id, assignee.id, {"status": FieldChange(old="in_progress", new="completed")}, now=NOW)
        assert _types(service, user.id) == ["completion", "completion"]


class TestTaskDeletedAndComments:

    def test_deleted_cancels_everything_pending(self, service, hooks, user, make_task):
        task = make_task(user)
        service.schedule_due_reminders(task.id, user.id, now=NOW)
        assert hooks.on_task_deleted(task.id) is True
        assert _types(service, user.id, status="pending") == []

    def test_comment_notifies_everyone_but_author(self, service, hooks, user, assignee, make_task):
        task = make_task(user, assigned_to=assignee.id)
        long_comment = "x" * 200
        hooks.on_comment_added(task.id, assignee.id, long_comment, now=NOW)

        assert _types(service, assignee.id) == []
        [comment, _] = service.list_notifications(user.id)
        assert comment.data["author_name"] == "Grace Hopper"
        assert len(comment.data["comment_excerpt"]) == 140
        assert comment.data["comment_excerpt"].endswith("...")


class TestHandleEvent:

    def test_routes_by_type(self, service, hooks, user, make_task):
        task = make_task(user)
        event = TaskEvent.model_validate({
            "event_id": "evt-1",
            "type": "task.commented",
            "data": {"task_id": task.id, "actor_id": None, "comment": "Nice"},
        })
        assert hooks.handle_event(event, now=NOW) is True
        assert _types(service, user.id) == ["comment", "comment"]

    def test_cloud_event_unwrapped(self, hooks, user, make_task):
        task = make_task(user)
        event = TaskEvent.from_cloud_event({
            "specversion": "1.0",
            "type": "com.dapr.event.sent",
            "data": '{"type": "task.deleted", "data": {"task_id": %d}}' % task.id,
        })
        assert event.type.value == "task.deleted"
        assert hooks.handle_event(event, now=NOW) is True
