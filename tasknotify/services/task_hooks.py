"""
Task Notification Hooks.

Decide *who* hears about a task lifecycle event and hand the rest to the
scheduler. Hooks are called from the event consumer: they log failures and
return False instead of raising.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from tasknotify.models.notification import NotificationType
from tasknotify.models.task import PRIORITY_LEVELS, Task
from tasknotify.schemas.events import FieldChange, TaskEvent, TaskEventType
from tasknotify.services.notification_service import NotificationService
from tasknotify.utils.logger import get_logger
from tasknotify.utils.timeutils import parse_datetime

logger = get_logger(__name__)

COMMENT_EXCERPT_LENGTH = 140


def _recipients(task: Task, actor_id: Optional[str]) -> List[str]:
    """Owner and assignee, minus whoever caused the event."""
    recipients = []
    for user_id in (task.user_id, task.assigned_to):
        if user_id and user_id != actor_id and user_id not in recipients:
            recipients.append(user_id)
    return recipients


def is_priority_escalation(old: Optional[str], new: Optional[str]) -> bool:
    """An increase to high/urgent, or by at least two levels."""
    old_level = PRIORITY_LEVELS.get(old or "", 1)
    new_level = PRIORITY_LEVELS.get(new or "", 1)
    return new_level > old_level and (new_level >= PRIORITY_LEVELS["high"] or new_level - old_level >= 2)


class TaskNotificationHooks:
    """Task lifecycle hooks backed by a constructed ``NotificationService``."""

    def __init__(self, service: NotificationService):
        self.service = service
        self.scheduler = service.scheduler
        self.directory = service.directory

    def handle_event(self, event: TaskEvent, now: Optional[datetime] = None) -> bool:
        """Route a ``task-events`` message to its hook."""
        data = event.data
        if event.type == TaskEventType.CREATED:
            return self.on_task_created(data.task_id, data.actor_id, now)
        if event.type == TaskEventType.UPDATED:
            return self.on_task_updated(data.task_id, data.actor_id, data.changes, now)
        if event.type == TaskEventType.COMPLETED:
            return self.on_task_completed(data.task_id, data.actor_id, now)
        if event.type == TaskEventType.DELETED:
            return self.on_task_deleted(data.task_id)
        if event.type == TaskEventType.ASSIGNED:
            return self.on_task_assigned(
                data.task_id, data.assignee_id, data.actor_id, data.previous_assignee_id, now
            )
        if event.type == TaskEventType.COMMENTED:
            return self.on_comment_added(data.task_id, data.actor_id, data.comment or "", now)
        return False

    def _guard(self, hook: str, task_id: int, action) -> bool:
        try:
            action()
            return True
        except Exception:
            logger.exception("Task notification hook failed", hook=hook, task_id=task_id)
            return False

    def _load_task(self, task_id: int) -> Task:
        task = self.directory.get_task(task_id)
        if task is None:
            raise LookupError(f"Task {task_id} not found")
        return task

    def _name_of(self, user_id: Optional[str]) -> str:
        user = self.directory.get_user(user_id) if user_id else None
        return user.display_name if user else "Someone"

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    def on_task_created(self, task_id: int, actor_id: Optional[str], now: Optional[datetime] = None) -> bool:
        def action():
            task = self._load_task(task_id)
            logger.info("Task created hook triggered", task_id=task_id, actor_id=actor_id)
            if task.due_date:
                self.scheduler.schedule_due_reminders(task.id, task.user_id, now)
            if task.assigned_to and task.assigned_to != (actor_id or task.user_id):
                self.scheduler.schedule_assignment_notification(task.id, task.assigned_to, actor_id, now)

        return self._guard("on_task_created", task_id, action)

    def on_task_updated(
        self,
        task_id: int,
        actor_id: Optional[str],
        changes: Dict[str, FieldChange],
        now: Optional[datetime] = None,
    ) -> bool:
        if not changes:
            return True

        def action():
            task = self._load_task(task_id)
            logger.info("Task updated hook triggered", task_id=task_id, changed_fields=sorted(changes))
            if "due_date" in changes:
                self._handle_due_date_change(task, actor_id, changes["due_date"], now)
            if "status" in changes:
                self._handle_status_change(task, actor_id, changes["status"], now)
            if "priority" in changes:
                self._handle_priority_change(task, actor_id, changes["priority"], now)
            if "assigned_to" in changes:
                change = changes["assigned_to"]
                if change.new:
                    self.on_task_assigned(task.id, change.new, actor_id, change.old, now)
                elif change.old:
                    self._notify_change(task, [change.old], actor_id, "unassignment", change.old, "", now)

        return self._guard("on_task_updated", task_id, action)

    def on_task_completed(self, task_id: int, actor_id: Optional[str], now: Optional[datetime] = None) -> bool:
        def action():
            task = self._load_task(task_id)
            logger.info("Task completed hook triggered", task_id=task_id, actor_id=actor_id)
            self.service.cancel_pending_for_task(task.id, NotificationType.DUE_REMINDER)
            self.service.cancel_pending_for_task(task.id, NotificationType.OVERDUE_ALERT)
            completer = self._name_of(actor_id)
            for user_id in _recipients(task, actor_id):
                self.scheduler.schedule_event_notification(
                    NotificationType.COMPLETION, task.id, user_id, {"completer_name": completer}, now
                )

        return self._guard("on_task_completed", task_id, action)

    def on_task_assigned(
        self,
        task_id: int,
        assignee_id: Optional[str],
        assigner_id: Optional[str],
        previous_assignee_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        def action():
            if not assignee_id:
                raise ValueError("Assignment event without assignee")
            task = self._load_task(task_id)
            logger.info("Task assignment hook triggered", task_id=task_id, assignee_id=assignee_id)
            self.scheduler.schedule_assignment_notification(task.id, assignee_id, assigner_id, now)
            if previous_assignee_id and previous_assignee_id != assignee_id:
                self._notify_change(
                    task, [previous_assignee_id], assigner_id, "reassignment",
                    self._name_of(previous_assignee_id), self._name_of(assignee_id), now,
                )

        return self._guard("on_task_assigned", task_id, action)

    def on_task_deleted(self, task_id: int) -> bool:
        def action():
            count = self.service.cancel_pending_for_task(task_id)
            logger.info("Task deleted hook triggered", task_id=task_id, cancelled=count)

        return self._guard("on_task_deleted", task_id, action)

    def on_comment_added(
        self,
        task_id: int,
        author_id: Optional[str],
        comment: str,
        now: Optional[datetime] = None,
    ) -> bool:
        def action():
            task = self._load_task(task_id)
            excerpt = comment if len(comment) <= COMMENT_EXCERPT_LENGTH else comment[:COMMENT_EXCERPT_LENGTH - 3] + "..."
            author = self._name_of(author_id)
            for user_id in _recipients(task, author_id):
                self.scheduler.schedule_event_notification(
                    NotificationType.COMMENT, task.id, user_id,
                    {"author_name": author, "comment_excerpt": excerpt}, now,
                )

        return self._guard("on_comment_added", task_id, action)

    # ------------------------------------------------------------------
    # Change handlers
    # ------------------------------------------------------------------

    def _handle_due_date_change(self, task: Task, actor_id: Optional[str], change: FieldChange, now) -> None:
        self.service.cancel_pending_for_task(task.id, NotificationType.DUE_REMINDER)
        if change.new and task.user_id:
            self.scheduler.schedule_due_reminders(task.id, task.user_id, now)

        if task.assigned_to and task.assigned_to != actor_id:
            self._notify_change(
                task, [task.assigned_to], actor_id, "due_date",
                _date_label(change.old), _date_label(change.new), now,
            )

    def _handle_status_change(self, task: Task, actor_id: Optional[str], change: FieldChange, now) -> None:
        if change.new == "completed":
            self.on_task_completed(task.id, actor_id, now)
            return
        self._notify_change(task, _recipients(task, actor_id), actor_id, "status", change.old, change.new, now)

    def _handle_priority_change(self, task: Task, actor_id: Optional[str], change: FieldChange, now) -> None:
        if not is_priority_escalation(change.old, change.new):
            return
        for user_id in _recipients(task, actor_id):
            self.scheduler.schedule_event_notification(
                NotificationType.PRIORITY_CHANGE, task.id, user_id,
                self._change_variables(actor_id, "priority", change.old, change.new), now,
            )

    def _notify_change(
        self,
        task: Task,
        recipients: List[str],
        actor_id: Optional[str],
        change_type: str,
        old_value: Any,
        new_value: Any,
        now,
    ) -> None:
        for user_id in recipients:
            self.scheduler.schedule_event_notification(
                NotificationType.STATUS_CHANGE, task.id, user_id,
                self._change_variables(actor_id, change_type, old_value, new_value), now,
            )

    def _change_variables(self, actor_id: Optional[str], change_type: str, old_value: Any, new_value: Any) -> Dict[str, Any]:
        return {
            "updater_name": self._name_of(actor_id),
            "change_type": change_type,
            "old_value": "" if old_value is None else str(old_value),
            "new_value": "" if new_value is None else str(new_value),
        }


def _date_label(value: Any) -> str:
    moment = parse_datetime(value) if value else None
    return moment.strftime("%Y-%m-%d") if moment else "No due date"
