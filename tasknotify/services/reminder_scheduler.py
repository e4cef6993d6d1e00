"""
Reminder Scheduler Service.

Translates task events, task state and user preferences into pending
notification records. Content is rendered here, once, and stored on the
record; the dispatcher only ever sends what was composed at this point.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from tasknotify.config import Settings
from tasknotify.models.notification import (
    Notification,
    NotificationChannel,
    NotificationStatus,
    NotificationType,
    ReminderInterval,
)
from tasknotify.models.preference import NotificationPreference
from tasknotify.models.task import Task
from tasknotify.models.user import User
from tasknotify.schemas.notification import ScheduleNotificationInput
from tasknotify.schemas.variables import (
    AssignmentVariables,
    DueReminderVariables,
    OverdueAlertVariables,
    SummaryVariables,
    variables_for,
)
from tasknotify.services.exceptions import NotificationError, NotificationValidationError
from tasknotify.services.notification_store import NotificationStore
from tasknotify.services.preference_service import PreferenceService, wants_digest
from tasknotify.services.task_directory import TaskDirectory
from tasknotify.services.template_renderer import TemplateRenderer
from tasknotify.services.urgency import (
    UrgencyLevel,
    classify_urgency,
    days_overdue,
    format_time_until_due,
)
from tasknotify.utils.logger import get_logger
from tasknotify.utils.metrics import MetricsCollector, metrics_collector
from tasknotify.utils.timeutils import start_of_day, start_of_week

logger = get_logger(__name__)

# Preference toggle gating each event-driven notification type
PREFERENCE_TOGGLES = {
    NotificationType.DUE_REMINDER: "due_date_reminders",
    NotificationType.OVERDUE_ALERT: "due_date_reminders",
    NotificationType.ASSIGNMENT: "task_assignments",
    NotificationType.COMPLETION: "task_completions",
    NotificationType.STATUS_CHANGE: "status_changes",
    NotificationType.PRIORITY_CHANGE: "priority_changes",
    NotificationType.COMMENT: "comment_notifications",
}

_DELIVERED_STATUSES = (NotificationStatus.SENT.value, NotificationStatus.DELIVERED.value)


class ReminderScheduler:
    """Service for scheduling task notifications."""

    def __init__(
        self,
        store: NotificationStore,
        renderer: TemplateRenderer,
        preferences: PreferenceService,
        directory: TaskDirectory,
        settings: Settings,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.renderer = renderer
        self.preferences = preferences
        self.directory = directory
        self.settings = settings
        self.metrics = metrics or metrics_collector

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def schedule_notification(self, request: ScheduleNotificationInput, now: Optional[datetime] = None) -> str:
        """
        Render and persist one pending notification.

        Args:
            request: recipient, type, channel, variable bag and optional schedule time
            now: current time (naive UTC), defaults to the wall clock

        Returns:
            The new record's id

        Raises:
            NotificationValidationError: unknown recipient, variables not matching
                the type, or no template; no record is created
        """
        now = now or datetime.utcnow()
        user = self._require_user(request.user_id)
        notification = self._compose(
            user=user,
            task_id=request.task_id,
            notification_type=request.type,
            channel=request.channel,
            variables=request.variables,
            scheduled_for=request.scheduled_for or now,
            now=now,
            language=request.language,
            max_retries=request.max_retries,
        )
        self._persist([notification])
        return notification.id

    def _compose(
        self,
        user: User,
        task_id: Optional[int],
        notification_type: NotificationType,
        channel: NotificationChannel,
        variables: Any,
        scheduled_for: datetime,
        now: datetime,
        language: Optional[str] = None,
        max_retries: Optional[int] = None,
    ) -> Notification:
        notification_type = NotificationType(notification_type)
        channel = NotificationChannel(channel)
        try:
            typed = variables_for(notification_type, variables)
        except ValidationError as e:
            raise NotificationValidationError(
                f"Variables do not match the placeholders of '{notification_type.value}'",
                details={"type": notification_type.value, "errors": e.errors(include_url=False)},
            ) from e

        data = typed.model_dump(mode="json")
        content = self.renderer.render(
            notification_type.value,
            channel.value,
            data,
            language or user.language or self.settings.default_language,
        )
        return Notification(
            user_id=user.id,
            task_id=task_id,
            type=notification_type.value,
            channel=channel.value,
            status=NotificationStatus.PENDING.value,
            title=content.subject,
            message=content.message,
            html_content=content.html,
            data=data,
            scheduled_for=scheduled_for,
            max_retries=max_retries or self.settings.default_max_retries,
            created_at=now,
            updated_at=now,
        )

    def _compose_for_channels(
        self,
        user: User,
        preference: NotificationPreference,
        task_id: Optional[int],
        notification_type: NotificationType,
        variables: Any,
        scheduled_for: datetime,
        now: datetime,
    ) -> List[Notification]:
        return [
            self._compose(user, task_id, notification_type, channel, variables, scheduled_for, now)
            for channel in preference.preferred_channels
        ]

    def _persist(self, notifications: List[Notification]) -> List[str]:
        if not notifications:
            return []
        self.store.add(notifications)
        self.metrics.notification_scheduled(len(notifications))
        for notification in notifications:
            logger.info(
                "Notification scheduled",
                notification_id=notification.id,
                user_id=notification.user_id,
                task_id=notification.task_id,
                type=notification.type,
                channel=notification.channel,
                scheduled_for=notification.scheduled_for,
            )
        return [notification.id for notification in notifications]

    def _require_user(self, user_id: str) -> User:
        user = self.directory.get_user(user_id)
        if user is None:
            raise NotificationValidationError(f"Unknown recipient {user_id}", details={"user_id": user_id})
        return user

    def _require_task(self, task_id: int) -> Task:
        task = self.directory.get_task(task_id)
        if task is None:
            raise NotificationValidationError(f"Unknown task {task_id}", details={"task_id": task_id})
        return task

    def _task_variables(self, task: Task) -> Dict[str, Any]:
        return {
            "task_title": task.title,
            "task_description": task.description or "",
            "priority": task.priority,
            "task_url": f"{self.settings.app_base_url}/tasks/{task.id}",
        }

    # ------------------------------------------------------------------
    # Due reminders and assignments
    # ------------------------------------------------------------------

    def schedule_due_reminders(self, task_id: int, user_id: str, now: Optional[datetime] = None) -> List[str]:
        """
        Schedule one reminder per configured interval and preferred channel.

        Intervals whose reminder time is already past are skipped; so are
        intervals already sent for the same due date, and reminders identical
        to one still pending.

        Returns:
            Ids of the records created
        """
        now = now or datetime.utcnow()
        task = self._require_task(task_id)
        if task.due_date is None or task.is_closed:
            return []

        preference = self.preferences.get(user_id)
        if not preference.due_date_reminders:
            logger.debug("Due reminders disabled", user_id=user_id, task_id=task_id)
            return []
        user = self._require_user(user_id)

        due_iso = task.due_date.isoformat()
        existing = self.store.reminders_for_task(task_id, user_id)
        notifications = []

        for raw_interval in preference.reminder_intervals:
            try:
                interval = ReminderInterval(raw_interval)
            except ValueError:
                logger.warning("Unknown reminder interval ignored", user_id=user_id, interval=raw_interval)
                continue

            scheduled_for = task.due_date - interval.offset
            if scheduled_for <= now:
                logger.debug("Reminder time already passed", task_id=task_id, interval=interval.value)
                continue

            same_interval = [r for r in existing if r.data.get("reminder_interval") == interval.value]
            if any(r.status in _DELIVERED_STATUSES and r.data.get("due_date") == due_iso for r in same_interval):
                continue

            variables = DueReminderVariables(
                **self._task_variables(task),
                due_date=due_iso,
                time_until_due=format_time_until_due(scheduled_for, task.due_date),
                reminder_interval=interval,
                urgency_level=classify_urgency(scheduled_for, task.due_date).value,
            )
            for channel in preference.preferred_channels:
                duplicate = any(
                    r.status == NotificationStatus.PENDING.value
                    and r.channel == channel
                    and r.scheduled_for == scheduled_for
                    for r in same_interval
                )
                if duplicate:
                    continue
                notifications.append(self._compose(
                    user, task.id, NotificationType.DUE_REMINDER, channel, variables, scheduled_for, now
                ))

        return self._persist(notifications)

    def schedule_assignment_notification(
        self,
        task_id: int,
        assignee_id: str,
        assigner_id: Optional[str],
        now: Optional[datetime] = None,
    ) -> List[str]:
        """Notify an assignee immediately on each of their preferred channels."""
        now = now or datetime.utcnow()
        task = self._require_task(task_id)
        preference = self.preferences.get(assignee_id)
        if not preference.task_assignments:
            return []

        assignee = self._require_user(assignee_id)
        assigner = self.directory.get_user(assigner_id) if assigner_id else None
        variables = AssignmentVariables(
            **self._task_variables(task),
            assignee_name=assignee.display_name,
            assigner_name=assigner.display_name if assigner else "Someone",
            due_date=task.due_date.isoformat() if task.due_date else "No due date",
        )
        return self._persist(self._compose_for_channels(
            assignee, preference, task.id, NotificationType.ASSIGNMENT, variables, now, now
        ))

    def schedule_event_notification(
        self,
        notification_type: NotificationType,
        task_id: int,
        recipient_id: str,
        variables: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> List[str]:
        """
        Notify a recipient about a task event (completion, status or priority change, comment).

        Gated by the recipient's preference toggle for the type. ``variables``
        holds the event-specific fields; task fields are filled in here.
        """
        now = now or datetime.utcnow()
        notification_type = NotificationType(notification_type)
        preference = self.preferences.get(recipient_id)
        toggle = PREFERENCE_TOGGLES.get(notification_type)
        if toggle and not getattr(preference, toggle):
            logger.debug("Notification type disabled", user_id=recipient_id, type=notification_type.value)
            return []

        task = self._require_task(task_id)
        recipient = self._require_user(recipient_id)
        merged = {**self._task_variables(task), **variables}
        return self._persist(self._compose_for_channels(
            recipient, preference, task.id, notification_type, merged, now, now
        ))

    # ------------------------------------------------------------------
    # Sweeps and digests
    # ------------------------------------------------------------------

    def sweep_overdue_alerts(self, now: Optional[datetime] = None) -> int:
        """
        Create overdue alerts for open tasks past their due date.

        At most one alert per task per UTC calendar day, however often the
        sweep runs. Returns the number of records created.
        """
        now = now or datetime.utcnow()
        today = start_of_day(now)
        created = 0

        for task in self.directory.find_overdue_tasks(now):
            try:
                if self.store.exists_created_since(NotificationType.OVERDUE_ALERT.value, today, task_id=task.id):
                    continue
                preference = self.preferences.get(task.user_id)
                if not preference.due_date_reminders:
                    continue
                owner = self._require_user(task.user_id)
                variables = OverdueAlertVariables(
                    **self._task_variables(task),
                    due_date=task.due_date.isoformat(),
                    days_overdue=days_overdue(now, task.due_date),
                    urgency_level=UrgencyLevel.CRITICAL.value,
                )
                channel = preference.preferred_channels[0]
                created += len(self._persist([self._compose(
                    owner, task.id, NotificationType.OVERDUE_ALERT, channel, variables, now, now
                )]))
            except NotificationError as e:
                logger.error("Overdue alert not scheduled", task_id=task.id, error=e.message)
            except Exception:
                logger.exception("Overdue alert failed", task_id=task.id)

        logger.info("Overdue sweep finished", alerts_created=created)
        return created

    def generate_daily_summary(self, user_id: str, now: Optional[datetime] = None) -> List[str]:
        """Enqueue today's digest for a user unless it is empty or already sent today."""
        now = now or datetime.utcnow()
        period_start = start_of_day(now)
        return self._generate_summary(
            user_id,
            NotificationType.DAILY_SUMMARY,
            "daily",
            period_start,
            period_start + timedelta(days=1),
            now.strftime("%A, %B %d, %Y"),
            now,
        )

    def generate_weekly_summary(self, user_id: str, now: Optional[datetime] = None) -> List[str]:
        """Enqueue this ISO week's digest for a user unless it is empty or already sent."""
        now = now or datetime.utcnow()
        period_start = start_of_week(now)
        return self._generate_summary(
            user_id,
            NotificationType.WEEKLY_SUMMARY,
            "weekly",
            period_start,
            period_start + timedelta(days=7),
            period_start.strftime("Week of %B %d, %Y"),
            now,
        )

    def _generate_summary(
        self,
        user_id: str,
        notification_type: NotificationType,
        frequency: str,
        period_start: datetime,
        period_end: datetime,
        period_label: str,
        now: datetime,
    ) -> List[str]:
        preference = self.preferences.get(user_id)
        if not wants_digest(preference, frequency):
            return []
        if self.store.exists_created_since(notification_type.value, period_start, user_id=user_id):
            logger.debug("Digest already generated for period", user_id=user_id, type=notification_type.value)
            return []

        summary = self.directory.summarize(user_id, period_start, period_end, now)
        if summary.is_empty:
            logger.info("Empty digest suppressed", user_id=user_id, type=notification_type.value)
            return []

        user = self._require_user(user_id)
        variables = SummaryVariables(
            period_label=period_label,
            due_count=summary.due_count,
            overdue_count=summary.overdue_count,
            completed_count=summary.completed_count,
            pending_count=summary.pending_count,
            dashboard_url=f"{self.settings.app_base_url}/dashboard",
        )
        return self._persist(self._compose_for_channels(
            user, preference, None, notification_type, variables, now, now
        ))

    def send_daily_summaries(self, now: Optional[datetime] = None) -> int:
        """Generate daily digests for every opted-in user. Returns records created."""
        return self._send_summaries(self.preferences.users_with_daily_digest(), self.generate_daily_summary, now)

    def send_weekly_summaries(self, now: Optional[datetime] = None) -> int:
        """Generate weekly digests for every opted-in user. Returns records created."""
        return self._send_summaries(self.preferences.users_with_weekly_digest(), self.generate_weekly_summary, now)

    @staticmethod
    def _send_summaries(user_ids: List[str], generate, now: Optional[datetime]) -> int:
        now = now or datetime.utcnow()
        created = 0
        for user_id in user_ids:
            try:
                created += len(generate(user_id, now))
            except NotificationError as e:
                logger.error("Digest not generated", user_id=user_id, error=e.message)
        return created
