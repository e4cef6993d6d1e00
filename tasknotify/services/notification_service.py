"""
Notification Service.

The constructed engine: owns the store, preference store, renderer,
scheduler, dispatcher and cron driver, and exposes the public operations
used by the task-lifecycle layer and by user-facing read paths. Build it
once at process start and pass it around explicitly.
"""

from datetime import datetime, time, timedelta
from typing import Dict, List, Optional

from sqlalchemy.engine import Engine

from tasknotify.config import Settings
from tasknotify.cron.driver import CronDriver
from tasknotify.dapr.client import DaprEventPublisher
from tasknotify.models.notification import Notification, NotificationType
from tasknotify.models.preference import NotificationPreference
from tasknotify.providers import NotificationProvider, build_providers
from tasknotify.schemas.notification import (
    NotificationResponse,
    NotificationStats,
    PreferenceUpdate,
    ScheduleNotificationInput,
)
from tasknotify.services.dispatcher import DispatchReport, NotificationDispatcher
from tasknotify.services.notification_store import NotificationStore
from tasknotify.services.preference_service import PreferenceService
from tasknotify.services.reminder_scheduler import ReminderScheduler
from tasknotify.services.task_directory import TaskDirectory
from tasknotify.services.template_renderer import TemplateRenderer
from tasknotify.utils.logger import get_logger
from tasknotify.utils.metrics import MetricsCollector, metrics_collector

logger = get_logger(__name__)

MONDAY = 0


class NotificationService:
    """Task notification scheduling and delivery engine."""

    def __init__(
        self,
        engine: Engine,
        settings: Settings,
        providers: Optional[Dict[str, NotificationProvider]] = None,
        publisher: Optional[DaprEventPublisher] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.engine = engine
        self.settings = settings
        self.metrics = metrics or metrics_collector
        self.publisher = publisher or DaprEventPublisher(settings.dapr_enabled, settings.dapr_pubsub_name)

        self.store = NotificationStore(engine)
        self.preferences = PreferenceService(engine)
        self.directory = TaskDirectory(engine)
        self.renderer = TemplateRenderer(engine, settings.default_language)
        self.providers = providers if providers is not None else build_providers(settings, self.publisher)

        self.scheduler = ReminderScheduler(
            self.store, self.renderer, self.preferences, self.directory, settings, self.metrics
        )
        self.dispatcher = NotificationDispatcher(
            self.store, self.preferences, self.directory, self.providers, settings, self.publisher, self.metrics
        )
        self.cron = self.build_cron_driver()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def schedule_notification(self, request: ScheduleNotificationInput, now: Optional[datetime] = None) -> str:
        """Render and persist one pending notification; returns its id."""
        return self.scheduler.schedule_notification(request, now)

    def schedule_due_reminders(self, task_id: int, user_id: str, now: Optional[datetime] = None) -> List[str]:
        return self.scheduler.schedule_due_reminders(task_id, user_id, now)

    def schedule_assignment_notification(
        self, task_id: int, assignee_id: str, assigner_id: Optional[str], now: Optional[datetime] = None
    ) -> List[str]:
        return self.scheduler.schedule_assignment_notification(task_id, assignee_id, assigner_id, now)

    def cancel_pending_for_task(self, task_id: int, notification_type: Optional[NotificationType] = None) -> int:
        """Cancel a task's pending records (all, or one type). Returns the count cancelled."""
        count = self.store.cancel_pending_for_task(
            task_id, NotificationType(notification_type).value if notification_type else None
        )
        if count:
            self.metrics.notification_cancelled(count)
            logger.info("Pending notifications cancelled", task_id=task_id, type=notification_type, count=count)
        return count

    def cancel_notification(self, notification_id: str) -> bool:
        cancelled = self.store.cancel(notification_id)
        if cancelled:
            self.metrics.notification_cancelled()
        return cancelled

    # ------------------------------------------------------------------
    # Read paths and engagement
    # ------------------------------------------------------------------

    def list_notifications(
        self, user_id: str, limit: int = 50, offset: int = 0, unread_only: bool = False
    ) -> List[NotificationResponse]:
        records = self.store.list_for_user(user_id, limit=limit, offset=offset, unread_only=unread_only)
        return [NotificationResponse.model_validate(record) for record in records]

    def mark_as_read(self, notification_id: str, user_id: str) -> None:
        self.store.mark_read(notification_id, user_id)

    def mark_as_clicked(self, notification_id: str, user_id: str) -> None:
        self.store.mark_clicked(notification_id, user_id)

    def confirm_delivery(self, notification_id: str) -> Notification:
        notification = self.store.confirm_delivery(notification_id)
        if notification.delivered_at is not None:
            self.metrics.notification_delivered()
        return notification

    def get_stats(self, user_id: str) -> NotificationStats:
        return self.store.stats(user_id)

    def get_preferences(self, user_id: str) -> NotificationPreference:
        return self.preferences.get(user_id)

    def update_preferences(self, user_id: str, update: PreferenceUpdate) -> None:
        self.preferences.update(user_id, update)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def cleanup_old(self, retention_days: Optional[int] = None, now: Optional[datetime] = None) -> int:
        """Hard-delete terminal records older than ``retention_days``."""
        if retention_days is None:
            retention_days = self.settings.retention_days
        cutoff = (now or datetime.utcnow()) - timedelta(days=retention_days)
        deleted = self.store.delete_terminal_older_than(cutoff)
        logger.info("Old notifications cleaned up", retention_days=retention_days, deleted=deleted)
        return deleted

    async def dispatch(self, now: Optional[datetime] = None) -> DispatchReport:
        """One dispatcher tick."""
        return await self.dispatcher.tick(now)

    def build_cron_driver(self) -> CronDriver:
        """Register the engine's periodic jobs."""
        settings = self.settings
        summary_time = time(settings.daily_summary_hour, 0)
        cron = CronDriver()
        cron.add_job("dispatch", self.dispatch, interval=timedelta(seconds=settings.dispatch_interval_seconds))
        cron.add_job(
            "overdue-sweep",
            self.scheduler.sweep_overdue_alerts,
            interval=timedelta(seconds=settings.overdue_sweep_interval_seconds),
        )
        cron.add_job("daily-summaries", self.scheduler.send_daily_summaries, at=summary_time)
        cron.add_job("weekly-summaries", self.scheduler.send_weekly_summaries, at=summary_time, weekday=MONDAY)
        cron.add_job("retention-cleanup", self._cleanup_job, at=time(3, 0))
        return cron

    def _cleanup_job(self, now: datetime) -> int:
        return self.cleanup_old(self.settings.retention_days, now)

    async def start(self) -> None:
        for provider in self.providers.values():
            await provider.initialize()
        self.cron.start()
        logger.info("Notification engine started", environment=self.settings.environment)

    async def stop(self) -> None:
        await self.cron.stop()
        for provider in self.providers.values():
            await provider.cleanup()
        logger.info("Notification engine stopped")
