"""
Notification Dispatcher.

One ``tick`` pulls due pending records (oldest first, bounded batch), applies
the quiet-hours policy, hands each record to its channel provider and writes
the outcome back to the store. Each record is processed in isolation: an
error on one never aborts the rest of the batch, and a record whose outcome
could not be stored stays pending for the next tick.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from tasknotify.config import Settings
from tasknotify.dapr.client import DaprEventPublisher
from tasknotify.models.notification import Notification, NotificationStatus
from tasknotify.providers.base_provider import DeliveryResult, NotificationProvider
from tasknotify.services.notification_store import NotificationStore
from tasknotify.services.preference_service import PreferenceService
from tasknotify.services.quiet_hours import is_within_quiet_hours, next_quiet_end
from tasknotify.services.task_directory import TaskDirectory
from tasknotify.services.urgency import UrgencyLevel
from tasknotify.utils.logger import get_logger
from tasknotify.utils.metrics import MetricsCollector, metrics_collector

logger = get_logger(__name__)


@dataclass
class DispatchReport:
    """Outcome counts of one tick."""
    selected: int = 0
    sent: int = 0
    delivered: int = 0
    deferred: int = 0
    retried: int = 0
    failed: int = 0
    errors: int = 0
    processed_ids: List[str] = field(default_factory=list)


class NotificationDispatcher:
    """Polls the store for due work and delivers it."""

    def __init__(
        self,
        store: NotificationStore,
        preferences: PreferenceService,
        directory: TaskDirectory,
        providers: Dict[str, NotificationProvider],
        settings: Settings,
        publisher: Optional[DaprEventPublisher] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.preferences = preferences
        self.directory = directory
        self.providers = providers
        self.settings = settings
        self.publisher = publisher
        self.metrics = metrics or metrics_collector

    async def tick(self, now: Optional[datetime] = None) -> DispatchReport:
        """Run one poll-and-send cycle."""
        now = now or datetime.utcnow()
        report = DispatchReport()

        with self.metrics.time_operation("dispatch_tick_seconds"):
            batch = await asyncio.to_thread(self.store.fetch_due, now, self.settings.dispatch_batch_size)
            report.selected = len(batch)

            for notification in batch:
                report.processed_ids.append(notification.id)
                try:
                    await self._process(notification, now, report)
                except Exception:
                    report.errors += 1
                    self.metrics.dispatch_error()
                    logger.exception(
                        "Notification processing failed; record left pending",
                        notification_id=notification.id,
                        type=notification.type,
                        channel=notification.channel,
                        retry_count=notification.retry_count,
                    )

        if report.selected:
            logger.info(
                "Dispatch tick finished",
                selected=report.selected,
                sent=report.sent,
                delivered=report.delivered,
                deferred=report.deferred,
                retried=report.retried,
                failed=report.failed,
                errors=report.errors,
            )
        return report

    async def _process(self, notification: Notification, now: datetime, report: DispatchReport) -> None:
        if await self._defer_for_quiet_hours(notification, now):
            report.deferred += 1
            return

        result = await self._attempt(notification)
        if result.success:
            await self._record_success(notification, result, now, report)
        else:
            await self._record_failure(
                notification, result.error or "Unknown delivery error", now, report, attempted=result.attempted
            )

    async def _defer_for_quiet_hours(self, notification: Notification, now: datetime) -> bool:
        """Defer a first attempt that falls in the recipient's quiet hours. Critical records are never deferred."""
        if notification.retry_count > 0 or notification.deferred_at is not None:
            return False
        if notification.data.get("urgency_level") == UrgencyLevel.CRITICAL.value:
            return False

        preference = await asyncio.to_thread(self.preferences.get, notification.user_id)
        if not is_within_quiet_hours(preference, now):
            return False

        resume_at = next_quiet_end(preference, now)
        await asyncio.to_thread(self.store.defer, notification.id, resume_at, now)
        self.metrics.notification_deferred()
        logger.info(
            "Notification deferred for quiet hours",
            notification_id=notification.id,
            type=notification.type,
            channel=notification.channel,
            scheduled_for=resume_at,
        )
        return True

    async def _attempt(self, notification: Notification) -> DeliveryResult:
        provider = self.providers.get(notification.channel)
        if provider is None:
            return DeliveryResult(
                success=False, error=f"No provider for channel '{notification.channel}'", attempted=False
            )

        recipient = await asyncio.to_thread(self.directory.get_user, notification.user_id)
        if recipient is None:
            return DeliveryResult(
                success=False, error=f"Recipient {notification.user_id} not found", attempted=False
            )

        return await provider.deliver(notification, recipient)

    async def _record_success(
        self,
        notification: Notification,
        result: DeliveryResult,
        now: datetime,
        report: DispatchReport,
    ) -> None:
        updated = await asyncio.to_thread(self.store.mark_sent, notification.id, result.confirmed, now)
        if updated is None or updated.status not in (NotificationStatus.SENT.value, NotificationStatus.DELIVERED.value):
            return

        if updated.status == NotificationStatus.DELIVERED.value:
            report.delivered += 1
            self.metrics.notification_delivered()
        else:
            report.sent += 1
        self.metrics.notification_sent()
        logger.info(
            "Notification sent",
            notification_id=updated.id,
            type=updated.type,
            channel=updated.channel,
            status=updated.status,
            retry_count=updated.retry_count,
            message_id=result.message_id,
        )
        await self._publish_sent(updated)

    async def _record_failure(
        self,
        notification: Notification,
        error: str,
        now: datetime,
        report: DispatchReport,
        attempted: bool = True,
    ) -> None:
        updated = await asyncio.to_thread(
            self.store.record_failure, notification.id, error, now, self.settings.retry_backoff_seconds, attempted
        )
        if updated is None:
            return

        if updated.status == NotificationStatus.FAILED.value:
            report.failed += 1
            self.metrics.notification_failed()
            logger.error(
                "Notification failed permanently",
                notification_id=updated.id,
                type=updated.type,
                channel=updated.channel,
                retry_count=updated.retry_count,
                error=error,
            )
        else:
            report.retried += 1
            self.metrics.retry_attempt()
            logger.warning(
                "Notification delivery failed; will retry",
                notification_id=updated.id,
                type=updated.type,
                channel=updated.channel,
                retry_count=updated.retry_count,
                next_attempt_at=updated.next_attempt_at,
                error=error,
            )

    async def _publish_sent(self, notification: Notification) -> None:
        if self.publisher is None:
            return
        try:
            await asyncio.to_thread(self.publisher.publish_notification_sent, {
                "notification_id": notification.id,
                "user_id": notification.user_id,
                "task_id": notification.task_id,
                "type": notification.type,
                "channel": notification.channel,
                "status": notification.status,
                "sent_at": notification.sent_at,
            })
        except Exception:
            logger.exception("notification.sent event not published", notification_id=notification.id)
