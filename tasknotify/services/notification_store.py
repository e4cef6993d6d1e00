"""
Notification Store.

Durable record of every notification and the only place its lifecycle state
changes. Every mutation is a single-record read-modify-write in its own
session; illegal transitions are logged and ignored.
"""

from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, func
from sqlalchemy.engine import Engine
from sqlmodel import Session, col, select

from tasknotify.models.notification import (
    TERMINAL_STATUSES,
    Notification,
    NotificationStatus,
    NotificationType,
    can_transition,
)
from tasknotify.schemas.notification import NotificationStats
from tasknotify.services.exceptions import NotificationNotFoundError
from tasknotify.utils.logger import get_logger

logger = get_logger(__name__)


def retry_delay(base_seconds: int, attempt: int) -> timedelta:
    """Exponential backoff after the ``attempt``-th failure (1-based)."""
    return timedelta(seconds=base_seconds * (2 ** max(attempt - 1, 0)))


class NotificationStore:
    """SQLModel-backed store for ``notifications``."""

    def __init__(self, engine: Engine):
        self.engine = engine

    # ------------------------------------------------------------------
    # Creation and lookup
    # ------------------------------------------------------------------

    def add(self, notifications: Iterable[Notification]) -> List[Notification]:
        """Persist new pending records in one transaction."""
        notifications = list(notifications)
        if not notifications:
            return []
        with Session(self.engine) as session:
            for notification in notifications:
                session.add(notification)
            session.commit()
            for notification in notifications:
                session.refresh(notification)
        return notifications

    def get(self, notification_id: str) -> Optional[Notification]:
        with Session(self.engine) as session:
            return session.get(Notification, notification_id)

    def fetch_due(self, now: datetime, limit: int) -> List[Notification]:
        """
        Pending records ready for an attempt, oldest ``scheduled_for`` first.

        A record is ready when its scheduled time has passed, it has retries
        left, and its backoff gate (``next_attempt_at``) is open.
        """
        with Session(self.engine) as session:
            statement = (
                select(Notification)
                .where(
                    Notification.status == NotificationStatus.PENDING.value,
                    Notification.scheduled_for <= now,
                    Notification.retry_count < Notification.max_retries,
                    (col(Notification.next_attempt_at).is_(None)) | (Notification.next_attempt_at <= now),
                )
                .order_by(col(Notification.scheduled_for).asc(), col(Notification.created_at).asc())
                .limit(limit)
            )
            return list(session.exec(statement).all())

    def list_for_user(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
        unread_only: bool = False,
    ) -> List[Notification]:
        """Newest first."""
        with Session(self.engine) as session:
            statement = select(Notification).where(Notification.user_id == user_id)
            if unread_only:
                statement = statement.where(col(Notification.read_at).is_(None))
            statement = (
                statement.order_by(col(Notification.created_at).desc(), col(Notification.id).desc())
                .offset(offset)
                .limit(limit)
            )
            return list(session.exec(statement).all())

    def stats(self, user_id: str) -> NotificationStats:
        with Session(self.engine) as session:
            total = session.exec(
                select(func.count()).select_from(Notification).where(Notification.user_id == user_id)
            ).one()
            unread = session.exec(
                select(func.count()).select_from(Notification).where(
                    Notification.user_id == user_id,
                    col(Notification.read_at).is_(None),
                )
            ).one()
            rows = session.exec(
                select(Notification.type, func.count())
                .where(Notification.user_id == user_id)
                .group_by(Notification.type)
            ).all()

        by_type: Dict[str, int] = {t.value: 0 for t in NotificationType}
        for notification_type, count in rows:
            by_type[notification_type] = count
        return NotificationStats(total=total, unread=unread, by_type=by_type)

    def exists_created_since(
        self,
        notification_type: str,
        since: datetime,
        task_id: Optional[int] = None,
        user_id: Optional[str] = None,
    ) -> bool:
        """True if a record of ``notification_type`` was created at or after ``since``."""
        with Session(self.engine) as session:
            statement = select(Notification.id).where(
                Notification.type == notification_type,
                Notification.created_at >= since,
            )
            if task_id is not None:
                statement = statement.where(Notification.task_id == task_id)
            if user_id is not None:
                statement = statement.where(Notification.user_id == user_id)
            return session.exec(statement.limit(1)).first() is not None

    def reminders_for_task(self, task_id: int, user_id: Optional[str] = None) -> List[Notification]:
        """All due reminders ever created for a task."""
        with Session(self.engine) as session:
            statement = select(Notification).where(
                Notification.task_id == task_id,
                Notification.type == NotificationType.DUE_REMINDER.value,
            )
            if user_id is not None:
                statement = statement.where(Notification.user_id == user_id)
            return list(session.exec(statement).all())

    # ------------------------------------------------------------------
    # Lifecycle transitions
    # ------------------------------------------------------------------

    def _transition(self, notification: Notification, target: NotificationStatus) -> bool:
        if not can_transition(notification.status, target.value):
            logger.warning(
                "Illegal notification transition ignored",
                notification_id=notification.id,
                type=notification.type,
                channel=notification.channel,
                current_status=notification.status,
                target_status=target.value,
            )
            return False
        notification.status = target.value
        return True

    def mark_sent(self, notification_id: str, confirmed: bool, now: datetime) -> Optional[Notification]:
        """Record a successful attempt: ``sent``, or ``delivered`` when the channel confirmed."""
        with Session(self.engine) as session:
            notification = session.get(Notification, notification_id)
            if notification is None:
                return None
            target = NotificationStatus.DELIVERED if confirmed else NotificationStatus.SENT
            if not self._transition(notification, target):
                return notification
            if notification.sent_at is None:
                notification.sent_at = now
            if confirmed and notification.delivered_at is None:
                notification.delivered_at = now
            notification.next_attempt_at = None
            notification.updated_at = now
            session.add(notification)
            session.commit()
            session.refresh(notification)
            return notification

    def record_failure(
        self,
        notification_id: str,
        error: str,
        now: datetime,
        backoff_seconds: int,
        attempted: bool = True,
    ) -> Optional[Notification]:
        """
        Record a failed attempt.

        Increments ``retry_count`` and keeps the record pending behind a
        backoff gate; once retries are exhausted the record becomes ``failed``.
        ``sent_at`` is stamped only when a channel was actually contacted.
        """
        with Session(self.engine) as session:
            notification = session.get(Notification, notification_id)
            if notification is None:
                return None
            if notification.status != NotificationStatus.PENDING.value:
                self._transition(notification, NotificationStatus.FAILED)
                return notification

            notification.retry_count = min(notification.retry_count + 1, notification.max_retries)
            notification.error_message = error
            if attempted and notification.sent_at is None:
                notification.sent_at = now
            if notification.retry_count >= notification.max_retries:
                self._transition(notification, NotificationStatus.FAILED)
                notification.next_attempt_at = None
            else:
                notification.next_attempt_at = now + retry_delay(backoff_seconds, notification.retry_count)
            notification.updated_at = now
            session.add(notification)
            session.commit()
            session.refresh(notification)
            return notification

    def defer(self, notification_id: str, new_time: datetime, now: datetime) -> Optional[Notification]:
        """Move a pending record's ``scheduled_for`` forward once (quiet hours)."""
        with Session(self.engine) as session:
            notification = session.get(Notification, notification_id)
            if notification is None:
                return None
            if notification.status != NotificationStatus.PENDING.value or notification.deferred_at is not None:
                logger.warning(
                    "Deferral ignored",
                    notification_id=notification.id,
                    status=notification.status,
                    deferred_at=notification.deferred_at,
                )
                return notification
            notification.scheduled_for = new_time
            notification.deferred_at = now
            notification.updated_at = now
            session.add(notification)
            session.commit()
            session.refresh(notification)
            return notification

    def cancel(self, notification_id: str, now: Optional[datetime] = None) -> bool:
        """Cancel one pending record. Returns True if it was cancelled."""
        now = now or datetime.utcnow()
        with Session(self.engine) as session:
            notification = session.get(Notification, notification_id)
            if notification is None:
                raise NotificationNotFoundError(notification_id)
            if not self._transition(notification, NotificationStatus.CANCELLED):
                return False
            notification.updated_at = now
            session.add(notification)
            session.commit()
            return True

    def cancel_pending_for_task(
        self,
        task_id: int,
        notification_type: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """Cancel every still-pending record of a task, optionally of one type."""
        now = now or datetime.utcnow()
        with Session(self.engine) as session:
            statement = select(Notification).where(
                Notification.task_id == task_id,
                Notification.status == NotificationStatus.PENDING.value,
            )
            if notification_type is not None:
                statement = statement.where(Notification.type == notification_type)
            notifications = session.exec(statement).all()
            for notification in notifications:
                notification.status = NotificationStatus.CANCELLED.value
                notification.updated_at = now
                session.add(notification)
            session.commit()
            return len(notifications)

    def confirm_delivery(self, notification_id: str, now: Optional[datetime] = None) -> Notification:
        """Late delivery confirmation from a provider: ``sent -> delivered``."""
        now = now or datetime.utcnow()
        with Session(self.engine) as session:
            notification = session.get(Notification, notification_id)
            if notification is None:
                raise NotificationNotFoundError(notification_id)
            if self._transition(notification, NotificationStatus.DELIVERED):
                notification.delivered_at = notification.delivered_at or now
                notification.updated_at = now
                session.add(notification)
                session.commit()
                session.refresh(notification)
            return notification

    # ------------------------------------------------------------------
    # Engagement (not status transitions)
    # ------------------------------------------------------------------

    def mark_read(self, notification_id: str, user_id: str, now: Optional[datetime] = None) -> Notification:
        """Set ``read_at`` once. Raises ``NotificationNotFoundError`` for unknown or foreign records."""
        now = now or datetime.utcnow()
        with Session(self.engine) as session:
            notification = self._get_owned(session, notification_id, user_id)
            if notification.read_at is None:
                notification.read_at = now
                notification.updated_at = now
                session.add(notification)
                session.commit()
                session.refresh(notification)
            return notification

    def mark_clicked(self, notification_id: str, user_id: str, now: Optional[datetime] = None) -> Notification:
        """Set ``clicked_at`` once; a click also counts as a read."""
        now = now or datetime.utcnow()
        with Session(self.engine) as session:
            notification = self._get_owned(session, notification_id, user_id)
            changed = False
            if notification.clicked_at is None:
                notification.clicked_at = now
                changed = True
            if notification.read_at is None:
                notification.read_at = now
                changed = True
            if changed:
                notification.updated_at = now
                session.add(notification)
                session.commit()
                session.refresh(notification)
            return notification

    @staticmethod
    def _get_owned(session: Session, notification_id: str, user_id: str) -> Notification:
        notification = session.get(Notification, notification_id)
        if notification is None or notification.user_id != user_id:
            raise NotificationNotFoundError(notification_id)
        return notification

    # ------------------------------------------------------------------
    # Retention
    # ------------------------------------------------------------------

    def delete_terminal_older_than(self, cutoff: datetime) -> int:
        """Hard-delete terminal records created before ``cutoff``."""
        with Session(self.engine) as session:
            statement = delete(Notification).where(
                col(Notification.status).in_(sorted(TERMINAL_STATUSES)),
                Notification.created_at < cutoff,
            )
            result = session.exec(statement)
            session.commit()
            return result.rowcount or 0
