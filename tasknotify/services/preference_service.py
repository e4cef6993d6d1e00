"""Preference Store: per-user delivery configuration with lazy defaults."""
from datetime import datetime
from typing import List

from sqlalchemy.engine import Engine
from sqlmodel import Session, or_, select

from tasknotify.models.preference import NotificationPreference
from tasknotify.schemas.notification import PreferenceUpdate
from tasknotify.utils.logger import get_logger

logger = get_logger(__name__)


class PreferenceService:
    """Reads and upserts ``notification_preferences`` rows."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def get(self, user_id: str) -> NotificationPreference:
        """Return the user's preferences, creating the default row on first access."""
        with Session(self.engine) as session:
            preference = self._get_or_create(session, user_id)
            session.commit()
            session.refresh(preference)
            return preference

    def update(self, user_id: str, update: PreferenceUpdate) -> NotificationPreference:
        """Apply a partial update, creating the row first if needed."""
        changes = update.changes()
        with Session(self.engine) as session:
            preference = self._get_or_create(session, user_id)
            for field, value in changes.items():
                setattr(preference, field, value)
            preference.updated_at = datetime.utcnow()
            session.add(preference)
            session.commit()
            session.refresh(preference)

        logger.info("Preferences updated", user_id=user_id, fields=sorted(changes))
        return preference

    def users_with_daily_digest(self) -> List[str]:
        """Users opted into daily summaries, by toggle or digest frequency."""
        return self._digest_users(NotificationPreference.daily_summaries, "daily")

    def users_with_weekly_digest(self) -> List[str]:
        """Users opted into weekly summaries, by toggle or digest frequency."""
        return self._digest_users(NotificationPreference.weekly_summaries, "weekly")

    def _digest_users(self, toggle, frequency: str) -> List[str]:
        with Session(self.engine) as session:
            statement = select(NotificationPreference.user_id).where(
                or_(toggle == True, NotificationPreference.digest_frequency == frequency)  # noqa: E712
            ).order_by(NotificationPreference.user_id)
            return list(session.exec(statement).all())

    @staticmethod
    def _get_or_create(session: Session, user_id: str) -> NotificationPreference:
        statement = select(NotificationPreference).where(NotificationPreference.user_id == user_id)
        preference = session.exec(statement).first()
        if preference is None:
            preference = NotificationPreference(user_id=user_id)
            session.add(preference)
            session.flush()
            logger.debug("Default preferences created", user_id=user_id)
        return preference


def wants_digest(preference: NotificationPreference, frequency: str) -> bool:
    """True if ``preference`` opts into ``daily`` or ``weekly`` digests."""
    toggle = preference.daily_summaries if frequency == "daily" else preference.weekly_summaries
    return bool(toggle) or preference.digest_frequency == frequency
