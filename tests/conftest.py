"""
Pytest configuration and fixtures for the notification engine tests.

Provides shared fixtures for:
- In-memory SQLite engine with tables and seeded templates
- Test settings (dry-run delivery, no backoff, Dapr disabled)
- Recording fake channel providers
- User, task and notification factories
"""

from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from sqlmodel import Session, SQLModel, select

from tasknotify.config import Settings
from tasknotify.dapr.client import DaprEventPublisher
from tasknotify.db.config import create_db_engine
from tasknotify.db.init import init_db
from tasknotify.models.notification import Notification, NotificationChannel
from tasknotify.models.preference import NotificationPreference
from tasknotify.models.task import Task
from tasknotify.models.user import User
from tasknotify.providers.base_provider import NotificationProvider
from tasknotify.services.notification_service import NotificationService
from tasknotify.utils.metrics import MetricsCollector

# Tuesday
NOW = datetime(2026, 3, 10, 12, 0, 0)


# ============================================================================
# Fake Providers
# ============================================================================

class FakeProvider(NotificationProvider):
    """Records every send; outcomes are consumed in order (True, False or an exception)."""

    def __init__(self, channel: str, confirms: bool = False, outcomes=None):
        super().__init__(dry_run=True)
        self.channel = NotificationChannel(channel)
        self.confirms_delivery = confirms
        self.outcomes = list(outcomes or [])
        self.sent = []

    def recipient_address(self, recipient):
        return recipient.email

    def validate_recipient(self, address):
        return True

    async def send(self, notification, address):
        self.sent.append(notification.id)
        outcome = self.outcomes.pop(0) if self.outcomes else True
        if isinstance(outcome, Exception):
            raise outcome
        if outcome:
            return {"success": True, "message_id": f"fake-{len(self.sent)}"}
        return {"success": False, "error": "provider unavailable"}


# ============================================================================
# Engine Fixtures
# ============================================================================

@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        retry_backoff_seconds=0,
        delivery_dry_run=True,
        dapr_enabled=False,
        app_base_url="https://app.test",
    )


@pytest.fixture
def engine(settings):
    """In-memory SQLite database with every table and the default templates."""
    engine = create_db_engine(settings.database_url)
    init_db(engine, settings.default_language)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def providers():
    return {
        NotificationChannel.EMAIL.value: FakeProvider("email"),
        NotificationChannel.PUSH.value: FakeProvider("push"),
        NotificationChannel.SMS.value: FakeProvider("sms"),
        NotificationChannel.IN_APP.value: FakeProvider("in_app", confirms=True),
    }


@pytest.fixture
def service(engine, settings, providers, metrics):
    return NotificationService(
        engine,
        settings,
        providers=providers,
        publisher=DaprEventPublisher(enabled=False),
        metrics=metrics,
    )


# ============================================================================
# Data Factories
# ============================================================================

@pytest.fixture
def make_user(engine):
    def _make(**overrides):
        data = {"email": f"user-{uuid4().hex[:8]}@example.com", "name": "Test User"}
        data.update(overrides)
        user = User(**data)
        with Session(engine) as session:
            session.add(user)
            session.commit()
            session.refresh(user)
        return user
    return _make


@pytest.fixture
def make_task(engine):
    def _make(owner, **overrides):
        data = {
            "user_id": owner.id,
            "title": "Write quarterly report",
            "description": "Numbers for Q1",
            "priority": "high",
            "due_date": NOW + timedelta(hours=25),
        }
        data.update(overrides)
        task = Task(**data)
        with Session(engine) as session:
            session.add(task)
            session.commit()
            session.refresh(task)
        return task
    return _make


@pytest.fixture
def update_task(engine):
    def _update(task_id, **fields):
        with Session(engine) as session:
            task = session.get(Task, task_id)
            for name, value in fields.items():
                setattr(task, name, value)
            session.add(task)
            session.commit()
            session.refresh(task)
            return task
    return _update


@pytest.fixture
def set_preferences(engine):
    """Write preference fields directly, bypassing validation."""
    def _set(user_id, **fields):
        with Session(engine) as session:
            preference = session.exec(
                select(NotificationPreference).where(NotificationPreference.user_id == user_id)
            ).first()
            if preference is None:
                preference = NotificationPreference(user_id=user_id)
            for name, value in fields.items():
                setattr(preference, name, value)
            session.add(preference)
            session.commit()
    return _set


@pytest.fixture
def make_notification(service):
    def _make(user_id, **overrides):
        data = {
            "user_id": user_id,
            "type": "comment",
            "channel": "email",
            "title": "Title",
            "message": "Message",
            "data": {},
            "scheduled_for": NOW,
            "created_at": NOW,
            "updated_at": NOW,
        }
        data.update(overrides)
        notification = Notification(**data)
        service.store.add([notification])
        return notification
    return _make


@pytest.fixture
def user(make_user):
    return make_user(name="Ada Lovelace", email="ada@example.com")
