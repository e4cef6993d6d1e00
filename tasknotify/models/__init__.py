"""SQLModel tables for the notification engine and the task/user directory."""

from .notification import Notification
from .preference import NotificationPreference
from .task import Task
from .template import NotificationTemplate
from .user import User

__all__ = ["Notification", "NotificationPreference", "NotificationTemplate", "Task", "User"]
