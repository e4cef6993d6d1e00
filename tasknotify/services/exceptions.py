"""Exceptions raised by the notification engine's public operations."""
from typing import Any, Dict, Optional


class NotificationError(Exception):
    """Base exception for notification engine errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotificationValidationError(NotificationError):
    """A scheduling request was rejected; no record was created."""


class TemplateNotFoundError(NotificationValidationError):
    """No active template exists for the requested type and channel."""

    def __init__(self, notification_type: str, channel: str, language: str):
        super().__init__(
            f"No template for type '{notification_type}' on channel '{channel}' ({language})",
            details={"type": notification_type, "channel": channel, "language": language},
        )


class TemplateRenderError(NotificationValidationError):
    """A template could not be rendered with the supplied variables."""


class NotificationNotFoundError(NotificationError):
    """The notification does not exist or is not owned by the requesting user."""

    def __init__(self, notification_id: str):
        super().__init__(f"Notification {notification_id} not found", details={"id": notification_id})
