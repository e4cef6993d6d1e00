"""In-app provider: the record itself is the inbox entry; Dapr fans it out live."""

import asyncio
import logging
from typing import Any, Dict, Optional

from tasknotify.dapr.client import DaprEventPublisher
from tasknotify.models.notification import Notification, NotificationChannel
from tasknotify.models.user import User
from tasknotify.providers.base_provider import NotificationProvider

logger = logging.getLogger(__name__)


class InAppProvider(NotificationProvider):
    """In-app notifications are delivered once stored and published."""

    channel = NotificationChannel.IN_APP
    confirms_delivery = True

    def __init__(self, publisher: DaprEventPublisher):
        super().__init__(dry_run=not publisher.enabled)
        self.publisher = publisher

    def recipient_address(self, recipient: User) -> Optional[str]:
        return recipient.id

    def validate_recipient(self, address: str) -> bool:
        return bool(address)

    async def send(self, notification: Notification, address: str) -> Dict[str, Any]:
        """Publish the rendered notification for live clients of ``address``."""
        result = await asyncio.to_thread(self.publisher.publish_in_app_notification, {
            "notification_id": notification.id,
            "user_id": address,
            "task_id": notification.task_id,
            "type": notification.type,
            "title": notification.title,
            "message": notification.message,
            "created_at": notification.created_at.isoformat(),
        })
        return {"success": result.get("success", False), "message_id": result.get("event_id")}
