"""Push notification provider."""

from typing import Any, Dict, Optional

from tasknotify.models.notification import Notification, NotificationChannel
from tasknotify.models.user import User
from tasknotify.providers.http_provider import HttpProvider


class PushProvider(HttpProvider):
    """Sends title and message to the user's registered device token."""

    channel = NotificationChannel.PUSH

    def recipient_address(self, recipient: User) -> Optional[str]:
        return recipient.push_token

    def validate_recipient(self, address: str) -> bool:
        # Device tokens are opaque; reject obviously truncated ones
        return len(address) >= 10

    async def send(self, notification: Notification, address: str) -> Dict[str, Any]:
        """Send push notification."""
        return await self.post({
            "token": address,
            "title": notification.title,
            "body": notification.message,
            "data": {
                "notification_id": notification.id,
                "type": notification.type,
                "task_id": notification.task_id,
            },
        })
