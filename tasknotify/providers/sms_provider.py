"""SMS notification provider."""

import re
from typing import Any, Dict, Optional

from tasknotify.models.notification import Notification, NotificationChannel
from tasknotify.models.user import User
from tasknotify.providers.http_provider import HttpProvider

# allows +, digits, parentheses, hyphens, spaces
_PHONE_PATTERN = re.compile(r'^[\+]?[1-9][\d\s\-\(\)]{7,15}$')


class SMSProvider(HttpProvider):
    """Sends the plain-text message to the user's phone number."""

    channel = NotificationChannel.SMS

    def recipient_address(self, recipient: User) -> Optional[str]:
        return recipient.phone_number

    def validate_recipient(self, address: str) -> bool:
        return bool(_PHONE_PATTERN.match(address.strip()))

    async def send(self, notification: Notification, address: str) -> Dict[str, Any]:
        """Send SMS notification."""
        return await self.post({"to": address.strip(), "message": notification.message})
