"""
Base Notification Provider.

Abstract base class for the delivery channels. The dispatcher only talks to
``deliver()``, which never raises: an unreachable provider is reported as a
failed result so retry bookkeeping stays uniform.
"""

import abc
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from tasknotify.models.notification import Notification, NotificationChannel
from tasknotify.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    confirmed: bool = False  # channel confirmed end-user delivery synchronously
    error: Optional[str] = None
    message_id: Optional[str] = None
    attempted: bool = True  # False when no channel was contacted


class NotificationProvider(abc.ABC):
    """Abstract base class for notification providers."""

    channel: NotificationChannel
    confirms_delivery = False

    def __init__(self, dry_run: bool = True):
        """
        Initialize notification provider.

        Args:
            dry_run: log messages instead of contacting the real provider
        """
        self.dry_run = dry_run
        self.is_initialized = False

    @abc.abstractmethod
    def recipient_address(self, recipient: User) -> Optional[str]:
        """Channel address of the recipient (email, phone number, device token, user id)."""

    @abc.abstractmethod
    def validate_recipient(self, address: str) -> bool:
        """
        Validate recipient format.

        Args:
            address: Recipient identifier

        Returns:
            True if valid, False otherwise
        """

    @abc.abstractmethod
    async def send(self, notification: Notification, address: str) -> Dict[str, Any]:
        """
        Send a notification's rendered content.

        Args:
            notification: record carrying the rendered title, message and HTML
            address: validated recipient address

        Returns:
            Dict with send result (success, message_id, error)
        """

    async def deliver(self, notification: Notification, recipient: User) -> DeliveryResult:
        """Attempt delivery; every failure, raised or reported, becomes a failed result."""
        address = self.recipient_address(recipient)
        if not address:
            return DeliveryResult(success=False, error=f"Recipient has no {self.channel.value} address")
        if not self.validate_recipient(address):
            return DeliveryResult(success=False, error=f"Invalid {self.channel.value} recipient: {address}")

        try:
            result = await self.send(notification, address)
        except Exception as e:
            logger.exception(f"{self.__class__.__name__} failed for notification {notification.id}")
            return DeliveryResult(success=False, error=f"{type(e).__name__}: {e}")

        if not result.get("success"):
            return DeliveryResult(success=False, error=result.get("error") or "Provider reported failure")
        return DeliveryResult(
            success=True,
            confirmed=self.confirms_delivery,
            message_id=result.get("message_id"),
        )

    async def initialize(self):
        """Initialize the provider (e.g., establish connections)."""
        self.is_initialized = True
        logger.info(f"{self.__class__.__name__} initialized")

    async def cleanup(self):
        """Clean up resources (e.g., close connections)."""
        self.is_initialized = False
        logger.info(f"{self.__class__.__name__} cleaned up")
