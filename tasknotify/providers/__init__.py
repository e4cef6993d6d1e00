"""Channel providers: one per delivery channel."""

from tasknotify.config import Settings
from tasknotify.dapr.client import DaprEventPublisher
from tasknotify.models.notification import NotificationChannel
from tasknotify.providers.base_provider import DeliveryResult, NotificationProvider
from tasknotify.providers.email_provider import EmailProvider
from tasknotify.providers.in_app_provider import InAppProvider
from tasknotify.providers.push_provider import PushProvider
from tasknotify.providers.sms_provider import SMSProvider

__all__ = [
    "DeliveryResult",
    "EmailProvider",
    "InAppProvider",
    "NotificationProvider",
    "PushProvider",
    "SMSProvider",
    "build_providers",
]


def build_providers(settings: Settings, publisher: DaprEventPublisher) -> dict:
    """Provider per channel, configured from settings."""
    return {
        NotificationChannel.EMAIL.value: EmailProvider(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            sender=settings.smtp_sender,
            dry_run=settings.delivery_dry_run,
        ),
        NotificationChannel.PUSH.value: PushProvider(
            settings.push_service_endpoint,
            timeout=settings.provider_timeout_seconds,
            dry_run=settings.delivery_dry_run,
        ),
        NotificationChannel.SMS.value: SMSProvider(
            settings.sms_service_endpoint,
            timeout=settings.provider_timeout_seconds,
            dry_run=settings.delivery_dry_run,
        ),
        NotificationChannel.IN_APP.value: InAppProvider(publisher),
    }
