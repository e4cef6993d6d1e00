"""Email provider: SMTP with STARTTLS or SSL, run in a worker thread."""

import asyncio
import logging
import re
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Any, Dict, Optional

from tasknotify.models.notification import Notification, NotificationChannel
from tasknotify.models.user import User
from tasknotify.providers.base_provider import NotificationProvider

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


class EmailProvider(NotificationProvider):
    """Email notification provider."""

    channel = NotificationChannel.EMAIL

    def __init__(
        self,
        smtp_host: str = "localhost",
        smtp_port: int = 587,
        username: str = "",
        password: str = "",
        sender: str = "noreply@example.com",
        dry_run: bool = True,
    ):
        super().__init__(dry_run=dry_run)
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.username = username
        self.password = password
        self.sender = sender

    def recipient_address(self, recipient: User) -> Optional[str]:
        return recipient.email

    def validate_recipient(self, address: str) -> bool:
        return bool(_EMAIL_PATTERN.match(address))

    def build_message(self, notification: Notification, address: str) -> MIMEMultipart:
        """Plain-text body always, HTML alternative when the record has one."""
        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = address
        msg["Subject"] = notification.title
        msg["Message-ID"] = make_msgid(idstring=notification.id)
        msg.attach(MIMEText(notification.message, "plain", "utf-8"))
        if notification.html_content:
            msg.attach(MIMEText(notification.html_content, "html", "utf-8"))
        return msg

    def _send_sync(self, msg: MIMEMultipart) -> None:
        context = ssl.create_default_context()
        if self.smtp_port == 465:
            with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, context=context) as server:
                if self.username:
                    server.login(self.username, self.password)
                server.send_message(msg)
        else:
            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.ehlo()
                server.starttls(context=context)
                server.ehlo()
                if self.username:
                    server.login(self.username, self.password)
                server.send_message(msg)

    async def send(self, notification: Notification, address: str) -> Dict[str, Any]:
        """Send email notification."""
        msg = self.build_message(notification, address)
        if self.dry_run:
            logger.info(f"[DRY RUN] Email to {address}: {notification.title}")
            return {"success": True, "message_id": msg["Message-ID"], "provider": "email"}

        try:
            await asyncio.to_thread(self._send_sync, msg)
        except smtplib.SMTPRecipientsRefused as e:
            return {"success": False, "error": f"Recipient refused: {e.recipients}"}
        except (smtplib.SMTPException, OSError) as e:
            return {"success": False, "error": f"SMTP error: {e}"}

        logger.info(f"Email sent to {address}: {notification.title}")
        return {"success": True, "message_id": msg["Message-ID"], "provider": "email"}
