"""
Outgoing email.

Delivery runs over SMTP in a worker thread so the event loop is not blocked.
When no SMTP host is configured (local development, tests) messages are
logged instead of sent.
"""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from functools import lru_cache
from typing import Optional

from app.config import settings
from app.core.exceptions import NotificationError

logger = logging.getLogger(__name__)


class EmailNotifier:
    """Sends plain-text (and optionally HTML) email."""

    def __init__(
        self,
        host: str = "",
        port: int = 587,
        username: str = "",
        password: str = "",
        sender: str = "",
        use_tls: bool = True,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.use_tls = use_tls

    def _build_message(
        self,
        to: str,
        subject: str,
        text: str,
        html: Optional[str] = None,
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text)
        if html:
            message.add_alternative(html, subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(message)

    async def send(
        self,
        to: str,
        subject: str,
        text: str,
        html: Optional[str] = None,
    ) -> None:
        """
        Send an email.

        Raises:
            NotificationError: If the SMTP server rejects or cannot be reached
        """
        if not self.host:
            logger.info(f"Email delivery disabled; would send '{subject}' to {to}: {text}")
            return

        message = self._build_message(to, subject, text, html)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"Failed to send '{subject}' to {to}: {e}") from e

        logger.info(f"Sent '{subject}' to {to}")

    async def send_quietly(
        self,
        to: str,
        subject: str,
        text: str,
        html: Optional[str] = None,
    ) -> bool:
        """
        Send an email whose failure must not fail the caller.

        Returns:
            True if the message was handed off
        """
        try:
            await self.send(to, subject, text, html)
        except NotificationError:
            logger.exception(f"Ignoring failed notification to {to}")
            return False
        return True


@lru_cache()
def get_notifier() -> EmailNotifier:
    """Get the notifier configured from settings."""
    return EmailNotifier(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_user,
        password=settings.smtp_password,
        sender=settings.email_from,
        use_tls=settings.smtp_use_tls,
    )
