"""
SMTP mail transport backed by aiosmtplib.
"""

import asyncio
import logging
from email.message import EmailMessage
from typing import Optional

import aiosmtplib

from ...application.ports.services.delivery_service import MailTransport
from ...core.config import EmailSettings, get_settings
from ...core.exceptions import ConfigurationFailure, DeliveryTransportFailure
from ...domain.entities.outbound_email import OutboundEmail

logger = logging.getLogger(__name__)


def build_message(email: OutboundEmail, sender: str) -> EmailMessage:
    """Build a plain-text MIME message with the email's attachments in order."""
    message = EmailMessage()
    message["From"] = sender
    message["To"] = email.recipient
    message["Subject"] = email.subject
    message.set_content(email.body)
    for attachment in email.attachments:
        maintype, subtype = attachment.maintype_subtype
        message.add_attachment(
            attachment.content,
            maintype=maintype,
            subtype=subtype,
            filename=attachment.filename,
        )
    return message


class SmtpMailTransport(MailTransport):
    """Sends mail through an authenticated SMTP server (Gmail by default)."""

    def __init__(self, settings: Optional[EmailSettings] = None):
        self._settings = settings or get_settings().email
        missing = [
            name
            for name, value in (("EMAIL_USER", self._settings.user), ("EMAIL_PASSWORD", self._settings.password))
            if not value
        ]
        if missing:
            raise ConfigurationFailure(
                f"Missing required email configuration: {', '.join(missing)}",
                details={"missing": missing},
            )
        logger.info(f"Email transport configured for {self._settings.smtp_host}:{self._settings.smtp_port}")

    async def send_message(self, email: OutboundEmail) -> None:
        message = build_message(email, self._settings.from_address)
        try:
            await aiosmtplib.send(
                message,
                hostname=self._settings.smtp_host,
                port=self._settings.smtp_port,
                username=self._settings.user,
                password=self._settings.password,
                use_tls=self._settings.use_tls,
                start_tls=False if self._settings.use_tls else self._settings.start_tls,
                timeout=self._settings.timeout_seconds,
            )
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as e:
            raise DeliveryTransportFailure(
                f"Error sending email: {e}",
                details={"recipient": email.recipient, "subject": email.subject},
            )


class UnavailableMailTransport(MailTransport):
    """Stand-in used when SMTP credentials are missing; every send fails."""

    def __init__(self, reason: str):
        self._reason = reason

    async def send_message(self, email: OutboundEmail) -> None:
        raise DeliveryTransportFailure(
            f"Email not configured: {self._reason}",
            details={"recipient": email.recipient},
        )

    @property
    def is_configured(self) -> bool:
        return False
