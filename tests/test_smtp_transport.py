"""
SMTP transport tests; aiosmtplib.send is patched so nothing leaves the machine.
"""

from unittest.mock import AsyncMock, patch

import aiosmtplib
import pytest

from audionotes.adapters.email.smtp_transport import (
    SmtpMailTransport,
    UnavailableMailTransport,
    build_message,
)
from audionotes.core.config import EmailSettings
from audionotes.core.exceptions import ConfigurationFailure, DeliveryTransportFailure
from audionotes.domain.entities.outbound_email import Attachment, OutboundEmail

EMAIL = OutboundEmail(
    recipient="student@example.com",
    subject="Your Audio Notes are Ready",
    body="Attached you will find your notes.",
    attachments=[
        Attachment(filename="transcription-1.pdf", content=b"%PDF-1.4 one"),
        Attachment(filename="notes-1.pdf", content=b"%PDF-1.4 two"),
    ],
)


def configured_settings(**overrides) -> EmailSettings:
    values = {"user": "sender@gmail.com", "password": "app-password"}
    values.update(overrides)
    return EmailSettings(**values)


def test_build_message_keeps_attachment_order():
    message = build_message(EMAIL, "sender@gmail.com")

    assert message["From"] == "sender@gmail.com"
    assert message["To"] == "student@example.com"
    assert message["Subject"] == "Your Audio Notes are Ready"
    attachments = list(message.iter_attachments())
    assert [part.get_filename() for part in attachments] == ["transcription-1.pdf", "notes-1.pdf"]
    assert attachments[0].get_content_type() == "application/pdf"
    assert attachments[1].get_content() == b"%PDF-1.4 two"


def test_build_message_without_attachments_is_plain_text():
    message = build_message(OutboundEmail(recipient="a@example.com", subject="s", body="hello"), "x@y.z")

    assert list(message.iter_attachments()) == []
    assert message.get_content().strip() == "hello"


@pytest.mark.parametrize(
    "overrides, missing",
    [
        ({"user": ""}, ["EMAIL_USER"]),
        ({"password": ""}, ["EMAIL_PASSWORD"]),
        ({"user": "", "password": ""}, ["EMAIL_USER", "EMAIL_PASSWORD"]),
    ],
)
def test_missing_credentials_are_a_configuration_failure(overrides, missing):
    with pytest.raises(ConfigurationFailure) as exc_info:
        SmtpMailTransport(configured_settings(**overrides))

    assert exc_info.value.details["missing"] == missing


@pytest.mark.asyncio
async def test_send_uses_configured_server():
    transport = SmtpMailTransport(configured_settings(sender="notes@example.com"))

    with patch("audionotes.adapters.email.smtp_transport.aiosmtplib.send", new=AsyncMock()) as send:
        await transport.send_message(EMAIL)

    message = send.call_args.args[0]
    kwargs = send.call_args.kwargs
    assert message["From"] == "notes@example.com"
    assert kwargs["hostname"] == "smtp.gmail.com"
    assert kwargs["port"] == 587
    assert kwargs["username"] == "sender@gmail.com"
    assert kwargs["start_tls"] is True
    assert kwargs["use_tls"] is False


@pytest.mark.asyncio
async def test_implicit_tls_disables_starttls():
    transport = SmtpMailTransport(configured_settings(use_tls=True, smtp_port=465))

    with patch("audionotes.adapters.email.smtp_transport.aiosmtplib.send", new=AsyncMock()) as send:
        await transport.send_message(EMAIL)

    assert send.call_args.kwargs["use_tls"] is True
    assert send.call_args.kwargs["start_tls"] is False


@pytest.mark.parametrize(
    "error",
    [
        aiosmtplib.SMTPAuthenticationError(535, "bad credentials"),
        ConnectionRefusedError("refused"),
    ],
)
@pytest.mark.asyncio
async def test_transport_errors_become_delivery_failures(error):
    transport = SmtpMailTransport(configured_settings())

    with patch("audionotes.adapters.email.smtp_transport.aiosmtplib.send", new=AsyncMock(side_effect=error)):
        with pytest.raises(DeliveryTransportFailure) as exc_info:
            await transport.send_message(EMAIL)

    assert exc_info.value.details["recipient"] == "student@example.com"


@pytest.mark.asyncio
async def test_unavailable_transport_always_fails():
    transport = UnavailableMailTransport("Missing required email configuration: EMAIL_USER")

    assert not transport.is_configured
    with pytest.raises(DeliveryTransportFailure):
        await transport.send_message(EMAIL)
