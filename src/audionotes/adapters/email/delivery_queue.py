"""
In-memory FIFO delivery queue in front of a mail transport.

Callers hand over an email and return immediately. One drain task sends the
head of the queue; on failure it waits ``retry_delay_seconds`` and tries the
same email again, so nothing behind it is sent first and nothing is sent
twice. With ``max_attempts`` > 0 an email that keeps failing is moved to
``dead_letters`` instead of blocking the queue forever.
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Deque, List, Optional

from ...application.ports.services.delivery_service import DeliveryService, MailTransport
from ...core.config import EmailSettings, get_settings
from ...core.exceptions import DeliveryTransportFailure, ValidationFailure
from ...core.structured_logger import log_event
from ...domain.entities.outbound_email import OutboundEmail

logger = logging.getLogger(__name__)


@dataclass
class QueuedEmail:
    email: OutboundEmail
    attempts: int = 0
    queued_at: float = field(default_factory=time.time)
    last_error: Optional[str] = None


class EmailDeliveryQueue(DeliveryService):
    """DeliveryService that retries each email until it is sent."""

    def __init__(
        self,
        transport: MailTransport,
        settings: Optional[EmailSettings] = None,
        retry_delay_seconds: Optional[float] = None,
        max_attempts: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        settings = settings or get_settings().email
        self._transport = transport
        self._retry_delay = (
            retry_delay_seconds if retry_delay_seconds is not None else settings.retry_delay_seconds
        )
        self._max_attempts = max_attempts if max_attempts is not None else settings.max_send_attempts
        self._sleep = sleep
        self._queue: Deque[QueuedEmail] = deque()
        self._drain_task: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()
        self.dead_letters: List[QueuedEmail] = []
        self.sent_count = 0

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    @property
    def transport(self) -> MailTransport:
        return self._transport

    def send_email(self, email: OutboundEmail) -> None:
        missing = [
            name
            for name, value in (("recipient", email.recipient), ("subject", email.subject), ("body", email.body))
            if not value
        ]
        if missing:
            logger.error(f"Cannot queue email: missing required fields {missing}")
            raise ValidationFailure(
                f"Missing required email fields: {', '.join(missing)}",
                details={"missing": missing},
            )

        self._queue.append(QueuedEmail(email))
        self._idle.clear()
        logger.info(f"Email queued for {email.recipient} ({len(self._queue)} pending)")
        self._ensure_draining()

    def _ensure_draining(self) -> None:
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        while self._queue:
            item = self._queue[0]
            item.attempts += 1
            try:
                await self._transport.send_message(item.email)
            except DeliveryTransportFailure as e:
                item.last_error = e.message
                await self._handle_failure(item)
                continue
            except Exception as e:
                logger.exception(f"Unexpected error sending email to {item.email.recipient}")
                item.last_error = f"{type(e).__name__}: {e}"
                await self._handle_failure(item)
                continue

            self._queue.popleft()
            self.sent_count += 1
            log_event(
                logger,
                "email_sent",
                recipient=item.email.recipient,
                subject=item.email.subject,
                attachments=item.email.attachment_names,
                attempts=item.attempts,
            )
        self._idle.set()

    async def _handle_failure(self, item: QueuedEmail) -> None:
        if self._max_attempts and item.attempts >= self._max_attempts:
            self._queue.popleft()
            self.dead_letters.append(item)
            log_event(
                logger,
                "email_dead_lettered",
                level=logging.ERROR,
                recipient=item.email.recipient,
                subject=item.email.subject,
                attempts=item.attempts,
                error=item.last_error,
            )
            return

        logger.warning(
            f"Error sending email to {item.email.recipient} "
            f"(attempt {item.attempts}): {item.last_error}; retrying in {self._retry_delay:g}s"
        )
        await self._sleep(self._retry_delay)

    async def wait_idle(self) -> None:
        """Wait until every queued email is sent or dead-lettered."""
        await self._idle.wait()

    async def close(self) -> None:
        if self._drain_task is not None and not self._drain_task.done():
            self._drain_task.cancel()
            try:
                await self._drain_task
            except asyncio.CancelledError:
                pass
        if self._queue:
            logger.warning(f"Delivery queue closed with {len(self._queue)} unsent email(s)")
