"""
Delivery service interfaces for outbound email.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from ....domain.entities.outbound_email import Attachment, OutboundEmail


class MailTransport(ABC):
    """Sends one email over the network."""

    @abstractmethod
    async def send_message(self, email: OutboundEmail) -> None:
        """
        Send ``email`` once.

        Raises:
            DeliveryTransportFailure: on any transport error
        """
        pass

    @property
    def is_configured(self) -> bool:
        return True


class DeliveryService(ABC):
    """Accepts emails for eventual delivery without blocking the caller."""

    @abstractmethod
    def send_email(self, email: OutboundEmail) -> None:
        """
        Queue ``email`` for delivery.

        Raises:
            ValidationFailure: when recipient, subject or body is missing
        """
        pass

    def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        attachments: Optional[Sequence[Attachment]] = None,
    ) -> None:
        """Queue an email built from its parts."""
        self.send_email(
            OutboundEmail(
                recipient=recipient,
                subject=subject,
                body=body,
                attachments=list(attachments or []),
            )
        )
