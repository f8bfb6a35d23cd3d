"""Outbound email delivery."""

from .delivery_queue import EmailDeliveryQueue
from .smtp_transport import SmtpMailTransport, UnavailableMailTransport

__all__ = ["EmailDeliveryQueue", "SmtpMailTransport", "UnavailableMailTransport"]
