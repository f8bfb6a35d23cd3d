"""Service ports implemented by the adapters."""

from .delivery_service import DeliveryService, MailTransport
from .document_renderer import DocumentRenderer
from .summarization_service import SummarizationService
from .transcription_service import TranscriptionService

__all__ = [
    "DeliveryService",
    "DocumentRenderer",
    "MailTransport",
    "SummarizationService",
    "TranscriptionService",
]
