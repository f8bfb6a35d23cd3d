"""
Component container for the Audio Notes application.

Builds every adapter, the use cases and the job queue from settings, and
owns their startup and shutdown. Capabilities whose credentials are missing
are replaced by always-failing stand-ins so the service still starts.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..adapters.email.delivery_queue import EmailDeliveryQueue
from ..adapters.email.smtp_transport import SmtpMailTransport, UnavailableMailTransport
from ..adapters.external.notion_service import NotionService
from ..adapters.external.summarization_service_openai import (
    OpenAISummarizationService,
    UnavailableSummarizationService,
)
from ..adapters.external.transcription_service_whisper import create_transcription_service
from ..adapters.rendering.pdf_renderer import ReportLabPdfRenderer
from ..application.ports.services.delivery_service import MailTransport
from ..application.ports.services.document_renderer import DocumentRenderer
from ..application.ports.services.summarization_service import SummarizationService
from ..application.ports.services.transcription_service import TranscriptionService
from ..application.use_cases.process_audio_job import ProcessAudioJobUseCase
from ..application.use_cases.transcribe_to_notion import TranscribeToNotionUseCase
from ..workers.job_queue import JobQueue
from .config import Settings, get_settings
from .exceptions import ConfigurationFailure
from .utils.file_utils import create_directory

logger = logging.getLogger(__name__)


@dataclass
class Container:
    """Everything the HTTP layer needs, wired together."""

    settings: Settings
    transcription_service: TranscriptionService
    summarization_service: SummarizationService
    renderer: DocumentRenderer
    delivery_queue: EmailDeliveryQueue
    notion_service: NotionService
    process_job: ProcessAudioJobUseCase
    transcribe_to_notion: TranscribeToNotionUseCase
    job_queue: JobQueue

    async def start(self) -> None:
        create_directory(self.settings.uploads_path)
        await self.transcription_service.start()

    async def close(self, drain_timeout: Optional[float] = 30.0) -> None:
        await self.job_queue.close(timeout=drain_timeout)
        await self.delivery_queue.close()
        await self.transcription_service.close()
        await self.summarization_service.close()


def _build_summarization_service(settings: Settings) -> SummarizationService:
    if not settings.summarization.enabled:
        return UnavailableSummarizationService("note generation is disabled")
    try:
        return OpenAISummarizationService(settings=settings.summarization)
    except ConfigurationFailure as e:
        logger.warning(f"Note generation unavailable: {e.message}")
        return UnavailableSummarizationService(e.message)


def _build_mail_transport(settings: Settings) -> MailTransport:
    try:
        return SmtpMailTransport(settings.email)
    except ConfigurationFailure as e:
        logger.warning(f"Error configuring email: {e.message}")
        return UnavailableMailTransport(e.message)


def build_container(
    settings: Optional[Settings] = None,
    transcription_service: Optional[TranscriptionService] = None,
    summarization_service: Optional[SummarizationService] = None,
    renderer: Optional[DocumentRenderer] = None,
    mail_transport: Optional[MailTransport] = None,
    notion_service: Optional[NotionService] = None,
) -> Container:
    """Wire the application; any component can be supplied pre-built."""
    settings = settings or get_settings()

    transcription_service = transcription_service or create_transcription_service(settings.transcription)
    summarization_service = summarization_service or _build_summarization_service(settings)
    renderer = renderer or ReportLabPdfRenderer(settings.pdf)
    delivery_queue = EmailDeliveryQueue(mail_transport or _build_mail_transport(settings), settings.email)
    notion_service = notion_service or NotionService(settings.notion)

    process_job = ProcessAudioJobUseCase(
        transcription_service=transcription_service,
        summarization_service=summarization_service,
        renderer=renderer,
        delivery_service=delivery_queue,
        output_dir=settings.uploads_path,
        notes_enabled=settings.summarization.enabled,
        include_error_details=settings.email.include_error_details,
    )

    return Container(
        settings=settings,
        transcription_service=transcription_service,
        summarization_service=summarization_service,
        renderer=renderer,
        delivery_queue=delivery_queue,
        notion_service=notion_service,
        process_job=process_job,
        transcribe_to_notion=TranscribeToNotionUseCase(transcription_service, notion_service),
        job_queue=JobQueue(process_job.execute),
    )
