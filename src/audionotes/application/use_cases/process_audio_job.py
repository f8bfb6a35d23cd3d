"""Process audio job use case: transcribe, summarize, render, deliver, clean up."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Dict, List, Optional

from ...core.exceptions import PipelineStageFailure, TranscriptionFailure, ValidationFailure
from ...core.structured_logger import elapsed_since, log_event
from ...core.utils.file_utils import remove_file, remove_files, timestamp_millis
from ...domain.entities.job import Job, JobOutcome
from ...domain.entities.outbound_email import (
    FAILURE_SUBJECT,
    SUCCESS_SUBJECT,
    Attachment,
    OutboundEmail,
    failure_body,
    success_body,
)
from ..ports.services.delivery_service import DeliveryService
from ..ports.services.document_renderer import DocumentRenderer
from ..ports.services.summarization_service import SummarizationService
from ..ports.services.transcription_service import TranscriptionService

logger = logging.getLogger(__name__)


class ProcessAudioJobUseCase:
    """
    Drive one job through the pipeline.

    Stage failures abort the rest of the job and turn into a failure email
    to the same recipient. The audio file and every generated PDF are
    deleted whatever happens.
    """

    def __init__(
        self,
        transcription_service: TranscriptionService,
        summarization_service: SummarizationService,
        renderer: DocumentRenderer,
        delivery_service: DeliveryService,
        output_dir: Path,
        notes_enabled: bool = True,
        include_error_details: bool = False,
    ):
        self._transcription_service = transcription_service
        self._summarization_service = summarization_service
        self._renderer = renderer
        self._delivery_service = delivery_service
        self._output_dir = Path(output_dir)
        self._notes_enabled = notes_enabled
        self._include_error_details = include_error_details

    async def execute(self, job: Job) -> JobOutcome:
        started = time.time()
        timings: Dict[str, float] = {}
        generated: List[Path] = []
        logger.info(f"Starting to process job {job.job_id} for: {job.recipient}")

        try:
            outcome = await self._run(job, timings, generated)
        except PipelineStageFailure as e:
            logger.error(f"Job {job.job_id} failed during {e.stage}: {e.message}")
            outcome = self._report_failure(job, e.stage, type(e).__name__, e.message)
        except ValidationFailure as e:
            logger.error(f"Job {job.job_id} could not be delivered: {e.message}")
            outcome = self._report_failure(job, "delivery", type(e).__name__, e.message)
        except Exception as e:
            logger.exception(f"Unexpected error processing job {job.job_id}")
            outcome = self._report_failure(job, "internal", type(e).__name__, str(e))
        finally:
            remove_file(job.audio_path)
            remove_files(generated)

        log_event(
            logger,
            "job_completed" if outcome.succeeded else "job_failed",
            level=logging.INFO if outcome.succeeded else logging.ERROR,
            job_id=job.job_id,
            recipient=job.recipient,
            status="succeeded" if outcome.succeeded else "failed",
            attachments=outcome.attachment_names,
            failed_stage=outcome.failed_stage,
            error_type=outcome.error_type,
            timings={**timings, "total": elapsed_since(started)},
        )
        return outcome

    async def _run(self, job: Job, timings: Dict[str, float], generated: List[Path]) -> JobOutcome:
        outputs = job.requested_outputs(self._notes_enabled)

        stage_start = time.time()
        validation = await self._transcription_service.validate_audio_file(str(job.audio_path))
        if not validation.get("is_valid"):
            raise TranscriptionFailure(
                f"Invalid audio file: {validation.get('error')}",
                details={"audio_path": str(job.audio_path)},
            )
        transcript = await self._transcription_service.transcribe(str(job.audio_path))
        timings["transcription"] = elapsed_since(stage_start)

        notes: Optional[str] = None
        if "notes" in outputs:
            stage_start = time.time()
            notes = await self._summarization_service.summarize(transcript)
            timings["summarization"] = elapsed_since(stage_start)

        stage_start = time.time()
        stamp = timestamp_millis()
        attachments: List[Attachment] = []
        if "transcription" in outputs:
            path = self._output_dir / f"transcription-{stamp}.pdf"
            generated.append(path)
            content = await self._renderer.render_plain(transcript, path)
            remove_file(path)
            attachments.append(Attachment(filename=path.name, content=content))
        if notes is not None:
            path = self._output_dir / f"notes-{stamp}.pdf"
            generated.append(path)
            content = await self._renderer.render_markdown(notes, path)
            remove_file(path)
            attachments.append(Attachment(filename=path.name, content=content))
        timings["rendering"] = elapsed_since(stage_start)

        names = [attachment.filename for attachment in attachments]
        self._delivery_service.send_email(
            OutboundEmail(
                recipient=job.recipient,
                subject=SUCCESS_SUBJECT,
                body=success_body(names),
                attachments=attachments,
            )
        )
        logger.info(f"Results for job {job.job_id} queued for delivery to {job.recipient}")
        return JobOutcome(job_id=job.job_id, recipient=job.recipient, succeeded=True, attachment_names=names)

    def _report_failure(self, job: Job, stage: str, error_type: str, message: str) -> JobOutcome:
        detail = message if self._include_error_details else ""
        try:
            self._delivery_service.send_email(
                OutboundEmail(
                    recipient=job.recipient,
                    subject=FAILURE_SUBJECT,
                    body=failure_body(detail),
                )
            )
        except ValidationFailure as e:
            logger.error(f"Could not queue failure email for job {job.job_id}: {e.message}")
        return JobOutcome(
            job_id=job.job_id,
            recipient=job.recipient,
            succeeded=False,
            error_type=error_type,
            error_message=message,
            failed_stage=stage,
        )
