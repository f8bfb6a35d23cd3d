"""
Audio submission endpoints.
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, File, Form, Request, UploadFile, status

from ...core.exceptions import TranscriptionFailure, ValidationFailure
from ...application.use_cases.transcribe_to_notion import NotionTarget
from ..deps import JobQueueDep, SettingsDep, TranscribeToNotionDep
from ..errors import DownstreamError
from ..schemas.transcription import NotionTranscriptionResponse, QueuedResponse
from ..utils.uploads import store_upload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["transcription"])

QUEUED_MESSAGE = "Your audio has been queued for processing. You will receive an email when it's ready."


@router.post("/transcribe", status_code=status.HTTP_202_ACCEPTED, response_model=QueuedResponse)
async def transcribe(
    request: Request,
    settings: SettingsDep,
    job_queue: JobQueueDep,
    audio: Optional[UploadFile] = File(None, description="Recorded audio (webm from the browser)"),
    email: Optional[str] = Form(None, description="Where to send the results"),
    includeTranscriptionPdf: bool = Form(True, description="Attach the full transcription PDF"),
    includeNotesPdf: bool = Form(True, description="Attach the structured notes PDF"),
):
    """
    Queue an audio file for transcription, note generation and email delivery.

    Responds as soon as the job is queued; results arrive by email.
    """
    if audio is None or not audio.filename:
        raise ValidationFailure("No audio file provided")
    email = (email or "").strip()
    if not email:
        raise ValidationFailure("Email address is required")

    audio_path = await store_upload(audio, settings.uploads_path, settings.audio.max_size_mb)
    job = job_queue.enqueue(
        audio_path,
        email,
        include_transcript_pdf=includeTranscriptionPdf,
        include_notes_pdf=includeNotesPdf,
    )
    # Picked up by the request log line
    request.state.job_id = job.job_id
    logger.info(f"Queued job {job.job_id} for {email} ({job_queue.pending_count} pending)")
    return QueuedResponse(status="queued", message=QUEUED_MESSAGE, job_id=job.job_id)


@router.post("/transcribe-to-notion", response_model=NotionTranscriptionResponse)
async def transcribe_to_notion(
    settings: SettingsDep,
    use_case: TranscribeToNotionDep,
    audio: Optional[UploadFile] = File(None, description="Recorded audio"),
    notionConfig: Optional[str] = Form(None, description="JSON with accessToken, selectedDatabase, noteTitle"),
):
    """
    Transcribe an audio file right away and save the text as a Notion page.

    The transcript is returned even when the Notion page could not be created.
    """
    if audio is None or not audio.filename:
        raise ValidationFailure("No audio file provided")
    try:
        config = json.loads(notionConfig) if notionConfig else {}
    except ValueError:
        raise ValidationFailure("notionConfig must be valid JSON")
    if not isinstance(config, dict):
        raise ValidationFailure("notionConfig must be a JSON object")

    target = NotionTarget.from_client_config(config)
    audio_path = await store_upload(audio, settings.uploads_path, settings.audio.max_size_mb)
    try:
        result = await use_case.execute(audio_path, target)
    except TranscriptionFailure as e:
        logger.error(f"Transcription for Notion failed: {e.message}")
        raise DownstreamError(f"Transcription failed: {e.message}", {"stage": e.stage})
    return result.to_dict()
