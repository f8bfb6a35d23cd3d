"""Transcribe an upload synchronously and file the text in Notion."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ...adapters.external.notion_service import NotionPageResult, NotionService
from ...core.exceptions import TranscriptionFailure
from ...core.utils.file_utils import remove_file
from ..ports.services.transcription_service import TranscriptionService

logger = logging.getLogger(__name__)


@dataclass
class NotionTarget:
    """Where the note goes, as sent by the browser client."""

    access_token: str
    database_id: str
    note_title: Optional[str] = None

    @classmethod
    def from_client_config(cls, config: Dict[str, Any]) -> "NotionTarget":
        # OAuth clients send accessToken/selectedDatabase, API-key clients notionApiKey/notionDatabaseId
        selected = config.get("selectedDatabase")
        if isinstance(selected, dict):
            selected = selected.get("id")
        return cls(
            access_token=config.get("accessToken") or config.get("notionApiKey") or "",
            database_id=selected or config.get("notionDatabaseId") or "",
            note_title=config.get("noteTitle"),
        )


@dataclass
class NotionTranscriptionResult:
    text: str
    notion: NotionPageResult

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "notion": self.notion.to_dict()}


class TranscribeToNotionUseCase:
    """Runs outside the job queue; the caller waits for the transcript."""

    def __init__(self, transcription_service: TranscriptionService, notion_service: NotionService):
        self._transcription_service = transcription_service
        self._notion_service = notion_service

    async def execute(self, audio_path: Path, target: NotionTarget) -> NotionTranscriptionResult:
        try:
            validation = await self._transcription_service.validate_audio_file(str(audio_path))
            if not validation.get("is_valid"):
                raise TranscriptionFailure(f"Invalid audio file: {validation.get('error')}")
            text = await self._transcription_service.transcribe(str(audio_path))
        finally:
            remove_file(audio_path)

        page = await self._notion_service.create_note(
            text,
            access_token=target.access_token,
            database_id=target.database_id,
            note_title=target.note_title,
        )
        if not page.success:
            logger.warning(f"Transcript ready but Notion page was not created: {page.error}")
        return NotionTranscriptionResult(text=text, notion=page)
