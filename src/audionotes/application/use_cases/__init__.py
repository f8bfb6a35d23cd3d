"""Application use cases."""

from .process_audio_job import ProcessAudioJobUseCase
from .transcribe_to_notion import NotionTarget, NotionTranscriptionResult, TranscribeToNotionUseCase

__all__ = [
    "NotionTarget",
    "NotionTranscriptionResult",
    "ProcessAudioJobUseCase",
    "TranscribeToNotionUseCase",
]
