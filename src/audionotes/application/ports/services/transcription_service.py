"""
Transcription service interface for audio-to-text conversion.
"""

import os
from abc import ABC, abstractmethod
from typing import Any, Dict

from ....core.config import get_settings
from ....core.utils.file_utils import validate_file_type


class TranscriptionService(ABC):
    """Abstract service for audio transcription."""

    @abstractmethod
    async def transcribe(self, audio_file_path: str) -> str:
        """
        Transcribe an audio file to plain text.

        Args:
            audio_file_path: Path to the audio file

        Returns:
            The transcript text

        Raises:
            TranscriptionFailure: when the engine fails or its output is unusable
        """
        pass

    async def validate_audio_file(self, audio_file_path: str) -> Dict[str, Any]:
        """Validate audio file format and size before transcription."""
        settings = get_settings().audio
        if not os.path.exists(audio_file_path):
            return {"is_valid": False, "error": "Audio file not found", "file_size": 0}

        file_size = os.path.getsize(audio_file_path)
        if file_size == 0:
            return {"is_valid": False, "error": "Audio file is empty", "file_size": 0}
        if file_size > settings.max_size_mb * 1024 * 1024:
            return {
                "is_valid": False,
                "error": f"Audio file too large ({file_size / (1024 * 1024):.1f}MB, max {settings.max_size_mb}MB)",
                "file_size": file_size,
            }
        if not validate_file_type(audio_file_path, settings.allowed_formats):
            return {
                "is_valid": False,
                "error": f"Unsupported audio format: {os.path.splitext(audio_file_path)[1]}",
                "file_size": file_size,
            }
        return {"is_valid": True, "error": None, "file_size": file_size}

    @property
    def is_available(self) -> bool:
        """Whether the engine can currently accept work."""
        return True

    async def start(self) -> None:
        """Acquire long-lived resources. No-op for per-call engines."""

    async def close(self) -> None:
        """Release long-lived resources. No-op for per-call engines."""
