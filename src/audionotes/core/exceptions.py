"""
Exception handling for the Audio Notes service.

Every failure kind that the pipeline, the adapters and the HTTP layer
distinguish has its own class here.
"""

from typing import Any, Dict, Optional


class AudioNotesException(Exception):
    """Base exception class for the Audio Notes service."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationFailure(AudioNotesException):
    """Raised when a request or an outbound email is missing required fields."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "VALIDATION_ERROR", details)


class ConfigurationFailure(AudioNotesException):
    """Raised when credentials for an external capability are missing."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "CONFIG_ERROR", details)


class PipelineStageFailure(AudioNotesException):
    """Base for failures that abort one job's pipeline."""

    stage = "pipeline"


class TranscriptionFailure(PipelineStageFailure):
    """Raised when the speech-to-text process fails or its output is unusable."""

    stage = "transcription"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "TRANSCRIPTION_ERROR", details)


class SummarizationFailure(PipelineStageFailure):
    """Raised when structured notes cannot be generated."""

    stage = "summarization"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "SUMMARIZATION_ERROR", details)


class RenderingFailure(PipelineStageFailure):
    """Raised when a PDF cannot be rendered or written."""

    stage = "rendering"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "RENDERING_ERROR", details)


class DeliveryTransportFailure(AudioNotesException):
    """Raised by a mail transport when a send attempt fails.

    The delivery queue retries these; they never reach the job pipeline.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "DELIVERY_TRANSPORT_ERROR", details)


class NotionFailure(AudioNotesException):
    """Raised when a Notion API call fails."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.status = status
        super().__init__(message, "NOTION_ERROR", details)
