"""API schemas."""

from .common import ApiResponse, ErrorResponse
from .transcription import (
    NotionAuthResponse,
    NotionCallbackPayload,
    NotionTranscriptionResponse,
    QueuedResponse,
    ValidateNotionRequest,
    ValidateNotionResponse,
)

__all__ = [
    "ApiResponse",
    "ErrorResponse",
    "NotionAuthResponse",
    "NotionCallbackPayload",
    "NotionTranscriptionResponse",
    "QueuedResponse",
    "ValidateNotionRequest",
    "ValidateNotionResponse",
]
