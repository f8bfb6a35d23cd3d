"""
Request and response schemas for the transcription and Notion endpoints.

Field names follow what the browser client sends and reads.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class QueuedResponse(BaseModel):
    status: str = Field("queued", description="Always 'queued' once the job is accepted")
    message: str = Field(..., description="Human-readable confirmation")
    job_id: Optional[str] = Field(None, description="Identifier of the queued job")


class NotionResult(BaseModel):
    success: bool
    pageId: Optional[str] = None
    url: Optional[str] = None
    error: Optional[str] = None


class NotionTranscriptionResponse(BaseModel):
    text: str
    notion: NotionResult


class NotionAuthResponse(BaseModel):
    url: str


class ValidateNotionRequest(BaseModel):
    apiKey: str = Field("", description="Notion integration token")
    databaseId: str = Field("", description="Target database id")


class ValidateNotionResponse(BaseModel):
    success: bool
    error: Optional[str] = None


class NotionCallbackPayload(BaseModel):
    success: bool
    access_token: Optional[str] = None
    workspace: Optional[Dict[str, Any]] = None
    databases: List[Dict[str, Any]] = Field(default_factory=list)
    error: Optional[str] = None
