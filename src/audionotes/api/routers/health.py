"""
Health check endpoints.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..deps import ContainerDep
from ..schemas.common import ApiResponse
from ..utils.responses import ok

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    timestamp: datetime
    version: str
    service: str
    queue_depth: int
    worker_busy: bool
    email_backlog: int
    transcription_available: bool


@router.get("", response_model=ApiResponse[HealthResponse])
async def health_check(request: Request, container: ContainerDep):
    """
    Health check endpoint.

    Returns the current status of the service and its queues.
    """
    settings = container.settings
    return ok(request, data=HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        service=settings.app_name,
        queue_depth=container.job_queue.pending_count,
        worker_busy=container.job_queue.is_busy,
        email_backlog=container.delivery_queue.pending_count,
        transcription_available=container.transcription_service.is_available,
    ), message="OK")


@router.get("/ready", response_model=ApiResponse[dict])
async def readiness_check(request: Request, container: ContainerDep):
    """
    Readiness check endpoint.

    Reports each capability. Only an unavailable transcription engine makes
    the service not ready; missing email or note credentials degrade it.
    """
    checks = {
        "transcription": "ok" if container.transcription_service.is_available else "unavailable",
        "summarization": "ok" if container.summarization_service.is_available else "not_configured",
        "email": "ok" if container.delivery_queue.transport.is_configured else "not_configured",
        "notion_oauth": "ok" if container.notion_service.oauth_configured else "not_configured",
        "uploads_dir": "ok" if container.settings.uploads_path.is_dir() else "missing",
        "dead_letters": len(container.delivery_queue.dead_letters),
    }
    ready = checks["transcription"] == "ok" and checks["uploads_dir"] == "ok"
    body = ok(request, data=checks, message="ready" if ready else "not ready")
    return JSONResponse(status_code=200 if ready else 503, content=body.model_dump())
