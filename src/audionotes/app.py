"""
FastAPI application factory and main app configuration.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.errors import APIError
from .api.routers import health, notion, transcribe
from .api.utils.responses import fail
from .core.config import get_settings
from .core.container import Container, build_container
from .core.exceptions import (
    AudioNotesException,
    ConfigurationFailure,
    NotionFailure,
    PipelineStageFailure,
    ValidationFailure,
)
from .core.structured_logger import configure_logging
from .middleware.performance_middleware import PerformanceMiddleware
from .middleware.request_id_middleware import RequestIDMiddleware

logger = logging.getLogger(__name__)


def _status_for(exc: AudioNotesException) -> int:
    if isinstance(exc, ValidationFailure):
        return 400
    if isinstance(exc, ConfigurationFailure):
        return 503
    if isinstance(exc, (PipelineStageFailure, NotionFailure)):
        return 502
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.app_env}")

    container: Optional[Container] = getattr(app.state, "container", None)
    if container is None:
        container = build_container(settings)
        app.state.container = container
    await container.start()

    logger.info(
        f"Transcription mode: {settings.transcription.mode} (model {settings.transcription.model}); "
        f"note generation {'enabled' if settings.summarization.enabled else 'disabled'}"
    )
    logger.info("Application startup completed successfully")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}")
    await container.close()
    logger.info(f"Shutdown complete ({container.job_queue.processed_count} jobs processed)")


def create_app(container: Optional[Container] = None) -> FastAPI:
    """Create and configure FastAPI application.

    A pre-built ``container`` replaces the one the lifespan would build.
    """
    settings = get_settings()
    configure_logging(settings.logging.level, settings.logging.format)

    app = FastAPI(
        title=settings.app_name,
        description="Record audio, get a transcript and structured notes by email or in Notion",
        version=settings.app_version,
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.allowed_origins,
        allow_credentials=False,
        allow_methods=settings.cors.allowed_methods,
        allow_headers=settings.cors.allowed_headers,
        max_age=600,
    )
    app.add_middleware(PerformanceMiddleware)
    # Added last so it runs first and request_id is set for the others
    app.add_middleware(RequestIDMiddleware)

    app.include_router(health.router)
    app.include_router(transcribe.router)
    app.include_router(notion.router)

    @app.get("/", tags=["health"])
    async def root():
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "status": "running",
            "docs": "/docs",
        }

    @app.exception_handler(AudioNotesException)
    async def audio_notes_error_handler(request: Request, exc: AudioNotesException):
        req_id = getattr(request.state, "request_id", None)
        status_code = _status_for(exc)
        log = logger.warning if status_code < 500 else logger.error
        log(f"{type(exc).__name__}: {exc.error_code} ({status_code}) {exc.message} | request_id={req_id}")
        return JSONResponse(
            status_code=status_code,
            content=fail(request, exc.error_code or "ERROR", exc.message, exc.details).model_dump(),
        )

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        req_id = getattr(request.state, "request_id", None)
        logger.error(f"APIError: {exc.code} ({exc.http_status}) {exc.message} | request_id={req_id}")
        return JSONResponse(
            status_code=exc.http_status,
            content=fail(request, exc.code, exc.message, exc.details).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        req_id = getattr(request.state, "request_id", None)
        error_details = exc.errors()
        logger.error(f"ValidationError on {request.method} {request.url.path}: {error_details} | request_id={req_id}")

        error_messages = []
        for error in error_details:
            loc = " -> ".join(str(x) for x in error.get("loc", []))
            msg = error.get("msg", "Validation error")
            error_messages.append(f"{loc}: {msg}")

        return JSONResponse(
            status_code=422,
            content=fail(
                request,
                "INVALID_INPUT",
                f"Input validation failed: {'; '.join(error_messages)}",
                {"path": request.url.path, "errors": error_messages},
            ).model_dump(),
        )

    return app


app = create_app()
