"""FastAPI dependency providers.

Components are built once in the application lifespan and kept on
``app.state.container``.
"""

from typing import Annotated

from fastapi import Depends, Request

from ..adapters.external.notion_service import NotionService
from ..application.use_cases.transcribe_to_notion import TranscribeToNotionUseCase
from ..core.config import Settings
from ..core.container import Container
from ..workers.job_queue import JobQueue
from .errors import ServiceUnavailableError


def get_container(request: Request) -> Container:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise ServiceUnavailableError("Service is starting up")
    return container


ContainerDep = Annotated[Container, Depends(get_container)]


def get_app_settings(container: ContainerDep) -> Settings:
    return container.settings


def get_job_queue(container: ContainerDep) -> JobQueue:
    return container.job_queue


def get_notion_service(container: ContainerDep) -> NotionService:
    return container.notion_service


def get_transcribe_to_notion(container: ContainerDep) -> TranscribeToNotionUseCase:
    return container.transcribe_to_notion


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
JobQueueDep = Annotated[JobQueue, Depends(get_job_queue)]
NotionServiceDep = Annotated[NotionService, Depends(get_notion_service)]
TranscribeToNotionDep = Annotated[TranscribeToNotionUseCase, Depends(get_transcribe_to_notion)]
