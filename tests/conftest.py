"""
Shared fixtures and fake adapters.
"""

import asyncio
import time
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from audionotes.app import create_app
from audionotes.application.ports.services.delivery_service import MailTransport
from audionotes.application.ports.services.document_renderer import DocumentRenderer
from audionotes.application.ports.services.summarization_service import SummarizationService
from audionotes.application.ports.services.transcription_service import TranscriptionService
from audionotes.core.config import reset_settings
from audionotes.core.container import build_container
from audionotes.core.exceptions import (
    DeliveryTransportFailure,
    RenderingFailure,
    SummarizationFailure,
    TranscriptionFailure,
)
from audionotes.domain.entities.outbound_email import OutboundEmail

CREDENTIAL_VARS = [
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "AZURE_OPENAI_ENDPOINT",
    "AZURE_OPENAI_API_KEY",
    "EMAIL_USER",
    "EMAIL_PASSWORD",
    "EMAIL_SENDER",
    "NOTION_CLIENT_ID",
    "NOTION_CLIENT_SECRET",
    "SUMMARIZATION_ENABLED",
    "TRANSCRIPTION_MODE",
    "EMAIL_MAX_SEND_ATTEMPTS",
    "EMAIL_INCLUDE_ERROR_DETAILS",
]


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Fresh settings per test, with uploads under tmp_path and no real credentials."""
    for name in CREDENTIAL_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("APP_ENV", "testing")
    monkeypatch.setenv("UPLOADS_DIR", str(tmp_path / "uploads"))
    (tmp_path / "uploads").mkdir()
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def uploads_dir(tmp_path) -> Path:
    return tmp_path / "uploads"


def make_audio(directory: Path, name: str = "audio.webm", content: bytes = b"\x1aE\xdf\xa3fake-webm") -> Path:
    path = Path(directory) / name
    path.write_bytes(content)
    return path


class ScriptedTranscriptionService(TranscriptionService):
    """Returns canned transcripts; fails for paths listed in ``failures``."""

    def __init__(
        self,
        text: str = "Hello world. This is a lecture about queues.",
        failures: Optional[Dict[str, str]] = None,
        delay: float = 0.0,
    ):
        self.text = text
        self.failures = failures or {}
        self.delay = delay
        self.calls: List[str] = []
        self.active = 0
        self.max_active = 0

    async def transcribe(self, audio_file_path: str) -> str:
        self.calls.append(audio_file_path)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            for marker, message in self.failures.items():
                if marker in audio_file_path:
                    raise TranscriptionFailure(message)
            return self.text
        finally:
            self.active -= 1


class FakeSummarizer(SummarizationService):
    def __init__(self, notes: str = "# Notes\n\n- First point\n- Second point", fail: bool = False):
        self.notes = notes
        self.fail = fail
        self.calls: List[str] = []

    async def summarize(self, text: str) -> str:
        self.calls.append(text)
        if self.fail:
            raise SummarizationFailure("model unavailable")
        return self.notes


class FakeRenderer(DocumentRenderer):
    """Writes small fake PDFs so cleanup can be observed."""

    def __init__(self, fail_markdown: bool = False):
        self.fail_markdown = fail_markdown
        self.paths: List[Path] = []

    async def _write(self, kind: str, text: str, output_path: Path) -> bytes:
        self.paths.append(Path(output_path))
        content = f"%PDF-1.4 {kind}: {text[:40]}".encode("utf-8")
        Path(output_path).write_bytes(content)
        return content

    async def render_plain(self, text: str, output_path: Path) -> bytes:
        return await self._write("plain", text, output_path)

    async def render_markdown(self, markdown_text: str, output_path: Path) -> bytes:
        if self.fail_markdown:
            raise RenderingFailure("cannot render")
        return await self._write("markdown", markdown_text, output_path)


class RecordingTransport(MailTransport):
    """Records sent emails; the first ``fail_times`` attempts raise."""

    def __init__(self, fail_times: int = 0):
        self.fail_times = fail_times
        self.attempts = 0
        self.sent: List[OutboundEmail] = []

    async def send_message(self, email: OutboundEmail) -> None:
        self.attempts += 1
        if self.attempts <= self.fail_times:
            raise DeliveryTransportFailure("SMTP connection refused")
        self.sent.append(email)


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays and yields once."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


def wait_until(predicate, timeout: float = 5.0) -> bool:
    """Poll ``predicate`` while the TestClient's event loop runs background work."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def container(transport):
    return build_container(
        transcription_service=ScriptedTranscriptionService(),
        summarization_service=FakeSummarizer(),
        renderer=FakeRenderer(),
        mail_transport=transport,
    )


@pytest.fixture
def client(container):
    with TestClient(create_app(container=container)) as test_client:
        yield test_client
