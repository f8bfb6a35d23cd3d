"""
Notion service and transcribe-to-Notion use case tests.
"""

from datetime import datetime
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlparse

import pytest

from audionotes.adapters.external.notion_service import (
    MAX_BLOCKS_PER_REQUEST,
    MAX_TEXT_LENGTH,
    NotionPageResult,
    NotionService,
    chunk_text,
    page_title,
)
from audionotes.application.use_cases.transcribe_to_notion import (
    NotionTarget,
    TranscribeToNotionUseCase,
)
from audionotes.core.config import NotionSettings
from audionotes.core.exceptions import ConfigurationFailure, NotionFailure, TranscriptionFailure

from conftest import ScriptedTranscriptionService, make_audio


def oauth_settings() -> NotionSettings:
    return NotionSettings(
        client_id="client-123",
        client_secret="secret-456",
        redirect_uri="http://localhost:3001/notion-callback",
    )


def test_chunk_text_respects_limit_and_word_breaks():
    text = ("word " * 1000).strip()

    chunks = chunk_text(text)

    assert len(chunks) > 1
    assert all(len(chunk) <= MAX_TEXT_LENGTH for chunk in chunks)
    assert " ".join(chunks) == text


def test_chunk_text_splits_unbroken_text():
    chunks = chunk_text("x" * 4500)

    assert [len(chunk) for chunk in chunks] == [2000, 2000, 500]


def test_page_title_formats_date():
    assert page_title("Biology", datetime(2026, 10, 19)) == "Biology - October 19, 2026"
    assert page_title(None, datetime(2026, 3, 5)) == "Note - March 5, 2026"


@pytest.mark.asyncio
async def test_create_note_posts_page_to_database():
    service = NotionService(oauth_settings())
    request = AsyncMock(return_value={"id": "page-1", "url": "https://notion.so/page-1"})

    with patch.object(service, "_request", request):
        result = await service.create_note("Hello there.", "token-1", "db-1", note_title="Lecture")

    assert result == NotionPageResult(success=True, page_id="page-1", url="https://notion.so/page-1")
    method, path = request.call_args.args
    payload = request.call_args.kwargs["payload"]
    assert (method, path) == ("POST", "pages")
    assert request.call_args.kwargs["token"] == "token-1"
    assert payload["parent"] == {"database_id": "db-1"}
    title = payload["properties"]["Name"]["title"][0]["text"]["content"]
    assert title.startswith("Lecture - ")
    assert payload["children"][0]["paragraph"]["rich_text"][0]["text"]["content"] == "Hello there."


@pytest.mark.asyncio
async def test_create_note_appends_blocks_beyond_first_request():
    service = NotionService(oauth_settings())
    request = AsyncMock(return_value={"id": "page-1", "url": "u"})
    text = " ".join("y" * 1999 for _ in range(MAX_BLOCKS_PER_REQUEST + 5))

    with patch.object(service, "_request", request):
        result = await service.create_note(text, "token-1", "db-1")

    assert result.success
    first, second = request.call_args_list
    assert len(first.kwargs["payload"]["children"]) == MAX_BLOCKS_PER_REQUEST
    assert second.args == ("PATCH", "blocks/page-1/children")
    assert len(second.kwargs["payload"]["children"]) == 5


@pytest.mark.asyncio
async def test_create_note_returns_error_instead_of_raising():
    service = NotionService(oauth_settings())
    request = AsyncMock(side_effect=NotionFailure("Could not find database", status=404))

    with patch.object(service, "_request", request):
        result = await service.create_note("text", "token-1", "db-missing")

    assert result.to_dict() == {"success": False, "error": "Could not find database"}


@pytest.mark.asyncio
async def test_create_note_requires_token_and_database():
    service = NotionService(oauth_settings())

    result = await service.create_note("text", "", "db-1")

    assert not result.success


@pytest.mark.asyncio
async def test_validate_credentials_reports_success_and_failure():
    service = NotionService(oauth_settings())

    with patch.object(service, "_request", AsyncMock(return_value={"id": "db-1"})) as request:
        assert await service.validate_credentials("secret_key", "db-1") == {"success": True}
    assert request.call_args.args == ("GET", "databases/db-1")

    with patch.object(service, "_request", AsyncMock(side_effect=NotionFailure("API token is invalid.", status=401))):
        assert await service.validate_credentials("bad", "db-1") == {
            "success": False,
            "error": "API token is invalid.",
        }


def test_build_authorize_url_contains_client_and_redirect():
    url = NotionService(oauth_settings()).build_authorize_url(state="abc")

    parsed = urlparse(url)
    query = parse_qs(parsed.query)
    assert parsed.path.endswith("/oauth/authorize")
    assert query["client_id"] == ["client-123"]
    assert query["redirect_uri"] == ["http://localhost:3001/notion-callback"]
    assert query["response_type"] == ["code"]
    assert query["state"] == ["abc"]


def test_build_authorize_url_without_client_id_raises():
    with pytest.raises(ConfigurationFailure):
        NotionService(NotionSettings()).build_authorize_url()


@pytest.mark.asyncio
async def test_exchange_code_uses_basic_auth():
    service = NotionService(oauth_settings())
    request = AsyncMock(return_value={"access_token": "tok", "workspace_name": "Home"})

    with patch.object(service, "_request", request):
        result = await service.exchange_code("code-1")

    assert result["access_token"] == "tok"
    auth = request.call_args.kwargs["auth"]
    assert (auth.login, auth.password) == ("client-123", "secret-456")
    assert request.call_args.kwargs["payload"]["code"] == "code-1"


@pytest.mark.asyncio
async def test_search_databases_extracts_titles():
    service = NotionService(oauth_settings())
    response = {
        "results": [
            {"id": "db-1", "title": [{"plain_text": "Lecture "}, {"plain_text": "Notes"}]},
            {"id": "db-2", "title": []},
        ]
    }

    with patch.object(service, "_request", AsyncMock(return_value=response)):
        databases = await service.search_databases("tok")

    assert databases == [{"id": "db-1", "title": "Lecture Notes"}, {"id": "db-2", "title": "Untitled"}]


def test_notion_target_accepts_oauth_and_api_key_configs():
    oauth = NotionTarget.from_client_config(
        {"accessToken": "tok", "selectedDatabase": {"id": "db-1"}, "noteTitle": "Physics"}
    )
    api_key = NotionTarget.from_client_config({"notionApiKey": "secret", "notionDatabaseId": "db-2"})

    assert oauth == NotionTarget(access_token="tok", database_id="db-1", note_title="Physics")
    assert api_key == NotionTarget(access_token="secret", database_id="db-2")


@pytest.mark.asyncio
async def test_transcribe_to_notion_returns_text_and_page(uploads_dir):
    notion = NotionService(oauth_settings())
    notion.create_note = AsyncMock(return_value=NotionPageResult(success=True, page_id="p", url="u"))
    use_case = TranscribeToNotionUseCase(ScriptedTranscriptionService(text="Spoken words."), notion)
    audio = make_audio(uploads_dir)

    result = await use_case.execute(audio, NotionTarget("tok", "db-1", "Title"))

    assert result.to_dict() == {
        "text": "Spoken words.",
        "notion": {"success": True, "pageId": "p", "url": "u"},
    }
    assert not audio.exists()
    notion.create_note.assert_awaited_once_with(
        "Spoken words.", access_token="tok", database_id="db-1", note_title="Title"
    )


@pytest.mark.asyncio
async def test_transcribe_to_notion_failure_removes_audio(uploads_dir):
    notion = NotionService(oauth_settings())
    notion.create_note = AsyncMock()
    use_case = TranscribeToNotionUseCase(
        ScriptedTranscriptionService(failures={"audio": "decoder crashed"}), notion
    )
    audio = make_audio(uploads_dir)

    with pytest.raises(TranscriptionFailure):
        await use_case.execute(audio, NotionTarget("tok", "db-1"))

    assert not audio.exists()
    notion.create_note.assert_not_called()
