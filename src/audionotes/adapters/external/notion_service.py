"""
Notion integration over the public REST API (aiohttp).

Covers page creation in a user's database, credential validation and the
OAuth authorization-code flow used by the browser client.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import aiohttp

from ...core.config import NotionSettings, get_settings
from ...core.exceptions import ConfigurationFailure, NotionFailure

logger = logging.getLogger(__name__)

# Notion rejects rich text longer than this and more children per request
MAX_TEXT_LENGTH = 2000
MAX_BLOCKS_PER_REQUEST = 100


@dataclass
class NotionPageResult:
    success: bool
    page_id: Optional[str] = None
    url: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "pageId": self.page_id, "url": self.url}
        return {"success": False, "error": self.error}


def chunk_text(text: str, size: int = MAX_TEXT_LENGTH) -> List[str]:
    """Split text into pieces no longer than ``size``, preferring whitespace breaks."""
    chunks = []
    remaining = text.strip()
    while len(remaining) > size:
        cut = remaining.rfind(" ", 0, size)
        if cut <= 0:
            cut = size
        chunks.append(remaining[:cut].rstrip())
        remaining = remaining[cut:].lstrip()
    if remaining:
        chunks.append(remaining)
    return chunks


def paragraph_blocks(text: str) -> List[Dict[str, Any]]:
    return [
        {
            "object": "block",
            "type": "paragraph",
            "paragraph": {"rich_text": [{"type": "text", "text": {"content": chunk}}]},
        }
        for chunk in chunk_text(text)
    ]


def page_title(note_title: Optional[str], now: Optional[datetime] = None) -> str:
    """``"<title> - October 19, 2026"``; the title defaults to ``Note``."""
    now = now or datetime.now()
    return f"{note_title or 'Note'} - {now:%B} {now.day}, {now.year}"


class NotionService:
    """Thin async client for the Notion endpoints the service needs."""

    def __init__(self, settings: Optional[NotionSettings] = None):
        self._settings = settings or get_settings().notion

    @property
    def oauth_configured(self) -> bool:
        return bool(self._settings.client_id and self._settings.client_secret)

    def _headers(self, token: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "Notion-Version": self._settings.api_version,
            "Content-Type": "application/json",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
        auth: Optional[aiohttp.BasicAuth] = None,
    ) -> Dict[str, Any]:
        url = f"{self._settings.api_base_url.rstrip('/')}/{path.lstrip('/')}"
        timeout = aiohttp.ClientTimeout(total=self._settings.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    method, url, json=payload, headers=self._headers(token), auth=auth
                ) as response:
                    try:
                        body = await response.json(content_type=None)
                    except ValueError:
                        body = {"message": (await response.text())[:200]}
                    if response.status >= 400:
                        message = body.get("message") if isinstance(body, dict) else None
                        raise NotionFailure(
                            message or f"Notion API responded with status {response.status}",
                            status=response.status,
                            details={"code": body.get("code") if isinstance(body, dict) else None},
                        )
                    return body if isinstance(body, dict) else {}
        except asyncio.TimeoutError:
            raise NotionFailure(f"Notion API request timed out: {method} {path}")
        except aiohttp.ClientError as e:
            raise NotionFailure(f"Notion API request failed: {e}")

    async def create_note(
        self,
        text: str,
        access_token: str,
        database_id: str,
        note_title: Optional[str] = None,
    ) -> NotionPageResult:
        """Create a dated page holding ``text`` in the given database.

        Errors are returned in the result rather than raised.
        """
        logger.info(
            "Creating Notion note",
            extra={
                "has_token": bool(access_token),
                "has_database_id": bool(database_id),
                "text_length": len(text or ""),
            },
        )
        if not access_token or not database_id:
            return NotionPageResult(success=False, error="Notion access token and database id are required")

        blocks = paragraph_blocks(text or "")
        payload = {
            "parent": {"database_id": database_id},
            "properties": {
                "Name": {"title": [{"text": {"content": page_title(note_title)}}]},
                "Date": {"date": {"start": datetime.now(timezone.utc).isoformat()}},
            },
            "children": blocks[:MAX_BLOCKS_PER_REQUEST],
        }
        try:
            page = await self._request("POST", "pages", token=access_token, payload=payload)
            page_id = page.get("id")
            for start in range(MAX_BLOCKS_PER_REQUEST, len(blocks), MAX_BLOCKS_PER_REQUEST):
                await self._request(
                    "PATCH",
                    f"blocks/{page_id}/children",
                    token=access_token,
                    payload={"children": blocks[start:start + MAX_BLOCKS_PER_REQUEST]},
                )
        except NotionFailure as e:
            logger.error(f"Error creating Notion note: {e.message} (status {e.status})")
            return NotionPageResult(success=False, error=e.message)

        logger.info(f"Successfully created Notion page: {page_id}")
        return NotionPageResult(success=True, page_id=page_id, url=page.get("url"))

    async def validate_credentials(self, api_key: str, database_id: str) -> Dict[str, Any]:
        """Check that ``api_key`` can read ``database_id``."""
        if not api_key or not database_id:
            return {"success": False, "error": "API key and database id are required"}
        try:
            await self._request("GET", f"databases/{database_id}", token=api_key)
        except NotionFailure as e:
            return {"success": False, "error": e.message}
        return {"success": True}

    def build_authorize_url(self, state: Optional[str] = None) -> str:
        if not self._settings.client_id:
            raise ConfigurationFailure("Notion OAuth is not configured. Set NOTION_CLIENT_ID and NOTION_CLIENT_SECRET.")
        params = {
            "client_id": self._settings.client_id,
            "response_type": "code",
            "owner": "user",
            "redirect_uri": self._settings.redirect_uri,
        }
        if state:
            params["state"] = state
        return f"{self._settings.api_base_url.rstrip('/')}/oauth/authorize?{urlencode(params)}"

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """Trade an authorization code for an access token and workspace info."""
        if not self.oauth_configured:
            raise ConfigurationFailure("Notion OAuth is not configured. Set NOTION_CLIENT_ID and NOTION_CLIENT_SECRET.")
        return await self._request(
            "POST",
            "oauth/token",
            payload={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self._settings.redirect_uri,
            },
            auth=aiohttp.BasicAuth(self._settings.client_id, self._settings.client_secret),
        )

    async def search_databases(self, access_token: str) -> List[Dict[str, str]]:
        """List the databases shared with the integration as ``{id, title}``."""
        result = await self._request(
            "POST",
            "search",
            token=access_token,
            payload={"filter": {"property": "object", "value": "database"}},
        )
        databases = []
        for item in result.get("results", []):
            title = "".join(part.get("plain_text", "") for part in item.get("title", []))
            databases.append({"id": item.get("id"), "title": title or "Untitled"})
        return databases
