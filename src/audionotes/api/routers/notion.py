"""
Notion connection endpoints used by the browser settings dialog.
"""

import json
import logging
import secrets
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

from ...core.exceptions import ConfigurationFailure, NotionFailure
from ..deps import NotionServiceDep
from ..errors import ServiceUnavailableError
from ..schemas.transcription import (
    NotionAuthResponse,
    NotionCallbackPayload,
    ValidateNotionRequest,
    ValidateNotionResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notion"])

CALLBACK_MESSAGE_TYPE = "notion-oauth-callback"

_CALLBACK_PAGE = """<!DOCTYPE html>
<html>
  <head><title>Notion connection</title></head>
  <body>
    <p>{status_text} You can close this window.</p>
    <script>
      if (window.opener) {{
        window.opener.postMessage({message}, "*");
        window.close();
      }}
    </script>
  </body>
</html>
"""


def render_callback_page(payload: NotionCallbackPayload) -> str:
    message = json.dumps({"type": CALLBACK_MESSAGE_TYPE, "payload": payload.model_dump()})
    # Keep the JSON from closing the script element early
    message = message.replace("</", "<\\/")
    status_text = "Connected to Notion." if payload.success else "Could not connect to Notion."
    return _CALLBACK_PAGE.format(status_text=status_text, message=message)


@router.post("/notion-auth", response_model=NotionAuthResponse)
async def notion_auth(notion: NotionServiceDep):
    """Return the Notion OAuth authorization URL for the popup window."""
    try:
        url = notion.build_authorize_url(state=secrets.token_urlsafe(16))
    except ConfigurationFailure as e:
        raise ServiceUnavailableError(e.message)
    return NotionAuthResponse(url=url)


@router.get("/notion-callback", response_class=HTMLResponse)
async def notion_callback(notion: NotionServiceDep, code: Optional[str] = None, error: Optional[str] = None):
    """Finish the OAuth flow and hand the result to the opener window."""
    if error or not code:
        payload = NotionCallbackPayload(success=False, error=error or "No authorization code received")
        return HTMLResponse(render_callback_page(payload))

    try:
        token = await notion.exchange_code(code)
        access_token = token.get("access_token")
        databases = await notion.search_databases(access_token) if access_token else []
        payload = NotionCallbackPayload(
            success=bool(access_token),
            access_token=access_token,
            workspace={
                "id": token.get("workspace_id"),
                "name": token.get("workspace_name"),
                "icon": token.get("workspace_icon"),
            },
            databases=databases,
            error=None if access_token else "Notion did not return an access token",
        )
    except (NotionFailure, ConfigurationFailure) as e:
        logger.error(f"Notion OAuth callback failed: {e.message}")
        payload = NotionCallbackPayload(success=False, error=e.message)
    return HTMLResponse(render_callback_page(payload))


@router.post("/validate-notion", response_model=ValidateNotionResponse)
async def validate_notion(body: ValidateNotionRequest, notion: NotionServiceDep):
    """Check that an integration token can read a database."""
    result = await notion.validate_credentials(body.apiKey, body.databaseId)
    return ValidateNotionResponse(**result)
