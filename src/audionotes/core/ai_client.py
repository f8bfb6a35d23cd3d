"""
OpenAI client wrapper for note generation.

Design goals:
- Azure OpenAI (AsyncAzureOpenAI) when an Azure endpoint and key are set
- Plain OpenAI (AsyncOpenAI) otherwise
- No retries here; callers decide how to surface failures
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from openai import AsyncAzureOpenAI, AsyncOpenAI

from .config import Settings, get_settings
from .exceptions import ConfigurationFailure


class AIClient:
    """
    Thin wrapper around the async OpenAI SDK clients.

    ``default_model`` is the Azure deployment name when Azure is used and
    the chat model name otherwise.
    """

    def __init__(self, client: Any, default_model: str, provider: str) -> None:
        self._client = client
        self.default_model = default_model
        self.provider = provider

    async def chat(
        self,
        messages: Sequence[Dict[str, str]],
        *,
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
        **kwargs: Any,
    ):
        """Generic chat completion helper."""
        return await self._client.chat.completions.create(
            model=model or self.default_model,
            messages=list(messages),
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )

    async def complete_text(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
        **kwargs: Any,
    ) -> str:
        """Send one user prompt and return the first choice's text ("" when absent)."""
        messages: List[Dict[str, str]] = [{"role": "user", "content": prompt}]
        response = await self.chat(
            messages,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def close(self) -> None:
        await self._client.close()


def get_ai_client(settings: Optional[Settings] = None) -> AIClient:
    """
    Build the AI client from settings.

    Raises:
        ConfigurationFailure: when neither Azure nor OpenAI credentials are set
    """
    settings = settings or get_settings()
    timeout = settings.summarization.timeout_seconds

    if settings.azure_openai.is_configured:
        client = AsyncAzureOpenAI(
            api_key=settings.azure_openai.api_key,
            api_version=settings.azure_openai.api_version,
            # Azure SDK does not expect a trailing slash
            azure_endpoint=settings.azure_openai.endpoint.rstrip("/"),
            timeout=timeout,
            max_retries=0,
        )
        return AIClient(client, settings.azure_openai.deployment_name, "azure_openai")

    if settings.openai.api_key:
        client = AsyncOpenAI(
            api_key=settings.openai.api_key,
            base_url=settings.openai.base_url or None,
            timeout=timeout,
            max_retries=0,
        )
        return AIClient(client, settings.summarization.model, "openai")

    raise ConfigurationFailure(
        "Summarization credentials are missing. "
        "Set OPENAI_API_KEY or AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY."
    )
