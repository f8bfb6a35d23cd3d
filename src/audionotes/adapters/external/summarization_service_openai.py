"""
OpenAI-based note generation service implementation.
"""

import logging
from typing import Optional

from openai import OpenAIError

from ...application.ports.services.summarization_service import SummarizationService
from ...core.ai_client import AIClient, get_ai_client
from ...core.config import SummarizationSettings, get_settings
from ...core.exceptions import SummarizationFailure

logger = logging.getLogger(__name__)


class OpenAISummarizationService(SummarizationService):
    """OpenAI implementation of SummarizationService."""

    def __init__(self, client: Optional[AIClient] = None, settings: Optional[SummarizationSettings] = None):
        self._settings = settings or get_settings().summarization
        # get_ai_client raises ConfigurationFailure when no credentials are set
        self._client = client or get_ai_client()
        logger.info(
            f"[SummarizationService] Initialized with {self._client.provider}",
            extra={"model": self._client.default_model},
        )

    def build_prompt(self, text: str) -> str:
        return self._settings.prompt.replace("{transcript}", text)

    async def summarize(self, text: str) -> str:
        if not text or not text.strip():
            raise SummarizationFailure("Cannot summarize an empty transcript")

        try:
            notes = await self._client.complete_text(
                self.build_prompt(text),
                temperature=self._settings.temperature,
                max_tokens=self._settings.max_tokens,
            )
        except OpenAIError as e:
            raise SummarizationFailure(
                f"Note generation request failed: {e}",
                details={"provider": self._client.provider},
            )

        notes = notes.strip()
        if not notes:
            raise SummarizationFailure("Note generation returned an empty result")
        logger.info(f"Generated structured notes ({len(notes)} characters)")
        return notes

    async def close(self) -> None:
        await self._client.close()


class UnavailableSummarizationService(SummarizationService):
    """Stand-in used when credentials are missing; every call fails."""

    def __init__(self, reason: str):
        self._reason = reason

    async def summarize(self, text: str) -> str:
        raise SummarizationFailure(f"Note generation is unavailable: {self._reason}")

    @property
    def is_available(self) -> bool:
        return False
