"""
Summarization service interface for transcript-to-notes generation.
"""

from abc import ABC, abstractmethod


class SummarizationService(ABC):
    """Abstract service for structured note generation."""

    @abstractmethod
    async def summarize(self, text: str) -> str:
        """
        Turn transcript text into a self-contained Markdown note.

        Args:
            text: Transcript text

        Returns:
            Markdown with headings and bullet points

        Raises:
            SummarizationFailure: when the service is unreachable, returns
                nothing, or has no credentials
        """
        pass

    @property
    def is_available(self) -> bool:
        return True

    async def close(self) -> None:
        """Release network clients."""
