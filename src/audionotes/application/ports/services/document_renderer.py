"""
Document renderer interface for PDF generation.
"""

from abc import ABC, abstractmethod
from pathlib import Path


class DocumentRenderer(ABC):
    """Abstract renderer producing paginated PDF documents."""

    @abstractmethod
    async def render_plain(self, text: str, output_path: Path) -> bytes:
        """
        Render plain text as a PDF.

        The PDF is written to ``output_path``; the caller owns and deletes it.

        Returns:
            The PDF bytes

        Raises:
            RenderingFailure: when the document cannot be produced
        """
        pass

    @abstractmethod
    async def render_markdown(self, markdown_text: str, output_path: Path) -> bytes:
        """
        Render Markdown (headings, paragraphs, lists) as a PDF.

        Same file ownership and failure contract as :meth:`render_plain`.
        """
        pass
