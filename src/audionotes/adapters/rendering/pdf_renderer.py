"""
reportlab-based PDF renderer.

Documents are built with platypus flowables so long input wraps and
paginates on its own. Building runs in the default thread executor.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import (
    HRFlowable,
    ListFlowable,
    ListItem,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
)

from ...application.ports.services.document_renderer import DocumentRenderer
from ...core.config import PdfSettings, get_settings
from ...core.exceptions import RenderingFailure
from .markdown_blocks import BULLET, HEADING, NUMBERED, RULE, Block, inline_markup, parse_markdown

logger = logging.getLogger(__name__)


class ReportLabPdfRenderer(DocumentRenderer):
    """DocumentRenderer writing US Letter PDFs with reportlab."""

    def __init__(self, settings: Optional[PdfSettings] = None):
        self._settings = settings or get_settings().pdf
        self._styles = self._build_styles(self._settings.font_size)

    @staticmethod
    def _build_styles(font_size: float) -> dict:
        styles = getSampleStyleSheet()
        body = ParagraphStyle(
            "ANBody", parent=styles["Normal"],
            fontSize=font_size, leading=font_size * 1.35, spaceAfter=font_size * 0.5,
        )
        return {
            "body": body,
            "h1": ParagraphStyle(
                "ANH1", parent=styles["Heading1"],
                fontSize=font_size * 1.7, leading=font_size * 2.1, spaceBefore=6, spaceAfter=10,
                textColor=colors.HexColor("#1a1a2e"),
            ),
            "h2": ParagraphStyle(
                "ANH2", parent=styles["Heading2"],
                fontSize=font_size * 1.35, leading=font_size * 1.7, spaceBefore=12, spaceAfter=6,
                textColor=colors.HexColor("#2c3e50"),
            ),
            "h3": ParagraphStyle(
                "ANH3", parent=styles["Heading3"],
                fontSize=font_size * 1.15, leading=font_size * 1.45, spaceBefore=10, spaceAfter=4,
                textColor=colors.HexColor("#2c3e50"),
            ),
            "item": ParagraphStyle("ANItem", parent=body, spaceAfter=2),
        }

    async def render_plain(self, text: str, output_path: Path) -> bytes:
        return await self._render(lambda: self._plain_flowables(text), output_path)

    async def render_markdown(self, markdown_text: str, output_path: Path) -> bytes:
        return await self._render(lambda: self._markdown_flowables(markdown_text), output_path)

    async def _render(self, make_flowables: Callable[[], List], output_path: Path) -> bytes:
        loop = asyncio.get_running_loop()
        try:
            content = await loop.run_in_executor(None, self._build, make_flowables, Path(output_path))
        except RenderingFailure:
            raise
        except Exception as e:
            raise RenderingFailure(
                f"PDF generation failed: {e}",
                details={"output_path": str(output_path)},
            )
        logger.info(f"PDF generated at: {output_path} ({len(content)} bytes)")
        return content

    def _build(self, make_flowables: Callable[[], List], output_path: Path) -> bytes:
        flowables = make_flowables()
        margin = self._settings.margin_points
        doc = SimpleDocTemplate(
            str(output_path), pagesize=letter,
            leftMargin=margin, rightMargin=margin,
            topMargin=margin, bottomMargin=margin,
        )
        # An empty story still has to produce one page
        doc.build(flowables or [Spacer(1, 1)])
        return output_path.read_bytes()

    def _plain_flowables(self, text: str) -> List:
        flowables = []
        for chunk in (text or "").replace("\r\n", "\n").split("\n\n"):
            if not chunk.strip():
                continue
            markup = "<br/>".join(escape(line) for line in chunk.strip("\n").split("\n"))
            flowables.append(Paragraph(markup, self._styles["body"]))
        return flowables

    def _markdown_flowables(self, markdown_text: str) -> List:
        flowables: List = []
        pending_items: List[Block] = []

        def flush_list() -> None:
            if pending_items:
                flowables.append(self._list_flowable(pending_items))
                pending_items.clear()

        for block in parse_markdown(markdown_text):
            if block.kind in (BULLET, NUMBERED):
                if pending_items and pending_items[0].kind != block.kind and block.level == 0:
                    flush_list()
                pending_items.append(block)
                continue

            flush_list()
            if block.kind == HEADING:
                flowables.append(self._markdown_paragraph(block.text, self._styles[f"h{block.level}"]))
            elif block.kind == RULE:
                flowables.append(HRFlowable(width="100%", thickness=0.8, color=colors.grey, spaceBefore=4, spaceAfter=8))
            else:
                flowables.append(self._markdown_paragraph(block.text, self._styles["body"]))

        flush_list()
        return flowables

    @staticmethod
    def _markdown_paragraph(text: str, style: ParagraphStyle) -> Paragraph:
        """Paragraph with inline formatting, or the escaped raw text when
        reportlab rejects the markup (e.g. overlapping emphasis)."""
        try:
            return Paragraph(inline_markup(text), style)
        except ValueError as e:
            logger.warning(f"Rendering block as plain text, markup rejected: {e}")
            return Paragraph(escape(text), style)

    def _list_flowable(self, items: List[Block]) -> ListFlowable:
        """Build a (possibly nested) list from consecutive list blocks."""
        base_level = items[0].level
        entries = []
        index = 0
        while index < len(items):
            item = items[index]
            children = []
            index += 1
            while index < len(items) and items[index].level > base_level:
                children.append(items[index])
                index += 1
            content = [self._markdown_paragraph(item.text, self._styles["item"])]
            if children:
                content.append(self._list_flowable(children))
            value = item.number if item.kind == NUMBERED else None
            entries.append(ListItem(content, value=value) if value is not None else ListItem(content))

        if items[0].kind == NUMBERED:
            return ListFlowable(entries, bulletType="1", start=items[0].number or 1, leftIndent=18)
        return ListFlowable(entries, bulletType="bullet", start="•", leftIndent=14)
