"""PDF rendering."""

from .pdf_renderer import ReportLabPdfRenderer

__all__ = ["ReportLabPdfRenderer"]
