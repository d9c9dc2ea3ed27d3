"""Narration text sources."""

from .extraction import extract_narration_text
from .fetch import PageFetchError, fetch_page_html

__all__ = ["PageFetchError", "extract_narration_text", "fetch_page_html"]
