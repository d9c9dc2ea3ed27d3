"""Plain narration text from raw HTML."""

from __future__ import annotations

import html
import re

_HIDDEN_BLOCK_PATTERN = re.compile(
    r"<(script|style)\b[^>]*>.*?</\1\s*>|<!--.*?(?:-->|$)",
    re.IGNORECASE | re.DOTALL,
)
# An unterminated "<" swallows the rest of the input.
_HTML_TAG_PATTERN = re.compile(r"<[^>]*(?:>|$)")
_ANGLE_BRACKET_PATTERN = re.compile(r"[<>]")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def extract_narration_text(raw_html: str | None) -> str:
    """Return whitespace-normalised text with every markup span removed.

    Tags are replaced by a space so adjacent block elements keep their words
    apart, ``<script>``/``<style>`` bodies and comments are dropped, and
    character references are decoded afterwards. The result never contains
    ``<`` or ``>`` and has no runs of whitespace. Empty or malformed input
    yields ``""``.
    """

    if not raw_html:
        return ""
    text = _HIDDEN_BLOCK_PATTERN.sub(" ", raw_html)
    text = _HTML_TAG_PATTERN.sub(" ", text)
    text = html.unescape(text)
    text = _ANGLE_BRACKET_PATTERN.sub(" ", text)
    return _WHITESPACE_PATTERN.sub(" ", text).strip()


__all__ = ["extract_narration_text"]
