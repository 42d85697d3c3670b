"""Text helpers for symbol fingerprints and comment labels."""

from __future__ import annotations

import re
from collections.abc import Sequence

from .types import SymbolRange

_BLANKS_RE = re.compile(r"\s+")


def remove_blanks(text: str) -> str:
    """Strip every whitespace character so reformatting does not change fingerprints."""
    return _BLANKS_RE.sub("", text)


def spanned_text(lines: Sequence[str], span: SymbolRange) -> str:
    """Return the text covered by ``span`` with lines joined without separators.

    Columns past the end of a line are clamped; lines outside the buffer are
    ignored, so a stale range yields a shorter (possibly empty) string.
    """
    if span.end_line < span.start_line or span.start_line >= len(lines):
        return ""
    last = min(span.end_line, len(lines) - 1)
    pieces: list[str] = []
    for line_idx in range(max(0, span.start_line), last + 1):
        text = lines[line_idx]
        start = span.start_col if line_idx == span.start_line else 0
        end = span.end_col if line_idx == span.end_line else len(text)
        pieces.append(text[max(0, start) : max(0, end)])
    return "".join(pieces)


def symbol_fingerprint(lines: Sequence[str], span: SymbolRange) -> str:
    return remove_blanks(spanned_text(lines, span))


def truncate(text: str, width: int) -> str:
    """Shorten ``text`` to ``width`` characters, ending in ``...`` when cut."""
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    if width <= 3:
        return text[:width]
    return text[: width - 3] + "..."
