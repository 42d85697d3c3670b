"""Editor-side collaborators: text buffers with markers and decorations."""

from __future__ import annotations

from .buffer import SourceBuffer, read_text, split_text
from .markers import DecorationTable, MarkerTable

__all__ = [
    "DecorationTable",
    "MarkerTable",
    "SourceBuffer",
    "read_text",
    "split_text",
]
