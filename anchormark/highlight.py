"""Pygments highlighting for bookmarked source lines in CLI listings."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pygments import highlight
from pygments.formatters import Terminal256Formatter
from pygments.lexers import TextLexer, get_lexer_for_filename
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

DEFAULT_STYLE = "monokai"


@lru_cache(maxsize=32)
def normalize_style(style: str) -> str:
    """Return ``style`` when Pygments knows it, else the default style."""
    try:
        get_style_by_name(style)
    except ClassNotFound:
        return DEFAULT_STYLE
    return style


@lru_cache(maxsize=32)
def _formatter_for_style(style: str) -> Terminal256Formatter:
    return Terminal256Formatter(style=normalize_style(style))


@lru_cache(maxsize=256)
def _lexer_for_name(filename: str):
    try:
        return get_lexer_for_filename(filename)
    except ClassNotFound:
        return TextLexer()


def highlight_line(text: str, path: Path | str, style: str = DEFAULT_STYLE) -> str:
    """Colorize one source line using the lexer matching ``path``'s name."""
    if not text:
        return text
    rendered = highlight(text, _lexer_for_name(Path(path).name), _formatter_for_style(style))
    return rendered.rstrip("\n")


__all__ = ["DEFAULT_STYLE", "highlight_line", "normalize_style"]
