"""Symbol outlines: providers, LSP payload normalization and async queries."""

from __future__ import annotations

from .config import SymbolKind
from .provider import (
    SymbolProvider,
    TreeSitterSymbolProvider,
    collect_fallback_symbols,
    language_for_path,
    normalize_symbols,
    static_provider,
)

__all__ = [
    "SymbolKind",
    "SymbolProvider",
    "TreeSitterSymbolProvider",
    "collect_fallback_symbols",
    "language_for_path",
    "normalize_symbols",
    "static_provider",
]
