"""Bookmark data model and the engines that keep bookmarks aligned.

This package file only re-exports the plain data types and the store; the
calibration, relocation and transfer engines are imported from their
modules since they depend on the editor model.
"""

from __future__ import annotations

from .store import AnchorStore, FileAnchors, MarkerSlot
from .types import (
    PLAIN,
    AnchorKind,
    Bookmark,
    BookmarkLocation,
    Marker,
    PlainAnchor,
    PlainBookmark,
    Symbol,
    SymbolAnchor,
    SymbolBookmark,
    SymbolRange,
)

__all__ = [
    "PLAIN",
    "AnchorKind",
    "AnchorStore",
    "Bookmark",
    "BookmarkLocation",
    "FileAnchors",
    "Marker",
    "MarkerSlot",
    "PlainAnchor",
    "PlainBookmark",
    "Symbol",
    "SymbolAnchor",
    "SymbolBookmark",
    "SymbolRange",
]
