"""Translate live editor markers into stored bookmarks.

A marker is the authoritative position of its bookmark. Markers without a
bookmark (fresh toggles, pasted text, external tooling) materialize into one,
bound to the innermost enclosing symbol when there is one.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping, Sequence

from ..editor.buffer import SourceBuffer
from .matching import enclosing_symbol
from .store import AnchorStore
from .types import (
    PLAIN,
    Bookmark,
    Marker,
    PlainBookmark,
    Symbol,
    SymbolAnchor,
    SymbolBookmark,
)

logger = logging.getLogger(__name__)


def anchor_of(symbol: Symbol) -> SymbolAnchor:
    return SymbolAnchor(kind=symbol.kind, name=symbol.name)


def bookmark_for_symbol(
    buffer: SourceBuffer,
    symbol: Symbol,
    line: int,
    *,
    column: int = 0,
    comment: str = "",
) -> SymbolBookmark:
    """Build a bookmark on ``line`` anchored to ``symbol``."""
    return SymbolBookmark(
        symbol_range=symbol.range,
        offset=line - symbol.range.start_line,
        column=column,
        line_text=buffer.line(line),
        comment=comment,
        details=symbol.details,
        symbol_text=buffer.fingerprint(symbol.range),
    )


class MarkerBridge:
    """Phase-one reconciliation of markers against the bookmark store."""

    def __init__(self, store: AnchorStore, pending_comments: MutableMapping[int, str]) -> None:
        self.store = store
        self.pending_comments = pending_comments

    def reconcile(
        self,
        buffer: SourceBuffer,
        symbols: Sequence[Symbol],
        visited: set[Bookmark],
    ) -> None:
        """Align every bookmark that owns a live marker; add reached bookmarks to ``visited``."""
        for marker in buffer.markers.query():
            bookmark = self.reconcile_marker(buffer, marker, symbols)
            visited.add(bookmark)

    def reconcile_marker(self, buffer: SourceBuffer, marker: Marker, symbols: Sequence[Symbol]) -> Bookmark:
        path = buffer.name
        slot = self.store.lookup_marker(path, marker.id)
        if slot is None:
            return self._materialize(buffer, marker, symbols)

        bookmark = slot.bookmark
        if isinstance(bookmark, PlainBookmark):
            bookmark.line = marker.line
            bookmark.line_text = buffer.line(marker.line)
            return bookmark

        symbol = enclosing_symbol(symbols, marker.line)
        self.store.remove(path, slot.anchor, bookmark)
        if symbol is None:
            logger.debug("%s:%d left every symbol; keeping it as a plain bookmark", path, marker.line + 1)
            moved: Bookmark = PlainBookmark(
                line=marker.line,
                column=bookmark.column,
                line_text=buffer.line(marker.line),
                comment=bookmark.comment,
            )
            self.store.insert(path, PLAIN, moved)
            self.store.bind_marker(path, marker.id, PLAIN, moved)
            return moved

        moved = bookmark_for_symbol(
            buffer,
            symbol,
            marker.line,
            column=bookmark.column,
            comment=bookmark.comment,
        )
        anchor = anchor_of(symbol)
        self.store.insert(path, anchor, moved)
        self.store.bind_marker(path, marker.id, anchor, moved)
        return moved

    def _materialize(self, buffer: SourceBuffer, marker: Marker, symbols: Sequence[Symbol]) -> Bookmark:
        path = buffer.name
        comment = self.pending_comments.pop(marker.id, "")
        symbol = enclosing_symbol(symbols, marker.line)
        if symbol is None:
            bookmark: Bookmark = PlainBookmark(line=marker.line, line_text=buffer.line(marker.line), comment=comment)
            self.store.insert(path, PLAIN, bookmark)
            self.store.bind_marker(path, marker.id, PLAIN, bookmark)
            return bookmark

        bookmark = bookmark_for_symbol(buffer, symbol, marker.line, comment=comment)
        anchor = anchor_of(symbol)
        self.store.insert(path, anchor, bookmark)
        self.store.bind_marker(path, marker.id, anchor, bookmark)
        logger.debug("materialized bookmark on %s:%d under %s", path, marker.line + 1, symbol.name)
        return bookmark
