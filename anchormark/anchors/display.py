"""Re-place markers and comment decorations from the stored bookmarks."""

from __future__ import annotations

from ..editor.buffer import SourceBuffer
from .store import AnchorStore
from .text import truncate

DEFAULT_COMMENT_WIDTH = 15


def display_bookmarks(store: AnchorStore, buffer: SourceBuffer, comment_width: int = DEFAULT_COMMENT_WIDTH) -> int:
    """Clear the buffer's markers and decorations, then place one per bookmark.

    A bookmark whose previous marker still sits on its line keeps that marker
    id. Bookmarks whose line lies past the end of the buffer stay stored but
    get no marker. The store's marker index for the file is rebuilt; returns
    the number of markers placed.
    """
    path = buffer.name
    previous = {
        bookmark: (marker_id, buffer.markers.line_of(marker_id))
        for bookmark, marker_id in store.markers_by_bookmark(path).items()
    }
    buffer.markers.clear()
    buffer.decorations.clear()
    store.clear_markers(path)

    placed = 0
    line_count = buffer.line_count()
    for anchor, bookmark in list(store.iter_bookmarks(path)):
        line = bookmark.line
        if line < 0 or line >= line_count:
            continue
        reuse_id, reuse_line = previous.get(bookmark, (None, None))
        marker_id = buffer.markers.place(line, reuse_id if reuse_line == line else None)
        store.bind_marker(path, marker_id, anchor, bookmark)
        buffer.decorations.attach(line, truncate(bookmark.comment, comment_width))
        placed += 1
    return placed
