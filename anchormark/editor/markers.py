"""Line markers and inline comment decorations owned by one buffer.

Both tables follow line edits: entries below an insertion shift down,
entries below a deletion shift up, and entries on deleted lines vanish.
"""

from __future__ import annotations

import itertools

from ..anchors.types import Marker

# Marker ids are unique for the whole process, like editor sign ids.
_MARKER_IDS = itertools.count(1)


class MarkerTable:
    """Live markers of one buffer, addressed by session-unique id."""

    def __init__(self) -> None:
        self._lines: dict[int, int] = {}

    def place(self, line: int, marker_id: int | None = None) -> int:
        """Place a marker; an explicit ``marker_id`` re-places a known marker."""
        if marker_id is None:
            marker_id = next(_MARKER_IDS)
        self._lines[marker_id] = max(0, line)
        return marker_id

    def query(self) -> list[Marker]:
        markers = [Marker(id=marker_id, line=line) for marker_id, line in self._lines.items()]
        markers.sort(key=lambda marker: (marker.line, marker.id))
        return markers

    def at_line(self, line: int) -> list[Marker]:
        return [marker for marker in self.query() if marker.line == line]

    def line_of(self, marker_id: int) -> int | None:
        return self._lines.get(marker_id)

    def remove(self, marker_id: int) -> None:
        self._lines.pop(marker_id, None)

    def clear(self) -> None:
        self._lines.clear()

    def clear_range(self, start: int, end: int) -> None:
        """Remove markers on lines ``start..end`` inclusive."""
        for marker_id in [mid for mid, line in self._lines.items() if start <= line <= end]:
            del self._lines[marker_id]

    def lines_inserted(self, at: int, count: int) -> None:
        if count <= 0:
            return
        for marker_id, line in self._lines.items():
            if line >= at:
                self._lines[marker_id] = line + count

    def lines_deleted(self, start: int, count: int) -> None:
        if count <= 0:
            return
        self.clear_range(start, start + count - 1)
        for marker_id, line in self._lines.items():
            if line >= start + count:
                self._lines[marker_id] = line - count

    def __len__(self) -> int:
        return len(self._lines)


class DecorationTable:
    """Right-aligned comment annotations keyed by line."""

    def __init__(self) -> None:
        self._texts: dict[int, str] = {}

    def attach(self, line: int, text: str) -> None:
        self._texts[line] = text

    def get(self, line: int) -> str | None:
        return self._texts.get(line)

    def items(self) -> list[tuple[int, str]]:
        return sorted(self._texts.items())

    def clear(self) -> None:
        self._texts.clear()

    def clear_range(self, start: int, end: int) -> None:
        for line in [line for line in self._texts if start <= line <= end]:
            del self._texts[line]

    def lines_inserted(self, at: int, count: int) -> None:
        if count <= 0:
            return
        self._texts = {(line + count if line >= at else line): text for line, text in self._texts.items()}

    def lines_deleted(self, start: int, count: int) -> None:
        if count <= 0:
            return
        self.clear_range(start, start + count - 1)
        self._texts = {
            (line - count if line >= start + count else line): text for line, text in self._texts.items()
        }
