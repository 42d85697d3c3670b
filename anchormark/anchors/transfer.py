"""Carry bookmarks along with cut-and-paste.

Cutting captures the text together with the relative position and comment of
every marked line inside it, removing those bookmarks. Pasting re-inserts the
text and places fresh markers whose comments wait in the pending queue until
the next calibration materializes them.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass

from ..editor.buffer import SourceBuffer
from .store import AnchorStore


@dataclass(frozen=True)
class TransferEntry:
    offset_in_selection: int
    comment: str


class TransferBuffer:
    """Single-slot clipboard payload of text plus bookmark entries."""

    def __init__(self) -> None:
        self.text: str | None = None
        self.linewise = True
        self.entries: list[TransferEntry] = []
        self.yanked = False

    @property
    def has_payload(self) -> bool:
        """True while a cut is the most recent copy operation."""
        return self.text is not None and not self.yanked

    def note_external_copy(self) -> None:
        """Any unrelated copy invalidates the payload for later pastes."""
        self.yanked = True

    def cut(
        self,
        buffer: SourceBuffer,
        store: AnchorStore,
        pending_comments: MutableMapping[int, str],
        start_line: int,
        end_line: int,
        start_col: int = 0,
        end_col: int | None = None,
    ) -> str:
        """Delete a range, remembering the bookmarks inside it.

        ``end_col`` of ``None`` cuts whole lines; otherwise the cut is
        characterwise with both columns inclusive.
        """
        path = buffer.name
        self.entries = []
        self.text = None
        self.linewise = end_col is None

        for marker in buffer.markers.query():
            if not start_line <= marker.line <= end_line:
                continue
            if marker.id in pending_comments:
                comment = pending_comments.pop(marker.id)
            else:
                slot = store.lookup_marker(path, marker.id)
                comment = slot.bookmark.comment if slot is not None else ""
            self.entries.append(TransferEntry(offset_in_selection=marker.line - start_line, comment=comment))
            store.remove_by_marker(path, marker.id)
            buffer.markers.remove(marker.id)
        buffer.decorations.clear_range(start_line, end_line)

        if self.linewise:
            self.text = "\n".join(buffer.delete_lines(start_line, end_line))
        else:
            self.text = buffer.delete_text(start_line, start_col, end_line, end_col)
        self.yanked = False
        return self.text

    def paste(
        self,
        buffer: SourceBuffer,
        pending_comments: MutableMapping[int, str],
        cursor_line: int,
        cursor_col: int = 0,
    ) -> list[int] | None:
        """Insert the payload after the cursor; return the ids of the new markers.

        Returns ``None`` when there is no valid payload, leaving the buffer
        untouched.
        """
        if not self.has_payload:
            return None
        buffer.put(self.text, cursor_line, cursor_col, linewise=self.linewise)
        base = cursor_line + 1 if self.linewise else cursor_line
        marker_ids: list[int] = []
        for entry in self.entries:
            marker_id = buffer.markers.place(base + entry.offset_in_selection)
            pending_comments[marker_id] = entry.comment
            marker_ids.append(marker_id)
        return marker_ids


__all__ = ["TransferBuffer", "TransferEntry"]
