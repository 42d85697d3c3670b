"""Workspace session: owns the bookmark store and routes editor events.

One ``Session`` serves one workspace root at a time. Every operation takes the
buffer it acts on explicitly; nothing is read from global editor state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from . import persistence
from .anchors.calibration import CalibrationEngine, CalibrationReport
from .anchors.display import display_bookmarks
from .anchors.relocation import MtimeTracker, RelocationEngine, RelocationReport
from .anchors.store import AnchorStore
from .anchors.transfer import TransferBuffer
from .anchors.types import BookmarkLocation
from .config import Settings, load_settings
from .editor.buffer import SourceBuffer
from .persistence import StoreHandle
from .symbols.provider import SymbolProvider
from .symbols.query import SymbolQueryScheduler

logger = logging.getLogger(__name__)

NO_BOOKMARK_MESSAGE = "Couldn't find a bookmark under the cursor."

PromptCallback = Callable[[str | None], None]
PromptFn = Callable[[str, str, PromptCallback], None]


def _log_message(message: str) -> None:
    logger.info("%s", message)


class Session:
    """Bookmark state and event handlers for one workspace.

    ``provider`` answers symbol queries (``None`` means no symbol support and
    degrades every file to plain bookmarks). ``prompt`` asks the user for
    free text and reports the answer through a callback, possibly later.
    ``notify`` shows short user-facing messages.
    """

    def __init__(
        self,
        provider: SymbolProvider | None = None,
        *,
        settings: Settings | None = None,
        prompt: PromptFn | None = None,
        notify: Callable[[str], None] = _log_message,
    ) -> None:
        self.settings = settings or load_settings()
        self.prompt = prompt
        self.notify = notify
        self.store = AnchorStore()
        self.handle: StoreHandle | None = None
        self.pending_comments: dict[int, str] = {}
        self.mtimes = MtimeTracker()
        self.transfer = TransferBuffer()
        self.scheduler = SymbolQueryScheduler(provider)
        self._bind_engines()

    def _bind_engines(self) -> None:
        self.calibration = CalibrationEngine(
            self.store,
            self.pending_comments,
            self.scheduler,
            current_context=lambda: self.handle,
            after_run=self._after_run,
            timeout_seconds=self.settings.calibration_timeout_seconds,
        )
        self.relocation = RelocationEngine(
            self.store,
            self.scheduler,
            after_run=self._after_run,
            timeout_seconds=self.settings.relocation_timeout_seconds,
        )

    # --- workspace lifecycle ---

    def open_workspace(self, root: Path) -> StoreHandle:
        """Save the current workspace (if any) and load the one at ``root``."""
        if self.handle is not None:
            self.close_workspace()
        self.store, baselines, self.handle = persistence.load_state(root, self.settings.data_dir)
        self.pending_comments.clear()
        self.mtimes.reset(baselines)
        self._bind_engines()
        logger.debug("opened workspace %s (%d bookmarks)", self.handle.root, self.store.count())
        return self.handle

    def close_workspace(self) -> None:
        self.store.prune_empty()
        self.save()
        self.handle = None
        self.store = AnchorStore()
        self.pending_comments.clear()
        self._bind_engines()

    def save(self) -> bool:
        self.store.prune_empty()
        baselines = {path: mtime for path, mtime in self.mtimes.snapshot().items() if path in self.store.files}
        return persistence.save(self.store, self.handle, baselines)

    def _after_run(self, buffer: SourceBuffer) -> None:
        display_bookmarks(self.store, buffer, self.settings.comment_width)
        self.save()

    def display(self, buffer: SourceBuffer) -> int:
        return display_bookmarks(self.store, buffer, self.settings.comment_width)

    def poll(self) -> int:
        """Apply symbol answers that arrived since the last poll."""
        return self.scheduler.drain()

    def shutdown(self) -> None:
        self.close_workspace()
        self.scheduler.shutdown()

    # --- editor events ---

    def calibrate(self, buffer: SourceBuffer, *, blocking: bool = True) -> CalibrationReport | None:
        return self.calibration.calibrate(buffer, blocking=blocking)

    def on_buffer_enter(self, buffer: SourceBuffer) -> CalibrationReport | None:
        """Calibrate unsaved edits on entry; otherwise just refresh the display."""
        if buffer.modified:
            return self.calibrate(buffer)
        self.display(buffer)
        return None

    def on_buffer_write(self, buffer: SourceBuffer) -> CalibrationReport | None:
        # Our own write must not look like an external change on the next read.
        self.mtimes.observe(buffer.name)
        return self.calibrate(buffer)

    def on_buffer_read(self, buffer: SourceBuffer) -> RelocationReport | None:
        """Relocate when the file changed on disk since it was last seen.

        Every read records the baseline, including reads of files that have no
        bookmarks yet, so bookmarks added afterwards are compared against it.
        """
        if buffer.readonly:
            return None
        changed = self.mtimes.observe(buffer.name)
        if not changed or not self.store.has_bookmarks(buffer.name):
            return None
        report = self.relocation.relocate(buffer)
        if report.clamped:
            self.notify(
                f"{len(report.clamped)} bookmark(s) in {buffer.path.name} moved to the end of a shrunken symbol."
            )
        return report

    # --- bookmark commands ---

    def marker_at(self, buffer: SourceBuffer, line: int) -> int | None:
        markers = buffer.markers.at_line(line)
        return markers[0].id if markers else None

    def toggle_bookmark(self, buffer: SourceBuffer, line: int, *, with_comment: bool = False) -> bool:
        """Remove the bookmark on ``line`` or create one; True when one was created."""
        if buffer.modified:
            self.calibrate(buffer)
        if self.marker_at(buffer, line) is not None:
            self.delete_bookmark(buffer, line)
            return False
        marker_id = buffer.markers.place(line)
        if with_comment:
            self._ask_comment(buffer, marker_id, "")
        self.calibrate(buffer)
        return True

    def _ask_comment(self, buffer: SourceBuffer, marker_id: int, default: str) -> None:
        if self.prompt is None:
            return
        path = buffer.name

        def apply(answer: str | None) -> None:
            comment = answer or ""
            slot = self.store.lookup_marker(path, marker_id)
            if slot is None:
                self.pending_comments[marker_id] = comment
                return
            slot.bookmark.comment = comment
            self.display(buffer)
            self.save()

        self.prompt("Input new comment: ", default, apply)

    def modify_comment(self, buffer: SourceBuffer, line: int) -> bool:
        if buffer.modified:
            self.calibrate(buffer)
        marker_id = self.marker_at(buffer, line)
        if marker_id is None:
            self.notify(NO_BOOKMARK_MESSAGE)
            return False
        slot = self.store.lookup_marker(buffer.name, marker_id)
        default = slot.bookmark.comment if slot is not None else self.pending_comments.get(marker_id, "")
        self._ask_comment(buffer, marker_id, default)
        self.calibrate(buffer)
        return True

    def show_comment(self, buffer: SourceBuffer, line: int) -> str | None:
        marker_id = self.marker_at(buffer, line)
        if marker_id is None:
            self.notify(NO_BOOKMARK_MESSAGE)
            return None
        if marker_id in self.pending_comments:
            comment = self.pending_comments[marker_id]
        else:
            slot = self.store.lookup_marker(buffer.name, marker_id)
            comment = slot.bookmark.comment if slot is not None else ""
        self.notify(comment)
        return comment

    def delete_bookmark(self, buffer: SourceBuffer, line: int) -> int:
        """Delete every bookmark marked on ``line``; return how many went away."""
        removed = 0
        for marker in buffer.markers.at_line(line):
            if self.store.remove_by_marker(buffer.name, marker.id) is not None:
                removed += 1
            self.pending_comments.pop(marker.id, None)
            buffer.markers.remove(marker.id)
        buffer.decorations.clear_range(line, line)
        self.save()
        return removed

    # --- cut and paste ---

    def delete_line(self, buffer: SourceBuffer, line: int) -> str:
        text = self.transfer.cut(buffer, self.store, self.pending_comments, line, line)
        self.save()
        return text

    def delete_selection(
        self,
        buffer: SourceBuffer,
        start_line: int,
        start_col: int,
        end_line: int,
        end_col: int,
    ) -> str:
        text = self.transfer.cut(
            buffer,
            self.store,
            self.pending_comments,
            start_line,
            end_line,
            start_col=start_col,
            end_col=end_col,
        )
        self.save()
        return text

    def note_yank(self) -> None:
        self.transfer.note_external_copy()

    def paste(self, buffer: SourceBuffer, cursor_line: int, cursor_col: int = 0) -> bool:
        """Replay the last cut after the cursor; False when there is nothing to replay."""
        if self.transfer.paste(buffer, self.pending_comments, cursor_line, cursor_col) is None:
            return False
        self.calibrate(buffer)
        return True

    # --- listings ---

    def bookmarks_for(self, path: Path | str) -> list[BookmarkLocation]:
        return self.store.locations(str(Path(path).resolve()))

    def all_bookmarks(self) -> list[BookmarkLocation]:
        return self.store.locations()


__all__ = ["NO_BOOKMARK_MESSAGE", "PromptFn", "Session"]
