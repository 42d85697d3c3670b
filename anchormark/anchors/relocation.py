"""Symbol-only reconciliation after a file changed outside the session.

No marker can be trusted after an unseen edit, so every symbol-bound bookmark
is re-matched by fingerprint and details alone. Offsets past the end of the
matched symbol are clamped rather than dropped; each clamp is reported so
callers can surface that the bookmark may now sit on a different statement.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from ..editor.buffer import SourceBuffer
from ..symbols.query import SymbolQueryScheduler
from .bridge import anchor_of
from .matching import best_relocation_match, candidates_for
from .store import AnchorStore
from .types import Symbol, SymbolBookmark

logger = logging.getLogger(__name__)

DEFAULT_RELOCATION_TIMEOUT_SECONDS = 1.0


class MtimeTracker:
    """Remember the last seen modification time of each file."""

    def __init__(self) -> None:
        self._mtimes: dict[str, int] = {}

    def observe(self, path: Path | str) -> bool:
        """Record the current mtime; True only when it strictly increased.

        The first observation of a path only sets the baseline. Missing or
        unreadable files are ignored.
        """
        key = str(path)
        try:
            current = os.stat(key).st_mtime_ns
        except OSError:
            return False
        previous = self._mtimes.get(key)
        if previous is None:
            self._mtimes[key] = current
            return False
        if current <= previous:
            return False
        self._mtimes[key] = current
        return True

    def forget(self, path: Path | str) -> None:
        self._mtimes.pop(str(path), None)

    def reset(self, baselines: Mapping[str, int] | None = None) -> None:
        """Forget every path, then seed baselines saved by an earlier session."""
        self._mtimes.clear()
        if baselines:
            self._mtimes.update(baselines)

    def snapshot(self) -> dict[str, int]:
        return dict(self._mtimes)


@dataclass(frozen=True)
class ClampedBookmark:
    """A bookmark whose offset no longer fit its symbol."""

    name: str
    bookmark: SymbolBookmark
    old_offset: int
    new_offset: int


@dataclass
class RelocationReport:
    path: str
    aborted: bool = False
    relocated: int = 0
    dropped: list[SymbolBookmark] = field(default_factory=list)
    clamped: list[ClampedBookmark] = field(default_factory=list)


class RelocationEngine:
    """Re-anchor symbol-bound bookmarks of one buffer from a fresh outline."""

    def __init__(
        self,
        store: AnchorStore,
        scheduler: SymbolQueryScheduler,
        *,
        after_run: Callable[[SourceBuffer], None] | None = None,
        timeout_seconds: float = DEFAULT_RELOCATION_TIMEOUT_SECONDS,
    ) -> None:
        self.store = store
        self.scheduler = scheduler
        self.after_run = after_run
        self.timeout_seconds = timeout_seconds

    def relocate(self, buffer: SourceBuffer) -> RelocationReport:
        """Query the outline (bounded by the timeout) and relocate against it."""
        if not self.store.has_bookmarks(buffer.name):
            return RelocationReport(path=buffer.name, aborted=True)
        symbols = self.scheduler.query_blocking(buffer, self.timeout_seconds)
        return self.apply(buffer, symbols)

    def apply(self, buffer: SourceBuffer, symbols: Sequence[Symbol]) -> RelocationReport:
        path = buffer.name
        report = RelocationReport(path=path)
        if not symbols:
            # Without an outline nothing can be matched; leave every bookmark alone.
            report.aborted = True
            logger.debug("relocation of %s skipped: no symbols", path)
            return report

        buffer.markers.clear()
        buffer.decorations.clear()
        self.store.clear_markers(path)
        handled: set[SymbolBookmark] = set()

        for anchor in self.store.symbol_anchors(path):
            candidates = candidates_for(symbols, anchor.kind, anchor.name)
            if not candidates:
                report.dropped.extend(self.store.drop_name(path, anchor))
                continue

            for bucket_anchor, offset, bucket in self.store.symbol_buckets(path):
                if bucket_anchor != anchor:
                    continue
                for bookmark in list(bucket):
                    if bookmark in handled:
                        continue
                    handled.add(bookmark)
                    symbol = candidates[best_relocation_match(bookmark, candidates, buffer.lines)]
                    new_offset = min(offset, symbol.range.height)

                    bookmark.symbol_range = symbol.range
                    bookmark.details = symbol.details
                    bookmark.symbol_text = buffer.fingerprint(symbol.range)
                    line = symbol.range.start_line + new_offset
                    if line < buffer.line_count():
                        bookmark.line_text = buffer.line(line)
                    report.relocated += 1

                    if new_offset != offset:
                        self.store.remove(path, anchor, bookmark, offset=offset)
                        bookmark.offset = new_offset
                        self.store.insert(path, anchor_of(symbol), bookmark)
                        report.clamped.append(
                            ClampedBookmark(
                                name=anchor.name,
                                bookmark=bookmark,
                                old_offset=offset,
                                new_offset=new_offset,
                            )
                        )
                        logger.warning(
                            "%s: bookmark in %s clamped from offset %d to %d (line %d)",
                            path,
                            anchor.name,
                            offset,
                            new_offset,
                            line + 1,
                        )

        self.store.prune_empty()
        if self.after_run is not None:
            self.after_run(buffer)
        return report


__all__ = [
    "ClampedBookmark",
    "DEFAULT_RELOCATION_TIMEOUT_SECONDS",
    "MtimeTracker",
    "RelocationEngine",
    "RelocationReport",
]
