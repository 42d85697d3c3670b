"""Two-phase calibration that keeps bookmarks aligned during normal editing.

Phase one trusts live markers: every bookmark that owns a marker is moved to
the marker's line (and re-bucketed under its enclosing symbol), and markers
without a bookmark materialize into new ones. Phase two re-validates the
remaining symbol-bound bookmarks against the fresh outline only; it refreshes
their symbol data but never moves them, because without a marker there is no
reliable new position.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, MutableMapping, Sequence
from dataclasses import dataclass, field

from ..editor.buffer import SourceBuffer
from ..symbols.query import SymbolQueryScheduler
from .bridge import MarkerBridge, anchor_of
from .matching import best_match, candidates_for, renamed_symbol
from .store import AnchorStore
from .types import Bookmark, Symbol, SymbolAnchor, SymbolBookmark

logger = logging.getLogger(__name__)

DEFAULT_CALIBRATION_TIMEOUT_SECONDS = 0.5


@dataclass
class CalibrationReport:
    """Outcome of one calibration run for one buffer."""

    path: str
    symbol_count: int = 0
    visited: int = 0
    refreshed: int = 0
    renamed: int = 0
    dropped: list[Bookmark] = field(default_factory=list)


class CalibrationEngine:
    """Runs calibration for buffers of one workspace.

    ``current_context`` returns the identity of the active workspace; an
    asynchronous run captures it when the query is issued and discards the
    outline if the identity changed by the time the answer arrives.
    ``after_run`` is invoked with the buffer once a run has been applied
    (redisplay and persistence live there).
    """

    def __init__(
        self,
        store: AnchorStore,
        pending_comments: MutableMapping[int, str],
        scheduler: SymbolQueryScheduler,
        *,
        current_context: Callable[[], object] = lambda: None,
        after_run: Callable[[SourceBuffer], None] | None = None,
        timeout_seconds: float = DEFAULT_CALIBRATION_TIMEOUT_SECONDS,
    ) -> None:
        self.store = store
        self.scheduler = scheduler
        self.bridge = MarkerBridge(store, pending_comments)
        self.current_context = current_context
        self.after_run = after_run
        self.timeout_seconds = timeout_seconds

    def calibrate(self, buffer: SourceBuffer, *, blocking: bool = True) -> CalibrationReport | None:
        """Start a calibration run for ``buffer``.

        Blocking runs query the outline with a timeout and apply it at once,
        returning the report. Non-blocking runs return ``None`` immediately;
        the outline is applied when the scheduler is drained.
        """
        path = buffer.name
        self.store.prune_empty()
        if len(buffer.markers) == 0 and not self.store.has_bookmarks(path):
            return None

        if blocking:
            symbols = self.scheduler.query_blocking(buffer, self.timeout_seconds)
            return self.apply(buffer, symbols)

        context = self.current_context()

        def resume(symbols: list[Symbol]) -> None:
            if context is not None and context != self.current_context():
                logger.debug("discarding stale outline for %s", path)
                return
            self.apply(buffer, symbols)

        self.scheduler.request(buffer, resume)
        return None

    def apply(self, buffer: SourceBuffer, symbols: Sequence[Symbol]) -> CalibrationReport:
        """Run both phases against one outline snapshot."""
        path = buffer.name
        report = CalibrationReport(path=path, symbol_count=len(symbols))
        visited: set[Bookmark] = set()

        self.bridge.reconcile(buffer, symbols, visited)
        self.store.prune_empty()
        report.visited = len(visited)

        self._revalidate(buffer, symbols, visited, report)

        self.store.prune_empty()
        if self.after_run is not None:
            self.after_run(buffer)
        if report.dropped:
            logger.debug("calibration of %s dropped %d bookmark(s)", path, len(report.dropped))
        return report

    def _revalidate(
        self,
        buffer: SourceBuffer,
        symbols: Sequence[Symbol],
        visited: set[Bookmark],
        report: CalibrationReport,
    ) -> None:
        path = buffer.name
        for anchor in self.store.symbol_anchors(path):
            candidates = candidates_for(symbols, anchor.kind, anchor.name)
            if not candidates:
                self._follow_renames(buffer, anchor, symbols, visited, report)
                report.dropped.extend(self.store.drop_name(path, anchor))
                continue

            for bucket_anchor, offset, bucket in self.store.symbol_buckets(path):
                if bucket_anchor != anchor:
                    continue
                for bookmark in list(bucket):
                    if bookmark in visited:
                        continue
                    symbol = candidates[best_match(bookmark, candidates, buffer.lines)]
                    if offset > symbol.range.height:
                        self.store.remove(path, anchor, bookmark)
                        report.dropped.append(bookmark)
                        continue
                    self._refresh(buffer, bookmark, symbol)
                    report.refreshed += 1

    def _follow_renames(
        self,
        buffer: SourceBuffer,
        anchor: SymbolAnchor,
        symbols: Sequence[Symbol],
        visited: set[Bookmark],
        report: CalibrationReport,
    ) -> None:
        """Move bookmarks of a vanished name to its renamed symbol, keeping their offset."""
        path = buffer.name
        for bucket_anchor, offset, bucket in self.store.symbol_buckets(path):
            if bucket_anchor != anchor:
                continue
            for bookmark in list(bucket):
                if bookmark in visited:
                    continue
                symbol = renamed_symbol(bookmark, anchor.name, symbols, anchor.kind, buffer.lines)
                if symbol is None or offset > symbol.range.height:
                    continue
                self.store.remove(path, anchor, bookmark)
                self._refresh(buffer, bookmark, symbol)
                self.store.insert(path, anchor_of(symbol), bookmark)
                visited.add(bookmark)
                report.renamed += 1
                logger.debug("followed rename %s -> %s in %s", anchor.name, symbol.name, path)

    @staticmethod
    def _refresh(buffer: SourceBuffer, bookmark: SymbolBookmark, symbol: Symbol) -> None:
        bookmark.symbol_range = symbol.range
        bookmark.details = symbol.details
        bookmark.line_text = buffer.line(bookmark.line)
        bookmark.symbol_text = buffer.fingerprint(symbol.range)


__all__ = ["CalibrationEngine", "CalibrationReport", "DEFAULT_CALIBRATION_TIMEOUT_SECONDS"]
