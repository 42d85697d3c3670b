"""In-memory bookmark tree: file -> anchor kind -> symbol name -> offset -> bookmarks.

Plain bookmarks live in a flat list per file. Symbol-bound bookmarks live in
per-offset lists, since several bookmarks may legitimately share one
kind/name/offset triple (duplicate overloads). Live marker ids are tracked in
a secondary index so lookups never walk the tree.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from .types import (
    PLAIN,
    AnchorKind,
    Bookmark,
    BookmarkLocation,
    PlainAnchor,
    PlainBookmark,
    SymbolAnchor,
    SymbolBookmark,
)

SymbolTree = dict[int, dict[str, dict[int, list[SymbolBookmark]]]]


@dataclass
class FileAnchors:
    """All bookmarks of one file."""

    plain: list[PlainBookmark] = field(default_factory=list)
    symbols: SymbolTree = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.plain and not self.symbols


@dataclass(frozen=True)
class MarkerSlot:
    """Where the bookmark owning one live marker is stored."""

    anchor: AnchorKind
    bookmark: Bookmark


class AnchorStore:
    """Nested bookmark collection for one workspace."""

    def __init__(self) -> None:
        self.files: dict[str, FileAnchors] = {}
        self._marker_index: dict[tuple[str, int], MarkerSlot] = {}

    # --- structure ---

    def ensure_path(
        self,
        path: str,
        anchor: AnchorKind = PLAIN,
        offset: int | None = None,
    ) -> list | dict:
        """Return the deepest container for a key path, creating missing nodes.

        ``PLAIN`` yields the plain list. A ``SymbolAnchor`` yields the
        offset map of that name, or the bookmark list when ``offset`` is given.
        """
        file_anchors = self.files.setdefault(path, FileAnchors())
        if isinstance(anchor, PlainAnchor):
            return file_anchors.plain
        by_name = file_anchors.symbols.setdefault(anchor.kind, {})
        by_offset = by_name.setdefault(anchor.name, {})
        if offset is None:
            return by_offset
        return by_offset.setdefault(offset, [])

    def file(self, path: str) -> FileAnchors | None:
        return self.files.get(path)

    def has_bookmarks(self, path: str) -> bool:
        file_anchors = self.files.get(path)
        return file_anchors is not None and not file_anchors.is_empty()

    def insert(self, path: str, anchor: AnchorKind, bookmark: Bookmark) -> None:
        """Append ``bookmark`` to its bucket (offset is read from the bookmark)."""
        if isinstance(anchor, PlainAnchor):
            if not isinstance(bookmark, PlainBookmark):
                raise TypeError("plain anchor requires a PlainBookmark")
            self.ensure_path(path).append(bookmark)
            return
        if not isinstance(bookmark, SymbolBookmark):
            raise TypeError("symbol anchor requires a SymbolBookmark")
        self.ensure_path(path, anchor, bookmark.offset).append(bookmark)

    def _bucket(self, path: str, anchor: AnchorKind, offset: int | None) -> list | None:
        file_anchors = self.files.get(path)
        if file_anchors is None:
            return None
        if isinstance(anchor, PlainAnchor):
            return file_anchors.plain
        by_offset = file_anchors.symbols.get(anchor.kind, {}).get(anchor.name)
        if by_offset is None:
            return None
        return by_offset.get(offset)

    def remove(
        self,
        path: str,
        anchor: AnchorKind,
        bookmark: Bookmark,
        offset: int | None = None,
    ) -> bool:
        """Remove ``bookmark`` from its bucket and forget its marker binding.

        ``offset`` names the bucket when the bookmark's own offset has already
        been changed by the caller.
        """
        if offset is None and isinstance(bookmark, SymbolBookmark):
            offset = bookmark.offset
        bucket = self._bucket(path, anchor, offset)
        if bucket is None:
            return False
        for index, candidate in enumerate(bucket):
            if candidate is bookmark:
                del bucket[index]
                self._unbind_bookmark(path, bookmark)
                self._prune_file(path)
                return True
        return False

    def drop_name(self, path: str, anchor: SymbolAnchor) -> list[SymbolBookmark]:
        """Remove every bookmark stored under ``anchor`` and return them."""
        file_anchors = self.files.get(path)
        if file_anchors is None:
            return []
        by_name = file_anchors.symbols.get(anchor.kind)
        if by_name is None:
            return []
        by_offset = by_name.pop(anchor.name, {})
        dropped = [bookmark for bucket in by_offset.values() for bookmark in bucket]
        for bookmark in dropped:
            self._unbind_bookmark(path, bookmark)
        self._prune_file(path)
        return dropped

    def clear_file(self, path: str) -> None:
        self.files.pop(path, None)
        self.clear_markers(path)

    def _prune_file(self, path: str) -> None:
        file_anchors = self.files.get(path)
        if file_anchors is None:
            return
        for kind in list(file_anchors.symbols):
            by_name = file_anchors.symbols[kind]
            for name in list(by_name):
                by_offset = by_name[name]
                for offset in list(by_offset):
                    if not by_offset[offset]:
                        del by_offset[offset]
                if not by_offset:
                    del by_name[name]
            if not by_name:
                del file_anchors.symbols[kind]
        if file_anchors.is_empty():
            del self.files[path]

    def prune_empty(self) -> None:
        """Remove every empty map/list node bottom-up."""
        for path in list(self.files):
            self._prune_file(path)

    # --- traversal ---

    def symbol_buckets(self, path: str) -> list[tuple[SymbolAnchor, int, list[SymbolBookmark]]]:
        """Snapshot of ``(anchor, offset, bucket)`` triples for one file.

        The outer list is a copy so callers may restructure the tree while
        iterating; the buckets themselves are the live lists.
        """
        file_anchors = self.files.get(path)
        if file_anchors is None:
            return []
        out: list[tuple[SymbolAnchor, int, list[SymbolBookmark]]] = []
        for kind, by_name in file_anchors.symbols.items():
            for name, by_offset in by_name.items():
                anchor = SymbolAnchor(kind=kind, name=name)
                for offset, bucket in by_offset.items():
                    out.append((anchor, offset, bucket))
        return out

    def symbol_anchors(self, path: str) -> list[SymbolAnchor]:
        file_anchors = self.files.get(path)
        if file_anchors is None:
            return []
        return [
            SymbolAnchor(kind=kind, name=name)
            for kind, by_name in file_anchors.symbols.items()
            for name in by_name
        ]

    def iter_bookmarks(self, path: str) -> Iterator[tuple[AnchorKind, Bookmark]]:
        file_anchors = self.files.get(path)
        if file_anchors is None:
            return
        for bookmark in file_anchors.plain:
            yield PLAIN, bookmark
        for anchor, _offset, bucket in self.symbol_buckets(path):
            for bookmark in bucket:
                yield anchor, bookmark

    def locations(self, path: str | None = None) -> list[BookmarkLocation]:
        """Flat, line-sorted listing of bookmarks for one file or all files."""
        paths = [path] if path is not None else sorted(self.files)
        out: list[BookmarkLocation] = []
        for file_path in paths:
            for anchor, bookmark in self.iter_bookmarks(file_path):
                out.append(
                    BookmarkLocation(
                        path=file_path,
                        line=bookmark.line,
                        comment=bookmark.comment,
                        anchor=anchor,
                        bookmark=bookmark,
                    )
                )
        out.sort(key=lambda item: (item.path, item.line))
        return out

    def count(self) -> int:
        return sum(1 for path in self.files for _ in self.iter_bookmarks(path))

    # --- marker index ---

    def bind_marker(self, path: str, marker_id: int, anchor: AnchorKind, bookmark: Bookmark) -> None:
        self._marker_index[(path, marker_id)] = MarkerSlot(anchor=anchor, bookmark=bookmark)

    def lookup_marker(self, path: str, marker_id: int) -> MarkerSlot | None:
        return self._marker_index.get((path, marker_id))

    def unbind_marker(self, path: str, marker_id: int) -> None:
        self._marker_index.pop((path, marker_id), None)

    def marker_ids(self, path: str) -> list[int]:
        return sorted(marker_id for slot_path, marker_id in self._marker_index if slot_path == path)

    def markers_by_bookmark(self, path: str) -> dict[Bookmark, int]:
        """Marker id currently bound to each bookmark of ``path``."""
        return {
            slot.bookmark: marker_id
            for (slot_path, marker_id), slot in self._marker_index.items()
            if slot_path == path
        }

    def clear_markers(self, path: str) -> None:
        for key in [key for key in self._marker_index if key[0] == path]:
            del self._marker_index[key]

    def _unbind_bookmark(self, path: str, bookmark: Bookmark) -> None:
        stale = [
            key
            for key, slot in self._marker_index.items()
            if key[0] == path and slot.bookmark is bookmark
        ]
        for key in stale:
            del self._marker_index[key]

    def remove_by_marker(self, path: str, marker_id: int) -> Bookmark | None:
        """Delete the bookmark bound to ``marker_id``; return it when found."""
        slot = self._marker_index.pop((path, marker_id), None)
        if slot is None:
            return None
        self.remove(path, slot.anchor, slot.bookmark)
        return slot.bookmark


__all__ = ["AnchorStore", "FileAnchors", "MarkerSlot"]
