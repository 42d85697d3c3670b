"""JSON persistence of one workspace's bookmark store.

Storage layout:
  <data_dir>/
    <sha256(root)[:16]>.json   # one document per workspace root

Document shape::

  {"version": 1, "root": "/abs/root",
   "files": {"/abs/file.py": {"plain": [record, ...],
                              "symbols": {"<kind>": {"<name>": {"<offset>": [record, ...]}}}}},
   "mtimes": {"/abs/file.py": <st_mtime_ns>}}

Marker ids are session-local and never written. ``mtimes`` holds the last
modification time seen for each bookmarked file, so a later session can tell
that a file was edited while no session was watching.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .anchors.store import AnchorStore
from .anchors.types import PLAIN, PlainBookmark, SymbolAnchor, SymbolBookmark
from .config import DEFAULT_DATA_DIR

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


@dataclass(frozen=True)
class StoreHandle:
    """Identity of the active workspace and where its bookmarks are kept."""

    root: Path
    path: Path


def bookmark_file_for(root: Path, data_dir: Path | None = None) -> Path:
    resolved = str(Path(root).resolve())
    digest = hashlib.sha256(resolved.encode("utf-8", errors="surrogateescape")).hexdigest()[:16]
    return Path(data_dir or DEFAULT_DATA_DIR) / f"{digest}.json"


def store_to_document(
    store: AnchorStore,
    root: Path | None = None,
    mtimes: Mapping[str, int] | None = None,
) -> dict[str, object]:
    store.prune_empty()
    files: dict[str, object] = {}
    for path in sorted(store.files):
        file_anchors = store.files[path]
        symbols: dict[str, dict[str, dict[str, list]]] = {}
        for kind in sorted(file_anchors.symbols):
            by_name = file_anchors.symbols[kind]
            symbols[str(kind)] = {
                name: {
                    str(offset): [bookmark.to_record() for bookmark in by_name[name][offset]]
                    for offset in sorted(by_name[name])
                }
                for name in sorted(by_name)
            }
        entry: dict[str, object] = {}
        if file_anchors.plain:
            entry["plain"] = [bookmark.to_record() for bookmark in file_anchors.plain]
        if symbols:
            entry["symbols"] = symbols
        files[path] = entry
    document: dict[str, object] = {"version": FORMAT_VERSION, "files": files}
    if root is not None:
        document["root"] = str(root)
    if mtimes:
        document["mtimes"] = {path: mtimes[path] for path in sorted(mtimes)}
    return document


def _load_plain(store: AnchorStore, path: str, records: object) -> None:
    if not isinstance(records, list):
        return
    for record in records:
        try:
            store.insert(path, PLAIN, PlainBookmark.from_record(record))
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.debug("skipping malformed plain record in %s: %s", path, exc)


def _load_symbols(store: AnchorStore, path: str, tree: object) -> None:
    if not isinstance(tree, dict):
        return
    for raw_kind, by_name in tree.items():
        try:
            kind = int(raw_kind)
        except (TypeError, ValueError):
            continue
        if not isinstance(by_name, dict):
            continue
        for name, by_offset in by_name.items():
            if not isinstance(by_offset, dict):
                continue
            anchor = SymbolAnchor(kind=kind, name=str(name))
            for raw_offset, records in by_offset.items():
                try:
                    offset = int(raw_offset)
                except (TypeError, ValueError):
                    continue
                if offset < 0 or not isinstance(records, list):
                    continue
                for record in records:
                    try:
                        bookmark = SymbolBookmark.from_record(record, offset)
                    except (KeyError, TypeError, ValueError, AttributeError) as exc:
                        logger.debug("skipping malformed symbol record in %s: %s", path, exc)
                        continue
                    store.insert(path, anchor, bookmark)


def store_from_document(document: object) -> AnchorStore:
    """Rebuild a store, skipping malformed parts of the document."""
    store = AnchorStore()
    if not isinstance(document, dict):
        return store
    files = document.get("files")
    if not isinstance(files, dict):
        return store
    for path, entry in files.items():
        if not isinstance(path, str) or not isinstance(entry, dict):
            continue
        _load_plain(store, path, entry.get("plain"))
        _load_symbols(store, path, entry.get("symbols"))
    store.prune_empty()
    return store


def mtimes_from_document(document: object) -> dict[str, int]:
    """Saved modification times; entries that are not integers are skipped."""
    if not isinstance(document, dict):
        return {}
    raw = document.get("mtimes")
    if not isinstance(raw, dict):
        return {}
    return {
        path: value
        for path, value in raw.items()
        if isinstance(path, str) and isinstance(value, int) and not isinstance(value, bool)
    }


def load_state(
    directory: Path,
    data_dir: Path | None = None,
) -> tuple[AnchorStore, dict[str, int], StoreHandle]:
    """Load the store and saved modification times of the workspace at ``directory``.

    A missing or unreadable document yields an empty store and no times.
    """
    root = Path(directory).resolve()
    handle = StoreHandle(root=root, path=bookmark_file_for(root, data_dir))
    try:
        document = json.loads(handle.path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return AnchorStore(), {}, handle
    except (OSError, ValueError) as exc:
        logger.warning("ignoring unreadable bookmark file %s: %s", handle.path, exc)
        return AnchorStore(), {}, handle
    return store_from_document(document), mtimes_from_document(document), handle


def load(directory: Path, data_dir: Path | None = None) -> tuple[AnchorStore, StoreHandle]:
    """Load only the bookmark store of the workspace rooted at ``directory``."""
    store, _mtimes, handle = load_state(directory, data_dir)
    return store, handle


def save(store: AnchorStore, handle: StoreHandle | None, mtimes: Mapping[str, int] | None = None) -> bool:
    """Write the store atomically; return False when nothing was written."""
    if handle is None:
        return False
    document = store_to_document(store, handle.root, mtimes)
    try:
        handle.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = handle.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(document, indent=2) + "\n", encoding="utf-8")
        tmp.replace(handle.path)
    except OSError as exc:
        logger.warning("could not save bookmarks to %s: %s", handle.path, exc)
        return False
    return True


__all__ = [
    "FORMAT_VERSION",
    "StoreHandle",
    "bookmark_file_for",
    "load",
    "load_state",
    "mtimes_from_document",
    "save",
    "store_from_document",
    "store_to_document",
]
