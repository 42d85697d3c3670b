from __future__ import annotations

import unittest
from pathlib import Path

from anchormark.anchors.display import display_bookmarks
from anchormark.anchors.store import AnchorStore
from anchormark.anchors.text import remove_blanks, spanned_text, symbol_fingerprint, truncate
from anchormark.anchors.types import PLAIN, PlainBookmark, SymbolAnchor, SymbolBookmark, SymbolRange
from anchormark.editor.buffer import SourceBuffer

PATH = Path("/workspace/display_sample.py")


class DisplayBookmarksTests(unittest.TestCase):
    def test_places_marker_and_truncated_comment_per_visible_bookmark(self) -> None:
        buffer = SourceBuffer(PATH, [f"row {index}" for index in range(10)])
        store = AnchorStore()
        plain = PlainBookmark(line=1, comment="short")
        symbolic = SymbolBookmark(symbol_range=SymbolRange(4, 8), offset=2, comment="a rather long explanation")
        hidden = PlainBookmark(line=40, comment="past the end")
        store.insert(buffer.name, PLAIN, plain)
        store.insert(buffer.name, PLAIN, hidden)
        store.insert(buffer.name, SymbolAnchor(12, "f"), symbolic)
        buffer.markers.place(9)
        buffer.decorations.attach(9, "stale")

        placed = display_bookmarks(store, buffer, comment_width=10)

        self.assertEqual(placed, 2)
        self.assertEqual([marker.line for marker in buffer.markers.query()], [1, 6])
        self.assertEqual(buffer.decorations.items(), [(1, "short"), (6, "a rathe...")])
        by_line = {buffer.markers.line_of(marker_id): store.lookup_marker(buffer.name, marker_id) for marker_id in store.marker_ids(buffer.name)}
        self.assertIs(by_line[1].bookmark, plain)
        self.assertIs(by_line[6].bookmark, symbolic)
        self.assertTrue(store.has_bookmarks(buffer.name))
        self.assertEqual(store.count(), 3)

    def test_redisplay_keeps_marker_ids_of_unmoved_bookmarks(self) -> None:
        buffer = SourceBuffer(PATH, ["a", "b", "c"])
        store = AnchorStore()
        bookmark = PlainBookmark(line=2)
        store.insert(buffer.name, PLAIN, bookmark)

        display_bookmarks(store, buffer)
        (first,) = store.marker_ids(buffer.name)
        display_bookmarks(store, buffer)

        self.assertEqual(store.marker_ids(buffer.name), [first])

        bookmark.line = 0
        display_bookmarks(store, buffer)
        self.assertNotEqual(store.marker_ids(buffer.name), [first])


class TextHelperTests(unittest.TestCase):
    def test_remove_blanks_strips_all_whitespace(self) -> None:
        self.assertEqual(remove_blanks(" def  f(a,\tb):\n  pass "), "deff(a,b):pass")

    def test_spanned_text_honors_columns_and_clamps(self) -> None:
        lines = ["class A:", "    def f(self):", "        return 1"]
        self.assertEqual(spanned_text(lines, SymbolRange(1, 2, 4, 14)), "def f(self):        return")
        self.assertEqual(spanned_text(lines, SymbolRange(2, 9, 0, 0)), "        return 1")
        self.assertEqual(spanned_text(lines, SymbolRange(5, 6)), "")
        self.assertEqual(symbol_fingerprint(lines, SymbolRange(0, 2, 0, 16)), "classA:deff(self):return1")

    def test_truncate_marks_cut_comments(self) -> None:
        self.assertEqual(truncate("fits", 15), "fits")
        self.assertEqual(truncate("exactly fifteen", 15), "exactly fifteen")
        self.assertEqual(truncate("this is too long to show", 15), "this is too ...")
        self.assertEqual(truncate("abc", 0), "")


if __name__ == "__main__":
    unittest.main()
