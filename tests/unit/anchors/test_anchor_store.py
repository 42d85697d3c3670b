from __future__ import annotations

import unittest

from anchormark.anchors.store import AnchorStore
from anchormark.anchors.types import PLAIN, PlainBookmark, SymbolAnchor, SymbolBookmark, SymbolRange

PATH = "/workspace/store_sample.py"
FOO = SymbolAnchor(kind=12, name="foo")
BAR = SymbolAnchor(kind=12, name="bar")


def symbol_bookmark(start: int, end: int, offset: int, comment: str = "") -> SymbolBookmark:
    return SymbolBookmark(symbol_range=SymbolRange(start, end), offset=offset, comment=comment)


def assert_no_empty_nodes(test: unittest.TestCase, store: AnchorStore) -> None:
    for path, file_anchors in store.files.items():
        test.assertFalse(file_anchors.is_empty(), path)
        for by_name in file_anchors.symbols.values():
            test.assertTrue(by_name)
            for by_offset in by_name.values():
                test.assertTrue(by_offset)
                for bucket in by_offset.values():
                    test.assertTrue(bucket)


class AnchorStoreStructureTests(unittest.TestCase):
    def test_ensure_path_creates_every_missing_level(self) -> None:
        store = AnchorStore()

        bucket = store.ensure_path(PATH, FOO, 3)

        self.assertEqual(bucket, [])
        self.assertIs(store.files[PATH].symbols[12]["foo"][3], bucket)
        self.assertIs(store.ensure_path(PATH, FOO, 3), bucket)
        self.assertIs(store.ensure_path(PATH, FOO), store.files[PATH].symbols[12]["foo"])
        self.assertIs(store.ensure_path(PATH), store.files[PATH].plain)

    def test_insert_rejects_mismatched_bookmark_variant(self) -> None:
        store = AnchorStore()
        with self.assertRaises(TypeError):
            store.insert(PATH, PLAIN, symbol_bookmark(0, 4, 1))
        with self.assertRaises(TypeError):
            store.insert(PATH, FOO, PlainBookmark(line=2))

    def test_duplicate_keys_share_one_bucket(self) -> None:
        store = AnchorStore()
        first = symbol_bookmark(0, 4, 1, "first")
        second = symbol_bookmark(10, 14, 1, "second")

        store.insert(PATH, FOO, first)
        store.insert(PATH, FOO, second)

        self.assertEqual(store.files[PATH].symbols[12]["foo"][1], [first, second])

    def test_remove_prunes_empty_nodes_bottom_up(self) -> None:
        store = AnchorStore()
        kept = symbol_bookmark(0, 4, 2)
        removed = symbol_bookmark(6, 9, 1)
        store.insert(PATH, FOO, kept)
        store.insert(PATH, BAR, removed)

        self.assertTrue(store.remove(PATH, BAR, removed))

        self.assertNotIn("bar", store.files[PATH].symbols[12])
        assert_no_empty_nodes(self, store)

        self.assertTrue(store.remove(PATH, FOO, kept))
        self.assertEqual(store.files, {})

    def test_remove_uses_explicit_offset_for_moved_bookmark(self) -> None:
        store = AnchorStore()
        bookmark = symbol_bookmark(0, 4, 3)
        store.insert(PATH, FOO, bookmark)
        bookmark.offset = 1

        self.assertFalse(store.remove(PATH, FOO, bookmark))
        self.assertTrue(store.remove(PATH, FOO, bookmark, offset=3))
        self.assertFalse(store.has_bookmarks(PATH))

    def test_remove_matches_identity_not_equal_content(self) -> None:
        store = AnchorStore()
        stored = PlainBookmark(line=4, comment="same")
        twin = PlainBookmark(line=4, comment="same")
        store.insert(PATH, PLAIN, stored)

        self.assertFalse(store.remove(PATH, PLAIN, twin))
        self.assertEqual(store.files[PATH].plain, [stored])

    def test_drop_name_returns_every_bookmark_under_that_name(self) -> None:
        store = AnchorStore()
        bookmarks = [symbol_bookmark(0, 9, 1), symbol_bookmark(0, 9, 5)]
        for bookmark in bookmarks:
            store.insert(PATH, FOO, bookmark)
        store.insert(PATH, PLAIN, PlainBookmark(line=20))

        dropped = store.drop_name(PATH, FOO)

        self.assertEqual(dropped, bookmarks)
        self.assertEqual(store.files[PATH].symbols, {})
        self.assertEqual(len(store.files[PATH].plain), 1)

    def test_prune_empty_clears_hand_made_empty_nodes(self) -> None:
        store = AnchorStore()
        store.ensure_path(PATH, FOO, 0)
        store.ensure_path("/workspace/empty.py")

        store.prune_empty()

        self.assertEqual(store.files, {})


class AnchorStoreTraversalTests(unittest.TestCase):
    def test_locations_are_sorted_by_path_then_line(self) -> None:
        store = AnchorStore()
        store.insert(PATH, PLAIN, PlainBookmark(line=30, comment="late"))
        store.insert(PATH, FOO, symbol_bookmark(4, 10, 2, "in foo"))
        store.insert("/workspace/a.py", PLAIN, PlainBookmark(line=1))

        locations = store.locations()

        self.assertEqual(
            [(item.path, item.line) for item in locations],
            [("/workspace/a.py", 1), (PATH, 6), (PATH, 30)],
        )
        self.assertEqual(locations[1].anchor, FOO)
        self.assertEqual(store.count(), 3)
        self.assertEqual([item.line for item in store.locations(PATH)], [6, 30])

    def test_symbol_buckets_snapshot_allows_restructuring(self) -> None:
        store = AnchorStore()
        store.insert(PATH, FOO, symbol_bookmark(0, 5, 1))
        store.insert(PATH, BAR, symbol_bookmark(7, 9, 0))

        for anchor, _offset, bucket in store.symbol_buckets(PATH):
            for bookmark in list(bucket):
                store.remove(PATH, anchor, bookmark)

        self.assertFalse(store.has_bookmarks(PATH))


class MarkerIndexTests(unittest.TestCase):
    def test_remove_by_marker_deletes_bound_bookmark(self) -> None:
        store = AnchorStore()
        bookmark = PlainBookmark(line=3)
        store.insert(PATH, PLAIN, bookmark)
        store.bind_marker(PATH, 41, PLAIN, bookmark)

        self.assertIs(store.lookup_marker(PATH, 41).bookmark, bookmark)
        self.assertIs(store.remove_by_marker(PATH, 41), bookmark)
        self.assertIsNone(store.lookup_marker(PATH, 41))
        self.assertFalse(store.has_bookmarks(PATH))
        self.assertIsNone(store.remove_by_marker(PATH, 41))

    def test_removing_a_bookmark_unbinds_its_marker(self) -> None:
        store = AnchorStore()
        bookmark = symbol_bookmark(0, 4, 1)
        store.insert(PATH, FOO, bookmark)
        store.bind_marker(PATH, 7, FOO, bookmark)

        store.drop_name(PATH, FOO)

        self.assertEqual(store.marker_ids(PATH), [])

    def test_markers_by_bookmark_is_scoped_to_one_file(self) -> None:
        store = AnchorStore()
        here = PlainBookmark(line=1)
        elsewhere = PlainBookmark(line=1)
        store.insert(PATH, PLAIN, here)
        store.insert("/workspace/other.py", PLAIN, elsewhere)
        store.bind_marker(PATH, 5, PLAIN, here)
        store.bind_marker("/workspace/other.py", 6, PLAIN, elsewhere)

        self.assertEqual(store.markers_by_bookmark(PATH), {here: 5})

        store.clear_markers(PATH)
        self.assertEqual(store.marker_ids(PATH), [])
        self.assertEqual(store.marker_ids("/workspace/other.py"), [6])


if __name__ == "__main__":
    unittest.main()
