from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from anchormark.anchors.types import SymbolRange
from anchormark.editor.buffer import SourceBuffer, read_text, split_text
from anchormark.editor.markers import DecorationTable, MarkerTable


class SplitAndReadTests(unittest.TestCase):
    def test_split_text_ignores_single_trailing_newline(self) -> None:
        self.assertEqual(split_text(""), [])
        self.assertEqual(split_text("a\nb\n"), ["a", "b"])
        self.assertEqual(split_text("a\r\nb"), ["a", "b"])
        self.assertEqual(split_text("a\n\n"), ["a", ""])

    def test_read_text_falls_back_to_latin1(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "legacy.txt"
            path.write_bytes(b"caf\xe9\n")
            self.assertEqual(read_text(path), "caf\xe9\n")

    def test_from_path_rejects_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(FileNotFoundError):
                SourceBuffer.from_path(Path(tmp) / "missing.py")


class MarkerTableTests(unittest.TestCase):
    def test_markers_shift_with_line_edits_and_vanish_on_deleted_lines(self) -> None:
        table = MarkerTable()
        top = table.place(1)
        middle = table.place(5)
        bottom = table.place(9)

        table.lines_inserted(3, 2)
        self.assertEqual([marker.line for marker in table.query()], [1, 7, 11])

        table.lines_deleted(6, 3)
        self.assertEqual({marker.id: marker.line for marker in table.query()}, {top: 1, bottom: 8})
        self.assertIsNone(table.line_of(middle))

    def test_query_orders_by_line_then_id(self) -> None:
        table = MarkerTable()
        late = table.place(4)
        early = table.place(2)
        twin = table.place(4)

        self.assertEqual([marker.id for marker in table.query()], [early, late, twin])
        self.assertEqual([marker.id for marker in table.at_line(4)], [late, twin])

    def test_explicit_id_replaces_known_marker(self) -> None:
        table = MarkerTable()
        marker_id = table.place(3)
        table.place(7, marker_id)
        self.assertEqual(len(table), 1)
        self.assertEqual(table.line_of(marker_id), 7)

    def test_decorations_follow_the_same_rules(self) -> None:
        table = DecorationTable()
        table.attach(2, "keep")
        table.attach(4, "gone")
        table.attach(8, "moves")

        table.lines_deleted(3, 2)
        table.lines_inserted(0, 1)

        self.assertEqual(table.items(), [(3, "keep"), (7, "moves")])
        table.clear_range(0, 5)
        self.assertEqual(table.items(), [(7, "moves")])


class SourceBufferReadTests(unittest.TestCase):
    def test_get_lines_clamps_to_buffer_bounds(self) -> None:
        buffer = SourceBuffer("/workspace/read.py", ["a", "b", "c"])

        self.assertEqual(buffer.get_lines(1, 3), ["b", "c"])
        self.assertEqual(buffer.get_lines(-2, 1), ["a"])
        self.assertEqual(buffer.get_lines(2, 10), ["c"])
        self.assertEqual(buffer.get_lines(3, 1), [])

    def test_get_text_and_fingerprint_follow_the_span(self) -> None:
        buffer = SourceBuffer("/workspace/read.py", ["class A:", "    def f(self):", "        return 1"])
        span = SymbolRange(1, 2, 4, 16)

        self.assertEqual(buffer.get_text(span), "def f(self):        return 1")
        self.assertEqual(buffer.fingerprint(span), "deff(self):return1")


class SourceBufferEditTests(unittest.TestCase):
    def test_delete_lines_returns_text_and_drops_markers(self) -> None:
        buffer = SourceBuffer("/workspace/edit.txt", ["a", "b", "c", "d"])
        on_deleted = buffer.markers.place(1)
        below = buffer.markers.place(3)

        removed = buffer.delete_lines(1, 2)

        self.assertEqual(removed, ["b", "c"])
        self.assertEqual(buffer.lines, ["a", "d"])
        self.assertIsNone(buffer.markers.line_of(on_deleted))
        self.assertEqual(buffer.markers.line_of(below), 1)
        self.assertTrue(buffer.modified)

    def test_linewise_put_inserts_below_cursor(self) -> None:
        buffer = SourceBuffer("/workspace/edit.txt", ["a", "b"])
        marker_id = buffer.markers.place(1)

        buffer.put("x\ny", 0)

        self.assertEqual(buffer.lines, ["a", "x", "y", "b"])
        self.assertEqual(buffer.markers.line_of(marker_id), 3)

    def test_charwise_put_splits_current_line(self) -> None:
        buffer = SourceBuffer("/workspace/edit.txt", ["hello world"])

        buffer.put(",\nnew", 0, 4, linewise=False)

        self.assertEqual(buffer.lines, ["hello,", "new world"])

    def test_delete_text_joins_lines(self) -> None:
        buffer = SourceBuffer("/workspace/edit.txt", ["alpha", "beta", "gamma"])
        joined = buffer.markers.place(1)

        removed = buffer.delete_text(0, 2, 2, 1)

        self.assertEqual(removed, "pha\nbeta\nga")
        self.assertEqual(buffer.lines, ["almma"])
        self.assertIsNone(buffer.markers.line_of(joined))

    def test_write_and_reload_round_trip_through_disk(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "disk.py"
            path.write_text("one\ntwo\n", encoding="utf-8")
            buffer = SourceBuffer.from_path(path)
            buffer.set_line(1, "TWO")
            buffer.write()

            self.assertFalse(buffer.modified)
            self.assertEqual(path.read_text(encoding="utf-8"), "one\nTWO\n")

            path.write_text("zero\none\nTWO\n", encoding="utf-8")
            buffer.markers.place(0)
            buffer.reload()

            self.assertEqual(buffer.lines, ["zero", "one", "TWO"])
            self.assertEqual(len(buffer.markers), 0)
            self.assertEqual(buffer.name, str(path.resolve()))


if __name__ == "__main__":
    unittest.main()
