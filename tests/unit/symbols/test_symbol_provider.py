from __future__ import annotations

import unittest
from pathlib import Path
from unittest import mock

from anchormark.anchors.types import SymbolRange
from anchormark.editor.buffer import SourceBuffer
from anchormark.symbols import provider
from anchormark.symbols.config import SymbolKind


def line_col_for(text: str, token: str) -> tuple[int, int]:
    start = text.index(token)
    line = text.count("\n", 0, start)
    line_start = text.rfind("\n", 0, start)
    column = start if line_start < 0 else start - line_start - 1
    return line, column


class FakeNode:
    def __init__(
        self,
        node_type: str,
        source: str,
        token: str,
        end_token: str | None = None,
        *,
        named_children: list["FakeNode"] | None = None,
        fields: dict[str, "FakeNode"] | None = None,
    ) -> None:
        self.type = node_type
        self.start_byte = source.index(token)
        end_text = end_token or token
        self.end_byte = source.index(end_text) + len(end_text)
        self.start_point = line_col_for(source, token)
        end_line, end_col = line_col_for(source, end_text)
        self.end_point = (end_line, end_col + len(end_text))
        self.named_children = named_children or []
        self._fields = fields or {}

    def child_by_field_name(self, name: str):
        return self._fields.get(name)


class FakeTree:
    def __init__(self, root_node: FakeNode) -> None:
        self.root_node = root_node


class FakeParser:
    def __init__(self, tree: FakeTree) -> None:
        self._tree = tree

    def parse(self, _source_bytes: bytes) -> FakeTree:
        return self._tree


class NormalizeSymbolsTests(unittest.TestCase):
    def test_document_symbols_flatten_children_depth_first(self) -> None:
        payload = [
            {
                "name": "Widget",
                "kind": 5,
                "range": {"start": {"line": 0, "character": 0}, "end": {"line": 9, "character": 12}},
                "children": [
                    {
                        "name": "render",
                        "kind": 6,
                        "detail": "(self)",
                        "range": {"start": {"line": 2, "character": 4}, "end": {"line": 5, "character": 8}},
                    }
                ],
            },
            {
                "name": "helper",
                "kind": 12,
                "range": {"start": {"line": 11, "character": 0}, "end": {"line": 12, "character": 9}},
            },
        ]

        symbols = provider.normalize_symbols(payload)

        self.assertEqual([symbol.name for symbol in symbols], ["Widget", "render", "helper"])
        self.assertEqual(symbols[1].range, SymbolRange(2, 5, 4, 8))
        self.assertEqual(symbols[1].details, "(self)")
        self.assertIsNone(symbols[0].details)

    def test_symbol_information_range_is_read_from_location(self) -> None:
        payload = [
            {
                "name": "legacy",
                "kind": 12,
                "details": "(x)",
                "location": {
                    "uri": "file:///workspace/legacy.py",
                    "range": {"start": {"line": 3, "character": 0}, "end": {"line": 6, "character": 1}},
                },
            }
        ]

        (symbol,) = provider.normalize_symbols(payload)

        self.assertEqual(symbol.range, SymbolRange(3, 6, 0, 1))
        self.assertEqual(symbol.details, "(x)")

    def test_malformed_entries_are_skipped(self) -> None:
        payload = [
            "junk",
            {"name": "no_range", "kind": 12},
            {"name": "bad_kind", "kind": True, "range": {"start": {"line": 0}, "end": {"line": 1}}},
            {"name": "reversed", "kind": 12, "range": {"start": {"line": 5}, "end": {"line": 1}}},
            {"name": "ok", "kind": 12, "range": {"start": {"line": 1}, "end": {"line": 2}}},
        ]

        self.assertEqual([symbol.name for symbol in provider.normalize_symbols(payload)], ["ok"])
        self.assertEqual(provider.normalize_symbols({"not": "a list"}), [])

    def test_static_provider_answers_every_buffer(self) -> None:
        payload = [{"name": "f", "kind": 12, "range": {"start": {"line": 0}, "end": {"line": 1}}}]
        answer = provider.static_provider(payload)

        self.assertEqual([symbol.name for symbol in answer(SourceBuffer("/workspace/a.py", []))], ["f"])


class FallbackSymbolTests(unittest.TestCase):
    def test_python_fallback_closes_blocks_by_indentation(self) -> None:
        lines = [
            "import os",
            "",
            "class Service(Base):",
            "    def start(self, port):",
            "        return port",
            "",
            "    def stop(self):",
            "        pass",
            "",
            "def main():",
            "    Service().start(80)",
        ]

        symbols = provider.collect_fallback_symbols(lines, "python")

        summary = [(symbol.name, symbol.kind, symbol.range.start_line, symbol.range.end_line) for symbol in symbols]
        self.assertEqual(
            summary,
            [
                ("Service", SymbolKind.CLASS, 2, 7),
                ("start", SymbolKind.METHOD, 3, 4),
                ("stop", SymbolKind.METHOD, 6, 7),
                ("main", SymbolKind.FUNCTION, 9, 10),
            ],
        )

    def test_max_symbols_caps_output(self) -> None:
        lines = [f"def f{index}():" for index in range(10)]
        self.assertEqual(len(provider.collect_fallback_symbols(lines, "python", max_symbols=3)), 3)


class TreeSitterProviderTests(unittest.TestCase):
    def test_unsupported_suffix_yields_empty_outline(self) -> None:
        outline = provider.TreeSitterSymbolProvider()

        self.assertEqual(outline(SourceBuffer("/workspace/notes.xyz", ["hello"])), [])
        self.assertEqual(outline.last_error, "No Tree-sitter grammar configured for .xyz.")

    def test_missing_parser_uses_regex_fallback(self) -> None:
        outline = provider.TreeSitterSymbolProvider()
        buffer = SourceBuffer("/workspace/sample.py", ["def f(a):", "    return a"])

        with mock.patch("anchormark.symbols.provider._load_parser", return_value=(None, "boom")):
            symbols = outline(buffer)

        self.assertEqual([(symbol.name, symbol.kind) for symbol in symbols], [("f", SymbolKind.FUNCTION)])
        self.assertIsNone(outline.last_error)

    def test_missing_parser_without_fallback_hits_reports_error(self) -> None:
        outline = provider.TreeSitterSymbolProvider()
        buffer = SourceBuffer("/workspace/sample.py", ["x = 1"])

        with mock.patch("anchormark.symbols.provider._load_parser", return_value=(None, "boom")):
            self.assertEqual(outline(buffer), [])

        self.assertEqual(outline.last_error, "boom")

    def test_tree_nodes_become_symbols_with_details(self) -> None:
        source = "class Shape(Base):\n    def area(self, scale):\n        return 1\n\ndef build():\n    pass\n"
        method = FakeNode(
            "function_definition",
            source,
            "def area",
            "return 1",
            fields={
                "name": FakeNode("identifier", source, "area"),
                "parameters": FakeNode("parameters", source, "(self, scale)"),
            },
        )
        cls = FakeNode(
            "class_definition",
            source,
            "class Shape",
            "return 1",
            named_children=[method],
            fields={
                "name": FakeNode("identifier", source, "Shape"),
                "superclasses": FakeNode("argument_list", source, "(Base)"),
            },
        )
        function = FakeNode(
            "function_definition",
            source,
            "def build",
            "pass",
            fields={"name": FakeNode("identifier", source, "build")},
        )
        root = FakeNode("module", source, "class Shape", "pass", named_children=[cls, function])
        buffer = SourceBuffer(Path("/workspace/shapes.py"), source.splitlines())

        with mock.patch("anchormark.symbols.provider._load_parser", return_value=(FakeParser(FakeTree(root)), None)):
            symbols = provider.TreeSitterSymbolProvider()(buffer)

        self.assertEqual(
            [(symbol.name, symbol.kind, symbol.range.start_line, symbol.range.end_line, symbol.details) for symbol in symbols],
            [
                ("Shape", SymbolKind.CLASS, 0, 2, "(Base)"),
                ("area", SymbolKind.METHOD, 1, 2, "(self, scale)"),
                ("build", SymbolKind.FUNCTION, 4, 5, None),
            ],
        )

    def test_language_for_path_uses_suffix(self) -> None:
        self.assertEqual(provider.language_for_path(Path("a/b.PY")), "python")
        self.assertEqual(provider.language_for_path(Path("a/b.tsx")), "tsx")
        self.assertIsNone(provider.language_for_path(Path("README")))


if __name__ == "__main__":
    unittest.main()
