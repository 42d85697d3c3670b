from __future__ import annotations

import unittest

from anchormark.highlight import DEFAULT_STYLE, highlight_line, normalize_style


class HighlightBehaviorTests(unittest.TestCase):
    def test_python_line_gets_ansi_colors_without_trailing_newline(self) -> None:
        rendered = highlight_line("def area(self):", "/workspace/shapes.py")

        self.assertIn("\x1b[", rendered)
        self.assertIn("area", rendered)
        self.assertFalse(rendered.endswith("\n"))

    def test_unknown_style_falls_back_to_default(self) -> None:
        self.assertEqual(normalize_style("no-such-style"), DEFAULT_STYLE)
        self.assertEqual(normalize_style("emacs"), "emacs")

    def test_empty_line_is_returned_unchanged(self) -> None:
        self.assertEqual(highlight_line("", "/workspace/notes.txt"), "")


if __name__ == "__main__":
    unittest.main()
