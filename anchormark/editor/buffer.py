"""Line-addressed text buffer with live markers and decorations.

This is the editor-side collaborator of the anchoring engine: it exposes the
text accessor (line ranges, line count, modified flag), the marker subsystem
and the decoration subsystem for one open file.
"""

from __future__ import annotations

from pathlib import Path

from ..anchors.types import SymbolRange
from ..anchors.text import remove_blanks, spanned_text
from .markers import DecorationTable, MarkerTable


def read_text(path: Path) -> str:
    """Read text using tolerant encoding fallback order.

    Attempts UTF-8, UTF-8 with BOM, then latin-1; as a final fallback decodes
    raw bytes with UTF-8 replacement semantics.
    """
    for encoding in ("utf-8", "utf-8-sig", "latin-1"):
        try:
            return path.read_text(encoding=encoding)
        except UnicodeDecodeError:
            continue
    return path.read_bytes().decode("utf-8", errors="replace")


def split_text(text: str) -> list[str]:
    """Split buffer text into lines; a trailing newline adds no empty line."""
    if text == "":
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line.rstrip("\r") for line in lines]


class SourceBuffer:
    """One open file: its lines plus the markers and decorations placed on it."""

    def __init__(
        self,
        path: Path | str,
        lines: list[str] | None = None,
        *,
        readonly: bool = False,
    ) -> None:
        self.path = Path(path)
        self.lines: list[str] = list(lines or [])
        self.modified = False
        self.readonly = readonly
        self.markers = MarkerTable()
        self.decorations = DecorationTable()

    @classmethod
    def from_path(cls, path: Path | str, *, readonly: bool = False) -> SourceBuffer:
        target = Path(path)
        if not target.is_file():
            raise FileNotFoundError(f"File not found: {target}")
        return cls(target, split_text(read_text(target)), readonly=readonly)

    @property
    def name(self) -> str:
        """Normalized absolute path used as the bookmark store key."""
        try:
            return str(self.path.resolve())
        except OSError:
            return str(self.path.absolute())

    # --- text accessor ---

    def line_count(self) -> int:
        return len(self.lines)

    def line(self, index: int) -> str:
        if 0 <= index < len(self.lines):
            return self.lines[index]
        return ""

    def get_lines(self, start: int, end: int) -> list[str]:
        """Lines ``start`` (inclusive) to ``end`` (exclusive)."""
        return self.lines[max(0, start) : max(0, end)]

    def get_text(self, span: SymbolRange) -> str:
        return spanned_text(self.lines, span)

    def fingerprint(self, span: SymbolRange) -> str:
        """Whitespace-free text of ``span``, the identity a bookmark remembers."""
        return remove_blanks(self.get_text(span))

    def text(self) -> str:
        return "\n".join(self.lines) + ("\n" if self.lines else "")

    # --- editing ---

    def insert_lines(self, at: int, new_lines: list[str]) -> None:
        at = max(0, min(at, len(self.lines)))
        self.lines[at:at] = list(new_lines)
        self.markers.lines_inserted(at, len(new_lines))
        self.decorations.lines_inserted(at, len(new_lines))
        self.modified = True

    def delete_lines(self, start: int, end: int) -> list[str]:
        """Delete lines ``start..end`` inclusive and return them."""
        start = max(0, start)
        end = min(end, len(self.lines) - 1)
        if end < start:
            return []
        removed = self.get_lines(start, end + 1)
        del self.lines[start : end + 1]
        self.markers.lines_deleted(start, len(removed))
        self.decorations.lines_deleted(start, len(removed))
        self.modified = True
        return removed

    def set_line(self, index: int, text: str) -> None:
        """Replace one line in place; markers on it survive."""
        self.lines[index] = text
        self.modified = True

    def delete_text(self, start_line: int, start_col: int, end_line: int, end_col: int) -> str:
        """Delete characters from ``(start_line, start_col)`` through ``(end_line, end_col)`` inclusive.

        The tail of ``end_line`` joins ``start_line``; markers on the joined
        lines vanish while markers on ``start_line`` remain.
        """
        span = SymbolRange(start_line=start_line, end_line=end_line, start_col=start_col, end_col=end_col + 1)
        removed = "\n".join(self._span_lines(span))
        head = self.line(start_line)[:start_col]
        tail = self.line(end_line)[end_col + 1 :]
        self.lines[start_line] = head + tail
        joined = end_line - start_line
        if joined > 0:
            del self.lines[start_line + 1 : end_line + 1]
            self.markers.lines_deleted(start_line + 1, joined)
            self.decorations.lines_deleted(start_line + 1, joined)
        self.modified = True
        return removed

    def _span_lines(self, span: SymbolRange) -> list[str]:
        out: list[str] = []
        for line_idx in range(span.start_line, span.end_line + 1):
            text = self.line(line_idx)
            start = span.start_col if line_idx == span.start_line else 0
            end = span.end_col if line_idx == span.end_line else len(text)
            out.append(text[start:end])
        return out

    def put(self, text: str, line: int, column: int = 0, *, linewise: bool = True) -> None:
        """Insert ``text`` after the cursor.

        Linewise text goes below ``line``; characterwise text goes after
        ``column`` on ``line`` and may split it across several lines.
        """
        pieces = text.split("\n")
        if linewise:
            self.insert_lines(line + 1, pieces)
            return
        if not self.lines:
            self.lines.append("")
        current = self.line(line)
        cut = min(len(current), column + 1)
        head, tail = current[:cut], current[cut:]
        if len(pieces) == 1:
            self.lines[line] = head + pieces[0] + tail
            self.modified = True
            return
        self.lines[line] = head + pieces[0]
        inserted = pieces[1:-1] + [pieces[-1] + tail]
        self.insert_lines(line + 1, inserted)

    # --- disk ---

    def write(self) -> None:
        self.path.write_text(self.text(), encoding="utf-8")
        self.modified = False

    def reload(self) -> None:
        """Re-read the file from disk; every marker and decoration is invalidated."""
        self.lines = split_text(read_text(self.path))
        self.markers.clear()
        self.decorations.clear()
        self.modified = False
