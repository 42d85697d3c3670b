"""Bookmark, symbol, and marker datatypes shared by the anchoring engine.

All line numbers are zero-based. Bookmarks are mutable records compared by
identity so a calibration run can track them in a plain ``set``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class SymbolRange:
    """Line/column span of one symbol, ``end_line`` inclusive."""

    start_line: int
    end_line: int
    start_col: int = 0
    end_col: int = 0

    @property
    def height(self) -> int:
        """Largest valid offset of a bookmark anchored inside this range."""
        return self.end_line - self.start_line

    def contains_line(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line

    def to_list(self) -> list[int]:
        return [self.start_line, self.end_line, self.start_col, self.end_col]

    @classmethod
    def from_list(cls, values: list[int]) -> SymbolRange:
        start_line, end_line, start_col, end_col = (int(value) for value in values)
        return cls(start_line=start_line, end_line=end_line, start_col=start_col, end_col=end_col)


@dataclass(frozen=True)
class Symbol:
    """One entry of a symbol-outline snapshot."""

    name: str
    kind: int
    range: SymbolRange
    details: str | None = None


@dataclass(frozen=True)
class Marker:
    """Editor-owned live line marker."""

    id: int
    line: int


@dataclass(frozen=True)
class PlainAnchor:
    """Anchor kind for bookmarks tracked only by absolute line."""


@dataclass(frozen=True)
class SymbolAnchor:
    """Anchor kind for bookmarks tracked relative to a named symbol."""

    kind: int
    name: str


AnchorKind = Union[PlainAnchor, SymbolAnchor]

PLAIN = PlainAnchor()


@dataclass(eq=False)
class PlainBookmark:
    line: int
    column: int = 0
    line_text: str = ""
    comment: str = ""

    def to_record(self) -> dict[str, object]:
        return {
            "line": self.line,
            "col": self.column,
            "text": self.line_text,
            "comment": self.comment,
        }

    @classmethod
    def from_record(cls, record: dict[str, object]) -> PlainBookmark:
        return cls(
            line=int(record["line"]),
            column=int(record.get("col", 0)),
            line_text=str(record.get("text", "")),
            comment=str(record.get("comment", "")),
        )


@dataclass(eq=False)
class SymbolBookmark:
    """Bookmark anchored ``offset`` lines below the start of a symbol.

    ``symbol_text`` is the whitespace-free text of the symbol at the last
    calibration and serves as its fingerprint across renames.
    """

    symbol_range: SymbolRange
    offset: int
    column: int = 0
    line_text: str = ""
    comment: str = ""
    details: str | None = None
    symbol_text: str = ""

    @property
    def line(self) -> int:
        return self.symbol_range.start_line + self.offset

    def to_record(self) -> dict[str, object]:
        return {
            "range": self.symbol_range.to_list(),
            "col": self.column,
            "text": self.line_text,
            "comment": self.comment,
            "details": self.details,
            "symbol_text": self.symbol_text,
        }

    @classmethod
    def from_record(cls, record: dict[str, object], offset: int) -> SymbolBookmark:
        details = record.get("details")
        return cls(
            symbol_range=SymbolRange.from_list(list(record["range"])),
            offset=offset,
            column=int(record.get("col", 0)),
            line_text=str(record.get("text", "")),
            comment=str(record.get("comment", "")),
            details=details if isinstance(details, str) else None,
            symbol_text=str(record.get("symbol_text", "")),
        )


Bookmark = Union[PlainBookmark, SymbolBookmark]


@dataclass(frozen=True)
class BookmarkLocation:
    """Resolved position of one stored bookmark, used by listings."""

    path: str
    line: int
    comment: str
    anchor: AnchorKind
    bookmark: Bookmark


__all__ = [
    "AnchorKind",
    "Bookmark",
    "BookmarkLocation",
    "Marker",
    "PLAIN",
    "PlainAnchor",
    "PlainBookmark",
    "Symbol",
    "SymbolAnchor",
    "SymbolBookmark",
    "SymbolRange",
]
