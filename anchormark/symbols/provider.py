"""Symbol-outline providers and response normalization.

Uses Tree-sitter when available and regex fallbacks otherwise. Any provider
is a callable ``buffer -> [Symbol]``; LSP-shaped payloads are converted with
``normalize_symbols``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Sequence
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING

from ..anchors.types import Symbol, SymbolRange
from .config import (
    BLOCK_CLOSER_RE,
    CLASS_NODE_TYPES,
    DETAIL_FIELD_NAMES,
    FALLBACK_PATTERNS_BY_LANGUAGE,
    FUNCTION_NODE_TYPES,
    GENERIC_FALLBACK_PATTERNS,
    IDENTIFIER_NODE_TYPES,
    KIND_BY_NODE_TYPE,
    LANGUAGE_BY_SUFFIX,
    MISSING_PARSER_ERROR,
    SymbolKind,
)

if TYPE_CHECKING:
    from ..editor.buffer import SourceBuffer

logger = logging.getLogger(__name__)

SymbolProvider = Callable[["SourceBuffer"], Sequence[Symbol]]


def _normalize_whitespace(text: str) -> str:
    """Collapse internal whitespace to single spaces for stable details."""
    return re.sub(r"\s+", " ", text).strip()


# --- LSP payload normalization ---


def _position(raw: object) -> tuple[int, int] | None:
    if not isinstance(raw, dict):
        return None
    line = raw.get("line")
    character = raw.get("character", 0)
    if isinstance(line, bool) or not isinstance(line, int):
        return None
    if isinstance(character, bool) or not isinstance(character, int):
        character = 0
    return line, character


def _range_of(entry: dict) -> SymbolRange | None:
    raw_range = entry.get("range")
    # SymbolInformation nests the range inside ``location``.
    location = entry.get("location")
    if isinstance(location, dict) and isinstance(location.get("range"), dict):
        raw_range = location["range"]
    if not isinstance(raw_range, dict):
        return None
    start = _position(raw_range.get("start"))
    end = _position(raw_range.get("end"))
    if start is None or end is None or end[0] < start[0]:
        return None
    return SymbolRange(start_line=start[0], end_line=end[0], start_col=start[1], end_col=end[1])


def normalize_symbols(payload: object) -> list[Symbol]:
    """Convert an LSP ``documentSymbol`` response into a flat symbol list.

    Accepts ``DocumentSymbol`` and ``SymbolInformation`` entries, reads
    ``detail`` (or the legacy ``details``), flattens nested ``children``
    depth-first and skips malformed entries.
    """
    if not isinstance(payload, list):
        return []
    out: list[Symbol] = []

    def visit(entries: Iterable[object]) -> None:
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            name = entry.get("name")
            kind = entry.get("kind")
            span = _range_of(entry)
            if isinstance(name, str) and isinstance(kind, int) and not isinstance(kind, bool) and span:
                details = entry.get("detail", entry.get("details"))
                out.append(
                    Symbol(
                        name=name,
                        kind=kind,
                        range=span,
                        details=details if isinstance(details, str) else None,
                    )
                )
            children = entry.get("children")
            if isinstance(children, list):
                visit(children)

    visit(payload)
    return out


def static_provider(payload: object) -> SymbolProvider:
    """Provider that always answers with one fixed LSP-shaped payload."""
    symbols = normalize_symbols(payload)

    def provide(_buffer: SourceBuffer) -> list[Symbol]:
        return list(symbols)

    return provide


# --- Tree-sitter outline ---


def language_for_path(path: Path) -> str | None:
    """Map file suffix to configured Tree-sitter language key."""
    return LANGUAGE_BY_SUFFIX.get(path.suffix.lower())


@lru_cache(maxsize=32)
def _load_parser(language_name: str):
    """Load a Tree-sitter parser using supported provider packages.

    Tries ``tree_sitter_languages`` first, then ``tree_sitter_language_pack``.
    Returns ``(parser, error_message)``.
    """
    errors: list[str] = []

    try:
        from tree_sitter_languages import get_parser

        return get_parser(language_name), None
    except ModuleNotFoundError:
        pass
    except Exception as exc:
        errors.append(f"Failed to load Tree-sitter parser for {language_name}: {exc}")

    try:
        from tree_sitter_language_pack import get_parser

        return get_parser(language_name), None
    except ModuleNotFoundError:
        pass
    except Exception as exc:
        errors.append(f"Failed to load Tree-sitter parser for {language_name}: {exc}")

    if errors:
        return None, errors[0]

    return None, MISSING_PARSER_ERROR


def _node_text(source_bytes: bytes, node) -> str:
    """Decode source slice covered by a Tree-sitter node."""
    return source_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def _name_from_node(source_bytes: bytes, node) -> str:
    """Extract the declared name of a class/function node."""
    for field_name in ("name", "declarator"):
        child = node.child_by_field_name(field_name)
        if child is None:
            continue
        nested = child.child_by_field_name("name") or child.child_by_field_name("declarator")
        if nested is not None:
            return _normalize_whitespace(_node_text(source_bytes, nested))
        return _normalize_whitespace(_node_text(source_bytes, child))

    for child in node.named_children:
        if child.type in IDENTIFIER_NODE_TYPES:
            return _normalize_whitespace(_node_text(source_bytes, child))

    return ""


def _details_from_node(source_bytes: bytes, node) -> str | None:
    """Signature-like details: parameter list or superclass list."""
    targets = [node]
    declarator = node.child_by_field_name("declarator")
    if declarator is not None:
        targets.append(declarator)
    for target in targets:
        for field_name in DETAIL_FIELD_NAMES:
            child = target.child_by_field_name(field_name)
            if child is not None:
                return _normalize_whitespace(_node_text(source_bytes, child))
    return None


def _symbol_kind(node_type: str, inside_class: bool) -> SymbolKind | None:
    """Map Tree-sitter node type to a symbol kind code."""
    if node_type in KIND_BY_NODE_TYPE:
        return KIND_BY_NODE_TYPE[node_type]
    if node_type in FUNCTION_NODE_TYPES:
        return SymbolKind.METHOD if inside_class else SymbolKind.FUNCTION
    return None


def _collect_tree_symbols(tree, source_bytes: bytes, max_symbols: int) -> list[Symbol]:
    symbols: list[Symbol] = []

    def walk(node, inside_class: bool) -> None:
        """Depth-first traversal collecting symbol-bearing nodes."""
        if len(symbols) >= max_symbols:
            return

        if node.type in {"decorated_definition", "decorated_declaration"}:
            definition = node.child_by_field_name("definition")
            if definition is not None:
                walk(definition, inside_class)
                return

        kind = _symbol_kind(node.type, inside_class)
        if kind is not None:
            name = _name_from_node(source_bytes, node)
            if name:
                start_line, start_col = node.start_point
                end_line, end_col = node.end_point
                symbols.append(
                    Symbol(
                        name=name,
                        kind=int(kind),
                        range=SymbolRange(
                            start_line=int(start_line),
                            end_line=int(end_line),
                            start_col=int(start_col),
                            end_col=int(end_col),
                        ),
                        details=_details_from_node(source_bytes, node),
                    )
                )

        child_inside_class = inside_class or node.type in CLASS_NODE_TYPES
        if node.type in FUNCTION_NODE_TYPES:
            child_inside_class = False
        for child in node.named_children:
            walk(child, child_inside_class)

    walk(tree.root_node, False)
    symbols.sort(key=lambda item: (item.range.start_line, item.range.start_col, item.kind, item.name))
    return symbols


# --- regex fallback ---


def _leading_indent(text: str) -> int:
    """Return leading indentation width where tabs count as four columns."""
    count = 0
    for ch in text:
        if ch == " ":
            count += 1
            continue
        if ch == "\t":
            count += 4
            continue
        break
    return count


def _block_end(lines: Sequence[str], start: int) -> int:
    """Last line of the block opened at ``start``, judged by indentation."""
    indent = _leading_indent(lines[start])
    end = start
    for line_idx in range(start + 1, len(lines)):
        text = lines[line_idx]
        if not text.strip():
            continue
        if _leading_indent(text) <= indent:
            if BLOCK_CLOSER_RE.match(text):
                end = line_idx
            break
        end = line_idx
    return end


def collect_fallback_symbols(lines: Sequence[str], language_name: str | None, max_symbols: int = 2000) -> list[Symbol]:
    """Collect symbols via language-specific regex patterns and indentation blocks."""
    patterns = FALLBACK_PATTERNS_BY_LANGUAGE.get(language_name or "", GENERIC_FALLBACK_PATTERNS)
    symbols: list[Symbol] = []
    class_stack: list[int] = []
    for line_idx, line in enumerate(lines):
        while class_stack and line.strip() and _leading_indent(line) <= class_stack[-1]:
            class_stack.pop()
        for kind, pattern in patterns:
            match = pattern.match(line)
            if match is None:
                continue
            name = _normalize_whitespace(match.group("name"))
            if not name:
                continue
            if kind == SymbolKind.FUNCTION and class_stack:
                kind = SymbolKind.METHOD
            details = match.groupdict().get("details")
            end_line = _block_end(lines, line_idx)
            symbols.append(
                Symbol(
                    name=name,
                    kind=int(kind),
                    range=SymbolRange(
                        start_line=line_idx,
                        end_line=end_line,
                        start_col=len(line) - len(line.lstrip()),
                        end_col=len(lines[end_line]),
                    ),
                    details=_normalize_whitespace(details) if details else None,
                )
            )
            if kind in (SymbolKind.CLASS, SymbolKind.STRUCT):
                class_stack.append(_leading_indent(line))
            break
        if len(symbols) >= max_symbols:
            break
    return symbols


class TreeSitterSymbolProvider:
    """Outline a buffer's live text with Tree-sitter, or regexes when no parser loads."""

    def __init__(self, max_symbols: int = 2000) -> None:
        self.max_symbols = max_symbols
        self.last_error: str | None = None

    def __call__(self, buffer: SourceBuffer) -> list[Symbol]:
        self.last_error = None
        language_name = language_for_path(buffer.path)
        if language_name is None:
            self.last_error = f"No Tree-sitter grammar configured for {buffer.path.suffix or '<no extension>'}."
            return []

        parser, parser_error = _load_parser(language_name)
        if parser is None:
            fallback = collect_fallback_symbols(buffer.lines, language_name, self.max_symbols)
            if not fallback:
                self.last_error = parser_error or MISSING_PARSER_ERROR
            return fallback

        source_bytes = buffer.text().encode("utf-8", errors="replace")
        try:
            tree = parser.parse(source_bytes)
        except Exception as exc:
            logger.debug("tree-sitter parse failed for %s: %s", buffer.path, exc)
            fallback = collect_fallback_symbols(buffer.lines, language_name, self.max_symbols)
            if not fallback:
                self.last_error = f"Tree-sitter parse failed: {exc}"
            return fallback
        return _collect_tree_symbols(tree, source_bytes, self.max_symbols)
