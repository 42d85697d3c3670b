"""Language/grammar configuration for symbol outlines."""

from __future__ import annotations

import re
from enum import IntEnum


class SymbolKind(IntEnum):
    """LSP ``SymbolKind`` codes used as anchor kinds."""

    MODULE = 2
    NAMESPACE = 3
    CLASS = 5
    METHOD = 6
    CONSTRUCTOR = 9
    ENUM = 10
    INTERFACE = 11
    FUNCTION = 12
    STRUCT = 23


LANGUAGE_BY_SUFFIX: dict[str, str] = {
    ".py": "python",
    ".pyi": "python",
    ".pyw": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".c": "c",
    ".h": "c",
    ".cc": "cpp",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".rb": "ruby",
    ".lua": "lua",
}

FUNCTION_NODE_TYPES = {
    "function_definition",
    "function_declaration",
    "function_item",
    "method_definition",
    "method_declaration",
    "constructor_declaration",
}
CLASS_NODE_TYPES = {
    "class_definition",
    "class_declaration",
    "class_specifier",
    "struct_item",
    "struct_specifier",
    "enum_item",
    "trait_item",
    "interface_declaration",
}
IDENTIFIER_NODE_TYPES = {
    "identifier",
    "type_identifier",
    "property_identifier",
    "field_identifier",
    "constant",
}
DETAIL_FIELD_NAMES = ("parameters", "superclasses", "superclass", "type_parameters")

KIND_BY_NODE_TYPE: dict[str, SymbolKind] = {
    "class_definition": SymbolKind.CLASS,
    "class_declaration": SymbolKind.CLASS,
    "class_specifier": SymbolKind.CLASS,
    "struct_item": SymbolKind.STRUCT,
    "struct_specifier": SymbolKind.STRUCT,
    "enum_item": SymbolKind.ENUM,
    "trait_item": SymbolKind.INTERFACE,
    "interface_declaration": SymbolKind.INTERFACE,
    "method_definition": SymbolKind.METHOD,
    "method_declaration": SymbolKind.METHOD,
    "constructor_declaration": SymbolKind.CONSTRUCTOR,
}

MISSING_PARSER_ERROR = (
    "Tree-sitter parser package not found. Install tree-sitter-languages or tree-sitter-language-pack."
)

_PYTHON_PATTERNS = (
    (SymbolKind.CLASS, re.compile(r"^\s*class\s+(?P<name>[A-Za-z_][\w]*)(?P<details>\([^)]*\))?")),
    (SymbolKind.FUNCTION, re.compile(r"^\s*(?:async\s+)?def\s+(?P<name>[A-Za-z_][\w]*)\s*(?P<details>\([^)]*\))?")),
)
_JS_PATTERNS = (
    (SymbolKind.CLASS, re.compile(r"^\s*(?:export\s+)?class\s+(?P<name>[A-Za-z_$][\w$]*)")),
    (
        SymbolKind.FUNCTION,
        re.compile(r"^\s*(?:export\s+)?(?:async\s+)?function\s+(?P<name>[A-Za-z_$][\w$]*)\s*(?P<details>\([^)]*\))?"),
    ),
)

FALLBACK_PATTERNS_BY_LANGUAGE: dict[str, tuple[tuple[SymbolKind, re.Pattern[str]], ...]] = {
    "python": _PYTHON_PATTERNS,
    "javascript": _JS_PATTERNS,
    "typescript": _JS_PATTERNS,
    "tsx": _JS_PATTERNS,
    "go": (
        (SymbolKind.STRUCT, re.compile(r"^\s*type\s+(?P<name>[A-Za-z_][\w]*)\s+(?:struct|interface)\b")),
        (
            SymbolKind.FUNCTION,
            re.compile(r"^\s*func\s+(?:\([^)]*\)\s*)?(?P<name>[A-Za-z_][\w]*)\s*(?P<details>\([^)]*\))?"),
        ),
    ),
    "rust": (
        (SymbolKind.STRUCT, re.compile(r"^\s*(?:pub\s+)?(?:struct|enum|trait)\s+(?P<name>[A-Za-z_][\w]*)\b")),
        (
            SymbolKind.FUNCTION,
            re.compile(r"^\s*(?:pub\s+)?(?:async\s+)?fn\s+(?P<name>[A-Za-z_][\w]*)\s*(?P<details>\([^)]*\))?"),
        ),
    ),
    "ruby": (
        (SymbolKind.CLASS, re.compile(r"^\s*class\s+(?P<name>[A-Za-z_][\w:]*)")),
        (SymbolKind.FUNCTION, re.compile(r"^\s*def\s+(?P<name>[A-Za-z_][\w!?=]*)(?P<details>\([^)]*\))?")),
    ),
    "lua": (
        (SymbolKind.FUNCTION, re.compile(r"^\s*(?:local\s+)?function\s+(?P<name>[A-Za-z_][\w\.:]*)(?P<details>\([^)]*\))?")),
    ),
}

GENERIC_FALLBACK_PATTERNS = _PYTHON_PATTERNS + _JS_PATTERNS

# Lines that close a block opened at the same indentation.
BLOCK_CLOSER_RE = re.compile(r"^\s*(?:\}|end\b)")
