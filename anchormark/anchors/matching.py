"""Pick the live symbol that best matches a bookmark's remembered identity.

Candidates are pre-filtered to the bookmark's kind and name. ``details``
(typically a signature) discriminate cheaply; the whitespace-free symbol text
is the fallback when details are missing or identical.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence

from rapidfuzz.distance import Levenshtein

from .text import symbol_fingerprint
from .types import Symbol, SymbolBookmark

UNMATCHABLE = sys.maxsize
DETAILS_WEIGHT = 0.1


def edit_distance(left: str, right: str) -> int:
    return Levenshtein.distance(left, right)


def details_distance(stored: str | None, live: str | None) -> int:
    """Distance between two details strings; an empty side never matches."""
    if not stored or not live:
        return UNMATCHABLE
    return edit_distance(stored, live)


def _argmin(scores: Sequence[float]) -> int:
    best_index = 0
    for index, score in enumerate(scores):
        if score < scores[best_index]:
            best_index = index
    return best_index


def best_match(bookmark: SymbolBookmark, candidates: Sequence[Symbol], lines: Sequence[str]) -> int:
    """Return the index of the candidate that best matches ``bookmark``.

    Ties resolve to the first candidate, so a fixed input always yields the
    same index.
    """
    if not candidates:
        raise ValueError("best_match requires at least one candidate")
    if len(candidates) == 1:
        return 0

    if bookmark.details:
        scores = [details_distance(bookmark.details, candidate.details) for candidate in candidates]
        if len(set(scores)) > 1:
            return _argmin(scores)

    text_scores = [
        edit_distance(bookmark.symbol_text, symbol_fingerprint(lines, candidate.range))
        for candidate in candidates
    ]
    return _argmin(text_scores)


def relocation_score(bookmark: SymbolBookmark, candidate: Symbol, lines: Sequence[str]) -> float:
    """Composite score used after out-of-band edits: text distance plus weighted details."""
    text_score = edit_distance(bookmark.symbol_text or "", symbol_fingerprint(lines, candidate.range))
    details_score = 0
    if bookmark.details is not None and candidate.details is not None:
        details_score = edit_distance(bookmark.details, candidate.details)
    return text_score + details_score * DETAILS_WEIGHT


def best_relocation_match(bookmark: SymbolBookmark, candidates: Sequence[Symbol], lines: Sequence[str]) -> int:
    if not candidates:
        raise ValueError("best_relocation_match requires at least one candidate")
    return _argmin([relocation_score(bookmark, candidate, lines) for candidate in candidates])


def candidates_for(symbols: Sequence[Symbol], kind: int, name: str) -> list[Symbol]:
    return [symbol for symbol in symbols if symbol.kind == kind and symbol.name == name]


def _common_prefix_length(left: str, right: str) -> int:
    length = 0
    for left_char, right_char in zip(left, right):
        if left_char != right_char:
            break
        length += 1
    return length


def differs_only_by_name(stored: str, live: str, old_name: str, new_name: str) -> bool:
    """True when ``live`` is ``stored`` with one occurrence of ``old_name`` swapped for ``new_name``.

    The occurrence must sit where both texts stop agreeing, so body
    identifiers that merely contain the old name are never rewritten.
    """
    if not old_name or len(stored) - len(old_name) != len(live) - len(new_name):
        return False
    for index in range(_common_prefix_length(stored, live) + 1):
        if (
            stored.startswith(old_name, index)
            and live.startswith(new_name, index)
            and stored[index + len(old_name):] == live[index + len(new_name):]
        ):
            return True
    return False


def renamed_symbol(
    bookmark: SymbolBookmark,
    old_name: str,
    symbols: Sequence[Symbol],
    kind: int,
    lines: Sequence[str],
) -> Symbol | None:
    """Find a same-kind symbol that is ``old_name`` under a new name.

    A candidate qualifies only when its live fingerprint equals the stored one
    with a single occurrence of the old name replaced by the new one.
    """
    if not bookmark.symbol_text or old_name not in bookmark.symbol_text:
        return None
    for symbol in symbols:
        if symbol.kind != kind or symbol.name == old_name:
            continue
        live = symbol_fingerprint(lines, symbol.range)
        if differs_only_by_name(bookmark.symbol_text, live, old_name, symbol.name):
            return symbol
    return None


def enclosing_symbol(symbols: Sequence[Symbol], line: int) -> Symbol | None:
    """Innermost symbol whose range contains ``line``.

    The latest start line wins; among equal starts the shorter range wins and
    remaining ties go to the later entry in the snapshot.
    """
    best: Symbol | None = None
    for symbol in symbols:
        if not symbol.range.contains_line(line):
            continue
        if best is None:
            best = symbol
            continue
        if symbol.range.start_line > best.range.start_line:
            best = symbol
        elif symbol.range.start_line == best.range.start_line and symbol.range.end_line <= best.range.end_line:
            best = symbol
    return best
