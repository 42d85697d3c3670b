"""Command-line front door for anchormark.

Parses CLI options, opens the workspace bookmark store for ``--root`` and
dispatches one subcommand against a freshly loaded buffer. Every command
saves the store before returning.
"""

from __future__ import annotations

import argparse
import fnmatch
import json
import logging
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from .anchors.types import BookmarkLocation, SymbolAnchor
from .config import load_settings, save_comment_width, save_data_dir
from .editor.buffer import SourceBuffer
from .highlight import DEFAULT_STYLE, highlight_line
from .session import NO_BOOKMARK_MESSAGE, PromptCallback, Session
from .symbols.config import SymbolKind
from .symbols.provider import TreeSitterSymbolProvider

logger = logging.getLogger(__name__)


def _location(value: str) -> tuple[Path, int]:
    """argparse type for ``FILE:LINE`` (one-based line) arguments."""
    path_text, sep, line_text = value.rpartition(":")
    if not sep or not path_text:
        raise argparse.ArgumentTypeError(f"expected FILE:LINE, got {value!r}")
    try:
        line = int(line_text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid line number: {line_text!r}") from exc
    if line <= 0:
        raise argparse.ArgumentTypeError("line must be >= 1")
    return Path(path_text), line


def kind_label(kind: int) -> str:
    try:
        return SymbolKind(kind).name.lower()
    except ValueError:
        return str(kind)


def _display_path(path: str, root: Path) -> str:
    try:
        return os.path.relpath(path, root)
    except ValueError:
        return path


def _anchor_label(location: BookmarkLocation) -> str:
    if isinstance(location.anchor, SymbolAnchor):
        return f"{kind_label(location.anchor.kind)} {location.anchor.name}"
    return "plain"


def _answer_with(text: str):
    def prompt(_message: str, _default: str, on_answer: PromptCallback) -> None:
        on_answer(text)

    return prompt


def _open_buffer(session: Session, path: Path, line: int | None = None) -> SourceBuffer:
    buffer = SourceBuffer.from_path(path)
    if line is not None and not 0 <= line < buffer.line_count():
        raise ValueError(f"{path} has {buffer.line_count()} line(s); line {line + 1} is out of range")
    # Relocation runs before any marker is drawn from stored positions.
    session.on_buffer_read(buffer)
    session.on_buffer_enter(buffer)
    return buffer


def cmd_add(session: Session, args: argparse.Namespace) -> int:
    path, line = args.location
    if args.comment is not None:
        session.prompt = _answer_with(args.comment)
    buffer = _open_buffer(session, path, line - 1)
    if session.marker_at(buffer, line - 1) is not None:
        raise ValueError(f"{path}:{line} already has a bookmark")
    session.toggle_bookmark(buffer, line - 1, with_comment=args.comment is not None)
    print(f"Added bookmark at {path}:{line}")
    return 0


def cmd_delete(session: Session, args: argparse.Namespace) -> int:
    path, line = args.location
    buffer = _open_buffer(session, path, line - 1)
    if session.delete_bookmark(buffer, line - 1) == 0:
        raise ValueError(NO_BOOKMARK_MESSAGE)
    print(f"Deleted bookmark at {path}:{line}")
    return 0


def cmd_comment(session: Session, args: argparse.Namespace) -> int:
    path, line = args.location
    buffer = _open_buffer(session, path, line - 1)
    if session.marker_at(buffer, line - 1) is None:
        raise ValueError(NO_BOOKMARK_MESSAGE)
    session.prompt = _answer_with(args.text)
    session.modify_comment(buffer, line - 1)
    print(f"Updated comment at {path}:{line}")
    return 0


def _location_record(location: BookmarkLocation, root: Path) -> dict[str, object]:
    anchor: dict[str, object] | None = None
    if isinstance(location.anchor, SymbolAnchor):
        anchor = {
            "kind": location.anchor.kind,
            "name": location.anchor.name,
            "offset": location.bookmark.offset,
        }
    return {
        "path": _display_path(location.path, root),
        "line": location.line + 1,
        "comment": location.comment,
        "symbol": anchor,
        "text": location.bookmark.line_text,
    }


def cmd_list(session: Session, args: argparse.Namespace) -> int:
    root = session.handle.root
    locations = session.all_bookmarks()
    if args.filter:
        locations = [
            location
            for location in locations
            if fnmatch.fnmatch(_display_path(location.path, root), args.filter)
            or fnmatch.fnmatch(location.path, args.filter)
        ]

    if args.json:
        print(json.dumps([_location_record(location, root) for location in locations], indent=2))
        return 0

    use_color = not args.no_color and sys.stdout.isatty()
    for location in locations:
        header = f"{_display_path(location.path, root)}:{location.line + 1}"
        comment = f"  {location.comment}" if location.comment else ""
        print(f"{header}  [{_anchor_label(location)}]{comment}")
        if args.context:
            text = location.bookmark.line_text
            if use_color:
                text = highlight_line(text, location.path, args.style)
            print(f"    {text}")
    if not locations:
        logger.info("no bookmarks under %s", root)
    return 0


def cmd_calibrate(session: Session, args: argparse.Namespace) -> int:
    buffer = SourceBuffer.from_path(args.file)
    session.on_buffer_read(buffer)
    report = session.calibrate(buffer)
    if report is None:
        print(f"No bookmarks in {args.file}")
        return 0
    print(
        f"Calibrated {args.file}: {report.refreshed} refreshed, "
        f"{report.renamed} renamed, {len(report.dropped)} dropped"
    )
    return 0


def _relocate_one(session: Session, path: Path) -> None:
    buffer = SourceBuffer.from_path(path)
    session.mtimes.observe(buffer.name)
    report = session.relocation.relocate(buffer)
    if report.aborted:
        print(f"Skipped {path}: no symbols available")
        return
    print(f"Relocated {path}: {report.relocated} moved, {len(report.dropped)} dropped")
    for clamped in report.clamped:
        print(
            f"  warning: bookmark in {clamped.name} clamped from offset "
            f"{clamped.old_offset} to {clamped.new_offset}",
            file=sys.stderr,
        )


def cmd_relocate(session: Session, args: argparse.Namespace) -> int:
    if args.file is not None:
        _relocate_one(session, args.file)
        return 0
    for path in sorted(session.store.files):
        if not Path(path).is_file():
            logger.info("skipping missing file %s", path)
            continue
        _relocate_one(session, Path(path))
    return 0


def cmd_symbols(session: Session, args: argparse.Namespace) -> int:
    buffer = SourceBuffer.from_path(args.file)
    symbols = session.scheduler.query_blocking(buffer, session.settings.relocation_timeout_seconds)
    if not symbols:
        reason = getattr(session.scheduler.provider, "last_error", None)
        print(f"No symbols in {args.file}" + (f": {reason}" if reason else ""), file=sys.stderr)
        return 0
    for symbol in symbols:
        span = f"{symbol.range.start_line + 1}-{symbol.range.end_line + 1}"
        details = f" {symbol.details}" if symbol.details else ""
        print(f"{span:>11}  {kind_label(symbol.kind):<11} {symbol.name}{details}")
    return 0


def cmd_config(session: Session, args: argparse.Namespace) -> int:
    if args.comment_width is not None:
        if args.comment_width <= 0:
            raise ValueError("--comment-width must be a positive number")
        save_comment_width(args.comment_width)
    if args.data_dir is not None:
        save_data_dir(args.data_dir)
    settings = load_settings()
    print(f"comment_width = {settings.comment_width}")
    print(f"calibration_timeout_ms = {settings.calibration_timeout_ms}")
    print(f"relocation_timeout_ms = {settings.relocation_timeout_ms}")
    print(f"data_dir = {settings.data_dir}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="anchormark",
        description="Code bookmarks that follow the functions and classes they point into.",
    )
    parser.add_argument("--root", type=Path, default=None, help="Workspace root. Defaults to current directory.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log engine decisions to stderr.")
    parser.add_argument("--no-color", action="store_true", help="Disable color output even on TTY.")
    parser.add_argument("--style", default=DEFAULT_STYLE, help="Pygments style name for --context output.")
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Bookmark FILE:LINE.")
    add.add_argument("location", type=_location, metavar="FILE:LINE")
    add.add_argument("-c", "--comment", default=None, help="Comment attached to the bookmark.")
    add.set_defaults(handler=cmd_add)

    delete = commands.add_parser("delete", help="Delete the bookmark at FILE:LINE.")
    delete.add_argument("location", type=_location, metavar="FILE:LINE")
    delete.set_defaults(handler=cmd_delete)

    comment = commands.add_parser("comment", help="Replace the comment of the bookmark at FILE:LINE.")
    comment.add_argument("location", type=_location, metavar="FILE:LINE")
    comment.add_argument("text")
    comment.set_defaults(handler=cmd_comment)

    listing = commands.add_parser("list", help="List bookmarks of the workspace.")
    listing.add_argument("-f", "--filter", default=None, metavar="PATTERN", help="Glob on file paths.")
    listing.add_argument("--context", action="store_true", help="Show the bookmarked source line.")
    listing.add_argument("--json", action="store_true", help="Print JSON instead of text.")
    listing.set_defaults(handler=cmd_list)

    calibrate = commands.add_parser("calibrate", help="Revalidate bookmarks of FILE against its symbols.")
    calibrate.add_argument("file", type=Path)
    calibrate.set_defaults(handler=cmd_calibrate)

    relocate = commands.add_parser("relocate", help="Re-anchor bookmarks after external edits.")
    relocate.add_argument("file", type=Path, nargs="?", default=None)
    relocate.set_defaults(handler=cmd_relocate)

    symbols = commands.add_parser("symbols", help="Print the symbol outline of FILE.")
    symbols.add_argument("file", type=Path)
    symbols.set_defaults(handler=cmd_symbols)

    config_command = commands.add_parser("config", help="Show settings, saving any given ones first.")
    config_command.add_argument("--comment-width", type=int, default=None, help="Characters of comment shown beside a bookmark.")
    config_command.add_argument("--data-dir", type=Path, default=None, help="Directory holding the bookmark files.")
    config_command.set_defaults(handler=cmd_config)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse CLI arguments and run one subcommand; returns the exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    session = Session(TreeSitterSymbolProvider(), notify=lambda message: print(message, file=sys.stderr))
    try:
        session.open_workspace(args.root or Path.cwd())
        return args.handler(session, args)
    except (ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        session.shutdown()


if __name__ == "__main__":
    raise SystemExit(main())
