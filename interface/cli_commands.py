import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

import config
from application.formatter_service import CanonicalFormatterService
from core import KEEP, NormalizeOptions, Selection
from core.html_partials import assign_type_for, render_assignee
from infrastructure.line_document import LineDocument
from infrastructure.markdown_file import MarkdownFile
from interface.cli_io import check_response, structured_error, structured_response

logger = logging.getLogger("taskcanon.cli")


def _load(command: str, raw_path: str) -> Tuple[MarkdownFile, int]:
    path = Path(raw_path).expanduser()
    if not path.is_file():
        return MarkdownFile(path=path), structured_error(command, f"File not found: {path}", payload={"path": str(path)})
    try:
        return MarkdownFile.read(path), 0
    except (OSError, UnicodeDecodeError) as exc:
        return MarkdownFile(path=path), structured_error(command, f"Cannot read {path}: {exc}", payload={"path": str(path)})


def _changed_lines(before: List[str], after: List[str]) -> List[int]:
    return [i + 1 for i, (old, new) in enumerate(zip(before, after)) if old != new]


def cmd_line(args) -> int:
    text = args.text
    cursor = len(text) if args.cursor is None else args.cursor
    if not 0 <= cursor <= len(text):
        return structured_error("line", f"--cursor must be between 0 and {len(text)}", payload={"cursor": cursor})
    doc = LineDocument([text], selection=Selection.caret(cursor))
    changed = CanonicalFormatterService(doc).normalize_current_line()
    selection = doc.selection or Selection.caret(cursor)
    return structured_response(
        "line",
        message="Line normalized" if changed else "Line already canonical",
        payload={"input": text, "line": doc.lines[0], "changed": changed, "cursor": selection.end},
    )


def cmd_format(args) -> int:
    md, error = _load("format", args.path)
    if error:
        return error
    before = list(md.lines)
    doc = LineDocument(before)
    service = CanonicalFormatterService(doc)
    changed = asyncio.run(service.normalize_whole_file(before)) if before else False
    after = doc.get_all_lines() if changed else before
    payload: Dict[str, Any] = {
        "path": str(md.path),
        "lines": len(before),
        "changed_lines": _changed_lines(before, after),
    }

    if args.check:
        return check_response("format", changed, payload)
    if args.stdout:
        md.lines = after
        sys.stdout.write(md.text())
        return 0
    if changed:
        md.lines = after
        md.write()
        logger.info("formatted %s (%d lines changed)", md.path, len(payload["changed_lines"]))
    return structured_response("format", message="File formatted" if changed else "File already canonical", payload=payload)


def cmd_assign(args) -> int:
    md, error = _load("assign", args.path)
    if error:
        return error
    index = args.line - 1
    if not 0 <= index < len(md.lines):
        return structured_error("assign", f"Line {args.line} is out of range (1..{len(md.lines)})", payload={"line": args.line})
    try:
        wrapper = render_assignee(args.member, args.slug, member_type=args.member_type, assignment_state=args.state)
    except ValueError as exc:
        return structured_error("assign", str(exc))

    if assign_type_for(args.member_type) == "delegate":
        options = NormalizeOptions(assignee_html=KEEP, delegate_html=wrapper)
    else:
        options = NormalizeOptions(assignee_html=wrapper, delegate_html=None if args.clear_delegate else KEEP)

    doc = LineDocument(md.lines)
    CanonicalFormatterService(doc).normalize_line_number(index, options)
    new_line = doc.lines[index]
    payload = {"path": str(md.path), "line": args.line, "text": new_line}
    if wrapper not in new_line:
        # Not a task line, or a delegate offered to a line with no assignee.
        return structured_response("assign", status="WARN", message="Assignment not applied", payload=payload, exit_code=1)
    md.lines = doc.get_all_lines()
    md.write()
    return structured_response("assign", message="Assignment updated", payload=payload)


def cmd_config(args) -> int:
    for item in args.assignments or []:
        key, sep, value = item.partition("=")
        if not sep:
            return structured_error("config", f"Expected KEY=VALUE, got {item!r}")
        try:
            config.set_option(key, value)
        except ValueError as exc:
            return structured_error("config", str(exc))
    return structured_response("config", message="Formatter settings", payload=config.settings_snapshot())


def cmd_edit(args) -> int:
    from interface.tui_editor import run_editor

    path = Path(args.path).expanduser()
    if path.exists() and not path.is_file():
        return structured_error("edit", f"Not a file: {path}", payload={"path": str(path)})
    return run_editor(path)
