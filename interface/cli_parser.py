"""CLI parser construction for the taskcanon formatter."""

import argparse
from typing import Any

from core.html_partials import ASSIGNMENT_STATES, MEMBER_TYPES


def build_parser(commands: Any) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskcanon",
        description="taskcanon: canonical formatting for Markdown task lines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging to stderr")

    sub = parser.add_subparsers(dest="command", help="Commands")

    # line
    lp = sub.add_parser("line", help="Normalize a single task line")
    lp.add_argument("text", help="task line, e.g. '- [ ] Write report'")
    lp.add_argument("--cursor", type=int, help="caret offset in TEXT (default: end of line)")
    lp.set_defaults(func=commands.cmd_line)

    # format
    fp = sub.add_parser("format", help="Normalize every task line of a Markdown file")
    fp.add_argument("path")
    mode = fp.add_mutually_exclusive_group()
    mode.add_argument("--check", action="store_true", help="Exit 1 if the file would change; write nothing")
    mode.add_argument("--stdout", action="store_true", help="Print the formatted file instead of writing it")
    fp.set_defaults(func=commands.cmd_format)

    # assign
    ap = sub.add_parser("assign", help="Set the assignee of one task line")
    ap.add_argument("path")
    ap.add_argument("line", type=int, help="1-based line number")
    ap.add_argument("--member", required=True, help="display name")
    ap.add_argument("--slug", required=True, help="member slug, e.g. @alice")
    ap.add_argument("--type", dest="member_type", default="teamMember", choices=list(MEMBER_TYPES))
    ap.add_argument("--state", default="active", choices=list(ASSIGNMENT_STATES))
    ap.add_argument("--clear-delegate", action="store_true", help="Drop the delegate slot")
    ap.set_defaults(func=commands.cmd_assign)

    # config
    cp = sub.add_parser("config", help="Show or change formatter settings")
    cp.add_argument("--set", dest="assignments", action="append", default=[], metavar="KEY=VALUE")
    cp.set_defaults(func=commands.cmd_config)

    # edit
    ep = sub.add_parser("edit", help="Open a Markdown file in the formatting editor")
    ep.add_argument("path")
    ep.set_defaults(func=commands.cmd_edit)

    return parser
