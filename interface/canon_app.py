#!/usr/bin/env python3
"""
taskcanon: canonical formatter for Markdown task lines (CLI/TUI).

Thin facade: the parser lives in cli_parser, command bodies in cli_commands.
"""

import argparse
import logging
import sys
from importlib.metadata import PackageNotFoundError, version as pkg_version
from typing import List, Optional

from interface.cli_parser import build_parser as build_cli_parser

from .cli_commands import cmd_assign, cmd_config, cmd_edit, cmd_format, cmd_line

__all__ = [
    "cmd_line",
    "cmd_format",
    "cmd_assign",
    "cmd_config",
    "cmd_edit",
    "build_parser",
    "main",
]

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    return build_cli_parser(commands=sys.modules[__name__])


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(bool(getattr(args, "verbose", False)))
    if getattr(args, "version", False):
        try:
            print(pkg_version("taskcanon"))
        except PackageNotFoundError:
            print("0.0.0")
        return 0
    if not getattr(args, "command", None):
        parser.print_help()
        return 1
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
