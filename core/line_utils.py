"""String helpers shared by the canonical formatter (prefix, block id, whitespace, attributes)."""

import re
from typing import Dict, Optional, Tuple

PREFIX_PATTERN = re.compile(r"^(\s*[-*]\s*\[\s*.\s*\]\s*)(.*)$", re.S)
BLOCK_ID_PATTERN = re.compile(r"\s*\^([A-Za-z0-9-]+)\s*$")
INDENT_PATTERN = re.compile(r"^\s*")
_WS_RUN = re.compile(r"\s{2,}")
_DATA_PROP = re.compile(r"\bdata-([a-z0-9-]+)=\"([^\"]*)\"", re.I)
_INNER_HTML = re.compile(r"<span\b[^>]*>(.*?)</span>", re.I | re.S)
_CLOSING_TAG_AT_END = re.compile(r">\s*$")


def extract_prefix(line: str) -> Tuple[Optional[str], str]:
    """Split a task line into its checkbox prefix and the remainder.

    Returns (None, line) when the line carries no checkbox marker.
    """
    m = PREFIX_PATTERN.match(line)
    if not m:
        return None, line
    return m.group(1), m.group(2)


def extract_block_id(rest: str) -> Tuple[str, Optional[str]]:
    """Remove a trailing ``^block-id`` reference, leaving a single space in its place."""
    m = BLOCK_ID_PATTERN.search(rest)
    if not m:
        return rest, None
    return rest[: m.start()] + " ", f"^{m.group(1)}"


def split_indent(line: str) -> Tuple[str, str]:
    indent = INDENT_PATTERN.match(line).group(0)
    return indent, line[len(indent):]


def normalize_whitespace_preserve_trailing(s: str) -> str:
    """Collapse inner whitespace runs to one space; keep one trailing space if there was one."""
    ends_with_space = bool(s) and s[-1].isspace()
    out = _WS_RUN.sub(" ", s)
    if ends_with_space and not (out and out[-1].isspace()):
        out += " "
    return out


def ensure_safe_trailing_space_for_html(out: str) -> str:
    # A line ending in a closing tag always gets exactly one trailing space.
    if _CLOSING_TAG_AT_END.search(out):
        return out.rstrip() + " "
    return out


def get_attr(html: str, name: str) -> Optional[str]:
    m = re.search(rf"\b{re.escape(name)}=\"([^\"]*)\"", html)
    return m.group(1) if m else None


def collect_data_props(html: str) -> Dict[str, str]:
    """``data-<kebab>="value"`` pairs, keyed by the kebab name without the ``data-`` prefix."""
    return {m.group(1): m.group(2) for m in _DATA_PROP.finditer(html)}


def extract_inner_html(wrapper: str) -> str:
    m = _INNER_HTML.fullmatch(wrapper.strip())
    return m.group(1) if m else wrapper
