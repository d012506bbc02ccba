"""Balanced scanner for template wrapper spans.

A wrapper is a ``<span>`` whose opening tag carries ``data-template-key="..."``.
Wrappers may contain nested ``<span>`` elements, so a non-greedy regex is not
enough: the scanner walks tag boundaries and counts span depth. Quoted
attribute values may contain ``>``. An unclosed wrapper runs to the end of the
string instead of raising.
"""

import re
from typing import List, Tuple

WRAPPER_ATTR = "data-template-key"

_WRAPPER_ATTR_RE = re.compile(rf"\b{WRAPPER_ATTR}\s*=", re.I)

Range = Tuple[int, int]


def find_tag_end(html: str, start: int) -> int:
    """Index of the ``>`` closing the tag that opens at ``start``, honouring quotes.

    Falls back to the last index of the string when the tag never closes.
    """
    in_single = False
    in_double = False
    i = start
    n = len(html)
    while i < n:
        ch = html[i]
        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == ">" and not in_single and not in_double:
            return i
        i += 1
    return n - 1


def _is_opening_span(html: str, idx: int) -> bool:
    return html[idx : idx + 5].lower() == "<span"


def _is_closing_span(html: str, idx: int) -> bool:
    return html[idx : idx + 6].lower() == "</span"


def opening_tag(wrapper: str) -> str:
    """The opening tag of a wrapper (or the whole string if it has none)."""
    if not wrapper.startswith("<"):
        return wrapper
    return wrapper[: find_tag_end(wrapper, 0) + 1]


def _wrapper_ranges(html: str) -> List[Range]:
    ranges: List[Range] = []
    n = len(html)
    i = 0
    while i < n:
        open_idx = html.find("<", i)
        if open_idx == -1:
            break
        tag_end = find_tag_end(html, open_idx)
        if not _is_opening_span(html, open_idx):
            i = tag_end + 1
            continue
        if not _WRAPPER_ATTR_RE.search(html[open_idx : tag_end + 1]):
            i = tag_end + 1
            continue

        depth = 1
        j = tag_end + 1
        while j < n and depth > 0:
            lt = html.find("<", j)
            if lt == -1:
                # unbalanced: take the rest of the string
                j = n
                break
            if _is_opening_span(html, lt):
                depth += 1
            elif _is_closing_span(html, lt):
                depth -= 1
            j = find_tag_end(html, lt) + 1

        ranges.append((open_idx, j))
        i = j
    return ranges


def find_all_wrappers(html: str) -> List[str]:
    return [html[start:end] for start, end in _wrapper_ranges(html)]


def remove_wrappers(html: str) -> Tuple[str, List[str]]:
    """Replace every wrapper with a single space.

    Returns the remaining text and the removed wrappers in scan order.
    """
    ranges = _wrapper_ranges(html)
    if not ranges:
        return html, []
    parts: List[str] = []
    removed: List[str] = []
    cursor = 0
    for start, end in ranges:
        parts.append(html[cursor:start])
        parts.append(" ")
        removed.append(html[start:end])
        cursor = end
    parts.append(html[cursor:])
    return "".join(parts), removed


def blank_wrappers(html: str) -> str:
    """Overwrite wrappers with spaces of equal length so offsets stay valid."""
    out = html
    for start, end in _wrapper_ranges(html):
        out = out[:start] + " " * (end - start) + out[end:]
    return out
