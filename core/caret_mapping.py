"""Map a selection from a line to its normalized rewrite.

The goal is to keep the caret right after what the user just typed even when
wrappers and date tokens move around it:

1. identical lines keep the selection;
2. stable words of the user text are located in the new line and the caret
   follows the nearest word at or before it;
3. otherwise short left/right context anchors around the caret are searched;
4. otherwise the caret goes to the end of the new line.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from .canonical_types import Selection
from .date_tokens import ARROW, blank_date_tokens
from .html_scanner import blank_wrappers

ANCHOR_LEN = 16
MIN_TOKEN_LEN = 2


@dataclass(frozen=True)
class StableToken:
    text: str
    start: int
    end: int


def _clamp(pos: int, length: int) -> int:
    return max(0, min(pos, length))


def _ordered(start: int, end: int) -> Selection:
    return Selection(start, end) if start <= end else Selection(end, start)


def extract_stable_tokens(line: str) -> List[StableToken]:
    """Words (len >= 2) of the user text with offsets into ``line``."""
    sanitized = blank_date_tokens(blank_wrappers(line)).replace(ARROW, " ")
    tokens: List[StableToken] = []
    i = 0
    n = len(sanitized)
    while i < n:
        while i < n and sanitized[i].isspace():
            i += 1
        start = i
        while i < n and not sanitized[i].isspace():
            i += 1
        if i - start >= MIN_TOKEN_LEN:
            tokens.append(StableToken(sanitized[start:i], start, i))
    return tokens


def build_stable_map(tokens: List[StableToken], new_line: str) -> Dict[int, int]:
    """Old token end offset -> end offset of the token's first occurrence in ``new_line``."""
    mapping: Dict[int, int] = {}
    for token in tokens:
        idx = new_line.find(token.text)
        if idx != -1:
            mapping[token.end] = idx + len(token.text)
    return mapping


def _map_with_tokens(new_line: str, old_sel: Selection, mapping: Dict[int, int]) -> Optional[Selection]:
    caret = old_sel.end
    candidates = [old_end for old_end in mapping if old_end <= caret]
    if not candidates:
        return None
    best_old = max(candidates)
    mapped_end = caret + (mapping[best_old] - best_old)
    length = len(new_line)
    return _ordered(_clamp(mapped_end - old_sel.width, length), _clamp(mapped_end, length))


def _locate_after(haystack: str, anchor: str) -> Optional[int]:
    if not anchor:
        return None
    idx = haystack.find(anchor)
    return None if idx == -1 else idx + len(anchor)


def _locate_between(haystack: str, left: str, right: str) -> Optional[int]:
    if not left and not right:
        return None
    start = haystack.find(left) if left else 0
    if start == -1:
        return None
    after_left = start + len(left)
    if not right:
        return after_left
    if haystack.find(right, after_left) == -1:
        return None
    return after_left


def _locate_before(haystack: str, right: str) -> Optional[int]:
    if not right:
        return None
    idx = haystack.find(right)
    return None if idx == -1 else idx


def compute_new_caret(old_line: str, new_line: str, old_sel: Selection) -> Selection:
    if old_line == new_line:
        return old_sel

    mapping = build_stable_map(extract_stable_tokens(old_line), new_line)
    mapped = _map_with_tokens(new_line, old_sel, mapping)
    if mapped is not None:
        return mapped

    caret = _clamp(old_sel.end, len(old_line))
    left = old_line[max(0, caret - ANCHOR_LEN) : caret]
    right = old_line[caret : caret + ANCHOR_LEN]

    pos = _locate_after(new_line, left)
    if pos is None:
        pos = _locate_between(new_line, left, right)
    if pos is None:
        pos = _locate_before(new_line, right)
    length = len(new_line)
    if pos is None:
        return Selection.caret(length)

    end = _clamp(pos, length)
    if old_sel.is_range:
        return _ordered(_clamp(pos - old_sel.width, length), end)
    return Selection.caret(end)
