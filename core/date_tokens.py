"""Extract, order and strip emoji-prefixed date and snooze tokens.

Tokens are ordered by a fixed priority table. Within one priority the order
is the order the per-category scans found them in (plain dates first, then
per-user snoozes, folder snoozes and finally bare snoozes), which is a stable
sort by priority rather than a sort by position in the line.
"""

import re
from typing import Callable, List, Pattern, Tuple

START = "\U0001F6EB"
SCHEDULED = "\u23f3"
DUE = "\U0001F4C5"
TARGET = "\U0001F3AF"
COMPLETED = "\u2705"
CANCELLED = "\u274c"
SNOOZE = "\U0001F4A4"
SNOOZE_ALL = SNOOZE + "\u2b07\ufe0f"
FOLDER = "\U0001F5C2\ufe0f"
ARROW = "\u2192"

PRIORITIES = {
    START: 1,
    SCHEDULED: 2,
    DUE: 3,
    TARGET: 4,
    SNOOZE: 5,
    SNOOZE_ALL: 6,
    COMPLETED: 7,
    CANCELLED: 8,
}
UNKNOWN_PRIORITY = 999

_DATE = r"[0-9]{4}-[0-9]{2}-[0-9]{2}"
_HIDDEN_OPEN = re.escape('<span style="display: none">')
_HIDDEN_CLOSE = re.escape("</span>")

STANDARD_DATE_RE = re.compile(
    "(" + "|".join(re.escape(m) for m in (START, SCHEDULED, DUE, TARGET, COMPLETED, CANCELLED)) + r")\s+" + _DATE
)
SNOOZE_INDIVIDUAL_RE = re.compile(re.escape(SNOOZE) + _HIDDEN_OPEN + r"([^<]+)" + _HIDDEN_CLOSE + r"\s+" + _DATE)
SNOOZE_ALL_INDIVIDUAL_RE = re.compile(re.escape(SNOOZE_ALL) + _HIDDEN_OPEN + r"([^<]+)" + _HIDDEN_CLOSE + r"\s+" + _DATE)
SNOOZE_FOLDER_RE = re.compile(re.escape(SNOOZE + FOLDER) + _HIDDEN_OPEN + r"\[.*?\]" + _HIDDEN_CLOSE, re.S)
SNOOZE_ALL_FOLDER_RE = re.compile(re.escape(SNOOZE_ALL + FOLDER) + _HIDDEN_OPEN + r"\[.*?\]" + _HIDDEN_CLOSE, re.S)
# Bare markers: anything glued on (hidden span, arrow, folder glyph) makes it a different shape.
GLOBAL_SNOOZE_RE = re.compile(re.escape(SNOOZE) + r"(?!\S)")
GLOBAL_SNOOZE_ALL_RE = re.compile(re.escape(SNOOZE_ALL) + r"(?!\S)")

# Scan order matters: it is the tie-break inside a priority bucket.
_CATEGORIES: List[Tuple[Pattern[str], Callable[[re.Match], int]]] = [
    (STANDARD_DATE_RE, lambda m: PRIORITIES.get(m.group(1), UNKNOWN_PRIORITY)),
    (SNOOZE_INDIVIDUAL_RE, lambda m: PRIORITIES[SNOOZE]),
    (SNOOZE_ALL_INDIVIDUAL_RE, lambda m: PRIORITIES[SNOOZE_ALL]),
    (SNOOZE_FOLDER_RE, lambda m: PRIORITIES[SNOOZE]),
    (SNOOZE_ALL_FOLDER_RE, lambda m: PRIORITIES[SNOOZE_ALL]),
    (GLOBAL_SNOOZE_RE, lambda m: PRIORITIES[SNOOZE]),
    (GLOBAL_SNOOZE_ALL_RE, lambda m: PRIORITIES[SNOOZE_ALL]),
]


def extract_and_order_date_tokens(text: str) -> List[str]:
    found: List[Tuple[int, str]] = []
    for pattern, priority_of in _CATEGORIES:
        for m in pattern.finditer(text):
            found.append((priority_of(m), m.group(0)))
    found.sort(key=lambda item: item[0])
    return [token for _, token in found]


def remove_date_tokens(text: str) -> str:
    for pattern, _ in _CATEGORIES:
        text = pattern.sub(" ", text)
    return text


def blank_date_tokens(text: str) -> str:
    """Like remove_date_tokens, but keeps every offset by blanking with equal-length whitespace."""
    for pattern, _ in _CATEGORIES:
        text = pattern.sub(lambda m: " " * len(m.group(0)), text)
    return text
