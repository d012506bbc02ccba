from .canonical_types import (
    KEEP,
    Assignments,
    CanonicalPieces,
    Extracted,
    NormalizeOptions,
    ParsedLine,
    Selection,
    TagInstance,
)
from .html_scanner import find_all_wrappers, remove_wrappers
from .date_tokens import extract_and_order_date_tokens, remove_date_tokens
from .extract import extract_all, parse_line, wrappers_of
from .normalize import normalize_task_line
from .caret_mapping import compute_new_caret
from .html_partials import render_assignee, wrap_template

__all__ = [
    # Types
    "KEEP",
    "Assignments",
    "CanonicalPieces",
    "Extracted",
    "NormalizeOptions",
    "ParsedLine",
    "Selection",
    "TagInstance",
    # Scanning / extraction
    "find_all_wrappers",
    "remove_wrappers",
    "extract_and_order_date_tokens",
    "remove_date_tokens",
    "extract_all",
    "parse_line",
    "wrappers_of",
    # Serializer
    "normalize_task_line",
    "compute_new_caret",
    # Template partials
    "render_assignee",
    "wrap_template",
]
