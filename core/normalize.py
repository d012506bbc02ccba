"""Canonical task-line serializer.

Canonical order::

    prefix, parent-link, artifact-item-type, task text, state(s),
    other tags (tagged first, by order tag), assignee → delegate,
    metadata, date tokens (by priority), block id
"""

import logging
from typing import List, Optional

from .canonical_types import KEEP, AssignmentOverride, CanonicalPieces, Extracted, NormalizeOptions, TagInstance
from .extract import extract_all
from .line_utils import ensure_safe_trailing_space_for_html, normalize_whitespace_preserve_trailing

logger = logging.getLogger("taskcanon.normalize")


def _sorted_other_tags(tags: List[TagInstance]) -> List[TagInstance]:
    # sorted() is stable, so equal order tags keep their scan order.
    return sorted(tags, key=lambda t: (0 if t.order_tag else 1, (t.order_tag or "").lower()))


def _resolve(current: Optional[TagInstance], override: AssignmentOverride) -> Optional[str]:
    if override is KEEP:
        return current.wrapper_html if current else None
    return override or None


def build_pieces(extracted: Extracted, options: Optional[NormalizeOptions] = None) -> CanonicalPieces:
    opts = options or NormalizeOptions()
    assignee = _resolve(extracted.assignments.assignee, opts.assignee_html)
    delegate = _resolve(extracted.assignments.delegate, opts.delegate_html)
    if not assignee:
        delegate = None

    return CanonicalPieces(
        prefix=extracted.prefix,
        task_text=extracted.task_text,
        parent_link=extracted.parent_link.wrapper_html if extracted.parent_link else None,
        artifact_item_type=extracted.artifact_item_type.wrapper_html if extracted.artifact_item_type else None,
        state=" ".join(s.wrapper_html for s in extracted.states) or None,
        other_tags=[t.wrapper_html for t in _sorted_other_tags(extracted.other_tags)],
        assignee=assignee,
        delegate=delegate,
        metadata=[m.wrapper_html for m in extracted.metadata],
        date_tokens=list(extracted.date_tokens),
        block_id=extracted.block_id,
    )


def serialize_pieces(pieces: CanonicalPieces) -> str:
    out = pieces.prefix
    for frag in pieces.fragments():
        out += ("" if out.endswith(" ") else " ") + frag
    out = normalize_whitespace_preserve_trailing(out)
    return ensure_safe_trailing_space_for_html(out)


def normalize_task_line(line: str, options: Optional[NormalizeOptions] = None) -> str:
    """Rewrite a task line into its canonical form.

    Lines without a checkbox prefix are returned unchanged. Any failure while
    parsing or reassembling also returns the input untouched: formatting must
    never lose user content.
    """
    try:
        extracted = extract_all(line)
        if extracted is None:
            return line
        return serialize_pieces(build_pieces(extracted, options))
    except Exception:
        logger.debug("normalize failed, keeping line as-is: %r", line, exc_info=True)
        return line
