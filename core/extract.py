"""Parse a task line and classify its wrappers, date tokens and plain text."""

from typing import Iterable, List, Optional

from .canonical_types import Assignments, Extracted, ParsedLine, TagInstance
from .date_tokens import ARROW, extract_and_order_date_tokens, remove_date_tokens
from .html_scanner import opening_tag, remove_wrappers
from .line_utils import (
    collect_data_props,
    extract_block_id,
    extract_inner_html,
    extract_prefix,
    get_attr,
    normalize_whitespace_preserve_trailing,
)

ASSIGNEE_TEMPLATE_KEY = "members.assignee"
ASSIGN_TYPES_ASSIGNEE = frozenset({"assignee", "special"})
ASSIGN_TYPE_DELEGATE = "delegate"

ORDER_PARENT_LINK = "parent-link"
ORDER_ARTIFACT_ITEM_TYPE = "artifact-item-type"
ORDER_STATE = "state"
ORDER_METADATA = "metadata"


def parse_line(line: str) -> Optional[ParsedLine]:
    prefix, rest = extract_prefix(line)
    if prefix is None:
        return None
    rest_sans_block_id, block_id = extract_block_id(rest)
    return ParsedLine(prefix=prefix, rest_original=rest, rest_sans_block_id=rest_sans_block_id, block_id=block_id)


def parse_tag(wrapper_html: str) -> TagInstance:
    head = opening_tag(wrapper_html)
    props = collect_data_props(head)
    return TagInstance(
        wrapper_html=wrapper_html,
        template_key=get_attr(head, "data-template-key") or "",
        order_tag=get_attr(head, "data-order-tag") or None,
        props=props,
        mark_inner_html=extract_inner_html(wrapper_html),
    )


def _assign_type(tag: TagInstance) -> str:
    return tag.props.get("assign-type") or tag.props.get("assigntype") or ""


def classify_tags(wrappers: Iterable[str]) -> Extracted:
    """Sort wrappers into slots. Returns an Extracted with empty prefix/text to be filled by the caller."""
    result = Extracted(prefix="", task_text="")
    assignments = Assignments()
    for wrapper in wrappers:
        tag = parse_tag(wrapper)

        if tag.template_key == ASSIGNEE_TEMPLATE_KEY:
            assign_type = _assign_type(tag)
            if assign_type in ASSIGN_TYPES_ASSIGNEE:
                if assignments.assignee is None:
                    assignments.assignee = tag
                continue
            if assign_type == ASSIGN_TYPE_DELEGATE:
                if assignments.delegate is None:
                    assignments.delegate = tag
                continue

        order_tag = tag.order_tag
        if order_tag == ORDER_PARENT_LINK:
            if result.parent_link is None:
                result.parent_link = tag
            continue
        if order_tag == ORDER_ARTIFACT_ITEM_TYPE:
            if result.artifact_item_type is None:
                result.artifact_item_type = tag
            continue
        if order_tag == ORDER_STATE:
            result.states.append(tag)
            continue
        if order_tag == ORDER_METADATA:
            result.metadata.append(tag)
            continue
        result.other_tags.append(tag)

    result.assignments = assignments
    return result


def plain_task_text(text_without_wrappers: str) -> str:
    """Strip date tokens and the relation arrow, then collapse whitespace (one trailing space survives)."""
    text = remove_date_tokens(text_without_wrappers).replace(ARROW, " ")
    return normalize_whitespace_preserve_trailing(text)


def extract_all(line: str) -> Optional[Extracted]:
    parsed = parse_line(line)
    if parsed is None:
        return None

    # Wrappers go first so a date that lives inside a wrapper is not pulled out twice.
    text_without_wrappers, wrappers = remove_wrappers(parsed.rest_sans_block_id)

    extracted = classify_tags(wrappers)
    extracted.prefix = parsed.prefix
    extracted.block_id = parsed.block_id
    extracted.date_tokens = extract_and_order_date_tokens(text_without_wrappers)
    extracted.task_text = plain_task_text(text_without_wrappers)
    return extracted


def wrappers_of(line: str) -> List[str]:
    """Wrappers that survive classification, in classification order (empty for non-task lines)."""
    extracted = extract_all(line)
    return extracted.all_wrappers() if extracted else []
