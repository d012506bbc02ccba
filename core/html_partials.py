"""Builders for wrapper HTML (template instances) used when rewriting assignments."""

import html
import re
import uuid
from typing import Mapping, Optional

from .extract import ASSIGNEE_TEMPLATE_KEY

MEMBER_TYPES = ("teamMember", "delegateTeam", "delegateTeamMember", "delegateExternal", "special")
ASSIGNMENT_STATES = ("active", "inactive")

_MEMBER_EMOJI = {
    "teamMember": "\U0001F464",
    "delegateTeam": "\U0001F465",
    "delegateTeamMember": "\U0001F9D1",
    "delegateExternal": "\U0001F310",
    "special": "\U0001F30D",
}
_COLOR_ASSIGNEE = "#A7F3D0"
_COLOR_DELEGATE = "#BFDBFE"
_COLOR_INACTIVE = "#CACFD9"


def _kebab(name: str) -> str:
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", name)
    return re.sub(r"[_\s]+", "-", name).lower()


def make_instance_id() -> str:
    return f"tpl-{uuid.uuid4().hex[:10]}"


def mark_chip(text: str, *, bg: Optional[str] = None, color: Optional[str] = None, bold: bool = False) -> str:
    style = []
    if bg:
        style.append(f"background: {html.escape(bg)};")
    if color:
        style.append(f"color: {html.escape(color)};")
    style_attr = f' style="{" ".join(style)}"' if style else ""
    content = f"<strong>{text}</strong>" if bold else text
    return f"<mark{style_attr}>{content}</mark>"


def wrap_template(template_key: str, inner_html: str, props: Optional[Mapping[str, object]] = None) -> str:
    """Wrap ``inner_html`` in a template span; each prop becomes ``data-<kebab-key>``."""
    attrs = []
    for key, value in (props or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        attrs.append(f' data-{_kebab(key)}="{html.escape(str(value), quote=True)}"')
    return (
        f'<span data-template-wrapper="{make_instance_id()}" '
        f'data-template-key="{html.escape(template_key, quote=True)}"{"".join(attrs)}>{inner_html}</span>'
    )


def assign_type_for(member_type: str) -> str:
    # Team members and "special" (everyone) are assignees; every other kind is a delegate.
    return "assignee" if member_type in ("teamMember", "special") else "delegate"


def render_assignee(
    member_name: str,
    member_slug: str,
    member_type: str = "teamMember",
    assignment_state: str = "active",
) -> str:
    member_type = member_type.strip()
    if member_type not in MEMBER_TYPES:
        raise ValueError(f"Unknown member type: {member_type!r}")
    if assignment_state not in ASSIGNMENT_STATES:
        raise ValueError(f"Unknown assignment state: {assignment_state!r}")

    assign_type = assign_type_for(member_type)
    if assignment_state == "inactive":
        bg = _COLOR_INACTIVE
    else:
        bg = _COLOR_ASSIGNEE if assign_type == "assignee" else _COLOR_DELEGATE
    name = html.escape(member_name.strip())
    inner = mark_chip(f"{_MEMBER_EMOJI[member_type]} {name}", bg=bg, color="#000000", bold=True)
    return wrap_template(
        ASSIGNEE_TEMPLATE_KEY,
        inner,
        {
            "orderTag": "assignment",
            "assignmentState": assignment_state,
            "memberSlug": member_slug.strip(),
            "memberType": member_type,
            "assignType": assign_type,
        },
    )
