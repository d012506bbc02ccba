from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union


class _Keep:
    """Marker for "leave the slot as the line already has it"."""

    _instance: Optional["_Keep"] = None

    def __new__(cls) -> "_Keep":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "KEEP"


KEEP = _Keep()

AssignmentOverride = Union[_Keep, str, None]


@dataclass(frozen=True)
class Selection:
    start: int
    end: int

    @classmethod
    def caret(cls, pos: int) -> "Selection":
        return cls(pos, pos)

    @property
    def width(self) -> int:
        return max(0, self.end - self.start)

    @property
    def is_range(self) -> bool:
        return self.start != self.end

    def shifted(self, delta: int) -> "Selection":
        return Selection(self.start + delta, self.end + delta)


@dataclass(frozen=True)
class NormalizeOptions:
    """Assignment overrides applied while reassembling a line.

    Each field is KEEP (use the wrapper already on the line), None (drop the
    slot) or a wrapper HTML string (replace the slot).
    """

    assignee_html: AssignmentOverride = KEEP
    delegate_html: AssignmentOverride = KEEP


@dataclass(frozen=True)
class ParsedLine:
    prefix: str
    rest_original: str
    rest_sans_block_id: str
    block_id: Optional[str]


@dataclass
class TagInstance:
    wrapper_html: str
    template_key: str
    order_tag: Optional[str] = None
    props: Dict[str, str] = field(default_factory=dict)
    mark_inner_html: str = ""


@dataclass
class Assignments:
    assignee: Optional[TagInstance] = None
    delegate: Optional[TagInstance] = None


@dataclass
class Extracted:
    prefix: str
    task_text: str
    block_id: Optional[str] = None
    parent_link: Optional[TagInstance] = None
    artifact_item_type: Optional[TagInstance] = None
    states: List[TagInstance] = field(default_factory=list)
    assignments: Assignments = field(default_factory=Assignments)
    metadata: List[TagInstance] = field(default_factory=list)
    other_tags: List[TagInstance] = field(default_factory=list)
    date_tokens: List[str] = field(default_factory=list)

    def all_wrappers(self) -> List[str]:
        """Every surviving wrapper in classification order."""
        tags: List[TagInstance] = []
        if self.parent_link:
            tags.append(self.parent_link)
        if self.artifact_item_type:
            tags.append(self.artifact_item_type)
        tags.extend(self.states)
        tags.extend(self.other_tags)
        if self.assignments.assignee:
            tags.append(self.assignments.assignee)
        if self.assignments.delegate:
            tags.append(self.assignments.delegate)
        tags.extend(self.metadata)
        return [t.wrapper_html for t in tags]


@dataclass
class CanonicalPieces:
    prefix: str
    task_text: str
    parent_link: Optional[str] = None
    artifact_item_type: Optional[str] = None
    state: Optional[str] = None
    other_tags: List[str] = field(default_factory=list)
    assignee: Optional[str] = None
    delegate: Optional[str] = None
    metadata: List[str] = field(default_factory=list)
    date_tokens: List[str] = field(default_factory=list)
    block_id: Optional[str] = None

    def fragments(self) -> List[str]:
        """Non-empty fragments in canonical emission order (prefix excluded)."""
        out: List[str] = []
        for frag in (self.parent_link, self.artifact_item_type, self.task_text, self.state):
            if frag:
                out.append(frag)
        if self.other_tags:
            out.append(" ".join(self.other_tags))
        if self.assignee and self.delegate:
            out.append(f"{self.assignee} → {self.delegate}")
        elif self.assignee:
            out.append(self.assignee)
        # delegate without assignee is invalid and never emitted
        if self.metadata:
            out.append(" ".join(self.metadata))
        if self.date_tokens:
            out.append(" ".join(self.date_tokens))
        if self.block_id:
            out.append(self.block_id)
        return out
