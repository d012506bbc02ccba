from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol

from core import Selection

Unsubscribe = Callable[[], None]


@dataclass(frozen=True)
class CurrentLine:
    line: str
    line_number: int
    selection: Optional[Selection] = None


@dataclass(frozen=True)
class CursorMove:
    prev_line: int
    next_line: int


class EditorPort(Protocol):
    """Host/editor surface the formatter reads from and writes to.

    Only get_current_line is mandatory. Every other member is an optional
    capability: hosts that cannot offer it simply leave it out, and callers
    look it up with ``capability(port, name)``.
    """

    def get_current_line(self) -> Optional[CurrentLine]:
        ...

    def get_line_at(self, line_number: int) -> Optional[str]:
        ...

    def replace_line(self, line_number: int, new_line: str) -> None:
        ...

    def replace_line_with_selection(self, line_number: int, new_line: str, selection: Selection) -> None:
        ...

    def replace_all_lines(self, new_lines: List[str]) -> None:
        ...

    def get_all_lines(self) -> List[str]:
        ...

    def get_cursor_line(self) -> Optional[int]:
        ...

    def on_progress_start(self, title: str, total: int) -> None:
        ...

    def on_progress_update(self, current: int, total: int) -> None:
        ...

    def on_progress_end(self) -> None:
        ...

    def on_line_committed(self, callback: Callable[[], None]) -> Unsubscribe:
        ...

    def on_cursor_line_changed(self, callback: Callable[[CursorMove], None]) -> Unsubscribe:
        ...

    def on_leaf_or_file_changed(self, callback: Callable[[], None]) -> Unsubscribe:
        ...


def capability(port: Any, name: str) -> Optional[Callable[..., Any]]:
    """Bound method ``name`` of ``port`` if the host provides it, else None."""
    if port is None:
        return None
    member = getattr(port, name, None)
    return member if callable(member) else None
