"""In-memory EditorPort over a list of lines.

Used by the CLI for batch formatting and by tests as a scriptable host: the
``move_cursor``/``commit_line``/``emit_leaf_or_file_changed`` helpers fire the
same events an interactive editor would.
"""

from typing import Callable, List, Optional, Sequence, Tuple

from application.ports import CurrentLine, CursorMove, Unsubscribe
from core import Selection


class LineDocument:
    def __init__(
        self,
        lines: Optional[Sequence[str]] = None,
        cursor_line: int = 0,
        selection: Optional[Selection] = None,
    ) -> None:
        self.lines: List[str] = list(lines) if lines else [""]
        self.cursor_line = max(0, min(cursor_line, len(self.lines) - 1))
        self.selection = selection
        self.progress_log: List[Tuple] = []
        self.writes = 0
        self._commit_listeners: List[Callable[[], None]] = []
        self._cursor_listeners: List[Callable[[CursorMove], None]] = []
        self._leaf_listeners: List[Callable[[], None]] = []

    # reads

    def get_current_line(self) -> Optional[CurrentLine]:
        line = self.get_line_at(self.cursor_line)
        if line is None:
            return None
        selection = self.selection or Selection.caret(len(line))
        return CurrentLine(line=line, line_number=self.cursor_line, selection=selection)

    def get_line_at(self, line_number: int) -> Optional[str]:
        if 0 <= line_number < len(self.lines):
            return self.lines[line_number]
        return None

    def get_all_lines(self) -> List[str]:
        return list(self.lines)

    def get_cursor_line(self) -> Optional[int]:
        return self.cursor_line

    # writes

    def replace_line(self, line_number: int, new_line: str) -> None:
        if not 0 <= line_number < len(self.lines):
            return
        self.lines[line_number] = new_line
        self.writes += 1
        if line_number == self.cursor_line and self.selection is not None:
            limit = len(new_line)
            self.selection = Selection(min(self.selection.start, limit), min(self.selection.end, limit))

    def replace_line_with_selection(self, line_number: int, new_line: str, selection: Selection) -> None:
        if not 0 <= line_number < len(self.lines):
            return
        self.lines[line_number] = new_line
        self.writes += 1
        if line_number == self.cursor_line:
            self.selection = selection

    def replace_all_lines(self, new_lines: Sequence[str]) -> None:
        self.lines = list(new_lines) or [""]
        self.writes += 1
        self.cursor_line = min(self.cursor_line, len(self.lines) - 1)

    # progress

    def on_progress_start(self, title: str, total: int) -> None:
        self.progress_log.append(("start", title, total))

    def on_progress_update(self, current: int, total: int) -> None:
        self.progress_log.append(("update", current, total))

    def on_progress_end(self) -> None:
        self.progress_log.append(("end",))

    # subscriptions

    @staticmethod
    def _subscribe(listeners: List[Callable], callback: Callable) -> Unsubscribe:
        listeners.append(callback)

        def unsubscribe() -> None:
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def on_line_committed(self, callback: Callable[[], None]) -> Unsubscribe:
        return self._subscribe(self._commit_listeners, callback)

    def on_cursor_line_changed(self, callback: Callable[[CursorMove], None]) -> Unsubscribe:
        return self._subscribe(self._cursor_listeners, callback)

    def on_leaf_or_file_changed(self, callback: Callable[[], None]) -> Unsubscribe:
        return self._subscribe(self._leaf_listeners, callback)

    @property
    def listener_count(self) -> int:
        return len(self._commit_listeners) + len(self._cursor_listeners) + len(self._leaf_listeners)

    # host events

    def move_cursor(self, line_number: int, column: Optional[int] = None) -> None:
        previous = self.cursor_line
        self.cursor_line = max(0, min(line_number, len(self.lines) - 1))
        self.selection = Selection.caret(column) if column is not None else None
        if previous != self.cursor_line:
            move = CursorMove(prev_line=previous, next_line=self.cursor_line)
            for callback in list(self._cursor_listeners):
                callback(move)

    def commit_line(self) -> None:
        for callback in list(self._commit_listeners):
            callback()

    def emit_leaf_or_file_changed(self) -> None:
        for callback in list(self._leaf_listeners):
            callback()
