"""EditorPort backed by a prompt_toolkit Buffer."""

from typing import Callable, List, Optional, Sequence, Tuple

from prompt_toolkit.buffer import Buffer
from prompt_toolkit.document import Document
from prompt_toolkit.selection import SelectionState

from application.ports import CurrentLine, CursorMove, Unsubscribe
from core import Selection


class BufferPort:
    """Adapts a Buffer to the formatter.

    Writes made by the formatter run behind ``is_mutating`` so the cursor
    events they cause are not reported back as user moves.
    """

    def __init__(self, buffer: Buffer, on_change: Optional[Callable[[], None]] = None) -> None:
        self.buffer = buffer
        self.on_change = on_change
        self.is_mutating = False
        self.progress: Optional[Tuple[str, int, int]] = None
        self._last_row = buffer.document.cursor_position_row
        self._commit_listeners: List[Callable[[], None]] = []
        self._cursor_listeners: List[Callable[[CursorMove], None]] = []
        self._leaf_listeners: List[Callable[[], None]] = []
        buffer.on_cursor_position_changed += self._cursor_position_changed

    def close(self) -> None:
        self.buffer.on_cursor_position_changed -= self._cursor_position_changed

    def _notify(self) -> None:
        if self.on_change:
            self.on_change()

    def _cursor_position_changed(self, _buffer: Buffer) -> None:
        if self.is_mutating:
            return
        row = self.buffer.document.cursor_position_row
        previous, self._last_row = self._last_row, row
        if row != previous:
            move = CursorMove(prev_line=previous, next_line=row)
            for callback in list(self._cursor_listeners):
                callback(move)

    # reads

    def _lines(self) -> List[str]:
        return list(self.buffer.document.lines)

    def get_current_line(self) -> Optional[CurrentLine]:
        doc = self.buffer.document
        row = doc.cursor_position_row
        line = doc.current_line
        selection = Selection.caret(doc.cursor_position_col)
        if self.buffer.selection_state is not None:
            start, end = doc.selection_range()
            start_row, start_col = doc.translate_index_to_position(start)
            end_row, end_col = doc.translate_index_to_position(end)
            if start_row == end_row == row:
                selection = Selection(start_col, end_col)
        return CurrentLine(line=line, line_number=row, selection=selection)

    def get_line_at(self, line_number: int) -> Optional[str]:
        lines = self._lines()
        if 0 <= line_number < len(lines):
            return lines[line_number]
        return None

    def get_all_lines(self) -> List[str]:
        return self._lines()

    def get_cursor_line(self) -> Optional[int]:
        return self.buffer.document.cursor_position_row

    # writes

    def _apply(self, lines: Sequence[str], row: int, col: int, selection_start: Optional[int] = None) -> None:
        text = "\n".join(lines)
        row = max(0, min(row, len(lines) - 1))
        col = max(0, min(col, len(lines[row]) if lines else 0))
        cursor = Document(text).translate_row_col_to_index(row, col)
        self.is_mutating = True
        try:
            self.buffer.set_document(Document(text, cursor), bypass_readonly=True)
            if selection_start is not None:
                anchor = Document(text).translate_row_col_to_index(row, selection_start)
                self.buffer.selection_state = SelectionState(original_cursor_position=anchor)
        finally:
            self.is_mutating = False
            self._last_row = self.buffer.document.cursor_position_row
        self._notify()

    def replace_line(self, line_number: int, new_line: str) -> None:
        lines = self._lines()
        if not 0 <= line_number < len(lines):
            return
        doc = self.buffer.document
        lines[line_number] = new_line
        self._apply(lines, doc.cursor_position_row, doc.cursor_position_col)

    def replace_line_with_selection(self, line_number: int, new_line: str, selection: Selection) -> None:
        lines = self._lines()
        if not 0 <= line_number < len(lines):
            return
        doc = self.buffer.document
        lines[line_number] = new_line
        if line_number != doc.cursor_position_row:
            self._apply(lines, doc.cursor_position_row, doc.cursor_position_col)
            return
        anchor = min(selection.start, len(new_line)) if selection.is_range else None
        self._apply(lines, line_number, selection.end, selection_start=anchor)

    def replace_all_lines(self, new_lines: Sequence[str]) -> None:
        doc = self.buffer.document
        self._apply(list(new_lines) or [""], doc.cursor_position_row, doc.cursor_position_col)

    # progress

    def on_progress_start(self, title: str, total: int) -> None:
        self.progress = (title, 0, total)
        self._notify()

    def on_progress_update(self, current: int, total: int) -> None:
        title = self.progress[0] if self.progress else ""
        self.progress = (title, current, total)
        self._notify()

    def on_progress_end(self) -> None:
        self.progress = None
        self._notify()

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

    def commit_line(self) -> None:
        for callback in list(self._commit_listeners):
            callback()

    def emit_leaf_or_file_changed(self) -> None:
        for callback in list(self._leaf_listeners):
            callback()
