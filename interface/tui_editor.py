"""prompt_toolkit editor with the canonical formatter attached."""

import logging
from pathlib import Path
from typing import Optional

from prompt_toolkit.application import Application
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import TextArea

import config
from application.formatter_service import CanonicalFormatterService
from application.orchestrator import REASON_MANUAL, SCOPE_FILE, SCOPE_LINE, FormatterOrchestrator
from infrastructure.buffer_port import BufferPort
from infrastructure.markdown_file import MarkdownFile
from interface.tui_status import build_status_text

logger = logging.getLogger("taskcanon.cli")

STYLE = Style.from_dict(
    {
        "status": "reverse",
        "status.name": "bold",
        "status.progress": "bg:#005f87 #ffffff",
        "status.message": "italic",
        "status.state": "#ffaf00",
        "status.hint": "",
    }
)


class CanonEditor:
    def __init__(self, path: Path, settings: Optional[config.FormatterSettings] = None, *, input=None, output=None):
        self.path = Path(path)
        if self.path.exists():
            self.file = MarkdownFile.read(self.path)
        else:
            self.file = MarkdownFile(path=self.path, lines=[""])
        self.settings = settings or config.load_settings()
        self.status_message = ""
        self.dirty = False
        self.app: Optional[Application] = None

        self.text_area = TextArea(
            text="\n".join(self.file.lines),
            multiline=True,
            scrollbar=True,
            line_numbers=True,
            focusable=True,
        )
        self.port = BufferPort(self.text_area.buffer, on_change=self.invalidate)
        self.service = CanonicalFormatterService(self.port)
        self.orchestrator = FormatterOrchestrator(
            self.service,
            self.port,
            debounce_ms=self.settings.debounce_ms,
            should_run=config.load_flags,
        )
        self.text_area.buffer.on_text_changed += self._mark_dirty

        status = Window(FormattedTextControl(lambda: build_status_text(self)), height=1, style="class:status")
        self.app = Application(
            layout=Layout(HSplit([self.text_area, status]), focused_element=self.text_area),
            key_bindings=self._build_key_bindings(),
            style=STYLE,
            full_screen=True,
            mouse_support=True,
            input=input,
            output=output,
        )

    def invalidate(self) -> None:
        if self.app is not None:
            self.app.invalidate()

    def _mark_dirty(self, _buffer) -> None:
        self.dirty = True

    def set_status_message(self, message: str) -> None:
        self.status_message = message
        self.invalidate()

    def save(self) -> None:
        self.file.lines = self.port.get_all_lines()
        try:
            self.file.write(self.path)
        except OSError as exc:
            logger.warning("save failed for %s: %s", self.path, exc)
            self.set_status_message(f"Save failed: {exc}")
            return
        self.dirty = False
        self.set_status_message(f"Saved {self.path.name}")

    async def quit(self) -> None:
        await self.orchestrator.wait_idle()
        self.orchestrator.dispose()
        self.port.close()
        if self.app is not None:
            self.app.exit()

    def _on_open(self) -> None:
        self.orchestrator.attach()
        self.port.emit_leaf_or_file_changed()

    def _build_key_bindings(self) -> KeyBindings:
        kb = KeyBindings()

        @kb.add("enter")
        def _(event):
            self.port.commit_line()
            event.current_buffer.newline(copy_margin=True)

        @kb.add("c-f")
        def _(event):
            if not self.orchestrator.trigger_once_now(REASON_MANUAL, SCOPE_FILE):
                self.set_status_message("Formatter disabled")

        @kb.add("c-l")
        def _(event):
            if not self.orchestrator.trigger_once_now(REASON_MANUAL, SCOPE_LINE):
                self.set_status_message("Formatter disabled")

        @kb.add("c-s")
        def _(event):
            self.save()

        @kb.add("c-q")
        def _(event):
            event.app.create_background_task(self.quit())

        return kb

    def run(self) -> None:
        self.app.run(pre_run=self._on_open)


def run_editor(path: Path) -> int:
    CanonEditor(path).run()
    return 0
