"""Status bar builder for the formatting editor."""

from prompt_toolkit.formatted_text import FormattedText

HINTS = " ^S save  ^F format file  ^L format line  ^Q quit "
BAR_WIDTH = 20


def progress_bar(current: int, total: int, width: int = BAR_WIDTH) -> str:
    if total <= 0:
        return "#" * width
    ratio = max(0.0, min(1.0, current / total))
    filled = int(round(ratio * width))
    return "#" * filled + "-" * (width - filled)


def build_status_text(editor) -> FormattedText:
    name = editor.path.name if editor.path else "[untitled]"
    fragments = [("class:status.name", f" {name}{' *' if editor.dirty else ''} ")]

    progress = getattr(editor.port, "progress", None)
    if progress:
        title, current, total = progress
        percent = int(current * 100 / total) if total else 100
        fragments.append(("class:status.progress", f" {title} [{progress_bar(current, total)}] {percent}% "))
    elif editor.status_message:
        fragments.append(("class:status.message", f" {editor.status_message} "))

    state = editor.orchestrator.state
    if state != "idle":
        fragments.append(("class:status.state", f" {state} "))
    fragments.append(("class:status.hint", HINTS))
    return FormattedText(fragments)
