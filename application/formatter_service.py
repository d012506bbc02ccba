"""Line- and file-level canonical formatting on top of an EditorPort."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional, Sequence

from core import NormalizeOptions, Selection, compute_new_caret, normalize_task_line
from core.line_utils import split_indent

from .ports import EditorPort, capability

logger = logging.getLogger("taskcanon.service")

PROGRESS_TITLE = "Formatting tasks. Please wait…"

CHUNK_SIZE = 50
YIELD_EVERY_N_LINES = 50
PROGRESS_SHOW_AFTER_SECONDS = 1.0
PROGRESS_UPDATE_MIN_INTERVAL_SECONDS = 0.25


class CancellationSignal:
    """Cooperative stop flag for one whole-file run."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class _DeferredProgress:
    """Progress indicator that only appears once a run has taken long enough."""

    def __init__(
        self,
        port: EditorPort,
        total: int,
        clock: Callable[[], float],
        show_after: float,
        min_interval: float,
    ) -> None:
        self.port = port
        self.total = total
        self.clock = clock
        self.show_after = show_after
        self.min_interval = min_interval
        self.started_at = clock()
        self.visible = False
        self.completed = False
        self._last_update: Optional[float] = None

    def maybe_start(self) -> None:
        if self.visible:
            return
        if self.clock() - self.started_at < self.show_after:
            return
        self.visible = True
        self._last_update = None
        start = capability(self.port, "on_progress_start")
        if start:
            start(PROGRESS_TITLE, self.total)

    def maybe_update(self, current: int) -> None:
        if not self.visible:
            return
        now = self.clock()
        if self._last_update is not None and now - self._last_update < self.min_interval:
            return
        self._send(current, now)

    def complete(self) -> None:
        self.maybe_start()
        if self.visible:
            self._send(self.total, self.clock())
            self.completed = True

    def close(self) -> None:
        if not self.visible:
            return
        # Cancelled or dropped runs still report completion before teardown.
        if not self.completed:
            self._send(self.total, self.clock())
        end = capability(self.port, "on_progress_end")
        if end:
            end()

    def _send(self, current: int, now: float) -> None:
        self._last_update = now
        update = capability(self.port, "on_progress_update")
        if update:
            update(current, self.total)


def _is_cancelled(cancel: Optional[CancellationSignal]) -> bool:
    return cancel is not None and cancel.cancelled


class CanonicalFormatterService:
    def __init__(
        self,
        port: EditorPort,
        *,
        chunk_size: int = CHUNK_SIZE,
        yield_every: int = YIELD_EVERY_N_LINES,
        progress_show_after: float = PROGRESS_SHOW_AFTER_SECONDS,
        progress_min_interval: float = PROGRESS_UPDATE_MIN_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.port = port
        self.chunk_size = max(1, int(chunk_size))
        self.yield_every = max(1, int(yield_every))
        self.progress_show_after = progress_show_after
        self.progress_min_interval = progress_min_interval
        self.clock = clock

    @staticmethod
    def normalize_preserving_indent(line: str, options: Optional[NormalizeOptions] = None) -> str:
        indent, body = split_indent(line)
        return indent + normalize_task_line(body, options)

    def _normalize_single(
        self,
        line_number: int,
        old_line: str,
        options: Optional[NormalizeOptions],
        selection: Optional[Selection],
    ) -> bool:
        indent, body = split_indent(old_line)
        new_body = normalize_task_line(body, options)
        new_line = indent + new_body
        if new_line == old_line:
            return False

        replace_with_selection = capability(self.port, "replace_line_with_selection")
        replace_line = capability(self.port, "replace_line")
        if selection is not None and replace_with_selection:
            # Caret math runs on the de-indented strings, then shifts back by the indent.
            shift = len(indent)
            relative = Selection(max(0, selection.start - shift), max(0, selection.end - shift))
            mapped = compute_new_caret(body, new_body, relative)
            replace_with_selection(line_number, new_line, mapped.shifted(shift))
        elif replace_line:
            replace_line(line_number, new_line)
        else:
            logger.debug("host cannot replace lines; skipping line %d", line_number)
            return False
        logger.debug("normalized line %d", line_number)
        return True

    def normalize_current_line(self, options: Optional[NormalizeOptions] = None) -> bool:
        ctx = self.port.get_current_line()
        if ctx is None:
            return False
        selection = ctx.selection or Selection.caret(len(ctx.line))
        return self._normalize_single(ctx.line_number, ctx.line, options, selection)

    def normalize_line_number(self, line_number: int, options: Optional[NormalizeOptions] = None) -> bool:
        get_line_at = capability(self.port, "get_line_at")
        if not get_line_at:
            return False
        old_line = get_line_at(line_number)
        if old_line is None:
            return False
        return self._normalize_single(line_number, old_line, options, None)

    async def normalize_whole_file(
        self,
        lines: Sequence[str],
        options: Optional[NormalizeOptions] = None,
        cancel: Optional[CancellationSignal] = None,
    ) -> bool:
        """Normalize every line and write the batch back.

        Yields to the event loop every ``yield_every`` lines; the cancellation
        signal is checked after each yield. A cancelled run stops writing but
        keeps what it already wrote. Returns True when changes were applied.
        """
        total = len(lines)
        if total == 0:
            return False

        progress = _DeferredProgress(self.port, total, self.clock, self.progress_show_after, self.progress_min_interval)
        try:
            out: List[str] = []
            changed = False
            for i, old_line in enumerate(lines):
                old_line = old_line or ""
                new_line = self.normalize_preserving_indent(old_line, options)
                out.append(new_line)
                if new_line != old_line:
                    changed = True

                if i % self.chunk_size == 0:
                    progress.maybe_start()
                    progress.maybe_update(i)
                if i and i % self.yield_every == 0:
                    await asyncio.sleep(0)
                    if _is_cancelled(cancel):
                        logger.debug("whole-file run cancelled at line %d/%d", i, total)
                        return False
                    progress.maybe_start()

            if _is_cancelled(cancel):
                return False
            if not changed:
                progress.complete()
                return False

            applied = await self._apply(lines, out, progress, cancel)
            if applied:
                progress.complete()
                logger.debug("whole-file run applied (%d lines)", total)
            return applied
        finally:
            progress.close()

    async def _apply(
        self,
        old_lines: Sequence[str],
        new_lines: List[str],
        progress: _DeferredProgress,
        cancel: Optional[CancellationSignal],
    ) -> bool:
        replace_all = capability(self.port, "replace_all_lines")
        if replace_all:
            replace_all(new_lines)
            return True

        replace_line = capability(self.port, "replace_line")
        if not replace_line:
            logger.debug("host cannot replace lines; whole-file result dropped")
            return False
        total = len(new_lines)
        for i, new_line in enumerate(new_lines):
            if new_line != (old_lines[i] or ""):
                replace_line(i, new_line)
            if i and i % self.yield_every == 0:
                await asyncio.sleep(0)
                if _is_cancelled(cancel):
                    logger.debug("whole-file write cancelled at line %d/%d", i, total)
                    return False
                progress.maybe_start()
                progress.maybe_update(min(i + 1, total))
        return True
