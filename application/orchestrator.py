"""Decides when canonical formatting runs.

- subscribes to host events through the EditorPort;
- gates each trigger by reason against the live settings flags;
- debounces every trigger through one shared window;
- serializes runs: a request arriving mid-run replaces any queued one and
  runs once the current run finishes;
- cancels an in-flight whole-file run when a newer whole-file run is
  requested.

Everything runs on the host's asyncio loop; the only suspension points are
the yields inside whole-file processing.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Set

from config import FormatterFlags

from .formatter_service import CanonicalFormatterService, CancellationSignal
from .ports import CursorMove, EditorPort, Unsubscribe, capability

logger = logging.getLogger("taskcanon.orchestrator")

REASON_COMMIT = "commit"
REASON_CURSOR_MOVE = "cursor-move"
REASON_LEAF_OR_FILE = "leaf-or-file"
REASON_MANUAL = "manual"
REASONS = (REASON_COMMIT, REASON_CURSOR_MOVE, REASON_LEAF_OR_FILE, REASON_MANUAL)

SCOPE_LINE = "line"
SCOPE_CURSOR = "cursor"
SCOPE_FILE = "file"
SCOPES = (SCOPE_LINE, SCOPE_CURSOR, SCOPE_FILE)

DEFAULT_SCOPE = {
    REASON_COMMIT: SCOPE_LINE,
    REASON_CURSOR_MOVE: SCOPE_LINE,
    REASON_LEAF_OR_FILE: SCOPE_FILE,
    REASON_MANUAL: SCOPE_LINE,
}

STATE_IDLE = "idle"
STATE_SCHEDULED = "scheduled"
STATE_RUNNING = "running"


@dataclass(frozen=True)
class RunRequest:
    reason: str
    scope: str
    target_line: Optional[int] = None


def reason_allows(reason: str, flags: FormatterFlags) -> bool:
    if not flags.master:
        return False
    if reason in (REASON_COMMIT, REASON_CURSOR_MOVE):
        return bool(flags.on_line_commit)
    if reason == REASON_LEAF_OR_FILE:
        return bool(flags.on_leaf_change)
    return True


class FormatterOrchestrator:
    def __init__(
        self,
        service: CanonicalFormatterService,
        port: Optional[EditorPort] = None,
        *,
        debounce_ms: int = 300,
        should_run: Optional[Callable[[], FormatterFlags]] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.service = service
        self.port = port
        self.debounce_seconds = max(0, int(debounce_ms)) / 1000.0
        self._should_run = should_run
        self._loop = loop

        self._disposed = False
        self._timer: Optional[asyncio.TimerHandle] = None
        self._running: Optional[RunRequest] = None
        self._queued: Optional[RunRequest] = None
        self._cancel: Optional[CancellationSignal] = None
        self._tasks: Set[asyncio.Task] = set()
        self._unsubs: List[Unsubscribe] = []
        self._idle = asyncio.Event()
        self._idle.set()
        self._attached = False

    # ------------------------------------------------------------------ state

    @property
    def state(self) -> str:
        if self._running is not None:
            return STATE_RUNNING
        if self._timer is not None:
            return STATE_SCHEDULED
        return STATE_IDLE

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def queued(self) -> Optional[RunRequest]:
        return self._queued

    def flags(self) -> FormatterFlags:
        if self._should_run is None:
            return FormatterFlags()
        try:
            return self._should_run()
        except Exception as exc:
            logger.warning("settings accessor failed, automation paused: %s", exc)
            return FormatterFlags(master=False, on_line_commit=False, on_leaf_change=False)

    def _refresh_idle(self) -> None:
        if self._timer is None and self._running is None and self._queued is None:
            self._idle.set()
        else:
            self._idle.clear()

    async def wait_idle(self) -> None:
        """Wait until nothing is scheduled, running or queued."""
        await self._idle.wait()

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    # ------------------------------------------------------------- subscribe

    def attach(self) -> "FormatterOrchestrator":
        """Subscribe to whatever host events the port offers. Called once.

        A port without any event hooks gets a single debounced manual line run
        instead, so the current line is still formatted once.
        """
        if self._attached or self._disposed:
            return self
        self._attached = True
        hooks = (
            ("on_cursor_line_changed", self._handle_cursor_move),
            ("on_line_committed", self._handle_commit),
            ("on_leaf_or_file_changed", self._handle_leaf_or_file),
        )
        hooked = False
        for name, handler in hooks:
            hook = capability(self.port, name)
            if not hook:
                continue
            hooked = True
            try:
                off = hook(handler)
            except Exception as exc:
                logger.warning("subscribing to %s failed: %s", name, exc)
                continue
            if callable(off):
                self._unsubs.append(off)
        if not hooked:
            try:
                self.trigger(REASON_MANUAL, SCOPE_LINE)
            except Exception as exc:
                logger.warning("one-off line run for hookless port failed: %s", exc)
        return self

    def _handle_cursor_move(self, move: CursorMove) -> None:
        # The line the caret just left is the one to format.
        try:
            self.trigger(REASON_CURSOR_MOVE, SCOPE_LINE, move.prev_line)
        except Exception as exc:
            logger.warning("cursor-move trigger failed: %s", exc)

    def _handle_commit(self) -> None:
        try:
            self.trigger(REASON_COMMIT, SCOPE_LINE)
        except Exception as exc:
            logger.warning("commit trigger failed: %s", exc)

    def _handle_leaf_or_file(self) -> None:
        try:
            self.trigger(REASON_LEAF_OR_FILE, SCOPE_FILE)
        except Exception as exc:
            logger.warning("leaf-or-file trigger failed: %s", exc)

    # --------------------------------------------------------------- trigger

    @staticmethod
    def _request(reason: str, scope: Optional[str], target_line: Optional[int]) -> RunRequest:
        if reason not in REASONS:
            raise ValueError(f"Unknown trigger reason: {reason!r}")
        scope = scope or DEFAULT_SCOPE[reason]
        if scope not in SCOPES:
            raise ValueError(f"Unknown trigger scope: {scope!r}")
        return RunRequest(reason, scope, target_line)

    def trigger(self, reason: str, scope: Optional[str] = None, target_line: Optional[int] = None) -> bool:
        """Schedule a run after the debounce window. Returns False when gated off."""
        if self._disposed:
            return False
        request = self._request(reason, scope, target_line)
        self._clear_timer()
        if not reason_allows(request.reason, self.flags()):
            logger.debug("trigger %s gated off", request.reason)
            self._refresh_idle()
            return False
        self._timer = self._get_loop().call_later(self.debounce_seconds, self._on_timer, request)
        self._refresh_idle()
        return True

    def trigger_once_now(self, reason: str = REASON_MANUAL, scope: str = SCOPE_LINE) -> bool:
        """Dispatch immediately, bypassing the debounce window."""
        if self._disposed:
            return False
        request = self._request(reason, scope, None)
        if not reason_allows(request.reason, self.flags()):
            return False
        self._clear_timer()
        self._dispatch(request)
        return True

    def _on_timer(self, request: RunRequest) -> None:
        self._timer = None
        self._dispatch(request)

    def _clear_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    # -------------------------------------------------------------- dispatch

    def _dispatch(self, request: RunRequest) -> None:
        if self._disposed:
            self._refresh_idle()
            return
        if self._running is not None:
            if request.scope == SCOPE_FILE and self._running.scope == SCOPE_FILE:
                self._abort_in_flight()
            self._queued = request
            logger.debug("run in flight, queued %s/%s", request.reason, request.scope)
            self._refresh_idle()
            return

        self._running = request
        self._refresh_idle()
        task = self._get_loop().create_task(self._run(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, request: RunRequest) -> None:
        try:
            await self._run_once(request)
        except Exception as exc:
            logger.warning("canonical formatting run failed (%s/%s): %s", request.reason, request.scope, exc, exc_info=True)
        finally:
            self._running = None
            self._cancel = None
            pending, self._queued = self._queued, None
            if pending is not None and not self._disposed:
                self._dispatch(pending)
            self._refresh_idle()

    async def _run_once(self, request: RunRequest) -> None:
        if self._disposed:
            return
        if not self.flags().master:
            return

        if request.scope == SCOPE_FILE:
            get_all_lines = capability(self.port, "get_all_lines")
            if not get_all_lines:
                return
            lines = get_all_lines()
            if lines is None:
                return
            self._abort_in_flight()
            signal = CancellationSignal()
            self._cancel = signal
            await self.service.normalize_whole_file(list(lines), cancel=signal)
            return

        if request.target_line is not None:
            self.service.normalize_line_number(request.target_line)
            return
        self.service.normalize_current_line()

    def _abort_in_flight(self) -> None:
        try:
            if self._cancel is not None:
                self._cancel.cancel()
        except Exception as exc:
            logger.warning("aborting in-flight run failed: %s", exc)
        finally:
            self._cancel = None

    # --------------------------------------------------------------- dispose

    def dispose(self) -> None:
        """Stop everything. Safe to call more than once."""
        self._disposed = True
        self._clear_timer()
        self._abort_in_flight()
        unsubs, self._unsubs = self._unsubs, []
        for off in unsubs:
            try:
                off()
            except Exception as exc:
                logger.warning("unsubscribe failed: %s", exc)
        self._queued = None
        self._refresh_idle()
