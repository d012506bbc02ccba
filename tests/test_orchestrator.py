from pathlib import Path
import asyncio
import logging
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from application.formatter_service import CanonicalFormatterService
from application.orchestrator import FormatterOrchestrator, RunRequest, reason_allows
from config import FormatterFlags
from core import normalize_task_line
from core.date_tokens import DUE, START
from infrastructure.line_document import LineDocument


class RecordingService:
    def __init__(self, gate=None):
        self.calls = []
        self.gate = gate

    def normalize_current_line(self, options=None):
        self.calls.append(("current",))
        return True

    def normalize_line_number(self, line_number, options=None):
        self.calls.append(("line", line_number))
        return True

    async def normalize_whole_file(self, lines, options=None, cancel=None):
        self.calls.append(("file", len(lines)))
        if self.gate is not None:
            await self.gate.wait()
        return True


class SpyDocument(LineDocument):
    def __init__(self, lines):
        super().__init__(lines)
        self.batches = []

    def replace_all_lines(self, new_lines):
        self.batches.append(list(new_lines))
        super().replace_all_lines(new_lines)


def test_reason_gating():
    flags = FormatterFlags(master=True, on_line_commit=False, on_leaf_change=True)
    assert reason_allows("commit", flags) is False
    assert reason_allows("cursor-move", flags) is False
    assert reason_allows("leaf-or-file", flags) is True
    assert reason_allows("manual", flags) is True
    off = FormatterFlags(master=False)
    assert not any(reason_allows(r, off) for r in ("commit", "cursor-move", "leaf-or-file", "manual"))


def test_burst_of_commits_runs_once():
    async def scenario():
        doc = LineDocument(["- [ ] a"])
        service = RecordingService()
        orch = FormatterOrchestrator(service, doc, debounce_ms=5).attach()
        doc.commit_line()
        doc.commit_line()
        doc.commit_line()
        assert orch.state == "scheduled"
        await orch.wait_idle()
        return service.calls, orch.state

    calls, state = asyncio.run(scenario())
    assert calls == [("current",)]
    assert state == "idle"


def test_burst_uses_last_target():
    async def scenario():
        service = RecordingService()
        orch = FormatterOrchestrator(service, LineDocument(["a"]), debounce_ms=5)
        for line_number in (1, 2, 3):
            orch.trigger("cursor-move", "line", line_number)
        await orch.wait_idle()
        return service.calls

    assert asyncio.run(scenario()) == [("line", 3)]


def test_cursor_move_targets_line_that_was_left():
    async def scenario():
        doc = LineDocument(["a", "b", "c"])
        service = RecordingService()
        FormatterOrchestrator(service, doc, debounce_ms=0).attach()
        doc.move_cursor(2)
        await asyncio.sleep(0.01)
        return service.calls

    assert asyncio.run(scenario()) == [("line", 0)]


def test_gated_triggers_do_nothing():
    async def scenario():
        doc = LineDocument(["a"])
        service = RecordingService()
        flags = FormatterFlags(master=True, on_line_commit=False, on_leaf_change=False)
        orch = FormatterOrchestrator(service, doc, debounce_ms=0, should_run=lambda: flags).attach()
        doc.commit_line()
        doc.emit_leaf_or_file_changed()
        assert orch.state == "idle"
        assert orch.trigger_once_now("manual", "line") is True
        await orch.wait_idle()
        return service.calls

    assert asyncio.run(scenario()) == [("current",)]


def test_master_switch_is_read_live():
    async def scenario():
        state = {"flags": FormatterFlags()}
        service = RecordingService()
        orch = FormatterOrchestrator(service, LineDocument(["a"]), debounce_ms=5, should_run=lambda: state["flags"])
        orch.trigger("commit")
        state["flags"] = FormatterFlags(master=False)
        await orch.wait_idle()
        return service.calls

    # the run re-checks the master switch before touching the document
    assert asyncio.run(scenario()) == []


def test_request_during_run_is_coalesced_into_one_trailing_run():
    async def scenario():
        gate = asyncio.Event()
        service = RecordingService(gate)
        orch = FormatterOrchestrator(service, LineDocument(["a", "b"]), debounce_ms=0)
        orch.trigger_once_now("manual", "file")
        await asyncio.sleep(0)
        assert orch.state == "running"
        orch.trigger("cursor-move", "line", 1)
        await asyncio.sleep(0.01)
        orch.trigger("cursor-move", "line", 4)
        await asyncio.sleep(0.01)
        queued = orch.queued
        gate.set()
        await orch.wait_idle()
        return service.calls, queued

    calls, queued = asyncio.run(scenario())
    assert queued == RunRequest("cursor-move", "line", 4)
    assert calls == [("file", 2), ("line", 4)]


def test_second_whole_file_run_cancels_the_first():
    first = [f"- [ ] first {DUE} 2024-01-02 {START} 2024-01-01"] * 120
    second = [f"- [ ] second {DUE} 2024-02-02 {START} 2024-02-01"] * 120

    async def scenario():
        doc = SpyDocument(first)
        orch = FormatterOrchestrator(CanonicalFormatterService(doc), doc, debounce_ms=0)
        orch.trigger_once_now("manual", "file")
        await asyncio.sleep(0)
        # first run is parked at its first yield
        doc.lines = list(second)
        orch.trigger_once_now("manual", "file")
        await orch.wait_idle()
        return doc.batches

    batches = asyncio.run(scenario())
    assert batches == [[normalize_task_line(line) for line in second]]


def test_service_error_is_logged_and_next_run_proceeds(caplog):
    class FlakyService(RecordingService):
        def normalize_current_line(self, options=None):
            super().normalize_current_line(options)
            raise RuntimeError("boom")

    async def scenario():
        service = FlakyService()
        orch = FormatterOrchestrator(service, LineDocument(["a"]), debounce_ms=0)
        orch.trigger_once_now("manual", "line")
        await orch.wait_idle()
        orch.trigger_once_now("manual", "line")
        await orch.wait_idle()
        return service.calls

    with caplog.at_level(logging.WARNING, logger="taskcanon.orchestrator"):
        calls = asyncio.run(scenario())
    assert calls == [("current",), ("current",)]
    assert "boom" in caplog.text


def test_listener_error_is_swallowed(caplog):
    doc = LineDocument(["a"])
    orch = FormatterOrchestrator(RecordingService(), doc).attach()
    with caplog.at_level(logging.WARNING, logger="taskcanon.orchestrator"):
        # no running loop: scheduling fails inside the listener
        doc.commit_line()
    assert "commit trigger failed" in caplog.text
    assert orch.state == "idle"


def test_dispose_is_idempotent_and_unsubscribes(caplog):
    class BadUnsubscribePort(LineDocument):
        def on_line_committed(self, callback):
            super().on_line_committed(callback)

            def off():
                raise RuntimeError("cannot unsubscribe")

            return off

    doc = BadUnsubscribePort(["a"])
    orch = FormatterOrchestrator(RecordingService(), doc).attach()
    assert doc.listener_count == 3
    with caplog.at_level(logging.WARNING, logger="taskcanon.orchestrator"):
        orch.dispose()
        orch.dispose()
    assert "unsubscribe failed" in caplog.text
    assert doc.listener_count == 1
    assert orch.disposed
    assert orch.trigger("commit") is False
    assert orch.trigger_once_now() is False


def test_dispose_cancels_pending_timer():
    async def scenario():
        service = RecordingService()
        orch = FormatterOrchestrator(service, LineDocument(["a"]), debounce_ms=5)
        orch.trigger("commit")
        orch.dispose()
        await asyncio.sleep(0.02)
        await orch.wait_idle()
        return service.calls

    assert asyncio.run(scenario()) == []


def test_unknown_reason_is_rejected():
    orch = FormatterOrchestrator(RecordingService(), LineDocument(["a"]))
    with pytest.raises(ValueError):
        orch.trigger("typing")
    with pytest.raises(ValueError):
        orch.trigger("manual", "page")


class HeldService(CanonicalFormatterService):
    """Holds its first whole-file run until released."""

    def __init__(self, port):
        super().__init__(port)
        self.entered = asyncio.Event()
        self.release = asyncio.Event()
        self.runs = []

    async def normalize_whole_file(self, lines, options=None, cancel=None):
        self.runs.append((list(lines), cancel))
        if len(self.runs) == 1:
            self.entered.set()
            await self.release.wait()
        return await super().normalize_whole_file(lines, options, cancel)


def test_leaf_change_during_file_run_cancels_it_through_debounce():
    first = [f"- [ ] first {DUE} 2024-01-02 {START} 2024-01-01"] * 3
    second = [f"- [ ] second {DUE} 2024-02-02 {START} 2024-02-01"] * 3

    async def scenario():
        doc = SpyDocument(first)
        service = HeldService(doc)
        orch = FormatterOrchestrator(service, doc, debounce_ms=5).attach()
        doc.emit_leaf_or_file_changed()
        assert orch.state == "scheduled"
        await service.entered.wait()
        doc.lines = list(second)
        doc.emit_leaf_or_file_changed()
        while orch.queued is None:
            await asyncio.sleep(0.001)
        service.release.set()
        await orch.wait_idle()
        return doc.batches, service.runs

    batches, runs = asyncio.run(scenario())
    assert [lines for lines, _ in runs] == [first, second]
    assert runs[0][1].cancelled is True
    assert runs[1][1].cancelled is False
    assert batches == [[normalize_task_line(line) for line in second]]


class HooklessPort:
    def get_current_line(self):
        return None


def test_hookless_port_gets_one_line_run_on_attach():
    async def scenario():
        service = RecordingService()
        orch = FormatterOrchestrator(service, HooklessPort(), debounce_ms=1).attach()
        state = orch.state
        await orch.wait_idle()
        return state, service.calls

    state, calls = asyncio.run(scenario())
    assert state == "scheduled"
    assert calls == [("current",)]


def test_hookless_attach_respects_master_switch():
    async def scenario():
        service = RecordingService()
        off = FormatterFlags(master=False)
        orch = FormatterOrchestrator(service, HooklessPort(), debounce_ms=1, should_run=lambda: off).attach()
        await orch.wait_idle()
        return orch.state, service.calls

    assert asyncio.run(scenario()) == ("idle", [])


def test_port_with_hooks_schedules_nothing_on_attach():
    async def scenario():
        orch = FormatterOrchestrator(RecordingService(), LineDocument(["a"]), debounce_ms=1).attach()
        return orch.state

    assert asyncio.run(scenario()) == "idle"
