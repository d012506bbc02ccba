from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput

import config
from core.date_tokens import DUE, START
from interface.tui_editor import CanonEditor

UNORDERED = f"- [ ] Pay {DUE} 2024-05-01 {START} 2024-04-20"
ORDERED = f"- [ ] Pay {START} 2024-04-20 {DUE} 2024-05-01"


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "USER_CONFIG_PATH", tmp_path / "cfg.yaml")
    monkeypatch.delenv(config.CONFIG_ENV, raising=False)


def test_editor_loads_and_saves(tmp_path):
    path = tmp_path / "plan.md"
    path.write_bytes(f"# Plan\r\n{UNORDERED}\r\n".encode("utf-8"))
    with create_pipe_input() as pipe:
        editor = CanonEditor(path, input=pipe, output=DummyOutput())
        assert editor.port.get_all_lines() == ["# Plan", UNORDERED]
        assert editor.orchestrator.debounce_seconds == 0.3
        editor.port.replace_line(1, ORDERED)
        assert editor.dirty is True
        editor.save()
    assert path.read_bytes() == f"# Plan\r\n{ORDERED}\r\n".encode("utf-8")
    assert editor.dirty is False
    assert editor.status_message == "Saved plan.md"


def test_editor_on_new_file(tmp_path):
    path = tmp_path / "new.md"
    with create_pipe_input() as pipe:
        editor = CanonEditor(path, settings=config.FormatterSettings(config.FormatterFlags(), debounce_ms=10), input=pipe, output=DummyOutput())
        assert editor.port.get_all_lines() == [""]
        assert editor.orchestrator.debounce_seconds == 0.01
