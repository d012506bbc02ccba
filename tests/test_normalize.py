from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from core import KEEP, NormalizeOptions, normalize_task_line, wrappers_of
from core import normalize as normalize_mod
from core.date_tokens import DUE, SNOOZE, START


def _wrapper(key, order_tag=None, inner="x", **data):
    attrs = f' data-order-tag="{order_tag}"' if order_tag else ""
    for name, value in data.items():
        attrs += f' data-{name.replace("_", "-")}="{value}"'
    return f'<span data-template-wrapper="tpl-{inner}" data-template-key="{key}"{attrs}>{inner}</span>'


STATE = _wrapper("agile.state", "state", "Doing")
META = _wrapper("meta.priority", "metadata", "P1")
EPIC = _wrapper("agile.epic", "artifact-item-type", "Epic")
PARENT = _wrapper("links.parent", "parent-link", "Parent")
ASSIGNEE = _wrapper("members.assignee", "assignment", "Ann", assign_type="assignee")
DELEGATE = _wrapper("members.assignee", "assignment", "Bob", assign_type="delegate")


def test_plain_task_is_unchanged():
    assert normalize_task_line("- [ ] Buy milk") == "- [ ] Buy milk"


def test_non_task_lines_are_returned_verbatim():
    for line in ("# Heading", "", "  just text  ", "- bullet"):
        assert normalize_task_line(line) == line


def test_state_goes_before_metadata():
    out = normalize_task_line(f"- [ ] {META} Ship it {STATE}")
    assert out == f"- [ ] Ship it {STATE} {META} "


def test_parent_link_and_artifact_type_lead():
    out = normalize_task_line(f"- [ ] Write {EPIC} {PARENT}")
    assert out == f"- [ ] {PARENT} {EPIC} Write "


def test_start_token_before_due_token():
    out = normalize_task_line(f"- [ ] Pay rent {DUE} 2024-05-01 {START} 2024-04-20")
    assert out == f"- [ ] Pay rent {START} 2024-04-20 {DUE} 2024-05-01"


def test_assignee_arrow_delegate():
    out = normalize_task_line(f"- [ ] Task {DELEGATE} {ASSIGNEE}")
    assert out == f"- [ ] Task {ASSIGNEE} → {DELEGATE} "


def test_delegate_without_assignee_is_dropped():
    out = normalize_task_line(f"- [ ] Task {DELEGATE}")
    assert DELEGATE not in out
    assert out.rstrip() == "- [ ] Task"


def test_other_tags_sorted_by_order_tag_then_untagged():
    zeta = _wrapper("misc.z", "zeta", "Z")
    alpha = _wrapper("misc.a", "Alpha", "A")
    plain = _wrapper("misc.p", None, "P")
    out = normalize_task_line(f"- [ ] X {plain} {zeta} {alpha}")
    assert out == f"- [ ] X {alpha} {zeta} {plain} "


def test_block_id_stays_last():
    out = normalize_task_line("- [ ] Task ^abc-1 ")
    assert out == "- [ ] Task ^abc-1"
    out = normalize_task_line(f"- [x] {STATE} Task {DUE} 2024-01-01 ^ref")
    assert out == f"- [x] Task {STATE} {DUE} 2024-01-01 ^ref"


def test_line_ending_in_tag_gets_one_trailing_space():
    assert normalize_task_line(f"- [ ] Task {STATE}").endswith("</span> ")
    assert normalize_task_line(f"- [ ] Task {STATE}   ").endswith("</span> ")


@pytest.mark.parametrize(
    "line",
    [
        f"- [ ] {META} Ship it {STATE}",
        f"- [ ] Task {DELEGATE} {ASSIGNEE} {DUE} 2024-01-01 {START} 2023-12-01 ^id",
        f"* [x]   Messy    spacing {EPIC}{PARENT}",
        f"- [ ] Nap {SNOOZE} then {STATE}",
        f"- [ ] Deadline {_wrapper('meta.deadline', 'metadata', DUE + ' 2024-01-01')}",
        '- [ ] broken <span data-template-key="k" data-order-tag="state">never closed',
    ],
)
def test_normalization_is_idempotent(line):
    once = normalize_task_line(line)
    assert normalize_task_line(once) == once


def test_wrappers_and_tokens_survive_round_trip():
    line = f"- [ ] Task {META} {DELEGATE} {EPIC} {ASSIGNEE} {STATE} {DUE} 2024-01-01"
    out = normalize_task_line(line)
    assert sorted(wrappers_of(out)) == sorted(wrappers_of(line))
    assert f"{DUE} 2024-01-01" in out


def test_assignment_overrides():
    new_assignee = _wrapper("members.assignee", "assignment", "Cid", assign_type="assignee")
    line = f"- [ ] Task {ASSIGNEE} {DELEGATE}"
    replaced = normalize_task_line(line, NormalizeOptions(assignee_html=new_assignee))
    assert new_assignee in replaced and ASSIGNEE not in replaced and DELEGATE in replaced

    dropped = normalize_task_line(line, NormalizeOptions(assignee_html=KEEP, delegate_html=None))
    assert ASSIGNEE in dropped and DELEGATE not in dropped

    # removing the assignee also removes the delegate
    cleared = normalize_task_line(line, NormalizeOptions(assignee_html=None))
    assert ASSIGNEE not in cleared and DELEGATE not in cleared


def test_failure_returns_input(monkeypatch):
    def boom(_line):
        raise RuntimeError("boom")

    monkeypatch.setattr(normalize_mod, "extract_all", boom)
    line = f"- [ ] Task {STATE}"
    assert normalize_task_line(line) == line
