"""Summary builder tests.

Covers the replay state machine, the cell formatters, the rendered document,
and SummaryBuilder.rebuild() against event logs written into tmp_path.
"""

from datetime import datetime, timedelta

import pytest

from core.summary import (
    AgentRun,
    RunStatus,
    SummaryBuilder,
    format_duration,
    format_task,
    format_tools,
    parse_timestamp,
    render,
    replay,
)
from schemas.events import EventKind, LifecycleEvent

EMPTY_DOCUMENT = (
    "# Agent Progress (Current Session)\n"
    "\n"
    "| # | Agent | Status | Duration | Tools | Task |\n"
    "|---|-------|--------|----------|-------|------|\n"
    "\n"
    "Total: 0 | Completed: 0 | Running: 0\n"
)


def start(id="a1", agent="backend-dev", time="2026-01-05T10:00:00"):
    return LifecycleEvent(kind=EventKind.START, agent=agent, id=id, session="s1", time=time)


def stop(id="a1", agent="backend-dev", time="2026-01-05T10:02:30",
         description="", tools="", tool_count=0):
    return LifecycleEvent(
        kind=EventKind.STOP, agent=agent, id=id, session="s1", time=time,
        description=description, tools=tools, tool_count=tool_count,
    )


def write_log(path, *events, raw_lines=()):
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [e.to_json_line() for e in events] + list(raw_lines)
    path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
    return path


# ── Replay ────────────────────────────────────────────────────────────────────

class TestReplay:
    def test_start_creates_running_run(self):
        runs = replay([start(time="2026-01-05T09:00:00")])
        assert len(runs) == 1
        assert runs[0].status is RunStatus.RUNNING
        assert runs[0].started_at == "2026-01-05T09:00:00"
        assert runs[0].duration is None

    def test_stop_completes_run(self):
        runs = replay([
            start(),
            stop(description="Add login", tools="Read,Write", tool_count=4),
        ])
        run = runs[0]
        assert run.status is RunStatus.COMPLETED
        assert run.stopped_at == "2026-01-05T10:02:30"
        assert run.duration == timedelta(minutes=2, seconds=30)
        assert run.description == "Add login"
        assert run.tools_used == frozenset({"Read", "Write"})
        assert run.tool_count == 4

    def test_orphan_stop_discarded(self):
        runs = replay([stop(id="ghost"), start(id="a1")])
        assert [r.invocation_id for r in runs] == ["a1"]
        assert runs[0].status is RunStatus.RUNNING

    def test_stop_before_its_start_is_orphan(self):
        runs = replay([stop(id="a1"), start(id="a1")])
        assert runs[0].status is RunStatus.RUNNING

    def test_duplicate_start_first_wins(self):
        runs = replay([
            start(id="a1", agent="first", time="2026-01-05T10:00:00"),
            start(id="a1", agent="second", time="2026-01-05T10:01:00"),
            stop(id="a1", time="2026-01-05T10:02:00"),
        ])
        assert len(runs) == 1
        assert runs[0].agent_type == "first"
        assert runs[0].duration == timedelta(minutes=2)

    def test_order_is_first_start_order(self):
        runs = replay([start(id="b"), start(id="a"), stop(id="a"), start(id="c"), stop(id="b")])
        assert [r.invocation_id for r in runs] == ["b", "a", "c"]

    @pytest.mark.parametrize("events", [
        [start(id="x"), start(id="y"), stop(id="x"), stop(id="y")],
        [start(id="x"), start(id="y"), stop(id="y"), stop(id="x")],
        [start(id="x"), stop(id="x"), start(id="y"), stop(id="y")],
        [start(id="y"), start(id="x"), stop(id="x"), stop(id="y")],
    ])
    def test_interleaving_does_not_change_totals(self, events):
        assert render(replay(events)).endswith("Total: 2 | Completed: 2 | Running: 0\n")

    def test_unparseable_timestamp_leaves_duration_unset(self):
        runs = replay([start(time="yesterday"), stop()])
        assert runs[0].status is RunStatus.COMPLETED
        assert runs[0].duration is None

    def test_negative_duration_not_clamped(self):
        runs = replay([start(time="2026-01-05T10:00:10"), stop(time="2026-01-05T10:00:00")])
        assert runs[0].duration == timedelta(seconds=-10)


# ── Formatters ────────────────────────────────────────────────────────────────

class TestFormatters:
    def test_parse_timestamp(self):
        assert parse_timestamp("2026-01-05T10:00:00") == datetime(2026, 1, 5, 10, 0, 0)

    @pytest.mark.parametrize("value", ["", None, "2026-01-05 10:00:00", "2026-01-05T10:00:00Z", "garbage"])
    def test_parse_timestamp_failure_is_none(self, value):
        assert parse_timestamp(value) is None

    @pytest.mark.parametrize("seconds,expected", [
        (0, "0s"),
        (45, "45s"),
        (59, "59s"),
        (60, "1m0s"),
        (150, "2m30s"),
        (3725, "62m5s"),
        (-5, "-5s"),
    ])
    def test_format_duration(self, seconds, expected):
        assert format_duration(timedelta(seconds=seconds)) == expected

    def test_format_duration_none(self):
        assert format_duration(None) == "-"

    def test_format_tools(self):
        assert format_tools({"Write", "Read"}, 4) == "Read,Write (4)"
        assert format_tools(frozenset(), 0) == "-"

    def test_format_task_short_unchanged(self):
        text = "y" * 50
        assert format_task(text) == text

    def test_format_task_truncates_with_ellipsis(self):
        assert format_task("z" * 80) == "z" * 50 + "..."

    def test_format_task_empty(self):
        assert format_task("") == "-"


# ── Rendering ─────────────────────────────────────────────────────────────────

class TestRender:
    def test_empty(self):
        assert render([]) == EMPTY_DOCUMENT

    def test_running_row(self):
        document = render(replay([start(id="a1", agent="backend-dev")]))
        assert "| 1 | backend-dev | running | - | - | - |" in document
        assert document.endswith("Total: 1 | Completed: 0 | Running: 1\n")

    def test_completed_row(self):
        document = render(replay([
            start(time="2026-01-05T10:00:00"),
            stop(time="2026-01-05T10:02:30", description="Add the login endpoint",
                 tools="Read,Write", tool_count=4),
        ]))
        assert "| 1 | backend-dev | completed | 2m30s | Read,Write (4) | Add the login endpoint |" in document
        assert document.endswith("Total: 1 | Completed: 1 | Running: 0\n")

    def test_completed_without_parseable_times(self):
        document = render(replay([start(time="bad"), stop()]))
        assert "| 1 | backend-dev | completed | - | - | - |" in document

    def test_rows_numbered_in_order(self):
        runs = [
            AgentRun(invocation_id="a", agent_type="planner", started_at=""),
            AgentRun(invocation_id="b", agent_type="qa", started_at=""),
        ]
        lines = render(runs).splitlines()
        assert lines[4].startswith("| 1 | planner |")
        assert lines[5].startswith("| 2 | qa |")


# ── SummaryBuilder ────────────────────────────────────────────────────────────

class TestSummaryBuilder:
    def test_missing_log_gives_empty_summary(self, tmp_path):
        assert SummaryBuilder().rebuild(tmp_path / "logs" / "none.jsonl") == EMPTY_DOCUMENT

    def test_bad_lines_skipped(self, tmp_path):
        log = write_log(
            tmp_path / "logs" / "agent-progress.jsonl",
            start(id="a1"),
            raw_lines=["{oops", '{"event":"pause","id":"a1"}', '"just a string"', ""],
        )
        document = SummaryBuilder().rebuild(log)
        assert document.endswith("Total: 1 | Completed: 0 | Running: 1\n")

    def test_only_bad_lines_gives_empty_summary(self, tmp_path):
        log = write_log(tmp_path / "log.jsonl", raw_lines=["nope", "{]"])
        assert SummaryBuilder().rebuild(log) == EMPTY_DOCUMENT

    def test_rebuild_writes_and_replaces_summary(self, tmp_path):
        summary = tmp_path / "logs" / "agent-progress-summary.md"
        summary.parent.mkdir(parents=True)
        summary.write_text("stale content that must disappear\n" * 10, encoding="utf-8")

        log = write_log(tmp_path / "logs" / "agent-progress.jsonl", start(), stop(tool_count=0))
        document = SummaryBuilder().rebuild(log, summary)

        assert summary.read_text(encoding="utf-8") == document
        assert "stale" not in document

    def test_rebuild_is_idempotent(self, tmp_path):
        log = write_log(
            tmp_path / "log.jsonl",
            start(id="a1"), start(id="a2", agent="qa"),
            stop(id="a2", agent="qa", description="Run the suite", tools="Bash", tool_count=7),
        )
        summary = tmp_path / "summary.md"
        builder = SummaryBuilder()
        builder.rebuild(log, summary)
        first = summary.read_bytes()
        builder.rebuild(log, summary)
        assert summary.read_bytes() == first

    def test_rebuild_without_summary_path_writes_nothing(self, tmp_path):
        log = write_log(tmp_path / "log.jsonl", start())
        SummaryBuilder().rebuild(log)
        assert sorted(p.name for p in tmp_path.iterdir()) == ["log.jsonl"]

    def test_reads_legacy_comma_joined_log(self, tmp_path):
        log = write_log(tmp_path / "log.jsonl", raw_lines=[
            '{"event":"start","agent":"backend-dev","id":"a1","session":"s","time":"2026-01-05T10:00:00"}',
            '{"event":"stop","agent":"backend-dev","id":"a1","session":"s","time":"2026-01-05T10:00:42",'
            '"description":"Refactor","tools":"Edit,Read","tool_count":3}',
        ])
        document = SummaryBuilder().rebuild(log)
        assert "| 1 | backend-dev | completed | 42s | Edit,Read (3) | Refactor |" in document

    def test_write_creates_parent_and_replaces(self, tmp_path):
        summary = tmp_path / "logs" / "agent-progress-summary.md"
        builder = SummaryBuilder()
        builder.write(summary, "first\n")
        builder.write(summary, EMPTY_DOCUMENT)
        assert summary.read_text(encoding="utf-8") == EMPTY_DOCUMENT
