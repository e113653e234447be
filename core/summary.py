"""Summary builder — replays the event log into a session report.

The builder holds no state between calls. Every rebuild reads the whole log
from the first line, reconstructs one AgentRun per invocation id, and renders
a fixed-format markdown document. Rebuilding twice from the same log content
produces byte-identical output.

Replay rules (single forward pass, emission order):
    start: registers a new running AgentRun. A repeated start for a known
           id is ignored: the first start wins.
    stop:  completes the AgentRun with the same id. A stop whose id was
           never started is an orphan and is discarded. A repeated stop
           overwrites the earlier stop's facts.

Lines that fail to parse are skipped. An empty or missing log still produces
a document: an empty table with all totals zero.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path

from schemas.events import EventKind, LifecycleEvent
from utils.parse import LogParseError, iter_json_lines

logger = logging.getLogger(__name__)

TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"
TASK_MAX_CHARS = 50
PLACEHOLDER = "-"

SUMMARY_TITLE = "# Agent Progress (Current Session)"
TABLE_HEADER = "| # | Agent | Status | Duration | Tools | Task |"
TABLE_RULE = "|---|-------|--------|----------|-------|------|"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass
class AgentRun:
    """Replay-time reconstruction of one agent invocation.

    Internal to the builder: never persisted, never validated from external
    input, so a dataclass rather than a Pydantic model.

    Attributes:
        invocation_id: Replay key, taken from the start record.
        agent_type: Agent persona, taken from the start record.
        started_at: Raw time string of the start record.
        status: running until the matching stop is replayed.
        stopped_at: Raw time string of the stop record, if any.
        duration: stop - start, or None if either time failed to parse.
        description, tools_used, tool_count: Copied from the stop record.
    """

    invocation_id: str
    agent_type: str
    started_at: str
    status: RunStatus = RunStatus.RUNNING
    stopped_at: str | None = None
    duration: timedelta | None = None
    description: str = ""
    tools_used: frozenset[str] = field(default_factory=frozenset)
    tool_count: int = 0

    def complete(self, stop: LifecycleEvent) -> None:
        """Apply a stop record to this run."""
        self.status = RunStatus.COMPLETED
        self.stopped_at = stop.time
        self.description = stop.description or ""
        self.tools_used = stop.tools_used
        self.tool_count = stop.tool_count or 0

        start = parse_timestamp(self.started_at)
        end = parse_timestamp(stop.time)
        self.duration = end - start if start and end else None


# ── Replay ────────────────────────────────────────────────────────────────────

def replay(events: Iterable[LifecycleEvent]) -> list[AgentRun]:
    """Fold lifecycle events into AgentRuns, in first-start order.

    Args:
        events: Lifecycle events in emission order.

    Returns:
        One AgentRun per distinct started invocation id, ordered by the
        position of its first start record.
    """
    runs: dict[str, AgentRun] = {}

    for event in events:
        if event.kind is EventKind.START:
            if event.id in runs:
                logger.debug("Duplicate start for '%s' ignored.", event.id)
                continue
            runs[event.id] = AgentRun(
                invocation_id=event.id,
                agent_type=event.agent,
                started_at=event.time,
            )

        elif event.kind is EventKind.STOP:
            run = runs.get(event.id)
            if run is None:
                logger.debug("Orphan stop for '%s' discarded.", event.id)
                continue
            run.complete(event)

    # dicts keep insertion order, which is first-start order here
    return list(runs.values())


def read_events(log_path: Path) -> list[LifecycleEvent]:
    """Read every parseable record from the event log.

    Unparseable lines are logged and skipped. A missing log reads as empty.
    Any other OSError propagates.
    """
    if not log_path.exists():
        return []

    events: list[LifecycleEvent] = []
    for number, record in iter_json_lines(log_path, LifecycleEvent):
        if isinstance(record, LogParseError):
            logger.warning("Event log %s line %d skipped: %s", log_path, number, record)
            continue
        events.append(record)
    return events


# ── Formatting ────────────────────────────────────────────────────────────────

def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a log time string. Returns None instead of raising."""
    if not value:
        return None
    try:
        return datetime.strptime(value, TIME_FORMAT)
    except ValueError:
        return None


def format_duration(duration: timedelta | None) -> str:
    """Render a duration as "45s" or "2m30s". None renders as "-".

    Negative and zero durations are rendered as computed.
    """
    if duration is None:
        return PLACEHOLDER
    seconds = int(duration.total_seconds())
    if seconds >= 60:
        return f"{seconds // 60}m{seconds % 60}s"
    return f"{seconds}s"


def format_tools(tools_used: Iterable[str], tool_count: int) -> str:
    """Render "Read,Write (4)", or "-" when nothing was invoked."""
    if tool_count <= 0:
        return PLACEHOLDER
    return f"{','.join(sorted(set(tools_used)))} ({tool_count})"


def format_task(description: str) -> str:
    """Render the task description, cut to 50 characters plus "..."."""
    if not description:
        return PLACEHOLDER
    if len(description) > TASK_MAX_CHARS:
        return description[:TASK_MAX_CHARS] + "..."
    return description


def render(runs: list[AgentRun]) -> str:
    """Render AgentRuns as the markdown summary document."""
    completed = sum(1 for r in runs if r.status is RunStatus.COMPLETED)
    running = len(runs) - completed

    lines = [SUMMARY_TITLE, "", TABLE_HEADER, TABLE_RULE]
    for i, run in enumerate(runs, 1):
        duration = (
            format_duration(run.duration)
            if run.status is RunStatus.COMPLETED
            else PLACEHOLDER
        )
        lines.append(
            f"| {i} | {run.agent_type} | {run.status.value} | {duration} "
            f"| {format_tools(run.tools_used, run.tool_count)} "
            f"| {format_task(run.description)} |"
        )
    lines.append("")
    lines.append(f"Total: {len(runs)} | Completed: {completed} | Running: {running}")
    return "\n".join(lines) + "\n"


# ── Builder ───────────────────────────────────────────────────────────────────

class SummaryBuilder:
    """Rebuilds the summary document from the full event log.

    Stateless: an instance can be shared, and every rebuild() is a pure
    function of the log content at call time.
    """

    def load_runs(self, log_path: Path) -> list[AgentRun]:
        """Replay the log and return the reconstructed runs."""
        return replay(read_events(log_path))

    def write(self, summary_path: Path, document: str) -> None:
        """Replace the summary file wholesale. Never appends."""
        summary_path.parent.mkdir(parents=True, exist_ok=True)
        summary_path.write_text(document, encoding="utf-8")

    def rebuild(self, log_path: Path, summary_path: Path | None = None) -> str:
        """Replay the log, render the document, and optionally write it.

        Args:
            log_path: The append-only event log to replay.
            summary_path: Where to write the document. The file is replaced
                wholesale, never appended to. None skips the write.

        Returns:
            The rendered summary document.
        """
        runs = self.load_runs(log_path)
        document = render(runs)

        if summary_path is not None:
            self.write(summary_path, document)
            logger.info(
                "Summary rebuilt: %d run(s) from '%s' -> '%s'.",
                len(runs),
                log_path,
                summary_path,
            )

        return document
