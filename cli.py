"""Agent Progress — command line entry point.

Two commands:

    agent-progress record
        Hook entry point. Reads one lifecycle notification (JSON) from stdin,
        appends it to <cwd>/logs/agent-progress.jsonl and, on SubagentStop,
        rebuilds <cwd>/logs/agent-progress-summary.md.

    agent-progress summary [--cwd DIR] [--no-write]
        Replays the event log and prints the session table to the terminal.

Exit status is 0 for recorded and ignored notifications alike, and 1 only
when the log could not be written. The host logs the failure and carries on.

Environment (values from a .env file are loaded too):
    AGENT_DEBUG=1   capture every raw notification to agent-hook-debug.jsonl
    LOG_LEVEL       diagnostic log level, default INFO
"""

import argparse
import logging
import logging.handlers
import sys

from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console

from core.paths import SessionPaths, log_level
from core.recorder import EventRecorder
from core.summary import SummaryBuilder, render
from display.report import render_table, render_totals
from schemas.events import EventKind, HookInput

console = Console()
err_console = Console(stderr=True)

LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(__name__)


# ── Logging ───────────────────────────────────────────────────────────────────

def _buffer_logging() -> logging.handlers.MemoryHandler:
    """Hold diagnostics in memory until the call knows where they belong.

    Nothing touches the filesystem here, so an ignored notification leaves
    no trace in the working directory.
    """
    root = logging.getLogger()
    root.setLevel(log_level())

    buffer = logging.handlers.MemoryHandler(
        capacity=10_000, flushLevel=logging.CRITICAL + 1, flushOnClose=False,
    )
    root.addHandler(buffer)
    return buffer


def _flush_logging(buffer: logging.handlers.MemoryHandler, paths: SessionPaths, failed: bool) -> None:
    """Write buffered diagnostics and detach the buffer.

    Records go to a rotating file in the session's log directory when that
    directory exists, to stderr at WARNING when the call failed without one,
    and are dropped otherwise.
    """
    target: logging.Handler | None = None
    if paths.log_dir.is_dir():
        target = logging.handlers.RotatingFileHandler(
            paths.diagnostic_log, maxBytes=1_000_000, backupCount=3, encoding="utf-8", delay=True,
        )
    elif failed:
        target = logging.StreamHandler(sys.stderr)
        target.setLevel(logging.WARNING)

    if target is not None:
        target.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        buffer.setTarget(target)
        buffer.flush()
        target.close()

    logging.getLogger().removeHandler(buffer)
    buffer.close()


def _read_stdin() -> str:
    """Read the notification, replacing bytes that are not valid UTF-8."""
    stream = getattr(sys.stdin, "buffer", None)
    if stream is None:
        return sys.stdin.read()
    return stream.read().decode("utf-8", errors="replace")


def _peek_cwd(raw: str) -> str:
    """Working directory named in the notification, "." if undecodable."""
    try:
        return HookInput.model_validate_json(raw).cwd
    except ValidationError:
        return "."


# ── Commands ──────────────────────────────────────────────────────────────────

def cmd_record(args: argparse.Namespace) -> int:
    raw = _read_stdin()
    paths = SessionPaths.from_working_dir(_peek_cwd(raw))
    buffer = _buffer_logging()
    failed = False

    try:
        event = EventRecorder().record(raw)
    except OSError as exc:
        failed = True
        logger.error("Failed to record agent event: %s", exc)
        err_console.print(f"agent-progress: failed to record event: {exc}", markup=False, highlight=False, soft_wrap=True)
        return 1
    finally:
        _flush_logging(buffer, paths, failed)

    if event is not None and event.kind is EventKind.STOP:
        err_console.print(f"Agent '{event.agent}' completed.", markup=False, highlight=False, soft_wrap=True)
    return 0


def cmd_summary(args: argparse.Namespace) -> int:
    paths = SessionPaths.from_working_dir(args.cwd)
    builder = SummaryBuilder()

    try:
        runs = builder.load_runs(paths.event_log)
        if not args.no_write:
            builder.write(paths.summary, render(runs))
    except OSError as exc:
        err_console.print(f"agent-progress: failed to build summary: {exc}", markup=False, highlight=False, soft_wrap=True)
        return 1

    console.print(render_table(runs))
    console.print(render_totals(runs))
    return 0


# ── Entry point ───────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agent-progress",
        description="Record agent lifecycle events and summarize the session.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    record = sub.add_parser("record", help="Record one host notification read from stdin.")
    record.set_defaults(func=cmd_record)

    summary = sub.add_parser("summary", help="Replay the event log and print the session table.")
    summary.add_argument("--cwd", default=".", help="Working directory holding logs/ (default: .)")
    summary.add_argument("--no-write", action="store_true", help="Print only; do not rewrite the summary file.")
    summary.set_defaults(func=cmd_summary)

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
