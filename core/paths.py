"""Session file layout and environment configuration.

Every file this subsystem touches lives in a logs/ directory under the
working directory the host reports for the session:

    <cwd>/logs/agent-progress.jsonl          append-only event log
    <cwd>/logs/agent-progress-summary.md     rebuilt summary document
    <cwd>/logs/agent-hook-debug.jsonl        raw input capture (AGENT_DEBUG=1)
    <cwd>/logs/agent-progress-hook.log       this tool's own diagnostics
"""

import os
from dataclasses import dataclass
from pathlib import Path

LOG_DIR_NAME = "logs"
EVENT_LOG_NAME = "agent-progress.jsonl"
SUMMARY_NAME = "agent-progress-summary.md"
DEBUG_LOG_NAME = "agent-hook-debug.jsonl"
DIAGNOSTIC_LOG_NAME = "agent-progress-hook.log"

DEBUG_ENV_VAR = "AGENT_DEBUG"
LOG_LEVEL_ENV_VAR = "LOG_LEVEL"


@dataclass(frozen=True)
class SessionPaths:
    """Resolved locations of the session's log artifacts.

    Built once per call from the host-supplied working directory. This is a
    dataclass rather than a Pydantic model because it is never read from
    external input.
    """

    log_dir: Path

    @classmethod
    def from_working_dir(cls, cwd: str | Path | None = None) -> "SessionPaths":
        """Resolve paths under cwd. None or "" means the current directory."""
        base = Path(cwd) if cwd else Path(".")
        return cls(log_dir=base / LOG_DIR_NAME)

    @property
    def event_log(self) -> Path:
        return self.log_dir / EVENT_LOG_NAME

    @property
    def summary(self) -> Path:
        return self.log_dir / SUMMARY_NAME

    @property
    def debug_log(self) -> Path:
        return self.log_dir / DEBUG_LOG_NAME

    @property
    def diagnostic_log(self) -> Path:
        return self.log_dir / DIAGNOSTIC_LOG_NAME

    def ensure_log_dir(self) -> None:
        """Create the log directory if absent. Raises OSError on failure."""
        self.log_dir.mkdir(parents=True, exist_ok=True)


def debug_enabled() -> bool:
    """True when raw input capture is switched on (AGENT_DEBUG=1)."""
    return os.environ.get(DEBUG_ENV_VAR, "0") == "1"


def log_level() -> str:
    """Diagnostic log level from LOG_LEVEL, defaulting to INFO."""
    return os.environ.get(LOG_LEVEL_ENV_VAR, "INFO").upper()
