"""Event recording and session summary reconstruction."""

from core.recorder import EventRecorder
from core.summary import AgentRun, RunStatus, SummaryBuilder
from core.transcript import extract

__all__ = ["EventRecorder", "SummaryBuilder", "AgentRun", "RunStatus", "extract"]
