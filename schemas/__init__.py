"""Event log and transcript schemas."""

from schemas.events import EventKind, HookInput, LifecycleEvent
from schemas.transcript import TranscriptEntry, TranscriptFacts

__all__ = ["EventKind", "HookInput", "LifecycleEvent", "TranscriptEntry", "TranscriptFacts"]
