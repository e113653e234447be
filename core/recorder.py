"""Event recorder — appends one lifecycle event per host notification.

EventRecorder is the only writer of the event log. For every notification it:
    1. Decodes the raw input into a HookInput (undecodable input is ignored)
    2. If AGENT_DEBUG=1, captures the raw input to the debug log
    3. Drops unrecognized event kinds and orphan stops
    4. On stop, mines the transcript for description and tool usage
    5. Creates the log directory and appends exactly one line, stamped with
       the recorder's own UTC clock
    6. On stop, rebuilds the summary before returning

Prior lines are never truncated or rewritten. The recorder assumes a single
writer per session and does no file locking, so callers that can dispatch
notifications concurrently must serialize calls into record().
"""

import json
import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from core.paths import SessionPaths, debug_enabled
from core.summary import TIME_FORMAT, SummaryBuilder
from core.transcript import extract
from schemas.events import UNKNOWN, EventKind, HookInput, LifecycleEvent

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EventRecorder:
    """Records host lifecycle notifications into the session event log.

    Attributes:
        _clock: Source of the record timestamp. The recorder is the authority
            on when an event was durably recorded; client times are ignored.
        _debug: Whether raw input is captured to the debug log. None means
            read AGENT_DEBUG from the environment on each call.
        _summary_builder: Rebuilds the summary after every recorded stop.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        debug: bool | None = None,
        summary_builder: SummaryBuilder | None = None,
    ) -> None:
        self._clock = clock or utc_now
        self._debug = debug
        self._summary_builder = summary_builder or SummaryBuilder()

    def record(self, raw: str | Mapping[str, Any]) -> LifecycleEvent | None:
        """Record one notification.

        Args:
            raw: The notification as raw JSON text (as read from stdin) or
                an already-decoded mapping.

        Returns:
            The LifecycleEvent that was appended, or None if the notification
            was ignored (undecodable, unrecognized kind, or orphan stop).

        Raises:
            OSError: If the log directory or a log file cannot be written.
                Lines written by earlier calls are left untouched.
        """
        hook_input = self._decode(raw)
        if hook_input is None or not hook_input.hook_event_name:
            return None

        paths = SessionPaths.from_working_dir(hook_input.cwd)

        if self._debug_enabled():
            self._capture_raw(paths, raw)

        kind = hook_input.kind
        if kind is None:
            logger.debug("Ignoring unrelated host event '%s'.", hook_input.hook_event_name)
            return None

        if kind is EventKind.STOP and hook_input.agent_type == UNKNOWN:
            logger.info(
                "Dropping orphan stop for invocation '%s' (no agent type).",
                hook_input.agent_id,
            )
            return None

        event = self._build_event(kind, hook_input)
        paths.ensure_log_dir()
        self._append(paths.event_log, event)
        logger.info("Recorded %s for '%s' (%s).", kind.value, event.agent, event.id)

        if kind is EventKind.STOP:
            self._summary_builder.rebuild(paths.event_log, paths.summary)

        return event

    # ── Private helpers ───────────────────────────────────────────────────────

    def _decode(self, raw: str | Mapping[str, Any]) -> HookInput | None:
        """Decode the notification. Returns None for anything undecodable."""
        try:
            if isinstance(raw, str):
                return HookInput.model_validate_json(raw)
            return HookInput.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Ignoring undecodable host notification: %s", exc)
            return None

    def _debug_enabled(self) -> bool:
        return debug_enabled() if self._debug is None else self._debug

    def _build_event(self, kind: EventKind, hook_input: HookInput) -> LifecycleEvent:
        """Build the log record, mining the transcript for stop events."""
        fields: dict[str, Any] = dict(
            kind=kind,
            agent=hook_input.agent_type,
            id=hook_input.agent_id,
            session=hook_input.session_id,
            time=self._clock().astimezone(timezone.utc).strftime(TIME_FORMAT),
        )

        if kind is EventKind.STOP:
            facts = extract(hook_input.agent_transcript_path)
            fields.update(
                description=facts.description,
                tools=facts.tools_used,
                tool_count=facts.tool_count,
            )

        return LifecycleEvent(**fields)

    def _append(self, log_path: Path, event: LifecycleEvent) -> None:
        """Append one record as a single line. Never rewrites prior lines."""
        with log_path.open("a", encoding="utf-8") as f:
            f.write(event.to_json_line() + "\n")

    def _capture_raw(self, paths: SessionPaths, raw: str | Mapping[str, Any]) -> None:
        """Append the raw notification verbatim to the debug log.

        The capture is diagnostics only: a failed write is logged and the
        notification is still recorded.
        """
        text = raw if isinstance(raw, str) else json.dumps(dict(raw))
        try:
            paths.ensure_log_dir()
            with paths.debug_log.open("a", encoding="utf-8") as f:
                f.write(text.rstrip("\n") + "\n")
        except OSError as exc:
            logger.warning("Could not capture raw notification to '%s': %s", paths.debug_log, exc)
