"""Lifecycle event schemas.

Two shapes cross the subsystem boundary:

- HookInput is what the host sends on stdin, once per notification. It is
  decoded leniently: unknown keys are ignored and missing identifiers fall
  back to "unknown" so a sparse notification never crashes the recorder.
- LifecycleEvent is one line of the append-only event log. It is frozen:
  once a line is written it is never modified, only replayed.
"""

from enum import Enum

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

UNKNOWN = "unknown"


class EventKind(str, Enum):
    """The two lifecycle stages recorded in the event log.

    Extends str so values serialize to plain strings ("start", "stop")
    rather than "EventKind.START".
    """

    START = "start"
    STOP = "stop"


# Host event names mapped to the log's event kinds. Anything not listed here
# is an unrelated notification and is ignored by the recorder.
HOST_EVENT_KINDS: dict[str, EventKind] = {
    "SubagentStart": EventKind.START,
    "SubagentStop": EventKind.STOP,
}


class HookInput(BaseModel):
    """A single lifecycle notification as emitted by the host.

    Attributes:
        hook_event_name: Host event name, e.g. "SubagentStart". Empty when
            the host sent something without an event name.
        agent_type: Agent persona that ran, e.g. "backend-dev".
        agent_id: Identifier of this one invocation within the session.
        session_id: Orchestration session the invocation belongs to.
        cwd: Working directory all log paths are resolved against.
        agent_transcript_path: Transcript of the run. Only sent on stop.
    """

    model_config = ConfigDict(extra="ignore")

    hook_event_name: str = ""
    agent_type: str = UNKNOWN
    agent_id: str = UNKNOWN
    session_id: str = UNKNOWN
    cwd: str = "."
    agent_transcript_path: str | None = None

    @field_validator("hook_event_name", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    @field_validator("agent_type", "agent_id", "session_id", mode="before")
    @classmethod
    def _default_unknown(cls, value):
        return UNKNOWN if value in (None, "") else value

    @field_validator("cwd", mode="before")
    @classmethod
    def _default_cwd(cls, value):
        return "." if value in (None, "") else value

    @field_validator("agent_transcript_path", mode="before")
    @classmethod
    def _empty_path_is_none(cls, value):
        return None if value == "" else value

    @property
    def kind(self) -> EventKind | None:
        """The log event kind, or None for unrecognized host events."""
        return HOST_EVENT_KINDS.get(self.hook_event_name)


class LifecycleEvent(BaseModel):
    """One immutable record of the append-only event log.

    Serialized as a single compact JSON object per line:

        {"event":"start","agent":"backend-dev","id":"a1","session":"s1",
         "time":"2026-01-05T10:00:00"}

    Stop records also carry description, tools and tool_count. Start records
    omit those keys entirely.

    The time field is kept as the raw string from the log. Replay parses it
    on demand so that one bad timestamp only loses a duration, not the run.

    Attributes:
        kind: Start or stop. Written under the "event" key; "kind" is also
            accepted when reading.
        agent: Agent type of the invocation.
        id: Invocation identifier, used as the replay key.
        session: Session identifier.
        time: UTC time the recorder appended the line, "%Y-%m-%dT%H:%M:%S".
        description: First user instruction from the transcript (stop only).
        tools: Comma-joined, sorted, distinct tool names (stop only). A JSON
            list is accepted on read and normalized to the same form.
        tool_count: Total tool invocations, duplicates included (stop only).
    """

    model_config = ConfigDict(frozen=True)

    kind: EventKind = Field(
        serialization_alias="event",
        validation_alias=AliasChoices("event", "kind"),
    )
    agent: str = UNKNOWN
    id: str = UNKNOWN
    session: str = UNKNOWN
    time: str = ""
    description: str | None = None
    tools: str | None = None
    tool_count: int | None = Field(default=None, ge=0)

    @field_validator("tools", mode="before")
    @classmethod
    def _join_tool_list(cls, value):
        if isinstance(value, (list, tuple, set, frozenset)):
            return ",".join(sorted({str(v) for v in value if v}))
        return value

    @property
    def tools_used(self) -> frozenset[str]:
        """Distinct tool names as a set. Empty for start records."""
        if not self.tools:
            return frozenset()
        return frozenset(name for name in self.tools.split(",") if name)

    def to_json_line(self) -> str:
        """Serialize to the compact single-line form written to the log."""
        return self.model_dump_json(by_alias=True, exclude_none=True)
