"""Transcript schemas.

A transcript is a JSON Lines file with one recorded turn per line. Only the
handful of fields the extractor reads are modelled here; everything else in
a line is ignored.
"""

from pydantic import BaseModel, ConfigDict, Field

DESCRIPTION_MAX_CHARS = 80


class ContentBlock(BaseModel):
    """One structured content block inside a turn (text, tool_use, ...)."""

    model_config = ConfigDict(extra="ignore")

    type: str = ""
    name: str | None = None


class TurnMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: str | list[ContentBlock] = ""


class TranscriptEntry(BaseModel):
    """A single recorded turn.

    Attributes:
        type: Role of the turn, "user" or "assistant". Other entry types
            (summaries, system records) are carried through but never match.
        message: The turn payload. Its content is either a plain string or a
            list of structured content blocks.
    """

    model_config = ConfigDict(extra="ignore")

    type: str = ""
    message: TurnMessage = Field(default_factory=TurnMessage)

    def tool_names(self) -> list[str]:
        """Names of every tool_use block in this turn, duplicates included."""
        content = self.message.content
        if isinstance(content, str):
            return []
        return [b.name for b in content if b.type == "tool_use" and b.name]


class TranscriptFacts(BaseModel):
    """Facts mined from one invocation's transcript.

    Attributes:
        description: First user instruction, at most 80 characters. Empty if
            the transcript has no plain-string user turn.
        tools_used: Distinct tool names invoked by the assistant.
        tool_count: Total number of tool invocations. May exceed
            len(tools_used) when a tool is called more than once.
    """

    model_config = ConfigDict(frozen=True)

    description: str = Field(default="", max_length=DESCRIPTION_MAX_CHARS)
    tools_used: frozenset[str] = frozenset()
    tool_count: int = Field(default=0, ge=0)

    @classmethod
    def empty(cls) -> "TranscriptFacts":
        """Facts for a missing or unreadable transcript."""
        return cls()
