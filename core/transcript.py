"""Transcript extractor — mines one invocation's transcript for summary facts.

Reads the JSON Lines transcript the host recorded for a finished agent and
returns three facts:
- the task description (first plain-string user turn, first line, 80 chars)
- the distinct tool names the assistant invoked
- the total number of tool invocations

Extraction degrades silently. A missing file, an unreadable file, or a
malformed line never raises; the affected facts fall back to empty/zero.
"""

import logging
from pathlib import Path

from schemas.transcript import DESCRIPTION_MAX_CHARS, TranscriptEntry, TranscriptFacts
from utils.parse import LogParseError, iter_json_lines

logger = logging.getLogger(__name__)


def extract(transcript_path: str | Path | None) -> TranscriptFacts:
    """Extract description, tool set and tool count from a transcript.

    Args:
        transcript_path: Path to the transcript file. None or a path that is
            not a regular file yields empty facts.

    Returns:
        TranscriptFacts for the transcript. Never raises for I/O or parse
        problems.
    """
    if not transcript_path:
        return TranscriptFacts.empty()

    path = Path(transcript_path)
    if not path.is_file():
        logger.debug("Transcript '%s' not found, skipping extraction.", path)
        return TranscriptFacts.empty()

    description: str | None = None
    tool_names: list[str] = []
    skipped = 0

    try:
        for number, entry in iter_json_lines(path, TranscriptEntry):
            if isinstance(entry, LogParseError):
                skipped += 1
                logger.debug("Transcript %s line %d skipped: %s", path, number, entry)
                continue

            if entry.type == "user" and description is None:
                content = entry.message.content
                if isinstance(content, str):
                    description = _first_line(content)[:DESCRIPTION_MAX_CHARS]

            elif entry.type == "assistant":
                tool_names.extend(entry.tool_names())

    except OSError as exc:
        logger.warning("Could not read transcript '%s': %s", path, exc)
        return TranscriptFacts.empty()

    if skipped:
        logger.info("Skipped %d malformed line(s) in transcript '%s'.", skipped, path)

    return TranscriptFacts(
        description=description or "",
        tools_used=frozenset(tool_names),
        tool_count=len(tool_names),
    )


def _first_line(text: str) -> str:
    """Return the first line of text (the whole text if it has no newline)."""
    return text.split("\n", 1)[0].rstrip("\r")
