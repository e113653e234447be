"""JSON Lines record parser.

Both the event log and agent transcripts are JSON Lines files, and both are
read with the same rule: decode one line into a validated Pydantic model, or
report why not. Callers decide whether a bad line is fatal. In practice it
never is: they log it and move on to the next line.

Failure modes handled:
- Blank lines (trailing newline, hand-edited gaps)
- Text that is not JSON at all (truncated write, stray output)
- JSON that is not an object (a bare string or list)
- Objects that do not match the schema
"""

import json
from collections.abc import Iterator
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class LogParseError(Exception):
    """Raised when a line cannot be decoded into the expected schema.

    Includes the raw line so callers can log it for debugging without
    having to catch and re-wrap the original exception themselves.
    """

    def __init__(self, message: str, raw: str):
        super().__init__(message)
        self.raw = raw


def parse_json_line(line: str, schema: type[ModelT]) -> ModelT:
    """Parse one JSON Lines record into a validated Pydantic model.

    Args:
        line:   A single line of text, with or without its newline.
        schema: Pydantic model class to validate against.

    Returns:
        A validated instance of schema.

    Raises:
        LogParseError: If the line is blank, is not a JSON object, or does
            not match the schema. The .raw attribute holds the line.
    """
    text = line.strip()
    if not text:
        raise LogParseError("Blank line", raw=line)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise LogParseError(f"Invalid JSON: {exc}", raw=line) from exc

    if not isinstance(data, dict):
        raise LogParseError(
            f"Expected a JSON object for {schema.__name__}, got {type(data).__name__}",
            raw=line,
        )

    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise LogParseError(
            f"Line does not match schema {schema.__name__}: {exc}",
            raw=line,
        ) from exc


def iter_json_lines(path: Path, schema: type[ModelT]) -> Iterator[tuple[int, ModelT | LogParseError]]:
    """Yield (line_number, record-or-error) for every non-blank line of path.

    The file is streamed, not loaded whole. Errors are yielded rather than
    raised so one bad line never hides the lines after it. Opening the file
    may still raise OSError, which is left to the caller.
    """
    with path.open("r", encoding="utf-8", errors="replace") as f:
        for number, line in enumerate(f, 1):
            if not line.strip():
                continue
            try:
                yield number, parse_json_line(line, schema)
            except LogParseError as exc:
                yield number, exc
