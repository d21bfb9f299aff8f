"""Map a reported line number to a change in a diff chunk."""

from __future__ import annotations

import re
from typing import Optional

from docreview.models import Added, Change, Context, Deleted, DiffChunk

_LINE_NUMBER = re.compile(r"^\s*(?:line\s*|L)?(\d+)", re.IGNORECASE)


def applicable_line_number(change: Change) -> int:
    """The line number a reviewer sees for ``change`` in the rendered hunk."""
    if isinstance(change, (Added, Deleted)):
        return change.line_number
    if isinstance(change, Context):
        return change.new_line_number
    raise TypeError(f"Not a diff change: {change!r}")


def diff_marker(change: Change) -> str:
    if isinstance(change, Added):
        return "+"
    if isinstance(change, Deleted):
        return "-"
    return " "


def parse_line_number(value: str) -> Optional[int]:
    """Read the model's line number text ("42", "L42", "42-45") as an int."""
    match = _LINE_NUMBER.match(value or "")
    if match is None:
        return None
    return int(match.group(1))


def find_change(chunk: DiffChunk, line_number: int) -> Optional[Change]:
    """Find the change anchored at ``line_number``.

    Context lines match on their new-file number first; the old-file number
    is only tried once no change in the chunk matched.
    """
    for change in chunk.changes:
        if applicable_line_number(change) == line_number:
            return change
    for change in chunk.changes:
        if isinstance(change, Context) and change.old_line_number == line_number:
            return change
    return None


def resolve_line(chunk: DiffChunk, line_number: int) -> Optional[str]:
    """Verbatim content of the line at ``line_number``, or None if absent."""
    change = find_change(chunk, line_number)
    if change is None:
        return None
    return change.content
