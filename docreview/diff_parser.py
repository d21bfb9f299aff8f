"""Diff parsing — unified diff to DiffFile/DiffChunk/Change objects."""

from __future__ import annotations

import re
from typing import Optional

from docreview.models import (
    DELETED_PATH,
    Added,
    Change,
    Context,
    Deleted,
    DiffChunk,
    DiffFile,
)

_HUNK_HEADER = re.compile(r"^@@\s+-(\d+)(?:,(\d+))?\s+\+(\d+)(?:,(\d+))?\s+@@")


def _strip_prefix(path: str) -> str:
    # git may append a tab and timestamp to ---/+++ lines
    path = path.split("\t", 1)[0].strip()
    if path == DELETED_PATH:
        return path
    if path.startswith("a/") or path.startswith("b/"):
        return path[2:]
    return path


def parse_diff(diff_text: str) -> list[DiffFile]:
    """Parse a unified diff into DiffFile objects, preserving hunk order.

    Hunk line counts decide where a hunk ends, so metadata lines of the next
    file are never mistaken for removed lines.
    """
    files: list[DiffFile] = []
    current_file: Optional[DiffFile] = None
    changes: Optional[list[Change]] = None
    header = ""
    old_line_no = new_line_no = 0
    old_remaining = new_remaining = 0

    def flush_chunk() -> None:
        nonlocal changes
        if current_file is not None and changes is not None:
            current_file.chunks.append(DiffChunk(header=header, changes=tuple(changes)))
        changes = None

    for line in diff_text.splitlines():
        if changes is not None and line.startswith("diff --git"):
            # Hunk shorter than its header claimed
            flush_chunk()

        if changes is None:
            # New file header
            if line.startswith("diff --git"):
                parts = line.split()
                old_path = _strip_prefix(parts[2]) if len(parts) >= 4 else ""
                new_path = _strip_prefix(parts[3]) if len(parts) >= 4 else ""
                current_file = DiffFile(source_path=old_path, target_path=new_path)
                files.append(current_file)
                continue

            # Plain `diff -u` output has no `diff --git` line
            if line.startswith("--- "):
                if current_file is None or current_file.chunks:
                    current_file = DiffFile(source_path="", target_path="")
                    files.append(current_file)
                current_file.source_path = _strip_prefix(line[4:])
                continue

            if current_file is None:
                continue

            # File metadata
            if line.startswith("deleted file"):
                current_file.target_path = DELETED_PATH
                continue
            if line.startswith("+++ "):
                current_file.target_path = _strip_prefix(line[4:])
                continue
            if line.startswith("rename to "):
                current_file.target_path = line[len("rename to "):].strip()
                continue

        if current_file is None:
            continue

        # Hunk header
        hunk_match = _HUNK_HEADER.match(line)
        if hunk_match:
            flush_chunk()
            header = line
            old_line_no = int(hunk_match.group(1))
            old_remaining = int(hunk_match.group(2) or 1)
            new_line_no = int(hunk_match.group(3))
            new_remaining = int(hunk_match.group(4) or 1)
            changes = []
            if old_remaining == 0 and new_remaining == 0:
                flush_chunk()
            continue

        if changes is None:
            continue

        # Diff content lines
        if line.startswith("\\"):
            # "\ No newline at end of file"
            continue
        if line.startswith("+"):
            changes.append(Added(line_number=new_line_no, content=line[1:]))
            new_line_no += 1
            new_remaining -= 1
        elif line.startswith("-"):
            changes.append(Deleted(line_number=old_line_no, content=line[1:]))
            old_line_no += 1
            old_remaining -= 1
        else:
            changes.append(
                Context(
                    old_line_number=old_line_no,
                    new_line_number=new_line_no,
                    content=line[1:],
                )
            )
            old_line_no += 1
            new_line_no += 1
            old_remaining -= 1
            new_remaining -= 1

        if old_remaining <= 0 and new_remaining <= 0:
            flush_chunk()

    flush_chunk()
    return files


def diff_stats(files: list[DiffFile]) -> dict:
    """Generate summary statistics for parsed diff files."""
    added = removed = 0
    for f in files:
        for chunk in f.chunks:
            for change in chunk.changes:
                if isinstance(change, Added):
                    added += 1
                elif isinstance(change, Deleted):
                    removed += 1
    return {
        "files_changed": len(files),
        "chunks": sum(len(f.chunks) for f in files),
        "lines_added": added,
        "lines_removed": removed,
        "deleted_files": [f.path for f in files if f.is_deleted],
    }
