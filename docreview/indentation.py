"""Indentation recovery for explicit suggestions, backed by working-tree files."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Optional, Protocol

from docreview.suggestions import leading_whitespace

logger = logging.getLogger(__name__)


class LineContentProvider(Protocol):
    """Looks up a single line of a file by its 1-based number."""

    def line(self, path: str, line_number: int) -> Optional[str]: ...


class WorkingTreeLineProvider:
    """Reads lines from the checked-out copy of the repository.

    Files are read once and cached; paths that resolve outside ``root`` are
    treated as unreadable.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()
        self._cache: dict[str, Optional[list[str]]] = {}

    def _lines(self, path: str) -> Optional[list[str]]:
        if path in self._cache:
            return self._cache[path]

        lines: Optional[list[str]] = None
        resolved = (self.root / path).resolve()
        if resolved != self.root and self.root not in resolved.parents:
            logger.warning("Refusing to read %s: outside %s", path, self.root)
        else:
            try:
                lines = resolved.read_text(encoding="utf-8", errors="replace").splitlines()
            except OSError as e:
                logger.info("Cannot read %s for indentation recovery: %s", path, e)

        self._cache[path] = lines
        return lines

    def line(self, path: str, line_number: int) -> Optional[str]:
        lines = self._lines(path)
        if lines is None or not 1 <= line_number <= len(lines):
            return None
        return lines[line_number - 1]


class StaticLineProvider:
    """In-memory provider: ``{path: file_text}`` or ``{path: [lines]}``."""

    def __init__(self, files: Mapping[str, str | list[str]]):
        self._files = {
            path: text.splitlines() if isinstance(text, str) else list(text)
            for path, text in files.items()
        }

    def line(self, path: str, line_number: int) -> Optional[str]:
        lines = self._files.get(path)
        if lines is None or not 1 <= line_number <= len(lines):
            return None
        return lines[line_number - 1]


def recover_indentation(
    suggestion: str,
    source_line: str,
    path: str,
    line_number: int,
    provider: Optional[LineContentProvider],
) -> str:
    """Give an explicit suggestion the indentation its target line has.

    Models routinely trim leading whitespace from the suggestion they return.
    When the suggestion starts flush but the diff line is indented, the
    whitespace run of that line in the working tree is prepended. Any lookup
    failure leaves the suggestion as it was.
    """
    if provider is None or not suggestion:
        return suggestion
    if leading_whitespace(suggestion) or not leading_whitespace(source_line):
        return suggestion

    try:
        current = provider.line(path, line_number)
    except OSError as e:
        logger.info("Indentation lookup failed for %s:%d: %s", path, line_number, e)
        return suggestion
    if current is None:
        return suggestion

    indent = leading_whitespace(current)
    if not indent:
        return suggestion
    return indent + suggestion
