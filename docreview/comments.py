"""Review comment bodies with suggestion fences that embedded code cannot close."""

from __future__ import annotations

import re
from typing import Optional

from docreview.models import ReviewComment

_BACKTICK_RUN = re.compile(r"`+")

MIN_FENCE_LENGTH = 3


def longest_backtick_run(text: str) -> int:
    return max((len(m.group(0)) for m in _BACKTICK_RUN.finditer(text or "")), default=0)


def fence_for(*texts: Optional[str]) -> str:
    """A backtick fence no embedded code fence in ``texts`` can close early."""
    longest = max((longest_backtick_run(t) for t in texts if t), default=0)
    return "`" * max(MIN_FENCE_LENGTH, longest + 1)


def build_comment_body(comment: str, suggestion: Optional[str] = None) -> str:
    """The comment text, followed by a ``suggestion`` block when there is one."""
    if not suggestion:
        return comment
    fence = fence_for(comment, suggestion)
    return f"{comment}\n\n{fence}suggestion\n{suggestion}\n{fence}"


def assemble_comment(
    path: str, line: int, comment: str, suggestion: Optional[str] = None
) -> ReviewComment:
    return ReviewComment(path=path, line=line, body=build_comment_body(comment, suggestion))
