"""Suggestion synthesis — rebuild a full replacement line from a prose review comment.

Used only when the provider left ``suggestion`` empty. Each strategy reads the
comment and the resolved source line and either returns a candidate line or
None. A strategy must find its "old" text literally in the source line before
it may propose anything, so a hallucinated correction never invents content.
"""

from __future__ import annotations

import logging
import os
import re
import unicodedata
from collections.abc import Callable
from typing import Optional

from docreview.config import STATIC_CORRECTIONS

logger = logging.getLogger(__name__)

SuggestionStrategy = Callable[[str, str], Optional[str]]

# ── Shared patterns ──────────────────────────────────────────────────────────

_QUOTE_PAIRS = {'"': '"', "“": "”", "「": "」", "`": "`"}

_QUOTED = r'(?:"[^"\n]+"|“[^”\n]+”|「[^」\n]+」|`[^`\n]+`)'

# An unquoted phrase stops at clause punctuation
_OLD_PHRASE = rf'(?P<old>{_QUOTED}|[^:：,，;；。\n"“”「」`]+?)'
_NEW_PHRASE = rf'(?P<new>{_QUOTED}|[^,，;；。\n"“”「」`]+)'
_OLD_TOKEN = rf'(?P<old>{_QUOTED}|[^\s:：,，;；。"“”「」`]+)'
_NEW_TOKEN = rf'(?P<new>{_QUOTED}|[^\s,，;；。"“”「」`]+)'

_SHOULD_BE = re.compile(
    rf"{_OLD_PHRASE}\s*(?:should\s+be|应该是|应改为|应当为|应为)\s*{_NEW_PHRASE}",
    re.IGNORECASE,
)

_CHANGE_TO = (
    re.compile(
        rf"\b(?:change|rename)\s+{_OLD_PHRASE}\s+to\s+{_NEW_PHRASE}",
        re.IGNORECASE,
    ),
    re.compile(rf"(?:将|把)\s*{_OLD_PHRASE}\s*(?:修改为|改为|改成|替换为|换成)\s*{_NEW_PHRASE}"),
    re.compile(rf"{_OLD_PHRASE}\s*(?:改为|改成)\s*{_NEW_PHRASE}"),
)

_REPLACE_WITH = re.compile(
    r"(?:\breplace\s+(?:it\s+|this\s+(?:line\s+|sentence\s+)?|the\s+line\s+)?with"
    r"|\brewrite\s+(?:it|this(?:\s+line|\s+sentence)?)\s+as"
    r"|建议修改为|建议改为|替换为|改写为)"
    rf"\s*[:：]?\s*(?P<new>{_QUOTED}|[^\n]+)",
    re.IGNORECASE,
)

_TYPO = re.compile(
    rf"(?:\btypo|拼写错误|错别字)\s*[:：]?\s*{_OLD_TOKEN}\s*"
    rf"(?:should\s+be|->|→|=>|应为|改为)\s*{_NEW_TOKEN}",
    re.IGNORECASE,
)

_MISSING = re.compile(
    r"(?:\bmissing|缺少|缺失|漏掉了|漏了)\s*(?:an?\s+|the\s+)?"
    rf"(?P<what>{_QUOTED}|full\s+stop|[^\s,，;；。\"“”「」`]+)",
    re.IGNORECASE,
)

_NAMED_PUNCTUATION = {
    "period": ".",
    "full stop": ".",
    "dot": ".",
    "colon": ":",
    "comma": ",",
    "semicolon": ";",
    "句号": "。",
    "冒号": "：",
    "逗号": "，",
    "分号": "；",
}

_QUOTED_SPAN = re.compile(r'"([^"\n]+)"|“([^”\n]+)”|「([^」\n]+)」|`([^`\n]+)`')

# List markers, numbering, blockquotes and note labels at the start of a line
MARKUP_PREFIX = re.compile(
    r"^(?:>[ \t]?)*"
    r"(?:[-*+][ \t]+|\d+[.)][ \t]+)?"
    r"(?:\*\*(?:Note|Warning|Tip|Important|注意|警告|建议)[:：]?\*\*[:：]?[ \t]*)?",
    re.IGNORECASE,
)

_SENTENCE_END = ".。!！"

# Where an unquoted replacement gives way to the reason for it
_CLAUSE_BREAK = re.compile(
    r"\s+(?:because|since|as|for|so\s+that|in\s+order|which|instead|when)\b"
    r"|\s*(?:因为|由于|以便|以免|以使|从而)",
    re.IGNORECASE,
)


# ── Helpers ──────────────────────────────────────────────────────────────────


def leading_whitespace(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def _unquote(raw: str) -> tuple[str, bool]:
    """Strip one surrounding quote pair; report whether there was one."""
    text = raw.strip()
    if len(text) >= 2 and _QUOTE_PAIRS.get(text[0]) == text[-1]:
        return text[1:-1], True
    return text, False


def _trim_sentence_end(text: str, reference: str) -> str:
    """Drop a sentence-final stop the comment added but ``reference`` lacks."""
    text = text.rstrip()
    while text and text[-1] in _SENTENCE_END and not reference.rstrip().endswith(text[-1]):
        text = text[:-1].rstrip()
    return text


def _clip_clause(text: str) -> str:
    """Cut an unquoted replacement at the clause that explains it."""
    match = _CLAUSE_BREAK.search(text)
    return text[: match.start()] if match else text


def _anchor_in_line(old: str, quoted: bool, line: str) -> Optional[str]:
    """Return the part of ``old`` that literally occurs in ``line``.

    Unquoted phrases often carry leading prose ("The term foo should be
    bar"), so shorter tails are tried: whole words for spaced text, single
    characters for text without spaces.
    """
    old = old.strip()
    if not old:
        return None
    if old in line:
        return old
    if quoted:
        return None

    words = old.split()
    if len(words) > 1:
        for i in range(1, len(words)):
            tail = " ".join(words[i:])
            if tail in line:
                return tail
        return None

    if not old.isascii():
        for i in range(1, len(old)):
            tail = old[i:]
            if tail in line:
                return tail
    return None


def _replace_from_match(match: Optional[re.Match], line: str) -> Optional[str]:
    if match is None:
        return None
    old, old_quoted = _unquote(match.group("old"))
    new, new_quoted = _unquote(match.group("new"))
    anchor = _anchor_in_line(old, old_quoted, line)
    if anchor is None:
        return None
    if not new_quoted:
        new = _trim_sentence_end(_clip_clause(new), anchor)
    if not new or new == anchor:
        return None
    return line.replace(anchor, new, 1)


def _is_punctuation(text: str) -> bool:
    return bool(text) and all(unicodedata.category(ch).startswith("P") for ch in text)


# ── Strategies ───────────────────────────────────────────────────────────────


def should_be(comment: str, line: str) -> Optional[str]:
    """"A should be B": replace the first A in the line with B."""
    for match in _SHOULD_BE.finditer(comment):
        candidate = _replace_from_match(match, line)
        if candidate is not None:
            return candidate
    return None


def change_to(comment: str, line: str) -> Optional[str]:
    """"change A to B": same replacement as should_be."""
    for pattern in _CHANGE_TO:
        for match in pattern.finditer(comment):
            candidate = _replace_from_match(match, line)
            if candidate is not None:
                return candidate
    return None


def replace_with(comment: str, line: str) -> Optional[str]:
    """"replace with B": B is the whole new line."""
    match = _REPLACE_WITH.search(comment)
    if match is None:
        return None
    new, quoted = _unquote(match.group("new"))
    if not quoted:
        new = _trim_sentence_end(new, line)
    return new or None


def typo(comment: str, line: str) -> Optional[str]:
    """"typo: A -> B" replaces A; "missing C" appends C to the line."""
    candidate = _replace_from_match(_TYPO.search(comment), line)
    if candidate is not None:
        return candidate

    match = _MISSING.search(comment)
    if match is None:
        return None
    what, quoted = _unquote(match.group("what"))
    what = _NAMED_PUNCTUATION.get(" ".join(what.lower().split()), what)
    if not quoted and not _is_punctuation(what):
        return None

    body = line.rstrip()
    if not body or body.endswith(what):
        return None
    # Punctuation only continues a line that does not already end in punctuation
    if _is_punctuation(what) and _is_punctuation(body[-1]):
        return None
    return body + what


def static_corrections(comment: str, line: str) -> Optional[str]:
    """Fix recurring known errors from STATIC_CORRECTIONS."""
    for old, new in STATIC_CORRECTIONS:
        if old in line and new not in line:
            return line.replace(old, new)
    return None


def quoted_spans(comment: str, line: str) -> Optional[str]:
    """One quoted span is the new line; two are (target, replacement)."""
    spans = [next(g for g in m.groups() if g is not None) for m in _QUOTED_SPAN.finditer(comment)]
    trimmed = line.strip()

    if len(spans) == 1:
        span = spans[0].strip()
        if not span or span == trimmed:
            return None
        return span

    if len(spans) == 2:
        target, replacement = spans
        if target and target in line and target != replacement:
            return line.replace(target, replacement, 1)
    return None


# First strategy that yields a candidate wins
STRATEGIES: tuple[tuple[str, SuggestionStrategy], ...] = (
    ("should_be", should_be),
    ("change_to", change_to),
    ("replace_with", replace_with),
    ("typo", typo),
    ("static_corrections", static_corrections),
    ("quoted_spans", quoted_spans),
)


# ── Reconciliation ───────────────────────────────────────────────────────────


def reconcile_candidate(source_line: str, candidate: str) -> Optional[str]:
    """Fit a raw candidate onto the structure of the source line.

    Equal whitespace-token counts mean a whole-line replacement, which only
    borrows the source's markup prefix when the candidate carries none.
    Otherwise the source's markup prefix (list marker, numbering, blockquote,
    note label) is kept when the candidate's common prefix with the source
    does not already cover it. The source indentation is always restored.
    """
    indent = leading_whitespace(source_line)
    src = source_line.strip()
    cand = candidate.strip()
    if not cand:
        return None

    marker = MARKUP_PREFIX.match(src).group(0)
    if len(src.split()) == len(cand.split()):
        # A candidate without markup of its own keeps the source's
        if marker and not MARKUP_PREFIX.match(cand).group(0):
            cand = marker + cand
        return indent + cand

    common = os.path.commonprefix([src, cand])
    if marker and len(common) < len(marker):
        body = MARKUP_PREFIX.sub("", cand, count=1).lstrip()
        cand = marker + body
    return indent + cand


def synthesize_suggestion(
    comment: str,
    source_line: str,
    strategies: tuple[tuple[str, SuggestionStrategy], ...] = STRATEGIES,
) -> Optional[str]:
    """Derive a replacement for ``source_line`` from a prose ``comment``.

    Returns None when no strategy produces a line different from the source.
    """
    if not comment or not source_line.strip():
        return None

    for name, strategy in strategies:
        raw = strategy(comment, source_line)
        if raw is None:
            continue
        candidate = reconcile_candidate(source_line, raw)
        if candidate is None or candidate.rstrip() == source_line.rstrip():
            continue
        logger.debug("Suggestion synthesized by %s strategy", name)
        return candidate

    return None
