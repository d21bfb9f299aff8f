"""Data models for diff chunks, review items and review comments."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Union

# Target path of a file removed by the diff
DELETED_PATH = "/dev/null"


# ── Diff model ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Added:
    """A line introduced by the diff, numbered in the new file."""

    line_number: int
    content: str


@dataclass(frozen=True)
class Deleted:
    """A line removed by the diff, numbered in the old file."""

    line_number: int
    content: str


@dataclass(frozen=True)
class Context:
    """An unchanged line, numbered in both files."""

    old_line_number: int
    new_line_number: int
    content: str


Change = Union[Added, Deleted, Context]


@dataclass(frozen=True)
class DiffChunk:
    """A single hunk: its ``@@`` header and its changes in hunk order."""

    header: str
    changes: tuple[Change, ...] = ()


@dataclass
class DiffFile:
    """Parsed diff for a single file."""

    source_path: str
    target_path: str
    chunks: list[DiffChunk] = field(default_factory=list)

    @property
    def is_deleted(self) -> bool:
        return self.target_path == DELETED_PATH

    @property
    def path(self) -> str:
        return self.source_path if self.is_deleted else self.target_path


# ── Review model ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ReviewItem:
    """One unanchored review entry recovered from provider text.

    ``line_number`` is kept as the text the model produced; it only becomes
    an int once it resolves against a chunk. An empty ``suggestion`` means
    the model supplied none.
    """

    line_number: str
    comment: str
    suggestion: str = ""

    def to_dict(self) -> dict:
        return {
            "lineNumber": self.line_number,
            "reviewComment": self.comment,
            "suggestion": self.suggestion,
        }


@dataclass(frozen=True)
class ReviewComment:
    """A line comment ready to attach to a pull request review."""

    path: str
    line: int
    body: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PRDetails:
    owner: str
    repo: str
    pull_number: int
    title: str = ""
    description: str = ""


# ── Provider results ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ProviderSuccess:
    """Raw text returned by a provider."""

    provider: str
    text: str

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class ProviderFailure:
    """A provider call that produced no usable text (error, timeout, empty)."""

    provider: str
    reason: str

    @property
    def ok(self) -> bool:
        return False


ProviderResult = Union[ProviderSuccess, ProviderFailure]
