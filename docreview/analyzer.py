"""Core review logic — one provider call per chunk, anchored comments out."""

from __future__ import annotations

import logging
from string import Template
from typing import Optional

from docreview.comments import assemble_comment
from docreview.diff_parser import diff_stats, parse_diff
from docreview.indentation import LineContentProvider, recover_indentation
from docreview.line_resolver import parse_line_number, resolve_line
from docreview.llm import ProviderGateway
from docreview.llm_parsing import parse_review_items
from docreview.models import (
    DiffChunk,
    DiffFile,
    PRDetails,
    ReviewComment,
    ReviewItem,
)
from docreview.prompts import build_review_prompt
from docreview.suggestions import synthesize_suggestion

logger = logging.getLogger(__name__)


def create_comments(
    diff_file: DiffFile,
    chunk: DiffChunk,
    items: list[ReviewItem],
    line_provider: Optional[LineContentProvider] = None,
    synthesize: bool = True,
) -> list[ReviewComment]:
    """Turn review items for ``chunk`` into comments anchored in that chunk.

    Items whose line number is not in the chunk are dropped. An explicit
    suggestion only gets its indentation repaired; an empty one may be
    synthesized from the comment prose.
    """
    comments: list[ReviewComment] = []
    path = diff_file.target_path

    for item in items:
        line = parse_line_number(item.line_number)
        source_line = resolve_line(chunk, line) if line is not None else None
        if source_line is None:
            logger.debug(
                "Dropping review for %s: line %r not in chunk %s",
                path,
                item.line_number,
                chunk.header,
            )
            continue

        if item.suggestion.strip():
            suggestion = recover_indentation(
                item.suggestion, source_line, path, line, line_provider
            )
        elif synthesize:
            suggestion = synthesize_suggestion(item.comment, source_line) or ""
        else:
            suggestion = ""

        if not item.comment.strip() and not suggestion:
            logger.debug("Dropping empty review for %s:%d", path, line)
            continue

        comments.append(assemble_comment(path, line, item.comment, suggestion or None))

    return comments


def review_chunk(
    diff_file: DiffFile,
    chunk: DiffChunk,
    pr: PRDetails,
    gateway: ProviderGateway,
    line_provider: Optional[LineContentProvider] = None,
    template: Optional[Template] = None,
    synthesize: bool = True,
    tool: str = "review",
) -> list[ReviewComment]:
    """Prompt, call, extract and assemble for a single chunk.

    Provider and parse failures yield no comments for this chunk only.
    """
    prompt = build_review_prompt(diff_file, chunk, pr, template=template)
    result = gateway.complete(prompt, tool=tool)
    if not result.ok:
        logger.error(
            "No review for %s %s: %s failed (%s)",
            diff_file.target_path,
            chunk.header,
            result.provider,
            result.reason,
        )
        return []

    items = parse_review_items(result.text)
    if items is None:
        logger.warning(
            "Unusable review response for %s %s from %s",
            diff_file.target_path,
            chunk.header,
            result.provider,
        )
        return []

    logger.info(
        "%s %s: %d review item(s) from %s",
        diff_file.target_path,
        chunk.header,
        len(items),
        result.provider,
    )
    return create_comments(
        diff_file, chunk, items, line_provider=line_provider, synthesize=synthesize
    )


def analyze_code(
    files: list[DiffFile],
    pr: PRDetails,
    gateway: ProviderGateway,
    line_provider: Optional[LineContentProvider] = None,
    template: Optional[Template] = None,
    synthesize: bool = True,
) -> list[ReviewComment]:
    """Review every chunk of every non-deleted file, in diff order."""
    comments: list[ReviewComment] = []
    reviewable = [f for f in files if not f.is_deleted]
    total_chunks = sum(len(f.chunks) for f in reviewable)
    chunk_no = 0

    for diff_file in reviewable:
        for chunk in diff_file.chunks:
            chunk_no += 1
            logger.info(
                "LLM chunk %d/%d: %s %s",
                chunk_no,
                total_chunks,
                diff_file.target_path,
                chunk.header,
            )
            comments.extend(
                review_chunk(
                    diff_file,
                    chunk,
                    pr,
                    gateway,
                    line_provider=line_provider,
                    template=template,
                    synthesize=synthesize,
                    tool=f"review[{chunk_no}/{total_chunks}]",
                )
            )

    return comments


def review_diff(
    diff_text: str,
    pr: PRDetails,
    gateway: ProviderGateway,
    line_provider: Optional[LineContentProvider] = None,
    template: Optional[Template] = None,
    synthesize: bool = True,
) -> list[ReviewComment]:
    """Parse ``diff_text`` and review it; an unparseable diff yields nothing."""
    files = parse_diff(diff_text)
    if not files:
        logger.warning("No parseable diff content found")
        return []

    stats = diff_stats(files)
    logger.info(
        "Reviewing %d file(s), %d chunk(s): +%d/-%d lines",
        stats["files_changed"],
        stats["chunks"],
        stats["lines_added"],
        stats["lines_removed"],
    )
    return analyze_code(
        files,
        pr,
        gateway,
        line_provider=line_provider,
        template=template,
        synthesize=synthesize,
    )
