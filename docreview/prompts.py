"""Review prompt for documentation chunks and the per-chunk message builder."""

from __future__ import annotations

from pathlib import Path
from string import Template
from typing import Optional

from docreview.line_resolver import applicable_line_number, diff_marker
from docreview.models import DiffChunk, DiffFile, PRDetails

# ── Default prompt ───────────────────────────────────────────────────────────

REVIEW_PROMPT_TEMPLATE = Template(
    """As a technical writer who has profound knowledge of databases, your task is to review pull requests of TiDB user documentation.

IMPORTANT: You MUST follow these formatting instructions exactly:
1. Your response MUST be a valid JSON object with the following structure:
   {"reviews": [{"lineNumber": <line_number>, "reviewComment": "<review comment>", "suggestion": "<improved version of the original line>"}]}
2. Do NOT include any markdown code blocks (like ```json) around your JSON.
3. Ensure all JSON keys and values are properly quoted with double quotes.
4. Escape any double quotes within string values with a backslash (\\").
5. Do NOT include any explanations or text outside of the JSON object.

Review Guidelines:
- Do not give positive comments or compliments.
- Do not improve the wording of UI strings or messages returned by CLI.
- Focus on improving the clarity, accuracy, and readability of the content.
- Ensure the documentation is easy to understand for TiDB users.
- Review not just the wording but also the logic and structure of the content.
- Review the document in the context of the overall user experience and functionality described.
- Provide "reviews" ONLY if there is something to improve, otherwise "reviews" should be an empty array.
- Write the review comment in the language of the documentation.
- For EVERY review comment of a specific line, "suggestion" MUST be the improved version of the original line. If the beginning of the original line contains Markdown syntax such as blank spaces for indentation, "-", "+", "*" for unordered list, or ">" for notes, keep them unchanged.

Example of a valid response:

{"reviews": [{"lineNumber": 42, "reviewComment": "该句描述不够清晰，建议明确说明压缩效率和压缩率的关系，并补充对默认值的解释。", "suggestion": "设置 raft-engine 在写 raft log 文件时所采用的 lz4 压缩算法的压缩效率，范围 [1, 16]。数值越低，压缩速率越高，但压缩率越低；数值越高，压缩速率越低，但压缩率越高。默认值 1 表示优先考虑压缩速率。"}]}

Review the following code diff in the file "$file_path" and take the pull request title and description into account when writing the response.

Pull request title: $title
Pull request description:

---
$description
---

Git diff to review:

```diff
$diff
```
"""
)


def render_chunk_diff(chunk: DiffChunk) -> str:
    """The chunk header followed by one ``<line> <marker><text>`` row per change."""
    rows = [chunk.header]
    for change in chunk.changes:
        rows.append(f"{applicable_line_number(change)} {diff_marker(change)}{change.content}")
    return "\n".join(rows)


def load_prompt_template(path: str) -> Template:
    """Load a custom prompt (``PROMPT_PATH``) using ``$file_path``, ``$title``,
    ``$description`` and ``$diff`` placeholders."""
    return Template(Path(path).read_text(encoding="utf-8"))


def build_review_prompt(
    diff_file: DiffFile,
    chunk: DiffChunk,
    pr: PRDetails,
    template: Optional[Template] = None,
) -> str:
    """Build the prompt for one chunk of one file."""
    template = template or REVIEW_PROMPT_TEMPLATE
    return template.safe_substitute(
        file_path=diff_file.target_path,
        title=pr.title,
        description=pr.description,
        diff=render_chunk_diff(chunk),
    )
