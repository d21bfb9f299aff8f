"""Tests for docreview.comments fence selection and assembly."""
from __future__ import annotations

from docreview.comments import (
    assemble_comment,
    build_comment_body,
    fence_for,
    longest_backtick_run,
)
from docreview.models import ReviewComment


class TestFence:
    def test_floor_of_three(self):
        assert fence_for("plain text", "no ticks") == "```"

    def test_inline_code_keeps_floor(self):
        assert fence_for("use `tiup`", "``x``") == "```"

    def test_code_fence_in_comment(self):
        assert fence_for("Example:\n```sql\nSELECT 1;\n```", "x") == "````"

    def test_longest_run_across_both_texts(self):
        assert fence_for("```", "`````") == "``````"

    def test_none_is_ignored(self):
        assert fence_for(None, "") == "```"

    def test_longest_run(self):
        assert longest_backtick_run("a ` b `` c ```` d") == 4
        assert longest_backtick_run("") == 0


class TestBuildCommentBody:
    def test_without_suggestion(self):
        assert build_comment_body("Clarify this.") == "Clarify this."
        assert build_comment_body("Clarify this.", "") == "Clarify this."

    def test_with_suggestion(self):
        assert build_comment_body("Fix typo.", "  - fixed line") == (
            "Fix typo.\n\n```suggestion\n  - fixed line\n```"
        )

    def test_fence_cannot_be_closed_by_comment(self):
        body = build_comment_body("Wrap it:\n```bash\nls\n```", "Run `ls`.")
        assert body.endswith("\n````suggestion\nRun `ls`.\n````")


class TestAssembleComment:
    def test_fields(self):
        comment = assemble_comment("docs/a.md", 42, "c", "s")
        assert comment == ReviewComment(path="docs/a.md", line=42, body="c\n\n```suggestion\ns\n```")
        assert comment.to_dict() == {"path": "docs/a.md", "line": 42, "body": comment.body}
