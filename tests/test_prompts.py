"""Tests for docreview.prompts."""
from __future__ import annotations

from docreview.models import Added, Context, Deleted, DiffChunk, DiffFile, PRDetails
from docreview.prompts import build_review_prompt, load_prompt_template, render_chunk_diff

CHUNK = DiffChunk(
    header="@@ -1,2 +1,2 @@",
    changes=(Context(1, 1, "# Title"), Deleted(2, "old"), Added(2, "new")),
)
FILE = DiffFile(source_path="docs/a.md", target_path="docs/a.md", chunks=[CHUNK])
PR = PRDetails("o", "r", 1, title="Fix docs", description="Costs $5 per $unit")


class TestRenderChunkDiff:
    def test_numbered_rows(self):
        assert render_chunk_diff(CHUNK) == "@@ -1,2 +1,2 @@\n1  # Title\n2 -old\n2 +new"


class TestBuildReviewPrompt:
    def test_default_template(self):
        prompt = build_review_prompt(FILE, CHUNK, PR)
        assert 'in the file "docs/a.md"' in prompt
        assert "Pull request title: Fix docs" in prompt
        assert "2 +new" in prompt
        assert '"reviews"' in prompt

    def test_dollar_signs_in_description_survive(self):
        assert "Costs $5 per $unit" in build_review_prompt(FILE, CHUNK, PR)

    def test_custom_template(self, tmp_path):
        path = tmp_path / "prompt.txt"
        path.write_text("Review $file_path ($title):\n$diff\nKeep $other", encoding="utf-8")
        prompt = build_review_prompt(FILE, CHUNK, PR, template=load_prompt_template(str(path)))
        assert prompt.startswith("Review docs/a.md (Fix docs):\n@@ -1,2 +1,2 @@")
        assert prompt.endswith("Keep $other")
