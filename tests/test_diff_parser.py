"""Tests for docreview.diff_parser."""
from __future__ import annotations

from docreview.diff_parser import diff_stats, parse_diff
from docreview.models import DELETED_PATH, Added, Context, Deleted

from conftest import E2E_DIFF, MULTI_FILE_DIFF


class TestParseDiff:
    def test_single_added_line(self):
        (f,) = parse_diff(E2E_DIFF)
        assert f.target_path == "tidb-configuration.md"
        (chunk,) = f.chunks
        assert chunk.header.startswith("@@ -40,2 +40,3 @@")
        assert chunk.changes == (
            Context(old_line_number=40, new_line_number=40, content="修改 PD 配置后，"),
            Context(old_line_number=41, new_line_number=41, content="执行以下命令："),
            Added(line_number=42, content="重启 PD 群，使此更新生效："),
        )

    def test_multiple_files_and_deletion(self):
        files = parse_diff(MULTI_FILE_DIFF)
        assert [f.target_path for f in files] == ["docs/a.md", "docs/b.md", DELETED_PATH]
        assert files[2].is_deleted
        assert files[2].path == "docs/gone.md"
        assert files[2].chunks[0].changes == (Deleted(line_number=1, content="bye"),)

    def test_rename(self):
        diff = (
            "diff --git a/old-name.md b/new-name.md\n"
            "similarity index 90%\n"
            "rename from old-name.md\n"
            "rename to new-name.md\n"
            "--- a/old-name.md\n"
            "+++ b/new-name.md\n"
            "@@ -1 +1 @@\n"
            "-x\n"
            "+y\n"
        )
        (f,) = parse_diff(diff)
        assert (f.source_path, f.target_path) == ("old-name.md", "new-name.md")
        assert f.chunks[0].changes == (Deleted(1, "x"), Added(1, "y"))

    def test_plain_unified_diff_without_git_header(self):
        diff = (
            "--- docs/a.md\t2024-01-01 00:00:00\n"
            "+++ docs/a.md\t2024-01-02 00:00:00\n"
            "@@ -1,2 +1,2 @@\n"
            " keep\n"
            "-old\n"
            "+new\n"
            "--- docs/b.md\n"
            "+++ docs/b.md\n"
            "@@ -3,1 +3,2 @@\n"
            " ctx\n"
            "+added\n"
        )
        files = parse_diff(diff)
        assert [f.target_path for f in files] == ["docs/a.md", "docs/b.md"]
        assert files[1].chunks[0].changes == (Context(3, 3, "ctx"), Added(4, "added"))

    def test_removed_markdown_rule_is_content(self):
        diff = (
            "diff --git a/a.md b/a.md\n"
            "--- a/a.md\n"
            "+++ b/a.md\n"
            "@@ -1,2 +1,1 @@\n"
            "----\n"
            " title\n"
        )
        (f,) = parse_diff(diff)
        assert f.chunks[0].changes == (Deleted(1, "---"), Context(2, 1, "title"))

    def test_multiple_hunks_keep_order(self):
        diff = (
            "diff --git a/a.md b/a.md\n"
            "--- a/a.md\n"
            "+++ b/a.md\n"
            "@@ -1,1 +1,1 @@\n"
            "-a\n"
            "+b\n"
            "@@ -10,1 +10,1 @@\n"
            "-c\n"
            "+d\n"
        )
        (f,) = parse_diff(diff)
        assert [c.header for c in f.chunks] == ["@@ -1,1 +1,1 @@", "@@ -10,1 +10,1 @@"]

    def test_no_newline_marker_skipped(self):
        diff = (
            "diff --git a/a.md b/a.md\n"
            "--- a/a.md\n"
            "+++ b/a.md\n"
            "@@ -1 +1 @@\n"
            "-a\n"
            "\\ No newline at end of file\n"
            "+b\n"
            "\\ No newline at end of file\n"
        )
        (f,) = parse_diff(diff)
        assert f.chunks[0].changes == (Deleted(1, "a"), Added(1, "b"))

    def test_garbage(self):
        assert parse_diff("hello\nworld\n") == []
        assert parse_diff("") == []


class TestDiffStats:
    def test_counts(self):
        stats = diff_stats(parse_diff(MULTI_FILE_DIFF))
        assert stats == {
            "files_changed": 3,
            "chunks": 3,
            "lines_added": 2,
            "lines_removed": 2,
            "deleted_files": ["docs/gone.md"],
        }
