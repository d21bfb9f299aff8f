"""Tests for docreview.indentation recovery and line providers."""
from __future__ import annotations

from docreview.indentation import (
    StaticLineProvider,
    WorkingTreeLineProvider,
    recover_indentation,
)

DOC = "# Title\n    - nested item\n\tTabbed line\nflush line\n"


class TestRecoverIndentation:
    def setup_method(self):
        self.provider = StaticLineProvider({"docs/a.md": DOC})

    def test_prepends_working_tree_indent(self):
        assert (
            recover_indentation("- nested item, fixed", "    - nested item", "docs/a.md", 2, self.provider)
            == "    - nested item, fixed"
        )

    def test_tab_indent(self):
        assert recover_indentation("Fixed", "\tTabbed line", "docs/a.md", 3, self.provider) == "\tFixed"

    def test_already_indented_suggestion_untouched(self):
        assert recover_indentation("  x", "    - nested item", "docs/a.md", 2, self.provider) == "  x"

    def test_flush_source_line_untouched(self):
        assert recover_indentation("x", "flush line", "docs/a.md", 4, self.provider) == "x"

    def test_out_of_range_untouched(self):
        assert recover_indentation("x", "    y", "docs/a.md", 99, self.provider) == "x"

    def test_unknown_file_untouched(self):
        assert recover_indentation("x", "    y", "docs/missing.md", 2, self.provider) == "x"

    def test_working_tree_line_without_indent_untouched(self):
        assert recover_indentation("x", "    y", "docs/a.md", 4, self.provider) == "x"

    def test_no_provider(self):
        assert recover_indentation("x", "    y", "docs/a.md", 2, None) == "x"

    def test_provider_os_error_is_absorbed(self):
        class Broken:
            def line(self, path, line_number):
                raise OSError("disk gone")

        assert recover_indentation("x", "    y", "docs/a.md", 2, Broken()) == "x"


class TestStaticLineProvider:
    def test_accepts_line_lists(self):
        provider = StaticLineProvider({"a.md": ["one", "  two"]})
        assert provider.line("a.md", 2) == "  two"
        assert provider.line("a.md", 0) is None


class TestWorkingTreeLineProvider:
    def test_reads_lines(self, tmp_path):
        (tmp_path / "docs").mkdir()
        (tmp_path / "docs" / "a.md").write_text(DOC, encoding="utf-8")
        provider = WorkingTreeLineProvider(tmp_path)
        assert provider.line("docs/a.md", 2) == "    - nested item"
        assert provider.line("docs/a.md", 5) is None

    def test_caches_file_contents(self, tmp_path):
        path = tmp_path / "a.md"
        path.write_text("first\n", encoding="utf-8")
        provider = WorkingTreeLineProvider(tmp_path)
        assert provider.line("a.md", 1) == "first"
        path.write_text("changed\n", encoding="utf-8")
        assert provider.line("a.md", 1) == "first"

    def test_missing_file(self, tmp_path):
        assert WorkingTreeLineProvider(tmp_path).line("nope.md", 1) is None

    def test_refuses_paths_outside_root(self, tmp_path):
        root = tmp_path / "repo"
        root.mkdir()
        (tmp_path / "secret.md").write_text("token\n", encoding="utf-8")
        assert WorkingTreeLineProvider(root).line("../secret.md", 1) is None
