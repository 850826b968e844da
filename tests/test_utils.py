"""
Comprehensive tests for gitlab_reviewer/utils.py
"""

from gitlab_reviewer.utils import DEV_NULL, sanitize_text, strip_diff_path_prefix


class TestStripDiffPathPrefix:
    """Tests for strip_diff_path_prefix function."""

    def test_strips_a_and_b(self):
        """Test git's a/ and b/ prefixes are removed."""
        assert strip_diff_path_prefix("a/src/app.py") == "src/app.py"
        assert strip_diff_path_prefix("b/src/app.py") == "src/app.py"

    def test_only_one_prefix_removed(self):
        """Test a directory literally named b is preserved."""
        assert strip_diff_path_prefix("b/b/file.txt") == "b/file.txt"

    def test_dev_null_unchanged(self):
        """Test /dev/null is returned as is."""
        assert strip_diff_path_prefix(DEV_NULL) == "/dev/null"

    def test_timestamp_removed(self):
        """Test a tab-separated timestamp is dropped."""
        assert strip_diff_path_prefix("a/file.c\t2024-01-01 10:00:00") == "file.c"

    def test_unprefixed_path(self):
        """Test a path without prefix is only stripped of whitespace."""
        assert strip_diff_path_prefix(" file.c ") == "file.c"

    def test_empty(self):
        """Test empty and None paths give an empty string."""
        assert strip_diff_path_prefix("") == ""
        assert strip_diff_path_prefix(None) == ""


class TestSanitizeText:
    """Tests for sanitize_text function."""

    def test_preserves_markdown(self):
        """Test Markdown, newlines and tabs survive."""
        text = "**Bold**\n\n```python\n\tx = 1\n```"
        assert sanitize_text(text) == text

    def test_removes_control_characters(self):
        """Test control characters other than newline and tab are dropped."""
        assert sanitize_text("bad\x00text\x1b here") == "badtext here"

    def test_collapses_blank_runs(self):
        """Test long runs of newlines are limited to three."""
        assert sanitize_text("a\n\n\n\n\n\nb") == "a\n\n\nb"

    def test_strips_outer_whitespace(self):
        """Test surrounding whitespace is removed."""
        assert sanitize_text("  padded \n") == "padded"

    def test_empty(self):
        """Test empty and None give an empty string."""
        assert sanitize_text("") == ""
        assert sanitize_text(None) == ""
