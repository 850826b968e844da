"""
Comprehensive tests for gitlab_reviewer/line_validator.py
"""

import pytest

from gitlab_reviewer.diff_parser import DiffParser
from gitlab_reviewer.line_validator import (
    REASON_INVALID_LINE,
    REASON_NO_CHANGES,
    REASON_NO_MAPPING,
    REASON_OUTSIDE_DIFF,
    find_nearest_change_line,
    nearest_change,
    validate_line_number,
)
from gitlab_reviewer.models import (
    ChangeKind, CorrectedTo, DiffLineEntry, FileCoordinateTable, UnresolvedWarning, Valid
)


def _table(path, *entries):
    return FileCoordinateTable(file_path=path, entries=tuple(entries))


def _add(rendered, new_line):
    return DiffLineEntry(rendered, new_line, True, ChangeKind.ADD, new_line=new_line)


def _context(rendered, old_line, new_line):
    return DiffLineEntry(rendered, new_line, False, ChangeKind.CONTEXT, old_line=old_line, new_line=new_line)


@pytest.fixture
def scenario_tables(scenario_diff):
    """Coordinate tables for the two-addition test.js diff."""
    return DiffParser().parse_diff(scenario_diff)


class TestValidateLineNumber:
    """Tests for validate_line_number function."""

    def test_change_line_is_valid(self, scenario_tables):
        """Test a line naming an addition is valid."""
        outcome = validate_line_number("test.js", 4, scenario_tables)
        assert isinstance(outcome, Valid)
        assert outcome.is_valid

    def test_second_change_line_is_valid(self, scenario_tables):
        """Test the second addition is valid too."""
        assert validate_line_number("test.js", 7, scenario_tables).is_valid

    def test_context_line_corrected_to_nearest_change(self, scenario_tables):
        """Test a context line is corrected to the closest addition."""
        outcome = validate_line_number("test.js", 3, scenario_tables)
        assert isinstance(outcome, CorrectedTo)
        assert outcome.line == 4
        assert outcome.change_kind is ChangeKind.ADD
        assert outcome.rendered_line_number == 7
        assert not outcome.is_valid

    def test_context_line_near_second_change(self, scenario_tables):
        """Test a context line after the second addition moves to it."""
        outcome = validate_line_number("test.js", 8, scenario_tables)
        assert isinstance(outcome, CorrectedTo)
        assert outcome.line == 7

    def test_unknown_file(self, scenario_tables):
        """Test a file without a table is unresolved."""
        outcome = validate_line_number("missing.js", 4, scenario_tables)
        assert isinstance(outcome, UnresolvedWarning)
        assert outcome.reason == REASON_NO_MAPPING
        assert outcome.candidate is None

    def test_line_outside_diff_has_candidate(self, scenario_tables):
        """Test a line outside every hunk carries the nearest change as candidate."""
        outcome = validate_line_number("test.js", 999, scenario_tables)
        assert isinstance(outcome, UnresolvedWarning)
        assert outcome.reason == REASON_OUTSIDE_DIFF
        assert outcome.candidate == CorrectedTo(line=7, change_kind=ChangeKind.ADD, rendered_line_number=10)

    def test_file_without_changes(self):
        """Test a file with only context lines is unmappable."""
        tables = {"empty.js": _table("empty.js", _context(4, 1, 1), _context(5, 2, 2))}
        outcome = validate_line_number("empty.js", 999, tables)
        assert isinstance(outcome, UnresolvedWarning)
        assert outcome.reason == REASON_NO_CHANGES

    def test_empty_table(self):
        """Test a table with no entries is unmappable."""
        outcome = validate_line_number("empty.js", 1, {"empty.js": _table("empty.js")})
        assert outcome.reason == REASON_NO_CHANGES

    @pytest.mark.parametrize("line", [0, -5, None, "abc", 1.5e400, object()])
    def test_never_raises(self, scenario_tables, line):
        """Test odd line values produce an outcome instead of an exception."""
        outcome = validate_line_number("test.js", line, scenario_tables)
        assert outcome is not None
        assert not isinstance(outcome, Valid)

    def test_non_integer_line_reason(self, scenario_tables):
        """Test an unparseable line reports an invalid line."""
        outcome = validate_line_number("test.js", "abc", scenario_tables)
        assert outcome.reason == REASON_INVALID_LINE

    def test_numeric_string_accepted(self, scenario_tables):
        """Test a numeric string is treated as its integer value."""
        assert validate_line_number("test.js", "4", scenario_tables).is_valid

    def test_empty_or_missing_tables(self):
        """Test empty and None table maps are handled."""
        assert validate_line_number("a.py", 1, {}).reason == REASON_NO_MAPPING
        assert validate_line_number("a.py", 1, None).reason == REASON_NO_MAPPING

    def test_non_string_path(self, scenario_tables):
        """Test a non-string path is treated as unknown."""
        assert validate_line_number(None, 4, scenario_tables).reason == REASON_NO_MAPPING


class TestNearestChange:
    """Tests for nearest_change and find_nearest_change_line."""

    def test_minimal_rendered_distance(self):
        """Test the change with the smallest rendered distance wins."""
        table = _table("f.py", _add(2, 10), _context(5, 11, 11), _add(9, 20))
        assert nearest_change(table, 5).line == 10
        assert nearest_change(table, 7).line == 20

    def test_tie_goes_to_earliest(self):
        """Test equal distances resolve to the first change in diff order."""
        table = _table("f.py", _add(3, 10), _context(5, 11, 11), _add(7, 20))
        assert nearest_change(table, 5).line == 10

    def test_no_changes(self):
        """Test a table without changes has no nearest change."""
        table = _table("f.py", _context(5, 11, 11))
        assert nearest_change(table, 5) is None

    def test_distance_is_on_rendered_numbers(self):
        """Test resolved numbers do not influence the choice."""
        table = _table("f.py", _add(4, 500), _add(40, 6))
        assert nearest_change(table, 6).line == 500

    def test_find_nearest_change_line(self, scenario_tables):
        """Test lookup by file path."""
        assert find_nearest_change_line("test.js", 6, scenario_tables).line == 4
        assert find_nearest_change_line("missing.js", 6, scenario_tables) is None
