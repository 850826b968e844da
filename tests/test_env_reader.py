"""
Comprehensive tests for gitlab_reviewer/env_reader.py
"""

import pytest
from enum import Enum

from gitlab_reviewer.env_reader import (
    get_env_str,
    get_env_int,
    get_env_float,
    get_env_bool,
    get_env_list,
    get_env_enum,
)


class Policy(Enum):
    """Enum used to exercise get_env_enum."""
    WARN = "warn"
    RELOCATE = "relocate"


class TestGetEnvStr:
    """Tests for get_env_str function."""

    def test_primary_key(self, monkeypatch):
        """Test the primary key wins when set."""
        monkeypatch.setenv("GITLAB_URL", "https://gitlab.example.com")
        monkeypatch.setenv("CI_SERVER_URL", "https://ci.example.com")
        assert get_env_str("GITLAB_URL", "", "CI_SERVER_URL") == "https://gitlab.example.com"

    def test_ci_fallback(self, monkeypatch):
        """Test a CI predefined variable is used when the primary is unset."""
        monkeypatch.setenv("CI_SERVER_URL", "https://ci.example.com")
        assert get_env_str("GITLAB_URL", "https://gitlab.com", "CI_SERVER_URL") == "https://ci.example.com"

    def test_empty_primary_falls_through(self, monkeypatch):
        """Test an empty primary value counts as unset."""
        monkeypatch.setenv("GITLAB_TOKEN", "")
        monkeypatch.setenv("GITLAB_PRIVATE_TOKEN", "glpat-fallback123456")
        assert get_env_str("GITLAB_TOKEN", "", "GITLAB_PRIVATE_TOKEN") == "glpat-fallback123456"

    def test_fallbacks_tried_in_order(self, monkeypatch):
        """Test the first non-empty fallback is returned."""
        monkeypatch.setenv("SECOND", "second")
        monkeypatch.setenv("THIRD", "third")
        assert get_env_str("PRIMARY_UNSET", "", "FIRST_UNSET", "SECOND", "THIRD") == "second"

    def test_default(self, monkeypatch):
        """Test the default is returned when nothing is set."""
        monkeypatch.delenv("PRIMARY_UNSET", raising=False)
        assert get_env_str("PRIMARY_UNSET", "default") == "default"
        assert get_env_str("PRIMARY_UNSET") == ""


class TestGetEnvNumbers:
    """Tests for get_env_int and get_env_float functions."""

    def test_int(self, monkeypatch):
        """Test integer parsing tolerates surrounding whitespace."""
        monkeypatch.setenv("MAX_CONCURRENT_COMMENTS", " 5 ")
        assert get_env_int("MAX_CONCURRENT_COMMENTS", 3) == 5

    def test_int_invalid_uses_default(self, monkeypatch):
        """Test an unparsable integer gives the default."""
        monkeypatch.setenv("GITLAB_TIMEOUT", "thirty")
        assert get_env_int("GITLAB_TIMEOUT", 30) == 30

    def test_int_fallback(self, monkeypatch):
        """Test an integer read from a fallback key."""
        monkeypatch.setenv("FALLBACK_INT", "-2")
        assert get_env_int("PRIMARY_UNSET", 0, "FALLBACK_INT") == -2

    def test_float(self, monkeypatch):
        """Test float parsing, including integer strings."""
        monkeypatch.setenv("FLOAT_VAR", "0.25")
        assert get_env_float("FLOAT_VAR", 1.0) == 0.25
        monkeypatch.setenv("FLOAT_VAR", "3")
        assert get_env_float("FLOAT_VAR", 1.0) == 3.0

    def test_float_invalid_uses_default(self, monkeypatch):
        """Test an unparsable float gives the default."""
        monkeypatch.setenv("FLOAT_VAR", "fast")
        assert get_env_float("FLOAT_VAR", 1.5) == 1.5


class TestGetEnvBool:
    """Tests for get_env_bool function."""

    @pytest.mark.parametrize("value", ["true", "TRUE", "yes", "On", "1"])
    def test_true_values(self, monkeypatch, value):
        """Test recognized true values."""
        monkeypatch.setenv("INCLUDE_DEEP_LINKS", value)
        assert get_env_bool("INCLUDE_DEEP_LINKS", False) is True

    @pytest.mark.parametrize("value", ["false", "no", "0", "off", "maybe"])
    def test_other_values_are_false(self, monkeypatch, value):
        """Test anything else that is set means False."""
        monkeypatch.setenv("INCLUDE_DEEP_LINKS", value)
        assert get_env_bool("INCLUDE_DEEP_LINKS", True) is False

    def test_unset_and_empty_use_default(self, monkeypatch):
        """Test unset or empty values give the default."""
        assert get_env_bool("INCLUDE_DEEP_LINKS", True) is True
        monkeypatch.setenv("INCLUDE_DEEP_LINKS", "")
        assert get_env_bool("INCLUDE_DEEP_LINKS", True) is True


class TestGetEnvList:
    """Tests for get_env_list function."""

    def test_split_and_strip(self, monkeypatch):
        """Test items are split, stripped and empty ones dropped."""
        monkeypatch.setenv("LIST_VAR", " a , b,, c ,")
        assert get_env_list("LIST_VAR") == ["a", "b", "c"]

    def test_custom_separator_and_fallback(self, monkeypatch):
        """Test a custom separator on a fallback key."""
        monkeypatch.setenv("FALLBACK_LIST", "x;y")
        assert get_env_list("PRIMARY_UNSET", ";", "FALLBACK_LIST") == ["x", "y"]

    def test_unset(self):
        """Test an unset list is empty."""
        assert get_env_list("PRIMARY_UNSET") == []


class TestGetEnvEnum:
    """Tests for get_env_enum function."""

    def test_by_value(self, monkeypatch):
        """Test lookup by enum value."""
        monkeypatch.setenv("OUTSIDE_DIFF_POLICY", "relocate")
        assert get_env_enum("OUTSIDE_DIFF_POLICY", Policy, Policy.WARN) is Policy.RELOCATE

    def test_case_insensitive_and_stripped(self, monkeypatch):
        """Test lookup ignores case and whitespace."""
        monkeypatch.setenv("OUTSIDE_DIFF_POLICY", "  RELOCATE ")
        assert get_env_enum("OUTSIDE_DIFF_POLICY", Policy, Policy.WARN) is Policy.RELOCATE

    def test_by_name(self, monkeypatch):
        """Test lookup by member name when no value matches."""
        class Level(Enum):
            VERBOSE = 10

        monkeypatch.setenv("LEVEL_VAR", "verbose")
        assert get_env_enum("LEVEL_VAR", Level, None) is Level.VERBOSE

    def test_unknown_uses_default(self, monkeypatch):
        """Test an unknown value gives the default."""
        monkeypatch.setenv("OUTSIDE_DIFF_POLICY", "ignore")
        assert get_env_enum("OUTSIDE_DIFF_POLICY", Policy, Policy.WARN) is Policy.WARN

    def test_fallback(self, monkeypatch):
        """Test a fallback key is consulted."""
        monkeypatch.setenv("FALLBACK_POLICY", "relocate")
        assert get_env_enum("PRIMARY_UNSET", Policy, Policy.WARN, "FALLBACK_POLICY") is Policy.RELOCATE
