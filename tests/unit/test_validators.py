"""
Unit tests for validators module.
"""

import pytest

from cloudvol.cli.lib.validators import parse_option, validate_name


class TestValidateName:
    """Tests for validate_name function."""

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["vol1", "a", "data-volume-01", "x" * 63])
    def test_valid_name(self, name):
        """Test valid names."""
        validate_name(name)

    @pytest.mark.unit
    def test_empty_name(self):
        """Test empty name."""
        with pytest.raises(ValueError, match="cannot be empty"):
            validate_name("")

    @pytest.mark.unit
    def test_name_too_long(self):
        """Test name exceeding 63 characters."""
        with pytest.raises(ValueError, match="between 1 and 63"):
            validate_name("a" * 64)

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["Vol1", "1vol", "-vol", "vol-", "vol_1", "vol.1", "vol 1"])
    def test_name_invalid_chars(self, name):
        """Test names outside RFC 1035."""
        with pytest.raises(ValueError, match="lowercase letter"):
            validate_name(name)


class TestParseOption:
    """Tests for parse_option function."""

    @pytest.mark.unit
    def test_valid_option(self):
        assert parse_option("sizeGb=20") == ("sizeGb", "20")
        assert parse_option(" type = pd-ssd ") == ("type", "pd-ssd")

    @pytest.mark.unit
    def test_empty_value(self):
        assert parse_option("type=") == ("type", "")

    @pytest.mark.unit
    @pytest.mark.parametrize("option", ["sizeGb", "=20", ""])
    def test_invalid_option(self, option):
        with pytest.raises(ValueError, match="key=value"):
            parse_option(option)
