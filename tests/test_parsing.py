"""
Unit tests for input parsing helpers.
"""

from datetime import datetime, timedelta

import pytest

from neat.utils.exceptions import ErrorCode, InputParseError
from neat.utils.parsing import format_size, parse_date, parse_duration, parse_size


class TestParseDuration:
    """Tests for parse_duration."""

    def test_week(self):
        assert parse_duration("1w").total_seconds() == 604800

    def test_units(self):
        assert parse_duration("12h") == timedelta(hours=12)
        assert parse_duration("30d") == timedelta(days=30)
        assert parse_duration(" 2W ") == timedelta(weeks=2)

    def test_bare_number_is_days(self):
        assert parse_duration("7") == timedelta(days=7)

    def test_empty_fails(self):
        """Test empty input is rejected as an invalid duration."""
        with pytest.raises(InputParseError) as exc_info:
            parse_duration("")

        assert exc_info.value.error_code == ErrorCode.INVALID_DURATION

    @pytest.mark.parametrize("value", ["d", "abc", "1.5d", "-3d", "10y", "\u00b2d", "9" * 30])
    def test_malformed_fails(self, value):
        with pytest.raises(InputParseError) as exc_info:
            parse_duration(value)

        assert exc_info.value.error_code == ErrorCode.INVALID_DURATION


class TestParseSize:
    """Tests for parse_size."""

    def test_units(self):
        assert parse_size("10MB") == 10 * 1024 * 1024
        assert parse_size("1.5k") == 1536
        assert parse_size("2G") == 2 * 1024 ** 3
        assert parse_size("512B") == 512

    def test_bare_number_is_bytes(self):
        assert parse_size("1024") == 1024

    def test_negative_fails(self):
        with pytest.raises(InputParseError) as exc_info:
            parse_size("-1MB")

        assert exc_info.value.error_code == ErrorCode.INVALID_SIZE

    @pytest.mark.parametrize("value", ["lots", "inf", "nan", "1e400", "infKB", "1_000", "9" * 400])
    def test_garbage_fails(self, value):
        """Test non-decimal and non-finite sizes are rejected as invalid sizes."""
        with pytest.raises(InputParseError) as exc_info:
            parse_size(value)

        assert exc_info.value.error_code == ErrorCode.INVALID_SIZE


class TestParseDate:
    """Tests for parse_date."""

    def test_dash_and_slash(self):
        assert parse_date("2024-03-05") == datetime(2024, 3, 5)
        assert parse_date("2024/03/05") == datetime(2024, 3, 5)

    @pytest.mark.parametrize("value", ["20240305", "2024-13-01", "yesterday"])
    def test_invalid(self, value):
        with pytest.raises(InputParseError) as exc_info:
            parse_date(value)

        assert exc_info.value.error_code == ErrorCode.INVALID_DATE


class TestFormatSize:
    """Tests for format_size."""

    def test_bytes(self):
        assert format_size(512) == "512 B"

    def test_scaled(self):
        assert format_size(1536) == "1.50 KB"
        assert format_size(5 * 1024 * 1024) == "5.00 MB"
        assert format_size(3 * 1024 ** 3) == "3.00 GB"
