"""Tests for look-back duration parsing."""

from datetime import UTC, datetime, timedelta

import pytest

from git_activity_mirror.duration import DurationParseError, parse_duration, resolve_since


class TestParseDuration:
    """Tests for parse_duration."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("24h", timedelta(hours=24)),
            ("7d", timedelta(hours=168)),
            ("1w", timedelta(hours=168)),
            ("3mo", timedelta(hours=2160)),
            ("1y", timedelta(hours=8760)),
            ("1.5d", timedelta(hours=36)),
        ],
    )
    def test_calendar_units(self, value: str, expected: timedelta):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("90m", timedelta(minutes=90)),
            ("1h30m", timedelta(hours=1, minutes=30)),
            ("45s", timedelta(seconds=45)),
            ("500ms", timedelta(milliseconds=500)),
            ("2h45m30s", timedelta(hours=2, minutes=45, seconds=30)),
            ("0", timedelta(0)),
        ],
    )
    def test_clock_durations(self, value: str, expected: timedelta):
        assert parse_duration(value) == expected

    def test_minutes_are_not_months(self):
        """'m' is minutes; months need 'mo'."""
        assert parse_duration("3m") == timedelta(minutes=3)
        assert parse_duration("3mo") == timedelta(days=90)

    def test_whitespace_is_ignored(self):
        assert parse_duration(" 24h ") == timedelta(hours=24)

    @pytest.mark.parametrize("value", ["bogus", "", "d", "7", "1x", "-1h", "1y2d", "h24"])
    def test_malformed_raises(self, value: str):
        with pytest.raises(DurationParseError):
            parse_duration(value)

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError, match="bogus"):
            parse_duration("bogus")

    @pytest.mark.parametrize("value", ["99999999y", "999999999999999999999h", "9999999999d"])
    def test_oversized_raises(self, value: str):
        with pytest.raises(DurationParseError, match="too large"):
            parse_duration(value)


class TestResolveSince:
    """Tests for resolve_since."""

    NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC)

    def test_duration_string(self):
        assert resolve_since("24h", "1y", now=self.NOW) == datetime(2024, 5, 31, 12, 0, 0, tzinfo=UTC)

    def test_default_used_when_none(self):
        assert resolve_since(None, "7d", now=self.NOW) == datetime(2024, 5, 25, 12, 0, 0, tzinfo=UTC)

    def test_timedelta(self):
        assert resolve_since(timedelta(hours=1), "1y", now=self.NOW) == datetime(2024, 6, 1, 11, 0, 0, tzinfo=UTC)

    def test_absolute_datetime_passes_through_as_utc(self):
        naive = datetime(2024, 1, 1, 0, 0, 0)
        assert resolve_since(naive, "1y", now=self.NOW) == datetime(2024, 1, 1, tzinfo=UTC)

    def test_malformed_raises(self):
        with pytest.raises(DurationParseError):
            resolve_since("soon", "1y", now=self.NOW)

    @pytest.mark.parametrize("value", ["100000y", timedelta(days=800_000)])
    def test_before_year_one_raises(self, value):
        with pytest.raises(DurationParseError, match="before year 1"):
            resolve_since(value, "1y", now=self.NOW)

    def test_oversized_string_raises(self):
        with pytest.raises(DurationParseError):
            resolve_since("99999999y", "24h", now=self.NOW)
