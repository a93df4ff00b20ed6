"""
Unit tests for the trial clock.
"""

from datetime import UTC, datetime, timedelta

import pytest

from core import trial

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


class TestIsExpired:
    def test_boundary_is_expired(self):
        assert trial.is_expired(NOW, NOW) is True

    def test_one_millisecond_ahead_is_not_expired(self):
        assert trial.is_expired(NOW + timedelta(milliseconds=1), NOW) is False

    def test_past_is_expired(self):
        assert trial.is_expired(NOW - timedelta(seconds=1), NOW) is True

    def test_undefined_is_not_expired(self):
        assert trial.is_expired(None, NOW) is False

    def test_accepts_iso_strings(self):
        assert trial.is_expired("2025-03-01T12:00:00+00:00", NOW) is True
        assert trial.is_expired("2025-03-01T12:00:01Z", NOW) is False

    def test_naive_datetime_treated_as_utc(self):
        assert trial.is_expired(datetime(2025, 3, 1, 12, 0), NOW) is True


class TestDaysLeft:
    @pytest.mark.parametrize(
        "delta,expected",
        [
            (timedelta(days=7), 7),
            (timedelta(days=6, hours=1), 7),
            (timedelta(seconds=1), 1),
            (timedelta(0), 0),
            (timedelta(days=-3), 0),
        ],
    )
    def test_rounds_up_and_never_negative(self, delta, expected):
        assert trial.days_left(NOW + delta, NOW) == expected

    def test_undefined_is_zero(self):
        assert trial.days_left(None, NOW) == 0


class TestParseTimestamp:
    def test_malformed_string_is_absent(self):
        assert trial.parse_timestamp("next tuesday") is None

    def test_unsupported_type_is_absent(self):
        assert trial.parse_timestamp(12345) is None

    def test_converts_to_utc(self):
        parsed = trial.parse_timestamp("2025-03-01T14:00:00+02:00")
        assert parsed == NOW
        assert parsed.tzinfo == UTC
