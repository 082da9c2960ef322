"""
Tests for timestamp and price parsing helpers.
"""

from datetime import datetime, timezone

import pytest

from core.utils import parse_timestamp, safe_float, unique_preserving_order


class TestParseTimestamp:

    @pytest.mark.parametrize("text,micro", [
        ("2024-06-01T12:00:00.12345+00:00", 123450),
        ("2024-06-01T12:00:00.1+00:00", 100000),
        ("2024-06-01T12:00:00.1234567Z", 123456),
        ("2024-06-01T12:00:00.123456+00:00", 123456),
    ])
    def test_trimmed_fractions(self, text, micro):
        moment = parse_timestamp(text)

        assert moment is not None
        assert moment.microsecond == micro
        assert moment.tzinfo == timezone.utc

    def test_hour_only_offset(self):
        moment = parse_timestamp("2024-06-01T14:00:00.5+02")

        assert moment == datetime(2024, 6, 1, 12, 0, 0, 500000, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert parse_timestamp("2024-06-01T12:00:00") == datetime(2024, 6, 1, 12, tzinfo=timezone.utc)

    def test_date_only(self):
        assert parse_timestamp("2024-06-01") == datetime(2024, 6, 1, tzinfo=timezone.utc)

    def test_unparseable(self):
        assert parse_timestamp("not-a-date") is None
        assert parse_timestamp(None) is None


class TestSafeFloat:

    def test_formats(self):
        assert safe_float("$1,299.00") == 1299.0
        assert safe_float(120) == 120.0
        assert safe_float(True) is None
        assert safe_float("n/a") is None


def test_unique_preserving_order():
    assert unique_preserving_order(["b", None, "a", "b", ""]) == ["b", "a"]
