"""Tests for calendar-month buckets."""

import pytest
from datetime import datetime, timezone

from ledger.queries.calendar import (
    month_key,
    month_label,
    month_sequence,
    parse_month_key,
    resolve_window,
    shift_month,
    window_start,
)


class TestMonthArithmetic:
    """Month shifts across year boundaries."""

    @pytest.mark.parametrize("year, month, delta, expected", [
        (2024, 12, -5, (2024, 7)),
        (2024, 3, -5, (2023, 10)),
        (2024, 1, -1, (2023, 12)),
        (2023, 12, 1, (2024, 1)),
        (2024, 6, 0, (2024, 6)),
        (2024, 1, -25, (2021, 12)),
    ])
    def test_shift_month(self, year, month, delta, expected):
        """Test forward and backward shifts."""
        assert shift_month(year, month, delta) == expected


class TestMonthKeys:
    """Bucket keys and labels."""

    def test_single_digit_months_zero_padded(self):
        """Test that months are always two digits."""
        assert month_key(2024, 3) == "2024-03"
        assert month_key(2024, 11) == "2024-11"

    def test_out_of_range_month(self):
        """Test that month 13 is rejected."""
        with pytest.raises(ValueError):
            month_key(2024, 13)

    def test_parse_month_key(self):
        """Test key parsing."""
        assert parse_month_key("2024-03") == (2024, 3)

    def test_month_label(self):
        """Test "Month Year" labels."""
        assert month_label("2024-01") == "January 2024"
        assert month_label("2023-12") == "December 2023"


class TestWindow:
    """Effective monthly report windows."""

    def test_window_start_truncates_to_first_of_month(self):
        """Test that start is midnight on the first of the month."""
        end = datetime(2024, 3, 31, 15, 45, tzinfo=timezone.utc)
        assert window_start(end, 3) == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_window_start_rolls_over_year(self):
        """Test December minus 5 months landing in July."""
        end = datetime(2024, 12, 10, tzinfo=timezone.utc)
        assert window_start(end, 6) == datetime(2024, 7, 1, tzinfo=timezone.utc)

    def test_single_month_window(self):
        """Test that one month starts at the first of end's month."""
        end = datetime(2024, 2, 29, tzinfo=timezone.utc)
        assert window_start(end, 1) == datetime(2024, 2, 1, tzinfo=timezone.utc)

    def test_window_start_requires_months(self):
        """Test that a zero-month window is rejected."""
        with pytest.raises(ValueError):
            window_start(datetime(2024, 1, 1, tzinfo=timezone.utc), 0)

    def test_month_sequence_consecutive(self):
        """Test consecutive keys across a year boundary."""
        start = datetime(2023, 11, 1, tzinfo=timezone.utc)
        assert month_sequence(start, 4) == ["2023-11", "2023-12", "2024-01", "2024-02"]

    def test_resolve_window_defaults_end_to_now(self):
        """Test that end falls back to the reference time."""
        now = datetime(2024, 3, 20, tzinfo=timezone.utc)
        start, end = resolve_window(None, None, 3, now=now)
        assert end == now
        assert start == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_resolve_window_keeps_explicit_start(self):
        """Test that a supplied start is not derived."""
        start = datetime(2023, 6, 15, tzinfo=timezone.utc)
        end = datetime(2024, 3, 31, tzinfo=timezone.utc)
        assert resolve_window(start, end, 3) == (start, end)
