"""Tests for DateWindow construction and bounds."""

from datetime import UTC, date, datetime

import pytest

from distro_kernel.domain.windows import DateWindow, WindowKind, parse_day
from distro_kernel.exceptions import ValidationError


class TestParseDay:
    def test_accepts_iso_string(self):
        assert parse_day("2024-05-03", "start") == date(2024, 5, 3)

    def test_accepts_datetime(self):
        assert parse_day(datetime(2024, 5, 3, 10, 0), "start") == date(2024, 5, 3)

    def test_rejects_garbage(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_day("03/05/2024", "production_date")
        assert exc_info.value.field == "production_date"


class TestConstructors:
    def test_daily(self):
        window = DateWindow.daily("2024-05-03")
        assert (window.start, window.end, window.kind) == (
            date(2024, 5, 3),
            date(2024, 5, 3),
            WindowKind.DAILY,
        )
        assert window.days == 1

    def test_weekly_is_monday_to_sunday(self):
        # 2024-05-01 is a Wednesday
        window = DateWindow.weekly(date(2024, 5, 1))
        assert window.start == date(2024, 4, 29)
        assert window.end == date(2024, 5, 5)
        assert window.days == 7

    def test_monthly_handles_leap_february(self):
        window = DateWindow.monthly(date(2024, 2, 10))
        assert window.start == date(2024, 2, 1)
        assert window.end == date(2024, 2, 29)

    def test_yearly(self):
        window = DateWindow.yearly(date(2024, 7, 4))
        assert window.start == date(2024, 1, 1)
        assert window.end == date(2024, 12, 31)

    def test_custom_rejects_reversed_bounds(self):
        with pytest.raises(ValidationError):
            DateWindow.custom("2024-05-05", "2024-05-01")

    def test_for_kind_dispatches(self):
        assert DateWindow.for_kind("monthly", anchor="2024-05-17") == DateWindow.monthly(
            date(2024, 5, 17)
        )

    def test_for_kind_custom_needs_both_bounds(self):
        with pytest.raises(ValidationError):
            DateWindow.for_kind(WindowKind.CUSTOM, start="2024-05-01")

    def test_for_kind_named_window_needs_anchor(self):
        with pytest.raises(ValidationError):
            DateWindow.for_kind(WindowKind.WEEKLY)


class TestBounds:
    def test_half_open_utc_range(self):
        window = DateWindow.custom("2024-05-01", "2024-05-02")
        assert window.start_at == datetime(2024, 5, 1, tzinfo=UTC)
        assert window.end_before == datetime(2024, 5, 3, tzinfo=UTC)

    def test_contains_is_inclusive_at_day_granularity(self):
        window = DateWindow.custom("2024-05-01", "2024-05-02")

        assert window.contains(date(2024, 5, 2))
        assert window.contains(datetime(2024, 5, 2, 23, 59, 59, 999999, tzinfo=UTC))
        assert not window.contains(datetime(2024, 5, 3, 0, 0, tzinfo=UTC))
        assert window.contains(datetime(2024, 5, 1, 0, 0))
