"""
Date windows for reporting and reconciliation.

A DateWindow is an inclusive pair of calendar days.  Queries over
timestamps use the half-open UTC range [start 00:00, end + 1 day 00:00),
which keeps both bounds inclusive at day granularity without relying on
23:59:59 cut-offs.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from enum import Enum

from distro_kernel.exceptions import ValidationError


class WindowKind(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


def parse_day(value: date | str, field: str) -> date:
    """Accept a date or an ISO ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise ValidationError(f"{field} is not a valid date: {value!r}", field=field) from exc


@dataclass(frozen=True, slots=True)
class DateWindow:
    start: date
    end: date
    kind: WindowKind = WindowKind.CUSTOM

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValidationError(
                f"Window start {self.start} is after end {self.end}",
                field="start",
            )

    # -----------------------------------------------------------------
    # Constructors
    # -----------------------------------------------------------------

    @classmethod
    def custom(cls, start: date | str, end: date | str) -> DateWindow:
        return cls(parse_day(start, "start"), parse_day(end, "end"), WindowKind.CUSTOM)

    @classmethod
    def daily(cls, day: date | str) -> DateWindow:
        d = parse_day(day, "day")
        return cls(d, d, WindowKind.DAILY)

    @classmethod
    def weekly(cls, anchor: date | str) -> DateWindow:
        """ISO week (Monday through Sunday) containing anchor."""
        d = parse_day(anchor, "anchor")
        monday = d - timedelta(days=d.weekday())
        return cls(monday, monday + timedelta(days=6), WindowKind.WEEKLY)

    @classmethod
    def monthly(cls, anchor: date | str) -> DateWindow:
        d = parse_day(anchor, "anchor")
        last = calendar.monthrange(d.year, d.month)[1]
        return cls(d.replace(day=1), d.replace(day=last), WindowKind.MONTHLY)

    @classmethod
    def yearly(cls, anchor: date | str) -> DateWindow:
        d = parse_day(anchor, "anchor")
        return cls(date(d.year, 1, 1), date(d.year, 12, 31), WindowKind.YEARLY)

    @classmethod
    def for_kind(
        cls,
        kind: WindowKind | str,
        anchor: date | str | None = None,
        start: date | str | None = None,
        end: date | str | None = None,
    ) -> DateWindow:
        kind = WindowKind(kind)
        if kind == WindowKind.CUSTOM:
            if start is None or end is None:
                raise ValidationError("custom window needs start and end", field="start")
            return cls.custom(start, end)
        if anchor is None:
            raise ValidationError(f"{kind.value} window needs an anchor date", field="anchor")
        builders = {
            WindowKind.DAILY: cls.daily,
            WindowKind.WEEKLY: cls.weekly,
            WindowKind.MONTHLY: cls.monthly,
            WindowKind.YEARLY: cls.yearly,
        }
        return builders[kind](anchor)

    # -----------------------------------------------------------------
    # Query helpers
    # -----------------------------------------------------------------

    @property
    def start_at(self) -> datetime:
        return datetime.combine(self.start, time.min, tzinfo=UTC)

    @property
    def end_before(self) -> datetime:
        """Exclusive upper bound: midnight after the last day."""
        return datetime.combine(self.end + timedelta(days=1), time.min, tzinfo=UTC)

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, value: date | datetime) -> bool:
        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=UTC)
            return self.start_at <= value < self.end_before
        return self.start <= value <= self.end
