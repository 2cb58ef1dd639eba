"""Calendar window helpers shared by reports, list statistics and analytics.

All windows are expressed in local wall-clock time: payment timestamps are
stored naive and expense dates carry no time component.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta


@dataclass(frozen=True)
class PeriodSpan:
    """Inclusive calendar-day window."""

    start: date
    end: date

    @property
    def start_at(self) -> datetime:
        return datetime.combine(self.start, time.min)

    @property
    def end_at(self) -> datetime:
        # 23:59:59.999999 so the last day is fully covered
        return datetime.combine(self.end, time.max)

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, value: date | datetime) -> bool:
        day = value.date() if isinstance(value, datetime) else value
        return self.start <= day <= self.end


def day_span(value: date) -> PeriodSpan:
    return PeriodSpan(value, value)


def month_end(value: date) -> date:
    next_month = value.replace(day=28) + timedelta(days=4)
    return next_month.replace(day=1) - timedelta(days=1)


def month_span(year: int, month: int) -> PeriodSpan:
    first = date(year, month, 1)
    return PeriodSpan(first, month_end(first))


def previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def quarter_of(month: int) -> int:
    """Quarter number (1-4) for a 1-based month."""
    return (month - 1) // 3 + 1


def quarter_span(year: int, quarter: int) -> PeriodSpan:
    first_month = (quarter - 1) * 3 + 1
    return PeriodSpan(date(year, first_month, 1), month_end(date(year, first_month + 2, 1)))


def year_span(year: int) -> PeriodSpan:
    return PeriodSpan(date(year, 1, 1), date(year, 12, 31))


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_name(month: int) -> str:
    return calendar.month_name[month]


def month_label(year: int, month: int) -> str:
    """Human label such as ``"March 2025"``."""
    return f"{month_name(month)} {year}"
