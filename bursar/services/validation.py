"""Report parameter validation.

Reports assume already-valid dates; these checks run in the router before
the aggregator is called and surface as 400 ``fail`` responses.
"""

from __future__ import annotations

import re
from datetime import date, datetime

from bursar.config import settings

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ReportValidationError(ValueError):
    """Raised for malformed or out-of-range report parameters."""

    pass


def _years_back(today: date, years: int) -> date:
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        # 29 February in a non-leap target year
        return today.replace(year=today.year - years, day=28)


def parse_report_date(value: str | None, today: date | None = None) -> date:
    """Parse a ``YYYY-MM-DD`` report date that is neither future nor too old."""
    today = today or datetime.now().date()
    if not value:
        raise ReportValidationError("Date is required")
    if not _ISO_DATE.match(value):
        raise ReportValidationError("Date must be in YYYY-MM-DD format")
    try:
        parsed = date.fromisoformat(value)
    except ValueError as exc:
        raise ReportValidationError("Date must be a valid ISO 8601 date") from exc
    if parsed > today:
        raise ReportValidationError("Date cannot be in the future")
    if parsed < _years_back(today, settings.report_max_years_back):
        raise ReportValidationError(
            f"Date cannot be more than {settings.report_max_years_back} years in the past"
        )
    return parsed


def validate_report_year(year: int, today: date | None = None) -> int:
    today = today or datetime.now().date()
    if not settings.report_min_year <= year <= today.year:
        raise ReportValidationError(
            f"Year must be between {settings.report_min_year} and {today.year}"
        )
    return year


def validate_report_month(month: int) -> int:
    if not 1 <= month <= 12:
        raise ReportValidationError("Month must be between 1 and 12")
    return month


def parse_date_range(
    start: str | None, end: str | None, today: date | None = None
) -> tuple[date, date]:
    """Validate an inclusive ``from``/``to`` range for range exports."""
    if not start or not end:
        raise ReportValidationError("from and to are required")
    start_date = parse_report_date(start, today)
    end_date = parse_report_date(end, today)
    if start_date > end_date:
        raise ReportValidationError("from must not be after to")
    return start_date, end_date
