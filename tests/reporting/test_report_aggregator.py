"""Tests for report aggregation over in-memory ledgers."""

from datetime import date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from bursar.schemas.reporting import Trend
from bursar.services.reporting import (
    ReportAggregator,
    ReportError,
    daily_breakdown,
    group_totals,
    merge_daily,
    percentage_change,
    top_vendors,
    trend_of,
)
from tests.fakes import FakeLedger, expense_row, payment_row


class TestPercentageChange:
    def test_regular_change(self):
        assert percentage_change(Decimal("150"), Decimal("100")) == Decimal("50.00")
        assert percentage_change(Decimal("50"), Decimal("100")) == Decimal("-50.00")

    def test_zero_baseline(self):
        assert percentage_change(Decimal("0"), Decimal("0")) == Decimal("0.00")
        assert percentage_change(Decimal("10"), Decimal("0")) == Decimal("100.00")
        assert percentage_change(Decimal("-10"), Decimal("0")) == Decimal("100.00")

    def test_negative_baseline_keeps_direction(self):
        # Net income improving from -100 to 50 is an increase
        assert percentage_change(Decimal("50"), Decimal("-100")) == Decimal("150.00")

    def test_trend(self):
        assert trend_of(Decimal("0")) == Trend.INCREASE
        assert trend_of(Decimal("-0.01")) == Trend.DECREASE


def test_group_totals_skips_missing_keys():
    rows = [
        expense_row("100", date(2025, 3, 1), category="Salaries"),
        expense_row("50", date(2025, 3, 2), category="Salaries"),
        expense_row("25", date(2025, 3, 2), category=None),
    ]

    totals = group_totals(rows, lambda row: row.category)

    assert list(totals) == ["Salaries"]
    assert totals["Salaries"].count == 2
    assert totals["Salaries"].total == Decimal("150.00")


def test_top_vendors_ranks_by_amount_and_limits():
    rows = [
        expense_row("100", date(2025, 3, 1), vendor="Acme"),
        expense_row("300", date(2025, 3, 1), vendor="Globex"),
        expense_row("150", date(2025, 3, 2), vendor="Acme"),
        expense_row("10", date(2025, 3, 2), vendor="Initech"),
        expense_row("99", date(2025, 3, 2), vendor=None),
    ]

    ranked = top_vendors(rows, limit=2)

    assert [(v.vendor, v.total, v.count) for v in ranked] == [
        ("Globex", Decimal("300.00"), 1),
        ("Acme", Decimal("250.00"), 2),
    ]


def test_daily_breakdown_sorted_by_date():
    points = daily_breakdown(
        [
            (date(2025, 3, 3), Decimal("10")),
            (date(2025, 3, 1), Decimal("5")),
            (date(2025, 3, 3), Decimal("2.5")),
        ]
    )

    assert [(p.date, p.total, p.count) for p in points] == [
        (date(2025, 3, 1), Decimal("5.00"), 1),
        (date(2025, 3, 3), Decimal("12.50"), 2),
    ]


def test_merge_daily_includes_expense_only_days():
    days = merge_daily(
        [payment_row("1000", datetime(2025, 3, 1, 9))],
        [expense_row("400", date(2025, 3, 1)), expense_row("75", date(2025, 3, 4))],
    )

    assert [d.date for d in days] == [date(2025, 3, 1), date(2025, 3, 4)]
    assert days[0].net_income == Decimal("600.00")
    assert days[1].payments.count == 0
    assert days[1].net_income == Decimal("-75.00")
    assert days[1].total_transactions == 1


@pytest.mark.asyncio
async def test_daily_report_totals_and_net_income():
    ledger = FakeLedger(
        payments=[
            payment_row("1000", datetime(2025, 3, 10, 9), amount_usd="20.00"),
            payment_row("200", datetime(2025, 3, 11, 9)),
        ],
        expenses=[expense_row("400", date(2025, 3, 10), vendor="Acme", amount_usd="8.00")],
    )

    report = await ReportAggregator(ledger).daily_report(date(2025, 3, 10))

    assert report.payments.total == Decimal("1000.00")
    assert report.payments.count == 1
    assert report.payments.total_usd == Decimal("20.00")
    assert report.payments.by_fee_type["NEW_YEAR"].total == Decimal("1000.00")
    assert report.payments.by_payment_method["CASH"].count == 1
    assert report.expenses.total == Decimal("400.00")
    assert report.expenses.top_vendors[0].vendor == "Acme"
    assert report.net_income == Decimal("600.00")
    assert report.net_income_usd == Decimal("12.00")


@pytest.mark.asyncio
async def test_daily_report_covers_the_whole_day():
    ledger = FakeLedger(
        payments=[
            payment_row("10", datetime(2025, 3, 10, 0, 0)),
            payment_row("20", datetime(2025, 3, 10, 23, 59, 59)),
        ]
    )

    report = await ReportAggregator(ledger).daily_report(date(2025, 3, 10))

    assert report.payments.count == 2


@pytest.mark.asyncio
async def test_monthly_report_breakdown_matches_total():
    ledger = FakeLedger(
        payments=[
            payment_row("100.10", datetime(2025, 3, 1, 8)),
            payment_row("200.20", datetime(2025, 3, 1, 15)),
            payment_row("300.30", datetime(2025, 3, 31, 23)),
            payment_row("999", datetime(2025, 4, 1, 0)),
            payment_row("500", datetime(2025, 2, 14, 12)),
        ],
        expenses=[expense_row("50", date(2025, 3, 5)), expense_row("60", date(2025, 2, 5))],
    )

    report = await ReportAggregator(ledger).monthly_report(2025, 3)

    assert report.month_name == "March"
    assert report.payments.total == Decimal("600.60")
    assert sum(p.total for p in report.payments.daily_breakdown) == report.payments.total
    assert sum(p.count for p in report.payments.daily_breakdown) == report.payments.count == 3
    assert report.net_income == Decimal("550.60")
    change = report.comparison.previous_month
    assert change.payments_change == Decimal("20.12")
    assert change.expenses_change == Decimal("-16.67")


@pytest.mark.asyncio
async def test_monthly_report_compares_january_with_december():
    ledger = FakeLedger(payments=[payment_row("100", datetime(2025, 1, 5, 10))])

    report = await ReportAggregator(ledger).monthly_report(2025, 1)

    spans = {span for _, span in ledger.queries}
    assert any(span.start == date(2024, 12, 1) and span.end == date(2024, 12, 31) for span in spans)
    assert report.comparison.previous_month.payments_change == Decimal("100.00")
    assert report.comparison.previous_month.expenses_change == Decimal("0.00")


@pytest.mark.asyncio
async def test_yearly_report_has_twelve_months():
    ledger = FakeLedger(
        payments=[
            payment_row("100", datetime(2025, 2, 3, 10)),
            payment_row("250", datetime(2025, 11, 20, 10)),
            payment_row("80", datetime(2024, 6, 1, 10)),
        ],
        expenses=[expense_row("40", date(2025, 2, 9))],
    )

    report = await ReportAggregator(ledger).yearly_report(2025)

    assert [bucket.month for bucket in report.monthly_breakdown] == list(range(1, 13))
    february = report.monthly_breakdown[1]
    assert february.payments.total == Decimal("100.00")
    assert february.net_income == Decimal("60.00")
    assert february.transaction_count == 2
    assert report.monthly_breakdown[0].transaction_count == 0
    assert report.summary.payments.total == Decimal("350.00")
    assert sum(b.payments.total for b in report.monthly_breakdown) == report.summary.payments.total
    assert report.comparison.previous_year.payments_change == Decimal("337.50")


@pytest.mark.asyncio
async def test_range_report_counts_days_inclusively():
    ledger = FakeLedger(
        payments=[payment_row("100", datetime(2025, 3, 1, 9)), payment_row("100", datetime(2025, 3, 8, 9))]
    )

    report = await ReportAggregator(ledger).range_report(date(2025, 3, 1), date(2025, 3, 7))

    assert report.days == 7
    assert report.payments.count == 1


@pytest.mark.asyncio
async def test_dashboard_report_merges_and_compares():
    now = datetime(2025, 3, 10, 14, 0)
    ledger = FakeLedger(
        payments=[
            payment_row("1000", datetime(2025, 3, 10, 9), amount_usd="20.00", student_name="Mona"),
            payment_row("500", datetime(2025, 3, 2, 9)),
            payment_row("1000", datetime(2025, 2, 20, 9)),
        ],
        expenses=[
            expense_row("400", date(2025, 3, 10), description="Chalk"),
            expense_row("100", date(2025, 3, 4)),
        ],
    )

    report = await ReportAggregator(ledger, clock=lambda: now).dashboard_report()

    current = report.overview.current_month
    assert current.payments.total == Decimal("1500.00")
    assert current.payments.total_usd == Decimal("20.00")
    assert current.net_profit == Decimal("1000.00")
    assert current.total_transactions == 4
    assert report.overview.comparison.payment_change == Decimal("50.00")
    assert report.overview.comparison.payment_trend == Trend.INCREASE
    assert report.overview.comparison.expense_change == Decimal("100.00")

    assert [d.date for d in report.daily_breakdown] == [date(2025, 3, 2), date(2025, 3, 4), date(2025, 3, 10)]
    assert report.metadata.days_in_current_month == 3
    assert report.metadata.current_month == "March 2025"
    assert report.metadata.previous_month == "February 2025"

    assert report.today_metrics.payments_count == 1
    assert report.today_metrics.expenses_count == 1
    assert report.today_metrics.total_transactions == 2

    assert report.recent_activity.last_payment.student_name == "Mona"
    assert report.recent_activity.last_payment.time_since == 0
    assert report.recent_activity.last_expense.description == "Chalk"


@pytest.mark.asyncio
async def test_dashboard_report_on_empty_ledger():
    report = await ReportAggregator(FakeLedger(), clock=lambda: datetime(2025, 1, 3, 9)).dashboard_report()

    assert report.overview.comparison.payment_change == Decimal("0.00")
    assert report.recent_activity.last_payment is None
    assert report.recent_activity.last_expense is None
    assert report.daily_breakdown == []
    assert report.metadata.previous_month == "December 2024"


@pytest.mark.asyncio
async def test_financial_summary_windows():
    now = datetime(2025, 5, 20, 12)
    ledger = FakeLedger(
        payments=[
            payment_row("100", datetime(2025, 5, 1, 9)),
            payment_row("200", datetime(2025, 4, 15, 9)),
            payment_row("400", datetime(2025, 1, 15, 9)),
        ],
        expenses=[expense_row("30", date(2025, 5, 2))],
    )

    summary = await ReportAggregator(ledger, clock=lambda: now).financial_summary()

    assert summary.this_month.payments == Decimal("100.00")
    assert summary.this_month.net_income == Decimal("70.00")
    assert summary.this_quarter.quarter == 2
    assert summary.this_quarter.payments == Decimal("300.00")
    assert summary.this_year.year == 2025
    assert summary.this_year.payments == Decimal("700.00")
    assert summary.this_year.payments_count == 3


@pytest.mark.asyncio
async def test_query_failure_becomes_report_error():
    ledger = FakeLedger()
    ledger.payments_in = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("db down")))

    with pytest.raises(ReportError, match="Failed to generate daily report"):
        await ReportAggregator(ledger).daily_report(date(2025, 3, 10))


def test_report_serializes_with_wire_names():
    report_payload = merge_daily([payment_row("10", datetime(2025, 3, 1, 9))], [])[0].model_dump(
        mode="json", by_alias=True
    )

    assert report_payload["netIncome"] == 10.0
    assert report_payload["totalTransactions"] == 1
