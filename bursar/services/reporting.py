"""Report aggregation over the payments and expenses ledgers.

The aggregator fetches the rows of a time window through a
:class:`~bursar.services.ledger.LedgerReader` and derives everything else in
memory: totals, group-by breakdowns, top vendors, daily and monthly
breakdowns, period-over-period changes and net income.

Percentage changes follow one zero-baseline rule everywhere: when the
comparison total is zero the change is 0 if the current total is also zero
and 100 otherwise. Non-zero baselines divide by their absolute value so a
negative net income baseline keeps the sign of the difference.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.exc import SQLAlchemyError

from bursar.logger import get_logger, log_exception, log_timing
from bursar.schemas.reporting import (
    AmountCount,
    AmountSnapshot,
    DailyPoint,
    DailyReport,
    DashboardComparison,
    DashboardDay,
    DashboardMetadata,
    DashboardOverview,
    DashboardPeriod,
    DashboardReport,
    ExpensesPeriodSummary,
    ExpensesSummary,
    FinancialSummary,
    GroupTotal,
    MonthBucket,
    MonthlyComparison,
    MonthlyReport,
    PaymentsPeriodSummary,
    PaymentsSummary,
    PeriodChange,
    PeriodSnapshot,
    QuarterSnapshot,
    RangeReport,
    RecentActivity,
    RecentExpense,
    RecentPayment,
    TodayMetrics,
    Trend,
    VendorTotal,
    YearlyComparison,
    YearlyReport,
    YearlySummary,
    YearSnapshot,
)
from bursar.services.ledger import ExpenseRow, LedgerReader, PaymentRow
from bursar.services.periods import (
    PeriodSpan,
    day_span,
    month_label,
    month_name,
    month_span,
    previous_month,
    quarter_of,
    quarter_span,
    year_span,
)

logger = get_logger(__name__)

_CENT = Decimal("0.01")
_ZERO = Decimal("0")
_HUNDRED = Decimal("100")

DAILY_TOP_VENDORS = 5
MONTHLY_TOP_VENDORS = 10
YEARLY_TOP_VENDORS = 15


class ReportError(Exception):
    """Raised when report generation fails."""

    pass


# =============================================================================
# Pure helpers
# =============================================================================


def quantize_money(amount: Decimal | int) -> Decimal:
    return Decimal(amount).quantize(_CENT, rounding=ROUND_HALF_UP)


def sum_amounts(rows: Iterable[PaymentRow | ExpenseRow]) -> Decimal:
    return quantize_money(sum((row.amount for row in rows), _ZERO))


def sum_usd(rows: Iterable[PaymentRow | ExpenseRow]) -> Decimal:
    """Sum of USD snapshots; rows recorded without a rate contribute nothing."""
    return quantize_money(sum((row.amount_usd for row in rows if row.amount_usd is not None), _ZERO))


def percentage_change(current: Decimal, previous: Decimal) -> Decimal:
    if previous == 0:
        return _ZERO.quantize(_CENT) if current == 0 else _HUNDRED.quantize(_CENT)
    change = (Decimal(current) - Decimal(previous)) / abs(Decimal(previous)) * _HUNDRED
    return change.quantize(_CENT, rounding=ROUND_HALF_UP)


def trend_of(change: Decimal) -> Trend:
    return Trend.INCREASE if change >= 0 else Trend.DECREASE


def group_totals(rows: Iterable[PaymentRow | ExpenseRow], key: Callable[..., str | None]) -> dict[str, GroupTotal]:
    """Count and sum per key; rows whose key is ``None`` are left out."""
    counts: dict[str, int] = defaultdict(int)
    totals: dict[str, Decimal] = defaultdict(lambda: _ZERO)
    for row in rows:
        group = key(row)
        if group is None:
            continue
        counts[group] += 1
        totals[group] += row.amount
    return {
        group: GroupTotal(count=counts[group], total=quantize_money(totals[group]))
        for group in counts
    }


def top_vendors(rows: Iterable[ExpenseRow], limit: int) -> list[VendorTotal]:
    """Vendors ranked by summed amount, largest first; ties break on name."""
    grouped = group_totals(rows, lambda row: row.vendor or None)
    ranked = sorted(grouped.items(), key=lambda item: (-item[1].total, item[0]))
    return [
        VendorTotal(vendor=vendor, total=group.total, count=group.count)
        for vendor, group in ranked[:limit]
    ]


def daily_breakdown(entries: Iterable[tuple[date, Decimal]]) -> list[DailyPoint]:
    """Per-day totals sorted by date."""
    counts: dict[date, int] = defaultdict(int)
    totals: dict[date, Decimal] = defaultdict(lambda: _ZERO)
    for day, amount in entries:
        counts[day] += 1
        totals[day] += amount
    return [
        DailyPoint(date=day, total=quantize_money(totals[day]), count=counts[day])
        for day in sorted(counts)
    ]


def _payment_days(rows: Iterable[PaymentRow]) -> Iterator[tuple[date, Decimal]]:
    return ((row.paid_at.date(), row.amount) for row in rows)


def _expense_days(rows: Iterable[ExpenseRow]) -> Iterator[tuple[date, Decimal]]:
    return ((row.spent_on, row.amount) for row in rows)


def summarize_payments(rows: Sequence[PaymentRow]) -> PaymentsSummary:
    return PaymentsSummary(
        total=sum_amounts(rows),
        total_usd=sum_usd(rows),
        count=len(rows),
        by_fee_type=group_totals(rows, lambda row: row.fee_type),
        by_payment_method=group_totals(rows, lambda row: row.payment_method),
    )


def summarize_expenses(rows: Sequence[ExpenseRow], vendor_limit: int) -> ExpensesSummary:
    return ExpensesSummary(
        total=sum_amounts(rows),
        total_usd=sum_usd(rows),
        count=len(rows),
        by_category=group_totals(rows, lambda row: row.category),
        top_vendors=top_vendors(rows, vendor_limit),
    )


def merge_daily(payments: Sequence[PaymentRow], expenses: Sequence[ExpenseRow]) -> list[DashboardDay]:
    """Union of the days seen in either ledger, each with both sides."""
    paid = {point.date: point for point in daily_breakdown(_payment_days(payments))}
    spent = {point.date: point for point in daily_breakdown(_expense_days(expenses))}
    days: list[DashboardDay] = []
    for day in sorted(paid.keys() | spent.keys()):
        income = paid.get(day)
        outgo = spent.get(day)
        income_total = income.total if income else quantize_money(0)
        outgo_total = outgo.total if outgo else quantize_money(0)
        income_count = income.count if income else 0
        outgo_count = outgo.count if outgo else 0
        days.append(
            DashboardDay(
                date=day,
                payments=AmountCount(total=income_total, count=income_count),
                expenses=AmountCount(total=outgo_total, count=outgo_count),
                net_income=income_total - outgo_total,
                total_transactions=income_count + outgo_count,
            )
        )
    return days


@dataclass(frozen=True)
class WindowRows:
    span: PeriodSpan
    payments: list[PaymentRow]
    expenses: list[ExpenseRow]

    @property
    def payment_total(self) -> Decimal:
        return sum_amounts(self.payments)

    @property
    def expense_total(self) -> Decimal:
        return sum_amounts(self.expenses)

    @property
    def net_income(self) -> Decimal:
        return self.payment_total - self.expense_total

    @property
    def net_income_usd(self) -> Decimal:
        return sum_usd(self.payments) - sum_usd(self.expenses)

    def change_from(self, previous: WindowRows) -> PeriodChange:
        return PeriodChange(
            payments_change=percentage_change(self.payment_total, previous.payment_total),
            expenses_change=percentage_change(self.expense_total, previous.expense_total),
            net_income_change=percentage_change(self.net_income, previous.net_income),
        )

    def snapshot(self) -> dict[str, object]:
        payments_usd = sum_usd(self.payments)
        expenses_usd = sum_usd(self.expenses)
        return {
            "payments": self.payment_total,
            "payments_usd": payments_usd,
            "expenses": self.expense_total,
            "expenses_usd": expenses_usd,
            "net_income": self.net_income,
            "net_income_usd": payments_usd - expenses_usd,
            "payments_count": len(self.payments),
            "expenses_count": len(self.expenses),
        }


def _dashboard_period(window: WindowRows) -> DashboardPeriod:
    payments_usd = sum_usd(window.payments)
    expenses_usd = sum_usd(window.expenses)
    return DashboardPeriod(
        payments=AmountSnapshot(
            total=window.payment_total, total_usd=payments_usd, count=len(window.payments)
        ),
        expenses=AmountSnapshot(
            total=window.expense_total, total_usd=expenses_usd, count=len(window.expenses)
        ),
        net_profit=window.net_income,
        net_profit_usd=payments_usd - expenses_usd,
        total_transactions=len(window.payments) + len(window.expenses),
    )


def _days_since(now: datetime, moment: datetime) -> int:
    return (now - moment).days


# =============================================================================
# Aggregator
# =============================================================================


class ReportAggregator:
    """Builds financial reports from ledger windows.

    ``clock`` returns the local "now" used by the dashboard and the financial
    summary; inject a fixed clock in tests.
    """

    def __init__(
        self,
        ledger: LedgerReader,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.ledger = ledger
        self.clock = clock

    @contextmanager
    def _failures(self, report: str) -> Iterator[None]:
        try:
            yield
        except (SQLAlchemyError, OSError) as exc:
            log_exception(logger, exc, "Report query failed", report=report)
            raise ReportError(f"Failed to generate {report}") from exc

    async def _window(self, span: PeriodSpan) -> WindowRows:
        payments, expenses = await asyncio.gather(
            self.ledger.payments_in(span),
            self.ledger.expenses_in(span),
        )
        return WindowRows(span=span, payments=list(payments), expenses=list(expenses))

    async def daily_report(self, day: date) -> DailyReport:
        """Totals and breakdowns for one calendar day."""
        with self._failures("daily report"):
            window = await self._window(day_span(day))

        return DailyReport(
            date=day,
            payments=summarize_payments(window.payments),
            expenses=summarize_expenses(window.expenses, DAILY_TOP_VENDORS),
            net_income=window.net_income,
            net_income_usd=window.net_income_usd,
        )

    async def monthly_report(self, year: int, month: int) -> MonthlyReport:
        """Month totals with daily breakdowns and a previous-month comparison."""
        prev_year, prev_month = previous_month(year, month)
        with self._failures("monthly report"):
            current, previous = await asyncio.gather(
                self._window(month_span(year, month)),
                self._window(month_span(prev_year, prev_month)),
            )

        payments = summarize_payments(current.payments)
        expenses = summarize_expenses(current.expenses, MONTHLY_TOP_VENDORS)
        return MonthlyReport(
            year=year,
            month=month,
            month_name=month_name(month),
            payments=PaymentsPeriodSummary(
                **payments.model_dump(),
                daily_breakdown=daily_breakdown(_payment_days(current.payments)),
            ),
            expenses=ExpensesPeriodSummary(
                **expenses.model_dump(),
                daily_breakdown=daily_breakdown(_expense_days(current.expenses)),
            ),
            net_income=current.net_income,
            net_income_usd=current.net_income_usd,
            comparison=MonthlyComparison(previous_month=current.change_from(previous)),
        )

    async def yearly_report(self, year: int) -> YearlyReport:
        """Year totals, a 12-month breakdown and a previous-year comparison."""
        with self._failures("yearly report"):
            current, previous = await asyncio.gather(
                self._window(year_span(year)),
                self._window(year_span(year - 1)),
            )

        buckets: list[MonthBucket] = []
        with log_timing("yearly_month_buckets", logger=logger, level="debug", year=year) as timing:
            for month in range(1, 13):
                span = month_span(year, month)
                month_payments = [row for row in current.payments if span.contains(row.paid_at)]
                month_expenses = [row for row in current.expenses if span.contains(row.spent_on)]
                income = sum_amounts(month_payments)
                outgo = sum_amounts(month_expenses)
                buckets.append(
                    MonthBucket(
                        month=month,
                        month_name=month_name(month),
                        payments=AmountCount(total=income, count=len(month_payments)),
                        expenses=AmountCount(total=outgo, count=len(month_expenses)),
                        net_income=income - outgo,
                        transaction_count=len(month_payments) + len(month_expenses),
                    )
                )
            timing["rows"] = len(current.payments) + len(current.expenses)

        return YearlyReport(
            year=year,
            summary=YearlySummary(
                payments=summarize_payments(current.payments),
                expenses=summarize_expenses(current.expenses, YEARLY_TOP_VENDORS),
                net_income=current.net_income,
                net_income_usd=current.net_income_usd,
            ),
            monthly_breakdown=buckets,
            comparison=YearlyComparison(previous_year=current.change_from(previous)),
        )

    async def range_report(self, start: date, end: date) -> RangeReport:
        """Totals over an inclusive day range (used by range PDF exports)."""
        span = PeriodSpan(start, end)
        with self._failures("range report"):
            window = await self._window(span)

        return RangeReport(
            start_date=start,
            end_date=end,
            days=span.days,
            payments=summarize_payments(window.payments),
            expenses=summarize_expenses(window.expenses, MONTHLY_TOP_VENDORS),
            net_income=window.net_income,
            net_income_usd=window.net_income_usd,
        )

    async def dashboard_report(self) -> DashboardReport:
        """Current month vs previous month, recent activity and today's counts."""
        now = self.clock()
        today = now.date()
        prev_year, prev_month = previous_month(now.year, now.month)

        with self._failures("dashboard report"):
            current, previous, last_payment, last_expense = await asyncio.gather(
                self._window(month_span(now.year, now.month)),
                self._window(month_span(prev_year, prev_month)),
                self.ledger.latest_payment(),
                self.ledger.latest_expense(),
            )

        payment_change = percentage_change(current.payment_total, previous.payment_total)
        expense_change = percentage_change(current.expense_total, previous.expense_total)
        daily = merge_daily(current.payments, current.expenses)

        payments_today = sum(1 for row in current.payments if row.paid_at.date() == today)
        expenses_today = sum(1 for row in current.expenses if row.spent_on == today)

        return DashboardReport(
            overview=DashboardOverview(
                current_month=_dashboard_period(current),
                previous_month=_dashboard_period(previous),
                comparison=DashboardComparison(
                    payment_change=payment_change,
                    expense_change=expense_change,
                    payment_trend=trend_of(payment_change),
                    expense_trend=trend_of(expense_change),
                ),
            ),
            recent_activity=RecentActivity(
                last_payment=(
                    RecentPayment(
                        id=str(last_payment.id) if last_payment.id else None,
                        amount=quantize_money(last_payment.amount),
                        student_name=last_payment.student_name,
                        fee_type=last_payment.fee_type,
                        payment_date=last_payment.paid_at,
                        time_since=_days_since(now, last_payment.paid_at),
                    )
                    if last_payment
                    else None
                ),
                last_expense=(
                    RecentExpense(
                        id=str(last_expense.id) if last_expense.id else None,
                        amount=quantize_money(last_expense.amount),
                        description=last_expense.description,
                        category=last_expense.category,
                        vendor=last_expense.vendor,
                        date=last_expense.spent_on,
                        time_since=_days_since(now, datetime.combine(last_expense.spent_on, time.min)),
                    )
                    if last_expense
                    else None
                ),
            ),
            today_metrics=TodayMetrics(
                total_transactions=payments_today + expenses_today,
                payments_count=payments_today,
                expenses_count=expenses_today,
            ),
            daily_breakdown=daily,
            metadata=DashboardMetadata(
                current_month=month_label(now.year, now.month),
                previous_month=month_label(prev_year, prev_month),
                generated_at=now,
                days_in_current_month=len(daily),
            ),
        )

    async def financial_summary(self) -> FinancialSummary:
        """This month, this quarter and this year, fetched concurrently."""
        now = self.clock()
        quarter = quarter_of(now.month)

        with self._failures("financial summary"):
            month_rows, quarter_rows, year_rows = await asyncio.gather(
                self._window(month_span(now.year, now.month)),
                self._window(quarter_span(now.year, quarter)),
                self._window(year_span(now.year)),
            )

        return FinancialSummary(
            this_month=PeriodSnapshot(**month_rows.snapshot()),
            this_quarter=QuarterSnapshot(**quarter_rows.snapshot(), quarter=quarter),
            this_year=YearSnapshot(**year_rows.snapshot(), year=now.year),
        )
