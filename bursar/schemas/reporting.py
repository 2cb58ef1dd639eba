"""Pydantic schemas for financial reports, the dashboard and analytics."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import Field

from bursar.schemas.base import BaseResponse, Money, Percent


class Trend(str, Enum):
    INCREASE = "increase"
    DECREASE = "decrease"


class GroupTotal(BaseResponse):
    """Count and summed amount for one group-by key."""

    count: int = 0
    total: Money = Decimal("0")


class VendorTotal(BaseResponse):
    vendor: str
    total: Money
    count: int


class DailyPoint(BaseResponse):
    date: date
    total: Money
    count: int


class AmountCount(BaseResponse):
    total: Money
    count: int


class PaymentsSummary(BaseResponse):
    total: Money
    total_usd: Money = Field(alias="totalUSD")
    count: int
    by_fee_type: dict[str, GroupTotal]
    by_payment_method: dict[str, GroupTotal]


class ExpensesSummary(BaseResponse):
    total: Money
    total_usd: Money = Field(alias="totalUSD")
    count: int
    by_category: dict[str, GroupTotal]
    top_vendors: list[VendorTotal]


class PaymentsPeriodSummary(PaymentsSummary):
    daily_breakdown: list[DailyPoint]


class ExpensesPeriodSummary(ExpensesSummary):
    daily_breakdown: list[DailyPoint]


class PeriodChange(BaseResponse):
    """Percentage change against the comparison period."""

    payments_change: Percent
    expenses_change: Percent
    net_income_change: Percent


class DailyReport(BaseResponse):
    date: date
    payments: PaymentsSummary
    expenses: ExpensesSummary
    net_income: Money
    net_income_usd: Money = Field(alias="netIncomeUSD")


class MonthlyComparison(BaseResponse):
    previous_month: PeriodChange


class MonthlyReport(BaseResponse):
    year: int
    month: int
    month_name: str
    payments: PaymentsPeriodSummary
    expenses: ExpensesPeriodSummary
    net_income: Money
    net_income_usd: Money = Field(alias="netIncomeUSD")
    comparison: MonthlyComparison


class YearlySummary(BaseResponse):
    payments: PaymentsSummary
    expenses: ExpensesSummary
    net_income: Money
    net_income_usd: Money = Field(alias="netIncomeUSD")


class MonthBucket(BaseResponse):
    month: int
    month_name: str
    payments: AmountCount
    expenses: AmountCount
    net_income: Money
    transaction_count: int


class YearlyComparison(BaseResponse):
    previous_year: PeriodChange


class YearlyReport(BaseResponse):
    year: int
    summary: YearlySummary
    monthly_breakdown: list[MonthBucket]
    comparison: YearlyComparison


class RangeReport(BaseResponse):
    """Totals over an arbitrary inclusive day range."""

    start_date: date = Field(alias="from")
    end_date: date = Field(alias="to")
    days: int
    payments: PaymentsSummary
    expenses: ExpensesSummary
    net_income: Money
    net_income_usd: Money = Field(alias="netIncomeUSD")


# =============================================================================
# Dashboard
# =============================================================================


class AmountSnapshot(BaseResponse):
    total: Money
    total_usd: Money = Field(alias="totalUSD")
    count: int


class DashboardPeriod(BaseResponse):
    payments: AmountSnapshot
    expenses: AmountSnapshot
    net_profit: Money
    net_profit_usd: Money = Field(alias="netProfitUSD")
    total_transactions: int


class DashboardComparison(BaseResponse):
    payment_change: Percent
    expense_change: Percent
    payment_trend: Trend
    expense_trend: Trend


class DashboardOverview(BaseResponse):
    current_month: DashboardPeriod
    previous_month: DashboardPeriod
    comparison: DashboardComparison


class RecentPayment(BaseResponse):
    id: str | None = None
    amount: Money
    student_name: str
    fee_type: str
    payment_date: datetime
    time_since: int


class RecentExpense(BaseResponse):
    id: str | None = None
    amount: Money
    description: str
    category: str | None
    vendor: str | None = None
    date: date
    time_since: int


class RecentActivity(BaseResponse):
    last_payment: RecentPayment | None
    last_expense: RecentExpense | None


class TodayMetrics(BaseResponse):
    total_transactions: int
    payments_count: int
    expenses_count: int


class DashboardDay(BaseResponse):
    date: date
    payments: AmountCount
    expenses: AmountCount
    net_income: Money
    total_transactions: int


class DashboardMetadata(BaseResponse):
    current_month: str
    previous_month: str
    generated_at: datetime
    days_in_current_month: int


class DashboardReport(BaseResponse):
    overview: DashboardOverview
    recent_activity: RecentActivity
    today_metrics: TodayMetrics
    daily_breakdown: list[DashboardDay]
    metadata: DashboardMetadata


# =============================================================================
# Financial summary
# =============================================================================


class PeriodSnapshot(BaseResponse):
    payments: Money
    payments_usd: Money = Field(alias="paymentsUSD")
    expenses: Money
    expenses_usd: Money = Field(alias="expensesUSD")
    net_income: Money
    net_income_usd: Money = Field(alias="netIncomeUSD")
    payments_count: int
    expenses_count: int


class QuarterSnapshot(PeriodSnapshot):
    quarter: int


class YearSnapshot(PeriodSnapshot):
    year: int


class FinancialSummary(BaseResponse):
    this_month: PeriodSnapshot
    this_quarter: QuarterSnapshot
    this_year: YearSnapshot


# =============================================================================
# Analytics
# =============================================================================


class ChartMonth(BaseResponse):
    month: int
    income: Money
    expenses: Money
    profit: Money


class CategoryShare(BaseResponse):
    category: str
    amount: Money
    percentage: int


class ChartsAnalytics(BaseResponse):
    year: int
    monthly: list[ChartMonth]
    income_by_category: list[CategoryShare]
    expense_by_category: list[CategoryShare]
