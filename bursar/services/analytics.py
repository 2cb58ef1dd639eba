"""Chart analytics: a year of income vs expenses plus category shares."""

from __future__ import annotations

from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.exc import SQLAlchemyError

from bursar.logger import get_logger, log_exception
from bursar.schemas.reporting import CategoryShare, ChartMonth, ChartsAnalytics
from bursar.services.ledger import LedgerReader
from bursar.services.periods import year_span
from bursar.services.reporting import ReportError, quantize_money

logger = get_logger(__name__)

EXPENSE_CATEGORY_LIMIT = 12

# Keys the dashboard's translation tables use for fee types
FEE_TYPE_KEYS = {
    "NEW_YEAR": "feeTypeNewYear",
    "SUPPLEMENTARY": "feeTypeSupplementary",
    "TRAINING": "training",
    "STUDENT_SERVICES": "feeTypeStudentServices",
    "EXAM": "exam",
}


def fee_type_key(fee_type: str) -> str:
    return FEE_TYPE_KEYS.get(fee_type, "other")


def category_shares(totals: dict[str, Decimal], limit: int | None = None) -> list[CategoryShare]:
    """Largest first, with whole-number percentages of the listed total."""
    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    if limit is not None:
        ranked = ranked[:limit]
    grand_total = sum((amount for _, amount in ranked), Decimal("0"))
    shares: list[CategoryShare] = []
    for category, amount in ranked:
        percentage = 0
        if grand_total > 0:
            percentage = int((amount / grand_total * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        shares.append(CategoryShare(category=category, amount=quantize_money(amount), percentage=percentage))
    return shares


async def charts_analytics(ledger: LedgerReader, year: int) -> ChartsAnalytics:
    span = year_span(year)
    try:
        payments = await ledger.payments_in(span)
        expenses = await ledger.expenses_in(span)
    except (SQLAlchemyError, OSError) as exc:
        log_exception(logger, exc, "Analytics query failed", year=year)
        raise ReportError("Failed to generate analytics") from exc

    income_by_month: dict[int, Decimal] = defaultdict(lambda: Decimal("0"))
    expense_by_month: dict[int, Decimal] = defaultdict(lambda: Decimal("0"))
    income_by_key: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    expense_by_category: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))

    for payment in payments:
        income_by_month[payment.paid_at.month] += payment.amount
        income_by_key[fee_type_key(payment.fee_type)] += payment.amount
    for expense in expenses:
        expense_by_month[expense.spent_on.month] += expense.amount
        if expense.category:
            expense_by_category[expense.category] += expense.amount

    monthly = [
        ChartMonth(
            month=month,
            income=quantize_money(income_by_month[month]),
            expenses=quantize_money(expense_by_month[month]),
            profit=quantize_money(income_by_month[month] - expense_by_month[month]),
        )
        for month in range(1, 13)
    ]

    return ChartsAnalytics(
        year=year,
        monthly=monthly,
        income_by_category=category_shares(income_by_key),
        expense_by_category=category_shares(expense_by_category, EXPENSE_CATEGORY_LIMIT),
    )
