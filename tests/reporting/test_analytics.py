"""Tests for chart analytics."""

from datetime import date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from bursar.services.analytics import category_shares, charts_analytics, fee_type_key
from bursar.services.reporting import ReportError
from tests.fakes import FakeLedger, expense_row, payment_row


def test_fee_type_keys():
    assert fee_type_key("NEW_YEAR") == "feeTypeNewYear"
    assert fee_type_key("EXAM") == "exam"
    assert fee_type_key("OTHER") == "other"


def test_category_shares_are_whole_percentages():
    shares = category_shares({"a": Decimal("1"), "b": Decimal("2")})

    assert [(s.category, s.percentage) for s in shares] == [("b", 67), ("a", 33)]


def test_category_shares_with_zero_total():
    shares = category_shares({"a": Decimal("0")})

    assert shares[0].percentage == 0


def test_category_shares_limit():
    totals = {f"c{i:02d}": Decimal(i + 1) for i in range(15)}

    shares = category_shares(totals, limit=12)

    assert len(shares) == 12
    assert shares[0].category == "c14"


@pytest.mark.asyncio
async def test_charts_analytics_year():
    ledger = FakeLedger(
        payments=[
            payment_row("300", datetime(2025, 1, 10, 9), fee_type="NEW_YEAR"),
            payment_row("100", datetime(2025, 3, 10, 9), fee_type="EXAM"),
            payment_row("999", datetime(2024, 12, 31, 9)),
        ],
        expenses=[
            expense_row("150", date(2025, 1, 20), category="Salaries"),
            expense_row("50", date(2025, 3, 2), category="Library Supplies"),
        ],
    )

    analytics = await charts_analytics(ledger, 2025)

    assert len(analytics.monthly) == 12
    january = analytics.monthly[0]
    assert (january.income, january.expenses, january.profit) == (
        Decimal("300.00"),
        Decimal("150.00"),
        Decimal("150.00"),
    )
    assert analytics.monthly[1].income == Decimal("0.00")
    assert [(s.category, s.percentage) for s in analytics.income_by_category] == [
        ("feeTypeNewYear", 75),
        ("exam", 25),
    ]
    assert analytics.expense_by_category[0].category == "Salaries"
    assert analytics.expense_by_category[0].percentage == 75


@pytest.mark.asyncio
async def test_charts_analytics_failure():
    ledger = FakeLedger()
    ledger.expenses_in = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("db down")))

    with pytest.raises(ReportError, match="Failed to generate analytics"):
        await charts_analytics(ledger, 2025)
