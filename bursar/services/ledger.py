"""Read-side access to the payments and expenses ledgers for reporting.

:class:`LedgerStore` opens a short-lived session per query so that
independent windows (this month / quarter / year, current vs previous
month) can be fetched concurrently with ``asyncio.gather``. It returns
plain row snapshots; all aggregation happens in
:mod:`bursar.services.reporting`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bursar.logger import async_log_timing, get_logger
from bursar.models import Expense, Payment
from bursar.services.periods import PeriodSpan

logger = get_logger(__name__)


@dataclass(frozen=True)
class PaymentRow:
    id: UUID | None
    amount: Decimal
    amount_usd: Decimal | None
    fee_type: str
    payment_method: str
    paid_at: datetime
    student_name: str = ""

    @classmethod
    def from_model(cls, payment: Payment) -> PaymentRow:
        return cls(
            id=payment.id,
            amount=Decimal(payment.amount),
            amount_usd=Decimal(payment.amount_usd) if payment.amount_usd is not None else None,
            fee_type=getattr(payment.fee_type, "value", payment.fee_type),
            payment_method=getattr(payment.payment_method, "value", payment.payment_method),
            paid_at=payment.payment_date,
            student_name=payment.student_name,
        )


@dataclass(frozen=True)
class ExpenseRow:
    id: UUID | None
    amount: Decimal
    amount_usd: Decimal | None
    category: str | None
    vendor: str | None
    spent_on: date
    description: str = ""

    @classmethod
    def from_model(cls, expense: Expense) -> ExpenseRow:
        return cls(
            id=expense.id,
            amount=Decimal(expense.amount),
            amount_usd=Decimal(expense.amount_usd) if expense.amount_usd is not None else None,
            category=expense.category,
            vendor=expense.vendor,
            spent_on=expense.date,
            description=expense.description,
        )


class LedgerReader(Protocol):
    """Window queries the report aggregator needs."""

    async def payments_in(self, span: PeriodSpan) -> list[PaymentRow]: ...

    async def expenses_in(self, span: PeriodSpan) -> list[ExpenseRow]: ...

    async def latest_payment(self) -> PaymentRow | None: ...

    async def latest_expense(self) -> ExpenseRow | None: ...


class LedgerStore:
    """SQLAlchemy-backed :class:`LedgerReader`."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def payments_in(self, span: PeriodSpan) -> list[PaymentRow]:
        stmt = (
            select(Payment)
            .where(Payment.payment_date >= span.start_at)
            .where(Payment.payment_date <= span.end_at)
            .order_by(Payment.payment_date)
        )
        async with self._session_maker() as session:
            async with async_log_timing(
                "payments_in_window", logger=logger, level="debug", start=str(span.start), end=str(span.end)
            ) as ctx:
                payments = (await session.execute(stmt)).scalars().all()
                ctx["rows"] = len(payments)
            return [PaymentRow.from_model(p) for p in payments]

    async def expenses_in(self, span: PeriodSpan) -> list[ExpenseRow]:
        stmt = (
            select(Expense)
            .where(Expense.date >= span.start)
            .where(Expense.date <= span.end)
            .order_by(Expense.date)
        )
        async with self._session_maker() as session:
            async with async_log_timing(
                "expenses_in_window", logger=logger, level="debug", start=str(span.start), end=str(span.end)
            ) as ctx:
                expenses = (await session.execute(stmt)).scalars().all()
                ctx["rows"] = len(expenses)
            return [ExpenseRow.from_model(e) for e in expenses]

    async def latest_payment(self) -> PaymentRow | None:
        stmt = select(Payment).order_by(Payment.payment_date.desc()).limit(1)
        async with self._session_maker() as session:
            payment = (await session.execute(stmt)).scalar_one_or_none()
            return PaymentRow.from_model(payment) if payment else None

    async def latest_expense(self) -> ExpenseRow | None:
        stmt = select(Expense).order_by(Expense.date.desc(), Expense.created_at.desc()).limit(1)
        async with self._session_maker() as session:
            expense = (await session.execute(stmt)).scalar_one_or_none()
            return ExpenseRow.from_model(expense) if expense else None

