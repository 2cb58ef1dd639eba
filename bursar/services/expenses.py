"""Expense ledger service: CRUD, filtered listing and list statistics."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.logger import get_logger
from bursar.models import Expense, ExpenseCategory
from bursar.schemas.expense import (
    ExpenseCreate,
    ExpenseDailyStatistics,
    ExpenseMonthlyStatistics,
    ExpensePagination,
    ExpenseStatistics,
    ExpenseUpdate,
)
from bursar.services.currency import convert_to_usd, convert_with_rate
from bursar.services.periods import PeriodSpan, day_span, days_in_month, month_span

logger = get_logger(__name__)

_CENT = Decimal("0.01")


class ExpenseServiceError(Exception):
    """Base exception for expense service errors."""


class ExpenseNotFoundError(ExpenseServiceError):
    """Expense not found error."""


@dataclass(frozen=True)
class ExpenseFilters:
    """Effective list parameters (defaults applied)."""

    page: int = 1
    limit: int = 10
    search: str | None = None
    category: str | None = None
    vendor: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def cache_params(self) -> dict[str, object]:
        return {
            "page": self.page,
            "limit": self.limit,
            "search": self.search,
            "category": self.category,
            "vendor": self.vendor,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "minAmount": self.min_amount,
            "maxAmount": self.max_amount,
        }


def build_pagination(page: int, limit: int, total: int) -> ExpensePagination:
    total_pages = math.ceil(total / limit) if limit else 0
    return ExpensePagination(
        current_page=page,
        total_pages=total_pages,
        total_expenses=total,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
        limit=limit,
    )


def _apply_filters(stmt: Select, filters: ExpenseFilters) -> Select:
    if filters.search:
        stmt = stmt.where(
            or_(
                Expense.description.icontains(filters.search, autoescape=True),
                Expense.category.icontains(filters.search, autoescape=True),
                Expense.vendor.icontains(filters.search, autoescape=True),
            )
        )
    if filters.category:
        stmt = stmt.where(Expense.category.icontains(filters.category, autoescape=True))
    if filters.vendor:
        stmt = stmt.where(Expense.vendor.icontains(filters.vendor, autoescape=True))
    if filters.start_date:
        stmt = stmt.where(Expense.date >= filters.start_date)
    if filters.end_date:
        stmt = stmt.where(Expense.date <= filters.end_date)
    if filters.min_amount is not None:
        stmt = stmt.where(Expense.amount >= filters.min_amount)
    if filters.max_amount is not None:
        stmt = stmt.where(Expense.amount <= filters.max_amount)
    return stmt


async def _page(
    db: AsyncSession, base_query: Select, offset: int, limit: int
) -> tuple[list[Expense], int]:
    count_query = select(func.count()).select_from(base_query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = (
        base_query.order_by(Expense.date.desc(), Expense.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    expenses = list((await db.execute(query)).scalars().all())
    return expenses, total


async def list_expenses(db: AsyncSession, filters: ExpenseFilters) -> tuple[list[Expense], int]:
    return await _page(db, _apply_filters(select(Expense), filters), filters.offset, filters.limit)


async def search_expenses(
    db: AsyncSession, query: str, page: int = 1, limit: int = 10
) -> tuple[list[Expense], int]:
    """Quick search over description, category and vendor."""
    term = query.strip()
    if not term:
        return [], 0
    return await _page(db, _apply_filters(select(Expense), ExpenseFilters(search=term)), (page - 1) * limit, limit)


async def list_by_category(
    db: AsyncSession, category: str, page: int = 1, limit: int = 10
) -> tuple[list[Expense], int]:
    base_query = _apply_filters(select(Expense), ExpenseFilters(category=category))
    return await _page(db, base_query, (page - 1) * limit, limit)


async def list_by_vendor(
    db: AsyncSession, vendor: str, page: int = 1, limit: int = 10
) -> tuple[list[Expense], int]:
    base_query = _apply_filters(select(Expense), ExpenseFilters(vendor=vendor))
    return await _page(db, base_query, (page - 1) * limit, limit)


async def _window_totals(db: AsyncSession, span: PeriodSpan) -> tuple[Decimal, int]:
    stmt = select(
        func.coalesce(func.sum(Expense.amount), 0),
        func.count(Expense.id),
    ).where(Expense.date >= span.start, Expense.date <= span.end)
    total, count = (await db.execute(stmt)).one()
    return Decimal(total), int(count)


async def expense_statistics(db: AsyncSession, today: date) -> ExpenseStatistics:
    """Today's and this month's spending figures (unfiltered)."""
    day_total, day_count = await _window_totals(db, day_span(today))
    month_total, month_count = await _window_totals(db, month_span(today.year, today.month))
    month_days = days_in_month(today.year, today.month)

    return ExpenseStatistics(
        daily=ExpenseDailyStatistics(total_amount=day_total, operations_count=day_count, date=today),
        monthly=ExpenseMonthlyStatistics(
            total_amount=month_total,
            operations_count=month_count,
            average_daily_expenditure=(month_total / month_days).quantize(_CENT, rounding=ROUND_HALF_UP),
            month=f"{today.year}-{today.month:02d}",
            days_in_month=month_days,
        ),
    )


async def get_expense(db: AsyncSession, expense_id: UUID) -> Expense:
    expense = await db.get(Expense, expense_id)
    if not expense:
        raise ExpenseNotFoundError("Expense not found")
    return expense


def _category_value(category: ExpenseCategory | str) -> str:
    return category.value if isinstance(category, ExpenseCategory) else category


async def create_expense(
    db: AsyncSession, data: ExpenseCreate, created_by_id: UUID | None = None
) -> Expense:
    """Book an expense with a USD snapshot at the active rate, when one exists."""
    conversion = await convert_to_usd(db, data.amount)
    expense = Expense(
        amount=data.amount,
        description=data.description,
        category=_category_value(data.category),
        vendor=data.vendor or None,
        receipt_url=data.receipt_url or None,
        date=data.date,
        amount_usd=conversion.amount_usd,
        usd_applied_rate=conversion.applied_rate,
        created_by_id=created_by_id,
    )
    db.add(expense)
    await db.flush()
    await db.refresh(expense)

    logger.info("Expense created", expense_id=str(expense.id), category=expense.category)
    return expense


async def update_expense(db: AsyncSession, expense_id: UUID, data: ExpenseUpdate) -> Expense:
    """Apply a partial update, keeping the frozen USD rate on amount changes."""
    expense = await get_expense(db, expense_id)
    update_data = data.model_dump(exclude_unset=True)

    new_amount = update_data.get("amount")
    if new_amount is not None and Decimal(new_amount) != Decimal(expense.amount):
        if expense.usd_applied_rate is not None:
            expense.amount_usd = convert_with_rate(new_amount, expense.usd_applied_rate)
        else:
            conversion = await convert_to_usd(db, new_amount)
            expense.amount_usd = conversion.amount_usd
            expense.usd_applied_rate = conversion.applied_rate

    for field, value in update_data.items():
        if value is None and field not in ("vendor", "receipt_url"):
            continue
        if field == "category":
            value = _category_value(value)
        setattr(expense, field, value)

    await db.flush()
    await db.refresh(expense)
    return expense


async def delete_expense(db: AsyncSession, expense_id: UUID) -> None:
    expense = await get_expense(db, expense_id)
    await db.delete(expense)
    await db.flush()
