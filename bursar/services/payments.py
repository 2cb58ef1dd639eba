"""Payment ledger service: CRUD, filtered listing and list statistics."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import Select, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.config import settings
from bursar.logger import get_logger
from bursar.models import FeeType, Payment, PaymentMethod
from bursar.schemas.payment import (
    PaymentCreate,
    PaymentDailyStatistics,
    PaymentMonthlyStatistics,
    PaymentPagination,
    PaymentStatistics,
    PaymentUpdate,
)
from bursar.services.currency import UsdConversion, convert_to_usd, convert_with_rate
from bursar.services.periods import PeriodSpan, day_span, days_in_month, month_span

logger = get_logger(__name__)

_CENT = Decimal("0.01")


class PaymentServiceError(Exception):
    """Base exception for payment service errors."""


class PaymentNotFoundError(PaymentServiceError):
    """Payment not found error."""


class DuplicateReceiptError(PaymentServiceError):
    """Receipt number already used by another payment."""

    def __init__(self, message: str = "Payment with this receipt number already exists") -> None:
        super().__init__(message)


@dataclass(frozen=True)
class PaymentFilters:
    """Effective list parameters (defaults applied)."""

    page: int = 1
    limit: int = 10
    search: str | None = None
    fee_type: FeeType | None = None
    payment_method: PaymentMethod | None = None
    start_date: date | None = None
    end_date: date | None = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def cache_params(self) -> dict[str, object]:
        return {
            "page": self.page,
            "limit": self.limit,
            "search": self.search,
            "feeType": self.fee_type,
            "paymentMethod": self.payment_method,
            "startDate": self.start_date,
            "endDate": self.end_date,
        }


def build_pagination(page: int, limit: int, total: int) -> PaymentPagination:
    total_pages = math.ceil(total / limit) if limit else 0
    return PaymentPagination(
        page=page,
        limit=limit,
        total_count=total,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )


def _apply_filters(stmt: Select, filters: PaymentFilters) -> Select:
    if filters.search:
        stmt = stmt.where(
            or_(
                Payment.student_id.icontains(filters.search, autoescape=True),
                Payment.student_name.icontains(filters.search, autoescape=True),
                Payment.receipt_number.icontains(filters.search, autoescape=True),
            )
        )
    if filters.fee_type:
        stmt = stmt.where(Payment.fee_type == filters.fee_type)
    if filters.payment_method:
        stmt = stmt.where(Payment.payment_method == filters.payment_method)
    if filters.start_date:
        stmt = stmt.where(Payment.payment_date >= day_span(filters.start_date).start_at)
    if filters.end_date:
        stmt = stmt.where(Payment.payment_date <= day_span(filters.end_date).end_at)
    return stmt


async def _page(
    db: AsyncSession, base_query: Select, offset: int, limit: int
) -> tuple[list[Payment], int]:
    count_query = select(func.count()).select_from(base_query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = base_query.order_by(Payment.payment_date.desc()).offset(offset).limit(limit)
    payments = list((await db.execute(query)).scalars().all())
    return payments, total


async def list_payments(db: AsyncSession, filters: PaymentFilters) -> tuple[list[Payment], int]:
    return await _page(db, _apply_filters(select(Payment), filters), filters.offset, filters.limit)


async def search_payments(
    db: AsyncSession, query: str, page: int = 1, limit: int = 10
) -> tuple[list[Payment], int]:
    """Quick search over student id/name, receipt number and notes."""
    term = query.strip()
    if not term:
        return [], 0
    base_query = select(Payment).where(
        or_(
            Payment.student_id.icontains(term, autoescape=True),
            Payment.student_name.icontains(term, autoescape=True),
            Payment.receipt_number.icontains(term, autoescape=True),
            Payment.notes.icontains(term, autoescape=True),
        )
    )
    return await _page(db, base_query, (page - 1) * limit, limit)


async def list_student_payments(
    db: AsyncSession, student_id: str, page: int = 1, limit: int = 10
) -> tuple[list[Payment], int]:
    base_query = select(Payment).where(Payment.student_id == student_id.strip())
    return await _page(db, base_query, (page - 1) * limit, limit)


async def _window_totals(db: AsyncSession, span: PeriodSpan) -> tuple[Decimal, Decimal, int]:
    stmt = select(
        func.coalesce(func.sum(Payment.amount), 0),
        func.coalesce(func.sum(Payment.amount_usd), 0),
        func.count(Payment.id),
    ).where(Payment.payment_date >= span.start_at, Payment.payment_date <= span.end_at)
    total, total_usd, count = (await db.execute(stmt)).one()
    return Decimal(total), Decimal(total_usd), int(count)


async def payment_statistics(db: AsyncSession, today: date) -> PaymentStatistics:
    """Today's and this month's collection figures (unfiltered)."""
    month = month_span(today.year, today.month)
    day_total, day_usd, day_count = await _window_totals(db, day_span(today))
    month_total, month_usd, month_count = await _window_totals(db, month)
    month_days = days_in_month(today.year, today.month)

    average_usd = (
        (month_usd / month_count).quantize(_CENT, rounding=ROUND_HALF_UP) if month_count else Decimal("0")
    )
    return PaymentStatistics(
        daily=PaymentDailyStatistics(
            total_amount=day_total,
            total_amount_usd=day_usd,
            operations_count=day_count,
            date=today,
        ),
        monthly=PaymentMonthlyStatistics(
            total_amount=month_total,
            operations_count=month_count,
            average_daily_income=(month_total / month_days).quantize(_CENT, rounding=ROUND_HALF_UP),
            average_transaction_amount_usd=average_usd,
            month=f"{today.year}-{today.month:02d}",
            days_in_month=month_days,
        ),
    )


async def get_payment(db: AsyncSession, payment_id: UUID) -> Payment:
    payment = await db.get(Payment, payment_id)
    if not payment:
        raise PaymentNotFoundError("Payment not found")
    return payment


async def get_payment_by_receipt(db: AsyncSession, receipt_number: str) -> Payment:
    result = await db.execute(
        select(Payment).where(Payment.receipt_number == receipt_number.strip())
    )
    payment = result.scalar_one_or_none()
    if not payment:
        raise PaymentNotFoundError("Payment with this receipt number not found")
    return payment


async def _ensure_receipt_available(
    db: AsyncSession, receipt_number: str, exclude_id: UUID | None = None
) -> None:
    stmt = select(Payment.id).where(Payment.receipt_number == receipt_number)
    if exclude_id is not None:
        stmt = stmt.where(Payment.id != exclude_id)
    if (await db.execute(stmt.limit(1))).scalar_one_or_none() is not None:
        raise DuplicateReceiptError()


async def _flush_unique(db: AsyncSession, payment: Payment) -> None:
    try:
        await db.flush()
    except IntegrityError as exc:
        # Concurrent insert won the unique index race
        raise DuplicateReceiptError() from exc
    await db.refresh(payment)


async def create_payment(
    db: AsyncSession, data: PaymentCreate, created_by_id: UUID | None = None
) -> Payment:
    """Record a payment, snapshotting its USD value at the active rate.

    A missing rate leaves the USD fields empty rather than failing the write.
    """
    await _ensure_receipt_available(db, data.receipt_number)
    conversion: UsdConversion = await convert_to_usd(db, data.amount)

    payment = Payment(
        student_id=data.student_id,
        student_name=data.student_name,
        fee_type=data.fee_type,
        amount=data.amount,
        currency=settings.local_currency,
        amount_usd=conversion.amount_usd,
        usd_applied_rate=conversion.applied_rate,
        receipt_number=data.receipt_number,
        payment_method=data.payment_method,
        payment_date=data.payment_date,
        notes=data.notes or None,
        created_by_id=created_by_id,
    )
    db.add(payment)
    await _flush_unique(db, payment)

    logger.info(
        "Payment created",
        payment_id=str(payment.id),
        receipt_number=payment.receipt_number,
        usd_applied_rate=str(payment.usd_applied_rate) if payment.usd_applied_rate else None,
    )
    return payment


async def update_payment(db: AsyncSession, payment_id: UUID, data: PaymentUpdate) -> Payment:
    """Apply a partial update.

    An amount change is revalued at the rate frozen on the payment; only a
    payment that never had a rate picks up the current one.
    """
    payment = await get_payment(db, payment_id)
    update_data = data.model_dump(exclude_unset=True)

    receipt_number = update_data.get("receipt_number")
    if receipt_number and receipt_number != payment.receipt_number:
        await _ensure_receipt_available(db, receipt_number, exclude_id=payment.id)

    new_amount = update_data.get("amount")
    if new_amount is not None and Decimal(new_amount) != Decimal(payment.amount):
        if payment.usd_applied_rate is not None:
            payment.amount_usd = convert_with_rate(new_amount, payment.usd_applied_rate)
        else:
            conversion = await convert_to_usd(db, new_amount)
            payment.amount_usd = conversion.amount_usd
            payment.usd_applied_rate = conversion.applied_rate

    for field, value in update_data.items():
        if value is None and field != "notes":
            continue
        setattr(payment, field, value)

    await _flush_unique(db, payment)
    return payment


async def delete_payment(db: AsyncSession, payment_id: UUID) -> None:
    payment = await get_payment(db, payment_id)
    await db.delete(payment)
    await db.flush()
