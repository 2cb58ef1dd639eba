"""Currency rate bookkeeping and local-to-USD conversion.

A stored rate is the number of local-currency units (EGP) per one unit of the
base currency (USD): a rate of 50 means 1 USD = 50 EGP, so
``amount_usd = amount_local / rate``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.config import settings
from bursar.logger import get_logger
from bursar.models import CurrencyRate

logger = get_logger(__name__)

_CENT = Decimal("0.01")
# Scale of currency_rates.rate
_RATE_STEP = Decimal("0.000001")


class CurrencyRateError(Exception):
    """Raised when rate bookkeeping fails."""

    pass


class InvalidRateError(CurrencyRateError):
    """Raised when a submitted rate is missing or implausible."""

    pass


@dataclass(frozen=True)
class UsdConversion:
    """Result of converting a local amount; both fields are ``None`` without a rate."""

    amount_usd: Decimal | None
    applied_rate: Decimal | None

    @classmethod
    def unavailable(cls) -> UsdConversion:
        return cls(None, None)


def _normalize_currency(code: str | None) -> str:
    if not code:
        return settings.rate_base_currency
    return code.strip().upper()


def validate_currency_rate(value: object) -> Decimal:
    """Parse and bound-check a submitted rate.

    Raises:
        InvalidRateError: with a client-facing message.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidRateError("Rate is required")
    if isinstance(value, bool):
        raise InvalidRateError("Rate must be a number")
    try:
        rate = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise InvalidRateError("Rate must be a number") from exc
    if not rate.is_finite():
        raise InvalidRateError("Rate must be a number")
    if rate > settings.max_currency_rate:
        raise InvalidRateError("Rate is unexpectedly large")
    if rate <= 0 or rate.quantize(_RATE_STEP, rounding=ROUND_HALF_UP) == 0:
        raise InvalidRateError("Rate must be greater than 0")
    if rate != rate.quantize(_RATE_STEP, rounding=ROUND_HALF_UP):
        raise InvalidRateError("Rate supports at most 6 decimal places")
    return rate


def convert_with_rate(amount: Decimal, rate: Decimal) -> Decimal:
    """``amount / rate`` rounded half-up to cents."""
    return (Decimal(amount) / Decimal(rate)).quantize(_CENT, rounding=ROUND_HALF_UP)


async def get_latest_rate(db: AsyncSession, currency: str | None = None) -> CurrencyRate | None:
    """Most recent active rate for ``currency``, or ``None``."""
    stmt = (
        select(CurrencyRate)
        .where(CurrencyRate.currency == _normalize_currency(currency))
        .where(CurrencyRate.is_active.is_(True))
        .order_by(CurrencyRate.valid_from.desc())
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def convert_to_usd(db: AsyncSession, amount: Decimal) -> UsdConversion:
    """Convert a local amount at the current active rate.

    Never raises: a missing rate or a failed lookup yields
    :meth:`UsdConversion.unavailable` so the surrounding write can proceed
    with empty USD fields.
    """
    try:
        rate_row = await get_latest_rate(db)
    except SQLAlchemyError as exc:
        logger.warning("Rate lookup failed, storing without USD amount", error=str(exc))
        return UsdConversion.unavailable()

    if rate_row is None:
        logger.warning("No active USD rate found, storing without USD amount")
        return UsdConversion.unavailable()

    rate = Decimal(rate_row.rate)
    if rate <= 0:
        logger.warning("Active USD rate is not positive, storing without USD amount", rate=str(rate))
        return UsdConversion.unavailable()
    return UsdConversion(amount_usd=convert_with_rate(amount, rate), applied_rate=rate)


async def update_currency_rate(
    db: AsyncSession, new_rate: Decimal, currency: str | None = None
) -> CurrencyRate:
    """Deactivate the active rate(s) for ``currency`` and insert a new active row.

    Both statements run in the caller's transaction; commit once afterwards so
    readers never observe zero or two active rates.
    """
    code = _normalize_currency(currency)

    # Lock current active rows so concurrent swaps serialize (no-op on SQLite)
    await db.execute(
        select(CurrencyRate.id)
        .where(CurrencyRate.currency == code)
        .where(CurrencyRate.is_active.is_(True))
        .with_for_update()
    )
    await db.execute(
        update(CurrencyRate)
        .where(CurrencyRate.currency == code)
        .where(CurrencyRate.is_active.is_(True))
        .values(is_active=False, updated_at=datetime.now(UTC))
    )

    row = CurrencyRate(
        currency=code,
        rate=Decimal(new_rate),
        valid_from=datetime.now(UTC),
        is_active=True,
    )
    db.add(row)
    await db.flush()
    await db.refresh(row)

    logger.info("Currency rate updated", currency=code, rate=str(row.rate))
    return row


async def get_rate_history(
    db: AsyncSession, currency: str | None = None, limit: int = 10
) -> list[CurrencyRate]:
    """Rates for ``currency``, newest first."""
    stmt = (
        select(CurrencyRate)
        .where(CurrencyRate.currency == _normalize_currency(currency))
        .order_by(CurrencyRate.valid_from.desc())
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def initialize_default_rate(
    db: AsyncSession,
    currency: str | None = None,
    default_rate: Decimal | None = None,
) -> tuple[CurrencyRate, bool]:
    """Seed ``default_rate`` when no active rate exists.

    Returns:
        The active rate and whether it was created by this call.
    """
    existing = await get_latest_rate(db, currency)
    if existing is not None:
        return existing, False

    rate = default_rate if default_rate is not None else settings.default_currency_rate
    logger.info("Seeding default currency rate", currency=_normalize_currency(currency), rate=str(rate))
    return await update_currency_rate(db, rate, currency), True
