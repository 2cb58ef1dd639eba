"""Currency rate history model."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DECIMAL, Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from bursar.database import Base
from bursar.models.base import TimestampMixin, UUIDMixin


class CurrencyRate(UUIDMixin, TimestampMixin, Base):
    """Local-currency units per one unit of ``currency``.

    Rows are append-only: a new rate deactivates the previous active row and
    inserts a fresh one, so historical snapshots stay verifiable.
    """

    __tablename__ = "currency_rates"
    __table_args__ = (Index("idx_currency_rates_currency_active", "currency", "is_active"),)

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    rate: Mapped[Decimal] = mapped_column(DECIMAL(10, 6), nullable=False)
    valid_from: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        state = "active" if self.is_active else "inactive"
        return f"<CurrencyRate {self.currency} {self.rate} {state}>"
