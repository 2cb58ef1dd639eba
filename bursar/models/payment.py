"""Student fee payment model."""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DECIMAL, DateTime, Enum, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bursar.database import Base
from bursar.models.base import CreatorMixin, TimestampMixin, UUIDMixin


class FeeType(str, enum.Enum):
    """Fee category a payment settles."""

    NEW_YEAR = "NEW_YEAR"
    SUPPLEMENTARY = "SUPPLEMENTARY"
    TRAINING = "TRAINING"
    STUDENT_SERVICES = "STUDENT_SERVICES"
    EXAM = "EXAM"
    OTHER = "OTHER"


class PaymentMethod(str, enum.Enum):
    """How the payment was received."""

    CASH = "CASH"
    TRANSFER = "TRANSFER"
    CHEQUE = "CHEQUE"


class Payment(UUIDMixin, CreatorMixin, TimestampMixin, Base):
    """A fee payment received from a student, in local currency.

    ``amount_usd`` and ``usd_applied_rate`` snapshot the active rate at the
    time the payment was recorded and are never reconverted at a later rate.
    """

    __tablename__ = "payments"
    __table_args__ = (
        Index("idx_payments_payment_date", "payment_date"),
        Index("idx_payments_student_id", "student_id"),
    )

    student_id: Mapped[str] = mapped_column(String(50), nullable=False)
    student_name: Mapped[str] = mapped_column(String(100), nullable=False)
    fee_type: Mapped[FeeType] = mapped_column(
        Enum(FeeType, name="fee_type_enum"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EGP")
    amount_usd: Mapped[Decimal | None] = mapped_column(DECIMAL(15, 2), nullable=True)
    usd_applied_rate: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 6), nullable=True)
    receipt_number: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod, name="payment_method_enum"), nullable=False
    )
    payment_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Payment {self.receipt_number} {self.amount} {self.currency}>"
