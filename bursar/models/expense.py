"""Operating expense model."""

from __future__ import annotations

import datetime as dt
import enum
from decimal import Decimal

from sqlalchemy import DECIMAL, Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bursar.database import Base
from bursar.models.base import CreatorMixin, TimestampMixin, UUIDMixin


class ExpenseCategory(str, enum.Enum):
    """The fixed set of expense categories used by the finance office."""

    FIXED_ASSETS = "Fixed Assets"
    PART_TIME_PROFESSORS = "Part-time Professors"
    STUDY_MATERIALS = "Study Materials & Administration Leaves"
    SALARIES = "Salaries"
    STUDENT_FEES_REFUND = "Student Fees Refund"
    ADVANCES = "Advances"
    BONUSES = "Bonuses"
    GENERAL_ADMINISTRATIVE = "General & Administrative Expenses"
    LIBRARY_SUPPLIES = "Library Supplies"
    LAB_CONSUMABLES = "Lab Consumables"
    STUDENT_TRAINING = "Student Training"
    SAUDI_EGYPTIAN_COMPANY = "Saudi-Egyptian Company"


class Expense(UUIDMixin, CreatorMixin, TimestampMixin, Base):
    """An expense booked against a calendar day."""

    __tablename__ = "expenses"
    __table_args__ = (
        Index("idx_expenses_date", "date"),
        Index("idx_expenses_category", "category"),
    )

    amount: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    vendor: Mapped[str | None] = mapped_column(String(255), nullable=True)
    receipt_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    amount_usd: Mapped[Decimal | None] = mapped_column(DECIMAL(15, 2), nullable=True)
    usd_applied_rate: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 6), nullable=True)

    def __repr__(self) -> str:
        return f"<Expense {self.category} {self.amount} {self.date}>"
