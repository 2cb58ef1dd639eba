"""Pydantic schemas for expenses."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import Field, field_validator

from bursar.models.expense import ExpenseCategory
from bursar.schemas.base import BaseRequest, BaseResponse, Money
from bursar.schemas.payment import MAX_AMOUNT

ExpenseAmount = Annotated[Decimal, Field(gt=0, le=MAX_AMOUNT, decimal_places=2)]


def _not_in_future(value: date) -> date:
    if value > datetime.now().date():
        raise ValueError("Expense date cannot be in the future")
    return value


class ExpenseCreate(BaseRequest):
    """Schema for booking an expense."""

    amount: ExpenseAmount
    description: Annotated[str, Field(min_length=1, max_length=1000)]
    category: ExpenseCategory
    vendor: Annotated[str | None, Field(max_length=255)] = None
    receipt_url: Annotated[str | None, Field(max_length=500)] = None
    date: date

    @field_validator("date")
    @classmethod
    def check_date(cls, value: date) -> date:
        return _not_in_future(value)


class ExpenseUpdate(BaseRequest):
    """Schema for a partial expense update."""

    amount: Annotated[Decimal | None, Field(gt=0, le=MAX_AMOUNT, decimal_places=2)] = None
    description: Annotated[str | None, Field(min_length=1, max_length=1000)] = None
    category: ExpenseCategory | None = None
    vendor: Annotated[str | None, Field(max_length=255)] = None
    receipt_url: Annotated[str | None, Field(max_length=500)] = None
    date: Annotated[date | None, Field(default=None)]

    @field_validator("date")
    @classmethod
    def check_date(cls, value: date | None) -> date | None:
        return _not_in_future(value) if value is not None else None


class ExpenseResponse(BaseResponse):
    """Schema for expense response."""

    id: UUID
    amount: Money
    description: str
    category: str
    vendor: str | None = None
    receipt_url: str | None = None
    date: date
    amount_usd: Money | None = Field(default=None, alias="amountUSD")
    usd_applied_rate: Money | None = None
    created_by_id: UUID | None = None
    created_at: datetime
    updated_at: datetime


class ExpensePagination(BaseResponse):
    current_page: int
    total_pages: int
    total_expenses: int
    has_next_page: bool
    has_prev_page: bool
    limit: int


class ExpenseDailyStatistics(BaseResponse):
    total_amount: Money
    operations_count: int
    date: date


class ExpenseMonthlyStatistics(BaseResponse):
    total_amount: Money
    operations_count: int
    average_daily_expenditure: Money
    month: str
    days_in_month: int


class ExpenseStatistics(BaseResponse):
    daily: ExpenseDailyStatistics
    monthly: ExpenseMonthlyStatistics


class ExpenseListResponse(BaseResponse):
    expenses: list[ExpenseResponse]
    statistics: ExpenseStatistics
    pagination: ExpensePagination


class ExpensePageResponse(BaseResponse):
    expenses: list[ExpenseResponse]
    pagination: ExpensePagination
