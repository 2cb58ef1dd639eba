"""Pydantic schemas for payments."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import Field, field_validator

from bursar.models.payment import FeeType, PaymentMethod
from bursar.schemas.base import BaseRequest, BaseResponse, Money

MAX_AMOUNT = Decimal("999999999999.99")

PaymentAmount = Annotated[Decimal, Field(gt=0, le=MAX_AMOUNT, decimal_places=2)]
ReceiptNumber = Annotated[str, Field(min_length=1, max_length=100, pattern=r"^[a-zA-Z0-9\-_]+$")]


def _not_in_future(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    if value > datetime.now():
        raise ValueError("Payment date cannot be in the future")
    return value


class PaymentCreate(BaseRequest):
    """Schema for recording a payment."""

    student_id: Annotated[str, Field(min_length=1, max_length=50)]
    student_name: Annotated[str, Field(min_length=2, max_length=100)]
    fee_type: FeeType
    amount: PaymentAmount
    receipt_number: ReceiptNumber
    payment_method: PaymentMethod
    payment_date: datetime
    notes: Annotated[str | None, Field(max_length=500)] = None

    @field_validator("payment_date")
    @classmethod
    def check_payment_date(cls, value: datetime) -> datetime:
        return _not_in_future(value)


class PaymentUpdate(BaseRequest):
    """Schema for a partial payment update."""

    student_id: Annotated[str | None, Field(min_length=1, max_length=50)] = None
    student_name: Annotated[str | None, Field(min_length=2, max_length=100)] = None
    fee_type: FeeType | None = None
    amount: Annotated[Decimal | None, Field(gt=0, le=MAX_AMOUNT, decimal_places=2)] = None
    receipt_number: Annotated[
        str | None, Field(min_length=1, max_length=100, pattern=r"^[a-zA-Z0-9\-_]+$")
    ] = None
    payment_method: PaymentMethod | None = None
    payment_date: datetime | None = None
    notes: Annotated[str | None, Field(max_length=500)] = None

    @field_validator("payment_date")
    @classmethod
    def check_payment_date(cls, value: datetime | None) -> datetime | None:
        return _not_in_future(value) if value is not None else None


class PaymentResponse(BaseResponse):
    """Schema for payment response."""

    id: UUID
    student_id: str
    student_name: str
    fee_type: FeeType
    amount: Money
    currency: str
    amount_usd: Money | None = Field(default=None, alias="amountUSD")
    usd_applied_rate: Money | None = None
    receipt_number: str
    payment_method: PaymentMethod
    payment_date: datetime
    notes: str | None = None
    created_by_id: UUID | None = None
    created_at: datetime
    updated_at: datetime


class PaymentPagination(BaseResponse):
    page: int
    limit: int
    total_count: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class PaymentDailyStatistics(BaseResponse):
    total_amount: Money
    total_amount_usd: Money = Field(alias="totalAmountUSD")
    operations_count: int
    date: date


class PaymentMonthlyStatistics(BaseResponse):
    total_amount: Money
    operations_count: int
    average_daily_income: Money
    average_transaction_amount_usd: Money = Field(alias="averageTransactionAmountUSD")
    month: str
    days_in_month: int


class PaymentStatistics(BaseResponse):
    daily: PaymentDailyStatistics
    monthly: PaymentMonthlyStatistics


class PaymentListResponse(BaseResponse):
    payments: list[PaymentResponse]
    pagination: PaymentPagination
    statistics: PaymentStatistics


class PaymentSearchResponse(BaseResponse):
    payments: list[PaymentResponse]
    pagination: PaymentPagination
