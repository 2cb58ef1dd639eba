"""Pydantic schemas for currency rates."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from bursar.schemas.base import BaseRequest, BaseResponse, Money


class CurrencyRateResponse(BaseResponse):
    """One row of the rate history."""

    id: UUID
    currency: str
    rate: Money
    valid_from: datetime
    is_active: bool
    created_at: datetime
    updated_at: datetime


class RateUpdateRequest(BaseRequest):
    """Body of a rate update.

    ``rate`` is left untyped so that missing, non-numeric and out-of-range
    values all reach the domain validator and get its messages.
    """

    rate: Any = None
    currency: str | None = Field(None, max_length=3, pattern=r"^[A-Z]{3}$")


class RateHistoryResponse(BaseResponse):
    currency: str
    history: list[CurrencyRateResponse]
    total: int
