"""Currency rate API router."""

from typing import Any

from fastapi import APIRouter, Query, status
from sqlalchemy.exc import SQLAlchemyError

from bursar.config import settings
from bursar.deps import CurrentUserId, DbSession
from bursar.logger import get_logger, log_exception
from bursar.schemas import (
    CurrencyRateResponse,
    RateHistoryResponse,
    RateUpdateRequest,
    jsend_success,
)
from bursar.services import currency as currency_service
from bursar.services.currency import InvalidRateError
from bursar.utils import raise_bad_request, raise_internal_error, raise_not_found

router = APIRouter(prefix="/currency", tags=["currency"])
logger = get_logger(__name__)


@router.get("/current")
async def get_current_rate(db: DbSession, user_id: CurrentUserId) -> dict[str, Any]:
    """The active EGP-per-USD rate."""
    rate = await currency_service.get_latest_rate(db)
    if rate is None:
        raise_not_found("Currency rate", detail=f"No active {settings.rate_base_currency} rate found")
    return jsend_success(rate=CurrencyRateResponse.model_validate(rate))


@router.post("/rate", status_code=status.HTTP_201_CREATED)
async def set_currency_rate(
    data: RateUpdateRequest,
    db: DbSession,
    user_id: CurrentUserId,
) -> dict[str, Any]:
    """Swap in a new active rate; earlier rows stay in the history."""
    try:
        new_rate = currency_service.validate_currency_rate(data.rate)
    except InvalidRateError as exc:
        raise_bad_request(str(exc), cause=exc)

    try:
        row = await currency_service.update_currency_rate(db, new_rate, data.currency)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        log_exception(logger, exc, "Currency rate update failed")
        raise_internal_error("Failed to update currency rate", cause=exc)

    return jsend_success(
        message="Currency rate updated successfully",
        rate=CurrencyRateResponse.model_validate(row),
    )


@router.get("/history")
async def get_rate_history(
    db: DbSession,
    user_id: CurrentUserId,
    limit: int = Query(10),
    currency: str | None = Query(None, max_length=3),
) -> dict[str, Any]:
    if not 1 <= limit <= 100:
        raise_bad_request("Limit must be between 1 and 100")

    code = (currency or settings.rate_base_currency).upper()
    history = await currency_service.get_rate_history(db, code, limit)
    return jsend_success(
        RateHistoryResponse(
            currency=code,
            history=[CurrencyRateResponse.model_validate(row) for row in history],
            total=len(history),
        )
    )


@router.post("/initialize")
async def initialize_rate(
    db: DbSession,
    user_id: CurrentUserId,
    data: RateUpdateRequest | None = None,
) -> dict[str, Any]:
    """First-time setup: seed a rate when none is active (default 50)."""
    requested = data.rate if data is not None and data.rate is not None else settings.default_currency_rate
    try:
        rate = currency_service.validate_currency_rate(requested)
    except InvalidRateError as exc:
        raise_bad_request(str(exc), cause=exc)

    try:
        row, created = await currency_service.initialize_default_rate(db, default_rate=rate)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        log_exception(logger, exc, "Currency rate initialization failed")
        raise_internal_error("Failed to initialize currency rate", cause=exc)

    message = "Currency rate initialized successfully" if created else "Active currency rate already exists"
    return jsend_success(message=message, rate=CurrencyRateResponse.model_validate(row))
