"""Expenses API router."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, status

from bursar.config import settings
from bursar.deps import CacheDep, CurrentUserId, DbSession, InvalidatorDep
from bursar.logger import get_logger
from bursar.schemas import (
    ExpenseCreate,
    ExpenseListResponse,
    ExpensePageResponse,
    ExpenseResponse,
    ExpenseUpdate,
    jsend_success,
)
from bursar.services import expenses as expense_service
from bursar.services.cache_keys import build_expenses_cache_key
from bursar.services.expenses import ExpenseFilters, ExpenseNotFoundError
from bursar.utils import raise_bad_request, raise_not_found

router = APIRouter(prefix="/expenses", tags=["expenses"])
logger = get_logger(__name__)


def _page_of(expenses: list[Any], page: int, limit: int, total: int) -> ExpensePageResponse:
    return ExpensePageResponse(
        expenses=[ExpenseResponse.model_validate(e) for e in expenses],
        pagination=expense_service.build_pagination(page, limit, total),
    )


@router.get("")
async def list_expenses(
    db: DbSession,
    user_id: CurrentUserId,
    cache: CacheDep,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = Query(None, max_length=100),
    category: str | None = Query(None, max_length=100),
    vendor: str | None = Query(None, max_length=255),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    min_amount: Decimal | None = Query(None, alias="minAmount", ge=0),
    max_amount: Decimal | None = Query(None, alias="maxAmount", ge=0),
) -> dict[str, Any]:
    """Paginated, filtered expenses with today's and this month's statistics."""
    if start_date and end_date and start_date > end_date:
        raise_bad_request("startDate must not be after endDate")
    if min_amount is not None and max_amount is not None and min_amount > max_amount:
        raise_bad_request("minAmount must not be greater than maxAmount")

    filters = ExpenseFilters(
        page=page,
        limit=limit,
        search=(search or "").strip() or None,
        category=(category or "").strip() or None,
        vendor=(vendor or "").strip() or None,
        start_date=start_date,
        end_date=end_date,
        min_amount=min_amount,
        max_amount=max_amount,
    )

    async def compute() -> dict[str, Any]:
        expenses, total = await expense_service.list_expenses(db, filters)
        statistics = await expense_service.expense_statistics(db, datetime.now().date())
        return jsend_success(
            ExpenseListResponse(
                expenses=[ExpenseResponse.model_validate(e) for e in expenses],
                statistics=statistics,
                pagination=expense_service.build_pagination(page, limit, total),
            ),
            message="Expenses retrieved successfully",
        )

    key = build_expenses_cache_key(filters.cache_params())
    return await cache.fetch(key, settings.list_cache_ttl_seconds, compute)


@router.get("/search")
async def search_expenses(
    db: DbSession,
    user_id: CurrentUserId,
    q: str = Query("", max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> dict[str, Any]:
    expenses, total = await expense_service.search_expenses(db, q, page, limit)
    return jsend_success(_page_of(expenses, page, limit, total))


@router.get("/category/{category}")
async def list_expenses_by_category(
    category: str,
    db: DbSession,
    user_id: CurrentUserId,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> dict[str, Any]:
    expenses, total = await expense_service.list_by_category(db, category, page, limit)
    return jsend_success(_page_of(expenses, page, limit, total))


@router.get("/vendor/{vendor}")
async def list_expenses_by_vendor(
    vendor: str,
    db: DbSession,
    user_id: CurrentUserId,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> dict[str, Any]:
    expenses, total = await expense_service.list_by_vendor(db, vendor, page, limit)
    return jsend_success(_page_of(expenses, page, limit, total))


@router.get("/{expense_id}")
async def get_expense(expense_id: UUID, db: DbSession, user_id: CurrentUserId) -> dict[str, Any]:
    try:
        expense = await expense_service.get_expense(db, expense_id)
    except ExpenseNotFoundError as exc:
        raise_not_found("Expense", detail=str(exc), cause=exc)
    return jsend_success(expense=ExpenseResponse.model_validate(expense))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_expense(
    data: ExpenseCreate,
    db: DbSession,
    user_id: CurrentUserId,
    invalidator: InvalidatorDep,
) -> dict[str, Any]:
    expense = await expense_service.create_expense(db, data, created_by_id=user_id)
    await db.commit()

    await invalidator.invalidate_expenses()
    return jsend_success(
        message="Expense created successfully",
        expense=ExpenseResponse.model_validate(expense),
    )


@router.patch("/{expense_id}")
async def update_expense(
    expense_id: UUID,
    data: ExpenseUpdate,
    db: DbSession,
    user_id: CurrentUserId,
    invalidator: InvalidatorDep,
) -> dict[str, Any]:
    try:
        expense = await expense_service.update_expense(db, expense_id, data)
    except ExpenseNotFoundError as exc:
        raise_not_found("Expense", detail=str(exc), cause=exc)
    await db.commit()
    await db.refresh(expense)

    await invalidator.invalidate_expenses()
    return jsend_success(
        message="Expense updated successfully",
        expense=ExpenseResponse.model_validate(expense),
    )


@router.delete("/{expense_id}")
async def delete_expense(
    expense_id: UUID,
    db: DbSession,
    user_id: CurrentUserId,
    invalidator: InvalidatorDep,
) -> dict[str, Any]:
    try:
        await expense_service.delete_expense(db, expense_id)
    except ExpenseNotFoundError as exc:
        raise_not_found("Expense", detail=str(exc), cause=exc)
    await db.commit()

    await invalidator.invalidate_expenses()
    logger.info("Expense deleted", expense_id=str(expense_id))
    return jsend_success(message="Expense deleted successfully")
