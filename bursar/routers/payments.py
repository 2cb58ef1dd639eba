"""Payments API router."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from bursar.config import settings
from bursar.deps import CacheDep, CurrentUserId, DbSession, InvalidatorDep, RendererDep
from bursar.logger import get_logger
from bursar.models import FeeType, PaymentMethod
from bursar.schemas import (
    PaymentCreate,
    PaymentListResponse,
    PaymentResponse,
    PaymentSearchResponse,
    PaymentUpdate,
    jsend_success,
)
from bursar.services import payments as payment_service
from bursar.services.cache_keys import build_payments_cache_key
from bursar.services.payments import DuplicateReceiptError, PaymentFilters, PaymentNotFoundError
from bursar.utils import raise_conflict, raise_not_found

router = APIRouter(prefix="/payments", tags=["payments"])
logger = get_logger(__name__)


def _page_of(payments: list[Any], page: int, limit: int, total: int) -> PaymentSearchResponse:
    return PaymentSearchResponse(
        payments=[PaymentResponse.model_validate(p) for p in payments],
        pagination=payment_service.build_pagination(page, limit, total),
    )


@router.get("/verify/{receipt_number}")
async def verify_receipt(receipt_number: str, db: DbSession) -> dict[str, Any]:
    """Public receipt verification (no authentication)."""
    try:
        payment = await payment_service.get_payment_by_receipt(db, receipt_number)
    except PaymentNotFoundError as exc:
        raise_not_found("Payment", detail=str(exc), cause=exc)
    return jsend_success(payment=PaymentResponse.model_validate(payment))


@router.get("")
async def list_payments(
    db: DbSession,
    user_id: CurrentUserId,
    cache: CacheDep,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = Query(None, max_length=100),
    fee_type: FeeType | None = Query(None, alias="feeType"),
    payment_method: PaymentMethod | None = Query(None, alias="paymentMethod"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
) -> dict[str, Any]:
    """Paginated, filtered payments with today's and this month's statistics."""
    filters = PaymentFilters(
        page=page,
        limit=limit,
        search=(search or "").strip() or None,
        fee_type=fee_type,
        payment_method=payment_method,
        start_date=start_date,
        end_date=end_date,
    )

    async def compute() -> dict[str, Any]:
        payments, total = await payment_service.list_payments(db, filters)
        statistics = await payment_service.payment_statistics(db, datetime.now().date())
        return jsend_success(
            PaymentListResponse(
                payments=[PaymentResponse.model_validate(p) for p in payments],
                pagination=payment_service.build_pagination(page, limit, total),
                statistics=statistics,
            )
        )

    key = build_payments_cache_key(filters.cache_params())
    return await cache.fetch(key, settings.list_cache_ttl_seconds, compute)


@router.get("/search")
async def search_payments(
    db: DbSession,
    user_id: CurrentUserId,
    q: str = Query("", max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> dict[str, Any]:
    payments, total = await payment_service.search_payments(db, q, page, limit)
    return jsend_success(_page_of(payments, page, limit, total))


@router.get("/student/{student_id}")
async def list_student_payments(
    student_id: str,
    db: DbSession,
    user_id: CurrentUserId,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> dict[str, Any]:
    payments, total = await payment_service.list_student_payments(db, student_id, page, limit)
    return jsend_success(_page_of(payments, page, limit, total))


@router.get("/receipt/{receipt_number}")
async def get_payment_by_receipt(
    receipt_number: str,
    db: DbSession,
    user_id: CurrentUserId,
) -> dict[str, Any]:
    try:
        payment = await payment_service.get_payment_by_receipt(db, receipt_number)
    except PaymentNotFoundError as exc:
        raise_not_found("Payment", detail=str(exc), cause=exc)
    return jsend_success(payment=PaymentResponse.model_validate(payment))


@router.get("/{payment_id}")
async def get_payment(payment_id: UUID, db: DbSession, user_id: CurrentUserId) -> dict[str, Any]:
    try:
        payment = await payment_service.get_payment(db, payment_id)
    except PaymentNotFoundError as exc:
        raise_not_found("Payment", detail=str(exc), cause=exc)
    return jsend_success(payment=PaymentResponse.model_validate(payment))


@router.get("/{payment_id}/receipt")
async def get_payment_receipt_pdf(
    payment_id: UUID,
    db: DbSession,
    user_id: CurrentUserId,
    renderer: RendererDep,
) -> Response:
    """Printable receipt for one payment."""
    try:
        payment = await payment_service.get_payment(db, payment_id)
    except PaymentNotFoundError as exc:
        raise_not_found("Payment", detail=str(exc), cause=exc)

    payload = PaymentResponse.model_validate(payment).model_dump(mode="json", by_alias=True)
    content = renderer.render_receipt(payload)
    return Response(
        content=content,
        media_type=renderer.media_type,
        headers={"Content-Disposition": f'attachment; filename="receipt-{payment.receipt_number}.pdf"'},
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_payment(
    data: PaymentCreate,
    db: DbSession,
    user_id: CurrentUserId,
    invalidator: InvalidatorDep,
) -> dict[str, Any]:
    """Record a payment; the USD snapshot is taken at the active rate."""
    try:
        payment = await payment_service.create_payment(db, data, created_by_id=user_id)
    except DuplicateReceiptError as exc:
        await db.rollback()
        raise_conflict(str(exc), cause=exc)
    await db.commit()

    await invalidator.invalidate_payments()
    return jsend_success(
        message="Payment created successfully",
        payment=PaymentResponse.model_validate(payment),
    )


@router.patch("/{payment_id}")
async def update_payment(
    payment_id: UUID,
    data: PaymentUpdate,
    db: DbSession,
    user_id: CurrentUserId,
    invalidator: InvalidatorDep,
) -> dict[str, Any]:
    try:
        payment = await payment_service.update_payment(db, payment_id, data)
    except PaymentNotFoundError as exc:
        raise_not_found("Payment", detail=str(exc), cause=exc)
    except DuplicateReceiptError as exc:
        await db.rollback()
        raise_conflict(str(exc), cause=exc)
    await db.commit()
    await db.refresh(payment)

    await invalidator.invalidate_payments()
    return jsend_success(
        message="Payment updated successfully",
        payment=PaymentResponse.model_validate(payment),
    )


@router.delete("/{payment_id}")
async def delete_payment(
    payment_id: UUID,
    db: DbSession,
    user_id: CurrentUserId,
    invalidator: InvalidatorDep,
) -> dict[str, Any]:
    try:
        await payment_service.delete_payment(db, payment_id)
    except PaymentNotFoundError as exc:
        raise_not_found("Payment", detail=str(exc), cause=exc)
    await db.commit()

    await invalidator.invalidate_payments()
    logger.info("Payment deleted", payment_id=str(payment_id))
    return jsend_success(message="Payment deleted successfully")
