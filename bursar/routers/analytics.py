"""Chart analytics API router."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Query

from bursar.deps import AggregatorDep, CurrentUserId
from bursar.logger import get_logger
from bursar.schemas import jsend_success
from bursar.services.analytics import charts_analytics
from bursar.services.reporting import ReportError
from bursar.services.validation import ReportValidationError, validate_report_year
from bursar.utils import raise_bad_request, raise_internal_error

router = APIRouter(prefix="/analytics", tags=["analytics"])
logger = get_logger(__name__)


@router.get("/charts")
async def get_charts_analytics(
    aggregator: AggregatorDep,
    user_id: CurrentUserId,
    year: int | None = Query(None),
) -> dict[str, Any]:
    """Monthly income/expense series and category shares for one year."""
    target_year = year or datetime.now().year
    try:
        validate_report_year(target_year)
    except ReportValidationError as exc:
        raise_bad_request(str(exc), cause=exc)

    try:
        analytics = await charts_analytics(aggregator.ledger, target_year)
    except ReportError as exc:
        raise_internal_error(str(exc), cause=exc)
    return jsend_success(analytics)
