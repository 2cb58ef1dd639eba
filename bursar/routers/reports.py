"""Financial reports API router (daily, monthly, yearly, range, dashboard, summary)."""

from collections.abc import Awaitable
from datetime import datetime
from io import BytesIO
from typing import Any, TypeVar

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from bursar.config import settings
from bursar.deps import AggregatorDep, CacheDep, CurrentUserId, RendererDep
from bursar.logger import get_logger
from bursar.schemas import jsend_success
from bursar.services.cache_keys import dashboard_cache_key
from bursar.services.rendering import ReportRenderer
from bursar.services.reporting import ReportError
from bursar.services.validation import (
    ReportValidationError,
    parse_date_range,
    parse_report_date,
    validate_report_month,
    validate_report_year,
)
from bursar.utils import raise_bad_request, raise_internal_error

router = APIRouter(prefix="/reports", tags=["reports"])
logger = get_logger(__name__)

ReportT = TypeVar("ReportT", bound=BaseModel)


async def _generate(report: Awaitable[ReportT], name: str) -> ReportT:
    try:
        return await report
    except ReportError as exc:
        logger.warning("Report generation failed", report=name, error=str(exc))
        raise_internal_error(str(exc), cause=exc)


def _pdf(renderer: ReportRenderer, title: str, report: BaseModel, filename: str) -> StreamingResponse:
    content = renderer.render_report(title, report.model_dump(mode="json", by_alias=True))
    return StreamingResponse(
        BytesIO(content),
        media_type=renderer.media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


def _validated(check: Any, *args: Any) -> Any:
    try:
        return check(*args)
    except ReportValidationError as exc:
        raise_bad_request(str(exc), cause=exc)


@router.get("/daily/{report_date}")
async def daily_report(
    report_date: str,
    aggregator: AggregatorDep,
    user_id: CurrentUserId,
) -> dict[str, Any]:
    day = _validated(parse_report_date, report_date)
    report = await _generate(aggregator.daily_report(day), "daily report")
    return jsend_success(message="Daily report retrieved successfully", report=report)


@router.get("/monthly/{year}/{month}")
async def monthly_report(
    year: int,
    month: int,
    aggregator: AggregatorDep,
    user_id: CurrentUserId,
) -> dict[str, Any]:
    _validated(validate_report_year, year)
    _validated(validate_report_month, month)
    report = await _generate(aggregator.monthly_report(year, month), "monthly report")
    return jsend_success(message="Monthly report retrieved successfully", report=report)


@router.get("/yearly/{year}")
async def yearly_report(
    year: int,
    aggregator: AggregatorDep,
    user_id: CurrentUserId,
) -> dict[str, Any]:
    _validated(validate_report_year, year)
    report = await _generate(aggregator.yearly_report(year), "yearly report")
    return jsend_success(message="Yearly report retrieved successfully", report=report)


@router.get("/range")
async def range_report(
    aggregator: AggregatorDep,
    user_id: CurrentUserId,
    start: str | None = Query(None, alias="from"),
    end: str | None = Query(None, alias="to"),
) -> dict[str, Any]:
    start_date, end_date = _validated(parse_date_range, start, end)
    report = await _generate(aggregator.range_report(start_date, end_date), "range report")
    return jsend_success(message="Range report retrieved successfully", report=report)


@router.get("/dashboard")
async def dashboard_report(
    aggregator: AggregatorDep,
    cache: CacheDep,
    user_id: CurrentUserId,
) -> dict[str, Any]:
    """Current month at a glance; cached per calendar day."""

    async def compute() -> dict[str, Any]:
        report = await _generate(aggregator.dashboard_report(), "dashboard report")
        return jsend_success(message="Dashboard report retrieved successfully", dashboard=report)

    key = dashboard_cache_key(datetime.now())
    return await cache.fetch(key, settings.dashboard_cache_ttl_seconds, compute)


@router.get("/summary")
async def financial_summary(aggregator: AggregatorDep, user_id: CurrentUserId) -> dict[str, Any]:
    summary = await _generate(aggregator.financial_summary(), "financial summary")
    return jsend_success(message="Financial summary retrieved successfully", summary=summary)


@router.get("/daily/{report_date}/pdf")
async def daily_report_pdf(
    report_date: str,
    aggregator: AggregatorDep,
    renderer: RendererDep,
    user_id: CurrentUserId,
) -> StreamingResponse:
    day = _validated(parse_report_date, report_date)
    report = await _generate(aggregator.daily_report(day), "daily report")
    return _pdf(renderer, f"Daily Report {day.isoformat()}", report, f"daily-report-{day.isoformat()}.pdf")


@router.get("/monthly/{year}/{month}/pdf")
async def monthly_report_pdf(
    year: int,
    month: int,
    aggregator: AggregatorDep,
    renderer: RendererDep,
    user_id: CurrentUserId,
) -> StreamingResponse:
    _validated(validate_report_year, year)
    _validated(validate_report_month, month)
    report = await _generate(aggregator.monthly_report(year, month), "monthly report")
    return _pdf(
        renderer,
        f"Monthly Report {report.month_name} {year}",
        report,
        f"monthly-report-{year}-{month:02d}.pdf",
    )


@router.get("/yearly/{year}/pdf")
async def yearly_report_pdf(
    year: int,
    aggregator: AggregatorDep,
    renderer: RendererDep,
    user_id: CurrentUserId,
) -> StreamingResponse:
    _validated(validate_report_year, year)
    report = await _generate(aggregator.yearly_report(year), "yearly report")
    return _pdf(renderer, f"Yearly Report {year}", report, f"yearly-report-{year}.pdf")


@router.get("/range/pdf")
async def range_report_pdf(
    aggregator: AggregatorDep,
    renderer: RendererDep,
    user_id: CurrentUserId,
    start: str | None = Query(None, alias="from"),
    end: str | None = Query(None, alias="to"),
) -> StreamingResponse:
    start_date, end_date = _validated(parse_date_range, start, end)
    report = await _generate(aggregator.range_report(start_date, end_date), "range report")
    return _pdf(
        renderer,
        f"Financial Report {start_date.isoformat()} to {end_date.isoformat()}",
        report,
        f"custom-report-{start_date.isoformat()}-to-{end_date.isoformat()}.pdf",
    )
