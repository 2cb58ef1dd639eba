"""Common FastAPI dependencies for consistent type annotations.

Usage:
    from bursar.deps import CacheDep, CurrentUserId, DbSession

    async def my_endpoint(db: DbSession, user_id: CurrentUserId, cache: CacheDep):
        ...

The cache store, invalidator, aggregator and renderer are resolved per
request so tests can swap any of them through ``app.dependency_overrides``.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.auth import get_current_user_id
from bursar.database import get_db, get_session_maker
from bursar.services.cache import CacheStore, ReadThroughCache
from bursar.services.invalidation import CacheInvalidator
from bursar.services.ledger import LedgerStore
from bursar.services.rendering import PdfReportRenderer, ReportRenderer
from bursar.services.reporting import ReportAggregator


def get_cache_store(request: Request) -> CacheStore | None:
    """The shared Redis client created at startup, if any."""
    return getattr(request.app.state, "redis", None)


def get_cache(store: CacheStore | None = Depends(get_cache_store)) -> ReadThroughCache:
    return ReadThroughCache(store)


def get_invalidator(store: CacheStore | None = Depends(get_cache_store)) -> CacheInvalidator:
    return CacheInvalidator(store)


def get_aggregator() -> ReportAggregator:
    return ReportAggregator(LedgerStore(get_session_maker()))


def get_renderer() -> ReportRenderer:
    return PdfReportRenderer()


DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
CacheDep = Annotated[ReadThroughCache, Depends(get_cache)]
InvalidatorDep = Annotated[CacheInvalidator, Depends(get_invalidator)]
AggregatorDep = Annotated[ReportAggregator, Depends(get_aggregator)]
RendererDep = Annotated[ReportRenderer, Depends(get_renderer)]

__all__ = [
    "AggregatorDep",
    "CacheDep",
    "CurrentUserId",
    "DbSession",
    "InvalidatorDep",
    "RendererDep",
    "get_aggregator",
    "get_cache",
    "get_cache_store",
    "get_invalidator",
    "get_renderer",
]
