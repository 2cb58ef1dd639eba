"""Post-commit cache invalidation for ledger writes.

Every successful create/update/delete of a payment or expense clears the
whole entity namespace plus today's and yesterday's dashboard keys. The
sweep over-invalidates on purpose: no write ever needs to know which
filter-parameterized list keys it affects.

Invalidation is best effort. Failures are reported in the returned
:class:`InvalidationResult` and logged; they never roll back the write.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from bursar.logger import get_logger
from bursar.services.cache import CacheStore
from bursar.services.cache_keys import (
    EXPENSES_NAMESPACE,
    PAYMENTS_NAMESPACE,
    dashboard_keys_to_invalidate,
    namespace_pattern,
)

logger = get_logger(__name__)


@dataclass
class InvalidationResult:
    """Outcome of one invalidation sweep."""

    namespace: str
    deleted_keys: list[str] = field(default_factory=list)
    dashboard_keys: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors


class CacheInvalidator:
    """Clears cache namespaces that depend on a ledger."""

    def __init__(
        self,
        store: CacheStore | None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.clock = clock

    async def invalidate_payments(self) -> InvalidationResult:
        return await self._sweep(PAYMENTS_NAMESPACE)

    async def invalidate_expenses(self) -> InvalidationResult:
        return await self._sweep(EXPENSES_NAMESPACE)

    async def _sweep(self, namespace: str) -> InvalidationResult:
        result = InvalidationResult(namespace=namespace)
        if self.store is None:
            result.skipped = True
            return result

        pattern = namespace_pattern(namespace)
        try:
            keys = list(await self.store.keys(pattern))
            if keys:
                await self.store.delete(*keys)
            result.deleted_keys = keys
        except Exception as exc:
            result.errors.append(f"{pattern}: {exc}")

        # Separate step so a failed namespace sweep still clears the dashboard
        dashboard_keys = dashboard_keys_to_invalidate(self.clock())
        try:
            await self.store.delete(*dashboard_keys)
            result.dashboard_keys = dashboard_keys
        except Exception as exc:
            result.errors.append(f"dashboard: {exc}")

        if result.ok:
            logger.info(
                "Cache invalidated",
                namespace=namespace,
                deleted=len(result.deleted_keys),
                dashboard_keys=result.dashboard_keys,
            )
        else:
            logger.warning("Cache invalidation incomplete", namespace=namespace, errors=result.errors)
        return result
