"""Deterministic cache keys derived from query parameters.

List keys spell out every recognized parameter in a fixed order, with an
empty value when the parameter is absent, e.g.::

    payments:all:page:1:limit:10:search::feeType:NEW_YEAR:...

Callers pass *effective* parameters (defaults already applied), so two
requests that resolve to the same query always share a key. Free-text values
have ``%`` and ``:`` percent-escaped so a value cannot forge other segments.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from datetime import date, datetime, timedelta
from decimal import Decimal

PAYMENTS_NAMESPACE = "payments"
EXPENSES_NAMESPACE = "expenses"
DASHBOARD_PREFIX = "dashboard:report"

PAYMENT_LIST_FIELDS: tuple[str, ...] = (
    "page",
    "limit",
    "search",
    "feeType",
    "paymentMethod",
    "startDate",
    "endDate",
)

EXPENSE_LIST_FIELDS: tuple[str, ...] = (
    "page",
    "limit",
    "search",
    "category",
    "vendor",
    "startDate",
    "endDate",
    "minAmount",
    "maxAmount",
)


def _key_value(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, enum.Enum):
        return str(value.value)
    if isinstance(value, Decimal):
        # 100, 100.0 and 100.00 are the same filter
        normalized = value.normalize()
        return format(normalized, "f")
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value).replace("%", "%25").replace(":", "%3A")


def build_list_cache_key(
    namespace: str, fields: tuple[str, ...], params: Mapping[str, object]
) -> str:
    """Build ``{namespace}:all:{name}:{value}:...`` over ``fields`` in order.

    Raises:
        ValueError: if ``params`` names a parameter outside ``fields``; such a
            parameter would otherwise be silently ignored and collide.
    """
    unknown = set(params) - set(fields)
    if unknown:
        raise ValueError(f"Unrecognized cache key parameters: {sorted(unknown)}")
    segments = ":".join(f"{name}:{_key_value(params.get(name))}" for name in fields)
    return f"{namespace}:all:{segments}"


def build_payments_cache_key(params: Mapping[str, object]) -> str:
    return build_list_cache_key(PAYMENTS_NAMESPACE, PAYMENT_LIST_FIELDS, params)


def build_expenses_cache_key(params: Mapping[str, object]) -> str:
    return build_list_cache_key(EXPENSES_NAMESPACE, EXPENSE_LIST_FIELDS, params)


def namespace_pattern(namespace: str) -> str:
    return f"{namespace}:*"


def dashboard_cache_key(moment: date | datetime) -> str:
    """Per-day dashboard key; the month segment is zero-based (January is 0)."""
    return f"{DASHBOARD_PREFIX}:{moment.year}:{moment.month - 1}:{moment.day}"


def dashboard_keys_to_invalidate(moment: date | datetime) -> list[str]:
    """Today's and yesterday's dashboard keys.

    Yesterday is included so a backdated entry recorded after midnight does
    not leave yesterday's snapshot stale.
    """
    return [dashboard_cache_key(moment), dashboard_cache_key(moment - timedelta(days=1))]
