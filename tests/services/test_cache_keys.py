"""Tests for cache key derivation."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from bursar.models import FeeType, PaymentMethod
from bursar.services.cache_keys import (
    build_expenses_cache_key,
    build_payments_cache_key,
    dashboard_cache_key,
    dashboard_keys_to_invalidate,
    namespace_pattern,
)


def test_payments_key_lists_every_field_in_order():
    key = build_payments_cache_key({"page": 1, "limit": 10})

    assert key == (
        "payments:all:page:1:limit:10:search::feeType::paymentMethod::startDate::endDate:"
    )


def test_payments_key_is_independent_of_param_order():
    first = build_payments_cache_key(
        {"page": 2, "limit": 20, "feeType": FeeType.EXAM, "paymentMethod": PaymentMethod.CASH}
    )
    second = build_payments_cache_key(
        {"paymentMethod": PaymentMethod.CASH, "feeType": FeeType.EXAM, "limit": 20, "page": 2}
    )

    assert first == second
    assert ":feeType:EXAM:" in first
    assert ":paymentMethod:CASH:" in first


def test_distinct_filters_produce_distinct_keys():
    keys = {
        build_payments_cache_key({"page": 1, "limit": 10}),
        build_payments_cache_key({"page": 2, "limit": 10}),
        build_payments_cache_key({"page": 1, "limit": 10, "search": "ali"}),
        build_payments_cache_key({"page": 1, "limit": 10, "startDate": date(2025, 3, 1)}),
        build_payments_cache_key({"page": 1, "limit": 10, "endDate": date(2025, 3, 1)}),
    }

    assert len(keys) == 5


def test_expenses_key_normalizes_decimal_amounts():
    a = build_expenses_cache_key({"page": 1, "limit": 10, "minAmount": Decimal("100")})
    b = build_expenses_cache_key({"page": 1, "limit": 10, "minAmount": Decimal("100.00")})

    assert a == b
    assert a.startswith("expenses:all:")
    assert ":minAmount:100:" in a


def test_unknown_parameter_is_rejected():
    with pytest.raises(ValueError, match="Unrecognized cache key parameters"):
        build_payments_cache_key({"page": 1, "sort": "amount"})


def test_namespace_pattern():
    assert namespace_pattern("payments") == "payments:*"


def test_dashboard_key_uses_zero_based_month():
    assert dashboard_cache_key(date(2025, 1, 15)) == "dashboard:report:2025:0:15"
    assert dashboard_cache_key(datetime(2025, 12, 31, 23, 59)) == "dashboard:report:2025:11:31"


def test_dashboard_invalidation_covers_today_and_yesterday():
    keys = dashboard_keys_to_invalidate(datetime(2025, 3, 1, 0, 5))

    assert keys == ["dashboard:report:2025:2:1", "dashboard:report:2025:1:28"]


def test_free_text_cannot_forge_other_segments():
    forged = build_expenses_cache_key({"page": 1, "limit": 10, "search": "a:category:b"})
    honest = build_expenses_cache_key({"page": 1, "limit": 10, "search": "a", "category": "b:category:"})

    assert forged != honest
    assert ":search:a%3Acategory%3Ab:category::" in forged


def test_plain_values_keep_readable_keys():
    key = build_expenses_cache_key({"page": 1, "limit": 10, "search": "rent 50%", "vendor": "Acme"})

    assert key == (
        "expenses:all:page:1:limit:10:search:rent 50%25:category::vendor:Acme"
        ":startDate::endDate::minAmount::maxAmount:"
    )
