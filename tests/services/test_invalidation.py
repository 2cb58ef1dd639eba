"""Tests for post-commit cache invalidation."""

from datetime import datetime

import pytest

from bursar.services.invalidation import CacheInvalidator
from tests.fakes import InMemoryCacheStore

FIXED_NOW = datetime(2025, 3, 15, 10, 0)


def _seeded_store() -> InMemoryCacheStore:
    store = InMemoryCacheStore()
    store.data.update(
        {
            "payments:all:page:1:limit:10": "{}",
            "payments:all:page:2:limit:10": "{}",
            "expenses:all:page:1:limit:10": "{}",
            "dashboard:report:2025:2:15": "{}",
            "dashboard:report:2025:2:14": "{}",
            "dashboard:report:2025:2:13": "{}",
        }
    )
    return store


@pytest.mark.asyncio
async def test_payment_write_clears_payment_namespace_and_dashboard():
    store = _seeded_store()
    invalidator = CacheInvalidator(store, clock=lambda: FIXED_NOW)

    result = await invalidator.invalidate_payments()

    assert result.ok
    assert sorted(result.deleted_keys) == [
        "payments:all:page:1:limit:10",
        "payments:all:page:2:limit:10",
    ]
    assert result.dashboard_keys == ["dashboard:report:2025:2:15", "dashboard:report:2025:2:14"]
    assert set(store.data) == {"expenses:all:page:1:limit:10", "dashboard:report:2025:2:13"}


@pytest.mark.asyncio
async def test_expense_write_leaves_payment_lists_alone():
    store = _seeded_store()
    invalidator = CacheInvalidator(store, clock=lambda: FIXED_NOW)

    result = await invalidator.invalidate_expenses()

    assert result.deleted_keys == ["expenses:all:page:1:limit:10"]
    assert "payments:all:page:1:limit:10" in store.data
    assert "dashboard:report:2025:2:15" not in store.data


@pytest.mark.asyncio
async def test_empty_namespace_still_clears_dashboard():
    store = InMemoryCacheStore()
    store.data["dashboard:report:2025:2:15"] = "{}"
    invalidator = CacheInvalidator(store, clock=lambda: FIXED_NOW)

    result = await invalidator.invalidate_payments()

    assert result.deleted_keys == []
    assert store.data == {}


@pytest.mark.asyncio
async def test_failed_sweep_is_reported_not_raised():
    store = _seeded_store()
    store.fail_on = {"keys"}
    invalidator = CacheInvalidator(store, clock=lambda: FIXED_NOW)

    result = await invalidator.invalidate_payments()

    assert not result.ok
    assert result.errors[0].startswith("payments:*")
    # Dashboard deletion is attempted independently
    assert result.dashboard_keys == ["dashboard:report:2025:2:15", "dashboard:report:2025:2:14"]


@pytest.mark.asyncio
async def test_failed_delete_records_both_errors():
    store = _seeded_store()
    store.fail_on = {"delete"}
    invalidator = CacheInvalidator(store, clock=lambda: FIXED_NOW)

    result = await invalidator.invalidate_expenses()

    assert len(result.errors) == 2
    assert result.errors[1].startswith("dashboard:")


@pytest.mark.asyncio
async def test_without_store_invalidation_is_skipped():
    result = await CacheInvalidator(None).invalidate_payments()

    assert result.skipped is True
    assert result.ok
