"""Tests for the read-through envelope cache."""

import json

import pytest

from bursar.services.cache import ReadThroughCache, create_redis_client, mark_cached
from tests.fakes import InMemoryCacheStore


def _envelope(count: int = 1) -> dict:
    return {"status": "success", "data": {"payments": [], "count": count}}


def test_mark_cached_does_not_mutate_original():
    original = _envelope()
    marked = mark_cached(original)

    assert marked["data"]["cached"] is True
    assert "cached" not in original["data"]


def test_create_redis_client_without_url_disables_cache(monkeypatch):
    from bursar.services import cache as cache_module

    monkeypatch.setattr(cache_module.settings, "redis_url", None)
    assert create_redis_client() is None


def test_create_redis_client_with_url_builds_client():
    client = create_redis_client("redis://localhost:6379/0")

    assert client is not None


@pytest.mark.asyncio
async def test_miss_computes_and_stores_with_ttl():
    store = InMemoryCacheStore()
    cache = ReadThroughCache(store)
    calls = 0

    async def compute():
        nonlocal calls
        calls += 1
        return _envelope()

    result = await cache.fetch("payments:all:k", 300, compute)

    assert calls == 1
    assert "cached" not in result["data"]
    assert store.ttls["payments:all:k"] == 300
    assert json.loads(store.data["payments:all:k"]) == _envelope()


@pytest.mark.asyncio
async def test_hit_skips_compute_and_marks_cached():
    store = InMemoryCacheStore()
    store.data["payments:all:k"] = json.dumps(_envelope(7))
    cache = ReadThroughCache(store)

    async def compute():
        raise AssertionError("compute must not run on a hit")

    result = await cache.fetch("payments:all:k", 300, compute)

    assert result["data"]["cached"] is True
    assert result["data"]["count"] == 7


@pytest.mark.asyncio
async def test_unreachable_store_falls_through():
    store = InMemoryCacheStore()
    store.fail_on = {"get", "setex"}
    cache = ReadThroughCache(store)

    async def compute():
        return _envelope(3)

    result = await cache.fetch("payments:all:k", 300, compute)

    assert result == _envelope(3)
    assert store.data == {}


@pytest.mark.asyncio
async def test_corrupt_entry_is_treated_as_miss():
    store = InMemoryCacheStore()
    store.data["k"] = "{not json"
    cache = ReadThroughCache(store)

    assert await cache.get_json("k") is None


@pytest.mark.asyncio
async def test_non_object_entry_is_discarded():
    store = InMemoryCacheStore()
    store.data["k"] = json.dumps([1, 2, 3])
    cache = ReadThroughCache(store)

    assert await cache.get_json("k") is None


@pytest.mark.asyncio
async def test_without_store_every_fetch_computes():
    cache = ReadThroughCache(None)
    calls = 0

    async def compute():
        nonlocal calls
        calls += 1
        return _envelope()

    await cache.fetch("k", 300, compute)
    await cache.fetch("k", 300, compute)

    assert cache.enabled is False
    assert calls == 2
    assert await cache.set_json("k", _envelope(), 300) is False


@pytest.mark.asyncio
async def test_compute_failure_propagates_and_stores_nothing():
    store = InMemoryCacheStore()
    cache = ReadThroughCache(store)

    async def compute():
        raise RuntimeError("ledger down")

    with pytest.raises(RuntimeError, match="ledger down"):
        await cache.fetch("k", 300, compute)
    assert store.data == {}
