"""Read-through cache for list and dashboard responses.

The cache holds complete JSend envelopes serialized as JSON. It is strictly
an optimization: every failure (store unreachable, timeout, corrupt entry,
unserializable payload) is logged as a warning and the caller falls through
to the ledger. Nothing here ever raises into a request handler.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import redis.asyncio as redis_async

from bursar.config import settings
from bursar.logger import get_logger

logger = get_logger(__name__)

Envelope = dict[str, Any]


class CacheStore(Protocol):
    """The subset of key-value commands the cache layer relies on."""

    async def get(self, key: str) -> str | None: ...

    async def setex(self, key: str, seconds: int, value: str) -> Any: ...

    async def keys(self, pattern: str) -> list[str]: ...

    async def delete(self, *keys: str) -> int: ...


def create_redis_client(url: str | None = None) -> redis_async.Redis | None:
    """Build the shared async Redis client, or ``None`` when caching is disabled.

    No connection is opened here; the first command connects lazily and is
    bounded by the configured connect/command timeouts.
    """
    url = url or settings.redis_url
    if not url:
        logger.info("Cache disabled (no REDIS_URL configured)")
        return None
    return redis_async.from_url(
        url,
        decode_responses=True,
        socket_connect_timeout=settings.redis_connect_timeout_seconds,
        socket_timeout=settings.redis_command_timeout_seconds,
    )


def mark_cached(envelope: Envelope) -> Envelope:
    """Return a copy of ``envelope`` whose ``data`` carries ``cached: true``."""
    data = envelope.get("data")
    if not isinstance(data, dict):
        data = {}
    return {**envelope, "data": {**data, "cached": True}}


class ReadThroughCache:
    """Envelope cache over a :class:`CacheStore`.

    A ``None`` store turns every read into a miss and every write into a
    no-op, which is how the service runs without Redis.
    """

    def __init__(self, store: CacheStore | None) -> None:
        self.store = store

    @property
    def enabled(self) -> bool:
        return self.store is not None

    async def get_json(self, key: str) -> Envelope | None:
        if self.store is None:
            return None
        try:
            raw = await self.store.get(key)
            if raw is None:
                return None
            payload = json.loads(raw)
        except Exception as exc:
            logger.warning("Cache read failed, falling through", key=key, error=str(exc))
            return None
        if not isinstance(payload, dict):
            logger.warning("Discarding malformed cache entry", key=key)
            return None
        return payload

    async def set_json(self, key: str, envelope: Envelope, ttl_seconds: int) -> bool:
        if self.store is None:
            return False
        try:
            await self.store.setex(key, ttl_seconds, json.dumps(envelope))
        except Exception as exc:
            logger.warning("Cache write failed", key=key, error=str(exc))
            return False
        return True

    async def fetch(
        self,
        key: str,
        ttl_seconds: int,
        compute: Callable[[], Awaitable[Envelope]],
    ) -> Envelope:
        """Serve ``key`` from the cache, or compute, store and return it.

        Exceptions from ``compute`` propagate unchanged; nothing is stored
        for a failed computation.
        """
        if not self.enabled:
            return await compute()

        cached = await self.get_json(key)
        if cached is not None:
            logger.debug("Cache hit", key=key)
            return mark_cached(cached)

        logger.debug("Cache miss", key=key)
        envelope = await compute()
        await self.set_json(key, envelope, ttl_seconds)
        return envelope
