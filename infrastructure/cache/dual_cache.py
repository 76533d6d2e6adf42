"""Async read-through cache with a stale copy and a refresh lock.

Used for dashboard stats, which the client polls:
  1. Live copy present → return it.
  2. Only the stale copy present → return it and refresh in the background
     if the refresh lock is free.
  3. Nothing cached → compute under the lock and store both copies.
  4. Lock held by another request → return None; the caller computes
     directly instead of waiting.

Without a Redis client every call goes straight to ``query_fn``.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from shared.logging import get_logger

log = get_logger(__name__)


class DualCache:
    def __init__(
        self,
        redis_client: Optional[aioredis.Redis],
        primary_ttl: int = 15,
        stale_ttl: int = 120,
        lock_ttl: int = 10,
    ) -> None:
        self._redis = redis_client
        self.primary_ttl = primary_ttl
        self.stale_ttl = stale_ttl
        self.lock_ttl = lock_ttl
        self._tasks: set[asyncio.Task] = set()

    async def _lock(self, key: str) -> bool:
        """Acquire a Redis SET NX EX lock. Returns True if acquired."""
        result = await self._redis.set(key, "1", nx=True, ex=self.lock_ttl)
        return bool(result)

    async def _store(self, base_key: str, payload: str) -> None:
        await self._redis.setex(f"{base_key}:live", self.primary_ttl, payload)
        await self._redis.setex(f"{base_key}:stale", self.stale_ttl, payload)

    async def get_or_set(
        self,
        base_key: str,
        query_fn: Callable[[], Awaitable[Any]],
        serializer_fn: Optional[Callable[[Any], Any]] = None,
    ) -> Any:
        """Return the cached JSON value, fresh ``query_fn()`` data, or None."""
        if self._redis is None:
            return await query_fn()

        def _serialize(data: Any) -> str:
            return json.dumps(serializer_fn(data) if serializer_fn else data)

        lock_key = f"{base_key}:lock"
        try:
            raw = await self._redis.get(f"{base_key}:live")
            if raw:
                return json.loads(raw)

            stale = await self._redis.get(f"{base_key}:stale")
            if stale:
                if await self._lock(lock_key):
                    task = asyncio.create_task(
                        self._refresh(base_key, query_fn, _serialize)
                    )
                    self._tasks.add(task)
                    task.add_done_callback(self._tasks.discard)
                return json.loads(stale)

            if not await self._lock(lock_key):
                log.debug("dual_cache_lock_contention", base_key=base_key)
                return None
        except RedisError as e:
            log.warning(
                "dual_cache_unavailable",
                base_key=base_key,
                error=str(e),
                error_type=type(e).__name__,
            )
            return await query_fn()

        data = await query_fn()
        try:
            await self._store(base_key, _serialize(data))
            await self._redis.delete(lock_key)
        except RedisError as e:
            # lock expires on its own after lock_ttl
            log.warning("dual_cache_store_failed", base_key=base_key, error=str(e))
        return data

    async def _refresh(
        self,
        base_key: str,
        query_fn: Callable[[], Awaitable[Any]],
        serialize: Callable[[Any], str],
    ) -> None:
        """Background refresh — errors are logged, never raised."""
        try:
            await self._store(base_key, serialize(await query_fn()))
            await self._redis.delete(f"{base_key}:lock")
        except Exception as e:
            log.error(
                "cache_refresh_failed",
                base_key=base_key,
                error=str(e),
                error_type=type(e).__name__,
            )
