"""Unit tests for the infrastructure layer (cache, Redis, Mongo helpers)."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from infrastructure.cache.dual_cache import DualCache
from infrastructure.cache.redis_client import create_redis_client
from infrastructure.mongo import TransactionRunner


# ── Helpers ───────────────────────────────────────────────────────────────────


def _fake_redis(live=None, stale=None):
    """Return a mock async Redis client with separate live/stale copies."""
    r = AsyncMock()

    async def get(key):
        if key.endswith(":live"):
            return live
        if key.endswith(":stale"):
            return stale
        return None

    r.get.side_effect = get
    r.setex.return_value = True
    r.delete.return_value = 1
    r.set.return_value = True
    return r


# ── DualCache ─────────────────────────────────────────────────────────────────


class TestDualCache:
    async def test_no_redis_calls_query(self):
        cache = DualCache(None)
        query = AsyncMock(return_value={"labels": []})
        assert await cache.get_or_set("stats:1", query) == {"labels": []}
        query.assert_awaited_once()

    async def test_live_hit_skips_query(self):
        r = _fake_redis(live=json.dumps({"labels": ["a"]}))
        query = AsyncMock()
        result = await DualCache(r).get_or_set("stats:1", query)
        assert result == {"labels": ["a"]}
        query.assert_not_awaited()

    async def test_miss_computes_and_stores_both_copies(self):
        r = _fake_redis()
        query = AsyncMock(return_value={"labels": ["b"]})
        cache = DualCache(r, primary_ttl=15, stale_ttl=120)
        result = await cache.get_or_set("stats:1", query)
        assert result == {"labels": ["b"]}
        keys = {call.args[0]: call.args[1] for call in r.setex.await_args_list}
        assert keys == {"stats:1:live": 15, "stats:1:stale": 120}
        r.delete.assert_awaited_with("stats:1:lock")

    async def test_serializer_applied_before_store(self):
        r = _fake_redis()
        obj = MagicMock()
        query = AsyncMock(return_value=obj)
        result = await DualCache(r).get_or_set(
            "stats:1", query, serializer_fn=lambda o: {"labels": ["c"]}
        )
        assert result is obj
        stored = r.setex.await_args_list[0].args[2]
        assert json.loads(stored) == {"labels": ["c"]}

    async def test_lock_contention_returns_none(self):
        r = _fake_redis()
        r.set.return_value = None
        query = AsyncMock()
        assert await DualCache(r).get_or_set("stats:1", query) is None
        query.assert_not_awaited()

    async def test_stale_hit_refreshes_in_background(self):
        r = _fake_redis(stale=json.dumps({"labels": ["old"]}))
        query = AsyncMock(return_value={"labels": ["new"]})
        cache = DualCache(r)
        result = await cache.get_or_set("stats:1", query)
        assert result == {"labels": ["old"]}
        await asyncio.gather(*cache._tasks)
        query.assert_awaited_once()
        assert r.setex.await_count == 2

    async def test_redis_error_falls_back_to_query(self):
        r = AsyncMock()
        r.get.side_effect = RedisConnectionError("down")
        query = AsyncMock(return_value={"labels": []})
        assert await DualCache(r).get_or_set("stats:1", query) == {"labels": []}


# ── create_redis_client ───────────────────────────────────────────────────────


class TestCreateRedisClient:
    async def test_not_configured(self):
        assert await create_redis_client(None) is None

    async def test_unreachable_returns_none(self, mocker):
        client = AsyncMock()
        client.ping.side_effect = RedisConnectionError("refused")
        mocker.patch(
            "infrastructure.cache.redis_client.aioredis.from_url", return_value=client
        )
        assert await create_redis_client("redis://localhost:6379") is None

    async def test_connected(self, mocker):
        client = AsyncMock()
        client.ping.return_value = True
        mocker.patch(
            "infrastructure.cache.redis_client.aioredis.from_url", return_value=client
        )
        assert await create_redis_client("redis://localhost:6379") is client


# ── TransactionRunner ─────────────────────────────────────────────────────────


class TestTransactionRunner:
    async def test_runs_callback_in_session_transaction(self):
        session = MagicMock()

        async def with_transaction(callback):
            return await callback(session)

        session.with_transaction = with_transaction
        session_cm = MagicMock()
        session_cm.__aenter__ = AsyncMock(return_value=session)
        session_cm.__aexit__ = AsyncMock(return_value=False)
        client = MagicMock()
        client.start_session.return_value = session_cm

        seen = []

        async def callback(s):
            seen.append(s)
            return 3

        assert await TransactionRunner(client).run(callback) == 3
        assert seen == [session]
        session_cm.__aexit__.assert_awaited_once()
