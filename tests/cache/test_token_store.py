"""Tests for the token store backends."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from truedope.cache.store import MemoryTokenStore, RedisTokenStore
from truedope.shared.errors.exceptions import TransientStoreError


def redis_store(client) -> RedisTokenStore:
    return RedisTokenStore(
        "redis://localhost:6379/0",
        timeout_seconds=0.05,
        retry_backoff_seconds=0,
        client=client,
    )


# MemoryTokenStore


class TestMemoryTokenStore:
    async def test_set_get_and_expiry(self):
        ticks = [0.0]
        store = MemoryTokenStore(clock=lambda: ticks[0])

        await store.set("k", "v", ttl=10)
        assert await store.get("k") == "v"

        ticks[0] = 10.0
        assert await store.get("k") is None

    async def test_getdel_returns_value_once(self):
        store = MemoryTokenStore()
        await store.set("k", "v", ttl=60)

        assert await store.getdel("k") == "v"
        assert await store.getdel("k") is None

    async def test_consume_moves_value_to_marker_with_remaining_ttl(self):
        ticks = [0.0]
        store = MemoryTokenStore(clock=lambda: ticks[0])
        await store.set("k", "v", ttl=10)
        ticks[0] = 4.0

        assert await store.consume("k", "k:used") == "v"
        assert await store.get("k") is None
        assert await store.get("k:used") == "v"

        ticks[0] = 10.0
        assert await store.get("k:used") is None

    async def test_consume_missing_key_writes_no_marker(self):
        store = MemoryTokenStore()

        assert await store.consume("k", "k:used") is None
        assert await store.get("k:used") is None

    async def test_concurrent_consume_has_one_winner(self):
        store = MemoryTokenStore()
        await store.set("k", "v", ttl=60)

        results = await asyncio.gather(*(store.consume("k", "k:used") for _ in range(5)))

        assert results.count("v") == 1
        assert await store.get("k:used") == "v"

    async def test_incr_counts_from_zero_and_reads_with_zero_amount(self):
        store = MemoryTokenStore()

        assert await store.incr("n", ttl=60, amount=0) == 0
        assert await store.incr("n", ttl=60) == 1
        assert await store.incr("n", ttl=60) == 2
        assert await store.incr("n", ttl=60, amount=0) == 2

    async def test_incr_counter_expires(self):
        ticks = [0.0]
        store = MemoryTokenStore(clock=lambda: ticks[0])
        await store.incr("n", ttl=5)

        ticks[0] = 6.0

        assert await store.incr("n", ttl=5, amount=0) == 0

    async def test_delete_counts_live_keys(self):
        store = MemoryTokenStore()
        await store.set("a", "1", ttl=60)
        await store.sadd("s", "m", ttl=60)

        assert await store.delete("a", "s", "missing") == 2

    async def test_set_operations(self):
        store = MemoryTokenStore()
        await store.sadd("s", "a", ttl=60)
        await store.sadd("s", "b", ttl=60)

        assert await store.smembers("s") == {"a", "b"}
        assert await store.srem("s", "a", "zzz") == 1
        assert await store.smembers("s") == {"b"}
        assert await store.srem("s", "b") == 1
        assert await store.smembers("s") == set()

    async def test_set_expires_as_a_whole(self):
        ticks = [0.0]
        store = MemoryTokenStore(clock=lambda: ticks[0])
        await store.sadd("s", "a", ttl=5)

        ticks[0] = 6.0

        assert await store.smembers("s") == set()

    async def test_close_clears_everything(self):
        store = MemoryTokenStore()
        await store.set("k", "v", ttl=60)

        await store.close()

        assert await store.get("k") is None


# RedisTokenStore


class TestRedisTokenStore:
    async def test_get_retries_once_on_connection_error(self):
        client = AsyncMock()
        client.get.side_effect = [RedisConnectionError("reset"), "value"]

        assert await redis_store(client).get("k") == "value"
        assert client.get.await_count == 2

    async def test_get_gives_up_after_retry(self):
        client = AsyncMock()
        client.get.side_effect = RedisConnectionError("down")

        with pytest.raises(TransientStoreError) as exc_info:
            await redis_store(client).get("k")

        assert exc_info.value.status_code == 503
        assert client.get.await_count == 2

    async def test_getdel_is_not_retried(self):
        client = AsyncMock()
        client.getdel.side_effect = RedisConnectionError("reset")

        with pytest.raises(TransientStoreError):
            await redis_store(client).getdel("k")

        assert client.getdel.await_count == 1

    async def test_consume_runs_one_script_over_both_keys(self):
        client = AsyncMock()
        client.eval.return_value = "record"

        assert await redis_store(client).consume("k", "k:used") == "record"

        script, numkeys, *keys = client.eval.await_args.args
        assert "PTTL" in script
        assert numkeys == 2
        assert keys == ["k", "k:used"]

    async def test_consume_is_not_retried(self):
        client = AsyncMock()
        client.eval.side_effect = RedisConnectionError("reset")

        with pytest.raises(TransientStoreError):
            await redis_store(client).consume("k", "k:used")

        assert client.eval.await_count == 1

    async def test_incr_sets_expiry_in_the_same_pipeline(self):
        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=[3, True])
        client = AsyncMock()
        client.pipeline = MagicMock(return_value=pipe)

        assert await redis_store(client).incr("n", ttl=30) == 3

        pipe.incrby.assert_called_once_with("n", 1)
        pipe.expire.assert_called_once_with("n", 30)

    async def test_incr_is_not_retried(self):
        pipe = MagicMock()
        pipe.execute = AsyncMock(side_effect=RedisConnectionError("reset"))
        client = AsyncMock()
        client.pipeline = MagicMock(return_value=pipe)

        with pytest.raises(TransientStoreError):
            await redis_store(client).incr("n", ttl=30)

        assert pipe.execute.await_count == 1

    async def test_slow_call_times_out(self):
        async def slow(*args, **kwargs):
            await asyncio.sleep(1)

        client = AsyncMock()
        client.get.side_effect = slow

        with pytest.raises(TransientStoreError):
            await redis_store(client).get("k")

    async def test_set_passes_ttl(self):
        client = AsyncMock()

        await redis_store(client).set("k", "v", ttl=30)

        client.set.assert_awaited_once_with("k", "v", ex=30)

    async def test_delete_without_keys_skips_the_call(self):
        client = AsyncMock()

        assert await redis_store(client).delete() == 0
        client.delete.assert_not_called()

    async def test_ping_failure_reports_false(self):
        client = AsyncMock()
        client.ping.side_effect = RedisConnectionError("down")

        assert await redis_store(client).ping() is False

    async def test_close(self):
        client = AsyncMock()

        await redis_store(client).close()

        client.aclose.assert_awaited_once()
