"""Token store backends: Redis for deployments, in-process memory for tests and local runs."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Protocol

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from truedope.shared.errors.exceptions import TransientStoreError

logger = logging.getLogger(__name__)


class TokenStore(Protocol):
    """Key-value operations the token ledgers rely on.

    All TTLs are in seconds. ``getdel`` and ``consume`` must be atomic: of two
    concurrent callers for the same key, at most one observes the value.
    """

    async def set(self, key: str, value: str, ttl: int) -> None: ...

    async def get(self, key: str) -> str | None: ...

    async def getdel(self, key: str) -> str | None: ...

    async def consume(self, key: str, marker_key: str) -> str | None:
        """Delete ``key`` and leave its value under ``marker_key`` for the rest of its TTL."""
        ...

    async def incr(self, key: str, ttl: int, amount: int = 1) -> int: ...

    async def delete(self, *keys: str) -> int: ...

    async def sadd(self, key: str, member: str, ttl: int) -> None: ...

    async def srem(self, key: str, *members: str) -> int: ...

    async def smembers(self, key: str) -> set[str]: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


class RedisTokenStore:
    """Redis-backed token store with per-call timeouts and a single retry for idempotent calls."""

    # KEYS[1] = live key, KEYS[2] = marker key
    _CONSUME_SCRIPT = """
    local value = redis.call('GET', KEYS[1])
    if not value then
        return nil
    end
    local ttl = redis.call('PTTL', KEYS[1])
    redis.call('DEL', KEYS[1])
    if ttl > 0 then
        redis.call('SET', KEYS[2], value, 'PX', ttl)
    end
    return value
    """

    def __init__(
        self,
        redis_url: str,
        *,
        timeout_seconds: float = 5.0,
        retry_backoff_seconds: float = 0.2,
        client: aioredis.Redis | None = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.retry_backoff_seconds = retry_backoff_seconds
        self.client = client or aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=timeout_seconds,
            socket_connect_timeout=timeout_seconds,
        )

    async def _call[T](self, name: str, op: Callable[[], Awaitable[T]], *, retry: bool = True) -> T:
        attempts = 2 if retry else 1
        for attempt in range(1, attempts + 1):
            try:
                async with asyncio.timeout(self.timeout_seconds):
                    return await op()
            except (RedisConnectionError, RedisTimeoutError, TimeoutError) as e:
                if attempt < attempts:
                    logger.warning(f"Token store {name} failed ({e!r}), retrying")
                    await asyncio.sleep(self.retry_backoff_seconds)
                    continue
                logger.error(f"Token store {name} failed: {e!r}")
                raise TransientStoreError() from e
        raise AssertionError("unreachable")

    async def set(self, key: str, value: str, ttl: int) -> None:
        await self._call("set", lambda: self.client.set(key, value, ex=max(1, ttl)))

    async def get(self, key: str) -> str | None:
        return await self._call("get", lambda: self.client.get(key))

    async def getdel(self, key: str) -> str | None:
        # Not retried: a lost reply after a successful delete must not be replayed.
        return await self._call("getdel", lambda: self.client.getdel(key), retry=False)

    async def consume(self, key: str, marker_key: str) -> str | None:
        return await self._call(
            "consume",
            lambda: self.client.eval(self._CONSUME_SCRIPT, 2, key, marker_key),
            retry=False,
        )

    async def incr(self, key: str, ttl: int, amount: int = 1) -> int:
        async def op() -> int:
            pipe = self.client.pipeline()
            pipe.incrby(key, amount)
            pipe.expire(key, max(1, ttl))
            value, _ = await pipe.execute()
            return int(value)

        return await self._call("incr", op, retry=amount == 0)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self._call("delete", lambda: self.client.delete(*keys)))

    async def sadd(self, key: str, member: str, ttl: int) -> None:
        async def op() -> None:
            pipe = self.client.pipeline()
            pipe.sadd(key, member)
            pipe.expire(key, max(1, ttl))
            await pipe.execute()

        await self._call("sadd", op)

    async def srem(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return int(await self._call("srem", lambda: self.client.srem(key, *members)))

    async def smembers(self, key: str) -> set[str]:
        return set(await self._call("smembers", lambda: self.client.smembers(key)))

    async def ping(self) -> bool:
        try:
            return bool(await self._call("ping", lambda: self.client.ping(), retry=False))
        except TransientStoreError:
            return False

    async def close(self) -> None:
        await self.client.aclose()


class MemoryTokenStore:
    """Single-process token store with lazy expiry.

    Not shared across workers; intended for tests and local development.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._values: dict[str, tuple[str, float]] = {}
        self._sets: dict[str, tuple[set[str], float]] = {}
        self._lock = asyncio.Lock()

    def _live_value(self, key: str) -> str | None:
        entry = self._values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            del self._values[key]
            return None
        return value

    def _live_set(self, key: str) -> set[str] | None:
        entry = self._sets.get(key)
        if entry is None:
            return None
        members, expires_at = entry
        if expires_at <= self._clock():
            del self._sets[key]
            return None
        return members

    async def set(self, key: str, value: str, ttl: int) -> None:
        async with self._lock:
            self._values[key] = (value, self._clock() + max(1, ttl))

    async def get(self, key: str) -> str | None:
        async with self._lock:
            return self._live_value(key)

    async def getdel(self, key: str) -> str | None:
        async with self._lock:
            value = self._live_value(key)
            self._values.pop(key, None)
            return value

    async def consume(self, key: str, marker_key: str) -> str | None:
        async with self._lock:
            value = self._live_value(key)
            if value is None:
                return None
            _, expires_at = self._values.pop(key)
            self._values[marker_key] = (value, expires_at)
            return value

    async def incr(self, key: str, ttl: int, amount: int = 1) -> int:
        async with self._lock:
            value = int(self._live_value(key) or 0) + amount
            self._values[key] = (str(value), self._clock() + max(1, ttl))
            return value

    async def delete(self, *keys: str) -> int:
        async with self._lock:
            removed = 0
            for key in keys:
                if self._live_value(key) is not None:
                    del self._values[key]
                    removed += 1
                elif self._live_set(key) is not None:
                    del self._sets[key]
                    removed += 1
            return removed

    async def sadd(self, key: str, member: str, ttl: int) -> None:
        async with self._lock:
            members = self._live_set(key) or set()
            members.add(member)
            self._sets[key] = (members, self._clock() + max(1, ttl))

    async def srem(self, key: str, *members: str) -> int:
        async with self._lock:
            current = self._live_set(key)
            if current is None:
                return 0
            removed = len(current.intersection(members))
            current.difference_update(members)
            if not current:
                del self._sets[key]
            return removed

    async def smembers(self, key: str) -> set[str]:
        async with self._lock:
            return set(self._live_set(key) or ())

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        async with self._lock:
            self._values.clear()
            self._sets.clear()
