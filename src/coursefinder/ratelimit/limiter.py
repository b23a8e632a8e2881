"""Fixed-window rate limiting.

Two backends share one contract, ``await limiter.check(identifier, endpoint,
limit, window_ms)``:

* ``MemoryRateLimiter`` keeps one bounded ``cachetools.TTLCache`` per endpoint
  name and window length inside the process. Each cache holds at most ``max_tracked``
  identifiers; when full, the least recently used identifier is evicted and
  its quota starts over on its next request. Counters are per process, so N
  workers allow N times the configured limit.
* ``RedisRateLimiter`` keeps the counter in Redis (INCR on a window-bucket key)
  so that all workers share one quota.

Both count in discrete windows rather than a sliding interval: a burst that
straddles a window boundary can pass up to twice the limit. Neither backend
raises; callers turn ``success=False`` into a 429.
"""

from __future__ import annotations

import math
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import redis.asyncio as aioredis
import structlog
from cachetools import TTLCache

logger = structlog.get_logger()

DEFAULT_MAX_TRACKED = 10_000


@dataclass(frozen=True)
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset_time: int  # epoch milliseconds
    now_ms: int = 0  # limiter clock when the request was counted

    @property
    def retry_after(self) -> int:
        """Whole seconds until the window resets, at least 1."""
        return max(1, math.ceil((self.reset_time - self.now_ms) / 1000))


@dataclass
class RateLimitEntry:
    count: int
    reset_time: int


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Quota headers sent on every limited response, allowed or not."""
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_time),
    }


class RateLimiter(ABC):
    """Per-identifier, per-endpoint request counter."""

    @abstractmethod
    async def check(self, identifier: str, endpoint: str, limit: int, window_ms: int) -> RateLimitResult:
        """Count one request and report whether it is within quota."""
        ...

    async def ping(self) -> None:
        """Raise if the backing store is unreachable."""

    async def close(self) -> None:
        """Release backend resources."""


class MemoryRateLimiter(RateLimiter):
    """In-process limiter backed by bounded TTL caches.

    ``clock`` returns seconds since the epoch and drives both window resets
    and cache expiry, so tests can move time without sleeping.
    """

    def __init__(
        self,
        max_tracked: int = DEFAULT_MAX_TRACKED,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_tracked = max_tracked
        self._clock = clock
        # One cache per (endpoint, window): the cache TTL must equal the window
        self._caches: dict[tuple[str, int], TTLCache[str, RateLimitEntry]] = {}
        self._lock = threading.Lock()

    def _cache_for(self, endpoint: str, window_ms: int) -> TTLCache[str, RateLimitEntry]:
        key = (endpoint, window_ms)
        cache = self._caches.get(key)
        if cache is None:
            cache = TTLCache(maxsize=self.max_tracked, ttl=window_ms / 1000, timer=self._clock)
            self._caches[key] = cache
        return cache

    def hit(self, identifier: str, endpoint: str, limit: int, window_ms: int) -> RateLimitResult:
        """Synchronous core of ``check``."""
        with self._lock:
            cache = self._cache_for(endpoint, window_ms)
            now_ms = int(self._clock() * 1000)

            entry = cache.get(identifier)
            if entry is None or now_ms >= entry.reset_time:
                entry = RateLimitEntry(count=0, reset_time=now_ms + window_ms)

            entry.count += 1
            cache[identifier] = entry
            count, reset_time = entry.count, entry.reset_time

        return RateLimitResult(
            success=count <= limit,
            limit=limit,
            remaining=max(0, limit - count),
            reset_time=reset_time,
            now_ms=now_ms,
        )

    async def check(self, identifier: str, endpoint: str, limit: int, window_ms: int) -> RateLimitResult:
        return self.hit(identifier, endpoint, limit, window_ms)

    def count(self, identifier: str, endpoint: str, window_ms: int) -> int:
        """Requests counted for ``identifier`` in its current window (0 if untracked)."""
        with self._lock:
            cache = self._caches.get((endpoint, window_ms))
            entry = None if cache is None else cache.get(identifier)
            return 0 if entry is None else entry.count

    def tracked(self, endpoint: str) -> int:
        """Number of identifiers currently held for an endpoint, across windows."""
        with self._lock:
            return sum(len(cache) for (name, _), cache in self._caches.items() if name == endpoint)


class RedisRateLimiter(RateLimiter):
    """Shared limiter: one Redis counter per (endpoint, identifier, window)."""

    def __init__(self, redis: aioredis.Redis, clock: Callable[[], float] = time.time) -> None:
        self.redis = redis
        self._clock = clock

    @classmethod
    def from_url(cls, url: str) -> RedisRateLimiter:
        client = aioredis.from_url(  # type: ignore[no-untyped-call]
            url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=50,
        )
        return cls(client)

    async def check(self, identifier: str, endpoint: str, limit: int, window_ms: int) -> RateLimitResult:
        now_ms = int(self._clock() * 1000)
        window = now_ms // window_ms
        reset_time = (window + 1) * window_ms
        rate_key = f"ratelimit:{endpoint}:{identifier}:{window}"

        try:
            pipe = self.redis.pipeline()
            pipe.incr(rate_key)
            pipe.pexpire(rate_key, window_ms + 1000)
            results: list[Any] = await pipe.execute()
        except Exception:
            # Fail open: an unreachable store must not take the endpoints down
            logger.warning("rate_limit_backend_unavailable", endpoint=endpoint, exc_info=True)
            return RateLimitResult(
                success=True, limit=limit, remaining=limit, reset_time=reset_time, now_ms=now_ms,
            )

        count = int(results[0])
        return RateLimitResult(
            success=count <= limit,
            limit=limit,
            remaining=max(0, limit - count),
            reset_time=reset_time,
            now_ms=now_ms,
        )

    async def ping(self) -> None:
        await self.redis.ping()

    async def close(self) -> None:
        await self.redis.aclose()


def build_rate_limiter(backend: str, *, max_tracked: int = DEFAULT_MAX_TRACKED, redis_url: str = "") -> RateLimiter:
    """Construct the configured limiter backend."""
    if backend == "memory":
        return MemoryRateLimiter(max_tracked=max_tracked)
    if backend == "redis":
        return RedisRateLimiter.from_url(redis_url)
    msg = f"Unknown rate limit backend: {backend!r}"
    raise ValueError(msg)
