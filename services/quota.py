"""Fixed-window quota tiers.

Each tier counts consumptions per key inside a fixed window. The window for a
key starts at its first consumption and resets lazily: the first consume at or
after ``start + window`` zeroes the counter and restarts the window at that
instant (no fast-forwarding to a multiple of the window length).

Fixed windows admit up to ``2 * limit`` consumptions in a short span that
straddles a boundary. That approximation is accepted here; a sliding window
would smooth it at the cost of per-event bookkeeping.

Bucket state sits behind ``QuotaStore`` so a shared external store can replace
the in-process one for multi-instance deployments without touching callers.
"""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable

from loguru import logger


@dataclass
class QuotaBucket:
    """Consumption count for one key within its current window."""
    count: int
    window_start: float

    def expired(self, window: float, now: float) -> bool:
        return now >= self.window_start + window


@dataclass(frozen=True)
class ConsumeResult:
    """Outcome of a consume attempt. retry_after is None when allowed."""
    allowed: bool
    retry_after: float | None = None


class QuotaStore:
    """Backing store for quota buckets. Implementations must make consume atomic."""

    def consume(self, key: str, limit: int, window: float, now: float) -> ConsumeResult:
        raise NotImplementedError

    def evict_idle(self, window: float, now: float, idle_windows: int = 0) -> int:
        raise NotImplementedError

    def __len__(self) -> int:
        raise NotImplementedError


class MemoryQuotaStore(QuotaStore):
    """In-process bucket map. One lock covers every bucket."""

    def __init__(self):
        self._buckets: dict[str, QuotaBucket] = {}
        self._lock = threading.Lock()

    def consume(self, key: str, limit: int, window: float, now: float) -> ConsumeResult:
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = self._buckets[key] = QuotaBucket(count=0, window_start=now)
            elif bucket.expired(window, now):
                bucket.count = 0
                bucket.window_start = now

            if bucket.count >= limit:
                return ConsumeResult(
                    allowed=False,
                    retry_after=bucket.window_start + window - now,
                )

            bucket.count += 1
            return ConsumeResult(allowed=True)

    def evict_idle(self, window: float, now: float, idle_windows: int = 0) -> int:
        """Drop buckets whose window ended at least idle_windows windows ago."""
        grace = window * idle_windows
        with self._lock:
            stale = [
                key for key, bucket in self._buckets.items()
                if now - (bucket.window_start + window) >= grace
            ]
            for key in stale:
                del self._buckets[key]
        return len(stale)

    def get(self, key: str) -> QuotaBucket | None:
        """Snapshot of a bucket, or None if untracked."""
        with self._lock:
            bucket = self._buckets.get(key)
            return QuotaBucket(bucket.count, bucket.window_start) if bucket else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)


class RateLimiter:
    """One quota tier: ``limit`` consumptions per ``window_seconds`` per key."""

    def __init__(
        self,
        name: str,
        limit: int,
        window_seconds: float,
        store: QuotaStore | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit < 1:
            raise ValueError(f"{name} quota limit must be at least 1, got {limit}")
        if window_seconds <= 0:
            raise ValueError(f"{name} quota window must be positive, got {window_seconds}")
        self.name = name
        self.limit = limit
        self.window_seconds = window_seconds
        self.store = store if store is not None else MemoryQuotaStore()
        self._clock = clock

    def consume(self, key: str) -> ConsumeResult:
        """Take one unit of quota for key if any is left in its window."""
        return self.store.consume(key, self.limit, self.window_seconds, self._clock())

    def evict_idle(self, idle_windows: int = 0) -> int:
        return self.store.evict_idle(self.window_seconds, self._clock(), idle_windows)

    @property
    def tracked_keys(self) -> int:
        return len(self.store)

    def __repr__(self) -> str:
        return f"RateLimiter({self.name!r}, {self.limit}/{self.window_seconds:g}s)"


async def run_quota_sweeper(
    limiters: Iterable[RateLimiter],
    interval_seconds: float = 3600,
    idle_windows: int = 1,
    session_binder=None,
) -> None:
    """Periodically evict idle buckets so per-identity state stays bounded.

    Expired session proofs held by session_binder are dropped on the same pass.

    This runs forever — call as an asyncio task:
        asyncio.create_task(run_quota_sweeper([identity_limiter, global_limiter]))
    """
    limiters = list(limiters)
    logger.info("Starting quota sweeper (interval={i}s)", i=interval_seconds)
    while True:
        await asyncio.sleep(interval_seconds)
        for limiter in limiters:
            try:
                evicted = limiter.evict_idle(idle_windows)
                if evicted:
                    logger.info(
                        "[{name}] Evicted {n} idle buckets ({left} tracked)",
                        name=limiter.name,
                        n=evicted,
                        left=limiter.tracked_keys,
                    )
            except Exception as e:
                logger.error("[{name}] Quota sweep failed: {err}", name=limiter.name, err=str(e))
        if session_binder is not None:
            try:
                evicted = session_binder.evict_expired()
                if evicted:
                    logger.info("[sessions] Evicted {n} expired proofs", n=evicted)
            except Exception as e:
                logger.error("[sessions] Session sweep failed: {err}", err=str(e))
