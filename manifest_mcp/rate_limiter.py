"""In-memory rate limiting (per-process, asyncio only)."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional


class RequestRateLimiter:
    """
    Blocking admission gate for node traffic.

    Holds ``tokens_per_interval`` tokens. ``acquire()`` spends one, waiting
    when none is left; each spent token comes back exactly one ``interval``
    after it was spent, so no rolling window of ``interval`` seconds ever
    admits more than ``tokens_per_interval`` callers. Waiters queue on a FIFO
    lock, which keeps concurrent acquisitions from starving or double-spending.
    """

    def __init__(
        self,
        tokens_per_interval: int,
        interval: float = 1.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if tokens_per_interval <= 0:
            raise ValueError("tokens_per_interval must be a positive integer")
        self.tokens_per_interval = int(tokens_per_interval)
        self.interval = interval
        self._clock = clock
        self._spent: Deque[float] = deque()
        self._lock = asyncio.Lock()

    def _refill(self, now: float) -> None:
        while self._spent and now - self._spent[0] >= self.interval:
            self._spent.popleft()

    @property
    def remaining(self) -> int:
        self._refill(self._clock())
        return self.tokens_per_interval - len(self._spent)

    async def acquire(self) -> None:
        async with self._lock:
            while True:
                now = self._clock()
                self._refill(now)
                if len(self._spent) < self.tokens_per_interval:
                    self._spent.append(now)
                    return
                await asyncio.sleep(self._spent[0] + self.interval - now)


class TokenBucket:
    def __init__(self, rate: float, capacity: float) -> None:
        self.rate = rate
        self.capacity = capacity
        self.tokens = capacity
        self.timestamp = time.monotonic()
        self._lock = asyncio.Lock()

    async def consume(self, amount: float = 1.0) -> bool:
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self.timestamp
            self.timestamp = now
            self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
            if self.tokens >= amount:
                self.tokens -= amount
                return True
            return False


class RateLimiter:
    def __init__(self, rate_per_sec: float, burst: float | None = None) -> None:
        burst = burst if burst is not None else rate_per_sec
        self.bucket = TokenBucket(rate_per_sec, burst)

    async def allow(self) -> bool:
        return await self.bucket.consume()


class PerKeyRateLimiter:
    """Non-blocking per-tool admission for the HTTP gateway, with optional per-tool rates."""

    def __init__(
        self,
        rate_per_sec: float,
        burst: float | None = None,
        per_tool: Optional[Dict[str, float]] = None,
    ) -> None:
        self.rate = rate_per_sec
        self.burst = burst if burst is not None else rate_per_sec
        self.per_tool = dict(per_tool or {})
        self._limiters: Dict[str, RateLimiter] = {}
        self._lock = asyncio.Lock()

    async def allow(self, key: str) -> bool:
        async with self._lock:
            limiter = self._limiters.get(key)
            if limiter is None:
                rate = self.per_tool.get(key, self.rate)
                burst = self.burst if key not in self.per_tool else max(rate, 1.0)
                limiter = RateLimiter(rate, burst)
                self._limiters[key] = limiter
        return await limiter.allow()
