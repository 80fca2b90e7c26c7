import asyncio

import pytest

from manifest_mcp.rate_limiter import PerKeyRateLimiter, RequestRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_per_key_rate_limiter_allows_then_blocks():
    limiter = PerKeyRateLimiter(rate_per_sec=1, burst=1)
    assert await limiter.allow("tool")
    # Immediately requesting again should fail due to no tokens
    assert not await limiter.allow("tool")
    # After waiting ~1s, should allow again
    await asyncio.sleep(1.05)
    assert await limiter.allow("tool")


@pytest.mark.asyncio
async def test_per_tool_override():
    limiter = PerKeyRateLimiter(rate_per_sec=10, burst=5, per_tool={"cosmos_tx": 0.1})
    assert await limiter.allow("cosmos_tx")
    assert await limiter.allow("cosmos_query")
    slow = limiter._limiters["cosmos_tx"]
    fast = limiter._limiters["cosmos_query"]
    assert slow.bucket.rate == pytest.approx(0.1)
    assert fast.bucket.rate == pytest.approx(10)


def test_request_rate_limiter_rejects_non_positive():
    with pytest.raises(ValueError):
        RequestRateLimiter(0)


@pytest.mark.asyncio
async def test_request_rate_limiter_spends_tokens():
    clock = FakeClock()
    limiter = RequestRateLimiter(3, clock=clock)
    for _ in range(3):
        await limiter.acquire()
    assert limiter.remaining == 0
    clock.now += 1.0
    assert limiter.remaining == 3


@pytest.mark.asyncio
async def test_request_rate_limiter_waits_for_refill():
    limiter = RequestRateLimiter(2, interval=0.2)
    loop = asyncio.get_running_loop()
    start = loop.time()
    await asyncio.gather(*(limiter.acquire() for _ in range(4)))
    # The third and fourth callers must wait one full interval.
    assert loop.time() - start >= 0.19


@pytest.mark.asyncio
async def test_concurrent_waiters_do_not_double_spend():
    limiter = RequestRateLimiter(1, interval=0.05)
    admitted = []

    async def worker(i):
        await limiter.acquire()
        admitted.append((i, asyncio.get_running_loop().time()))

    await asyncio.gather(*(worker(i) for i in range(3)))
    times = [t for _, t in admitted]
    assert len(admitted) == 3
    for earlier, later in zip(times, times[1:]):
        assert later - earlier >= 0.045
