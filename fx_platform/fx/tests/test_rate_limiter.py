from __future__ import annotations

import asyncio
import time

import pytest

from fx_platform.fx.rate_limiter import RATE_LIMIT_DELAY, RateLimiter
from fx_platform.services.logger.memory_logger import MemoryLogger


def test_default_interval_is_two_seconds() -> None:
    assert RateLimiter().interval == RATE_LIMIT_DELAY == 2.0


@pytest.mark.asyncio
async def test_first_acquire_is_immediate() -> None:
    limiter = RateLimiter(interval=5.0)
    started = time.monotonic()
    await limiter.acquire()
    assert time.monotonic() - started < 0.5


@pytest.mark.asyncio
async def test_consecutive_acquires_are_spaced() -> None:
    log = MemoryLogger()
    limiter = RateLimiter(interval=0.1, log=log)
    started = time.monotonic()
    for _ in range(3):
        await limiter.acquire()
    assert time.monotonic() - started >= 0.19
    assert "Rate limiting provider request" in log.messages


@pytest.mark.asyncio
async def test_concurrent_waiters_released_in_call_order() -> None:
    limiter = RateLimiter(interval=0.05)
    released: list[int] = []
    stamps: list[float] = []

    async def worker(n: int) -> None:
        await limiter.acquire()
        released.append(n)
        stamps.append(time.monotonic())

    tasks = []
    for n in range(4):
        tasks.append(asyncio.create_task(worker(n)))
        await asyncio.sleep(0)
    await asyncio.gather(*tasks)

    assert released == [0, 1, 2, 3]
    gaps = [b - a for a, b in zip(stamps, stamps[1:])]
    assert all(gap >= 0.045 for gap in gaps)


@pytest.mark.asyncio
async def test_no_wait_after_interval_elapsed() -> None:
    limiter = RateLimiter(interval=0.05)
    await limiter.acquire()
    await asyncio.sleep(0.06)
    started = time.monotonic()
    await limiter.acquire()
    assert time.monotonic() - started < 0.04
