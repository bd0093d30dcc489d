"""Process-wide throttle for outbound rate-provider requests.

The provider allows a fixed number of requests per minute across every
endpoint, so live and historical lookups share a single sequence.
"""

from __future__ import annotations

import asyncio
import time

from fx_platform.services.logger.interface import LoggingInterface

RATE_LIMIT_DELAY = 2.0  # seconds; 30 requests/minute


class RateLimiter:
    """Spaces ``acquire()`` resolutions at least ``interval`` seconds apart.

    Waiters are released in call order (``asyncio.Lock`` is FIFO). Never
    raises; only delays.
    """

    def __init__(self, interval: float = RATE_LIMIT_DELAY,
                 log: LoggingInterface | None = None) -> None:
        self._interval = interval
        self._log = log
        self._lock = asyncio.Lock()
        self._last: float | None = None

    @property
    def interval(self) -> float:
        return self._interval

    async def acquire(self) -> None:
        async with self._lock:
            if self._last is not None:
                wait = self._interval - (time.monotonic() - self._last)
                if wait > 0:
                    if self._log is not None:
                        self._log.debug("Rate limiting provider request", wait_ms=round(wait * 1000))
                    await asyncio.sleep(wait)
            self._last = time.monotonic()
