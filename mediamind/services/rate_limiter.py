"""
Outbound request pacing for source and capability clients.
"""

import asyncio
import time
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


class ClientRateLimiter:
    """Token bucket shared by every request one :class:`HttpClient` makes.

    The bucket starts full at ``burst`` tokens (default: one minute's worth)
    and refills at ``calls_per_minute / 60`` tokens per second.
    """

    def __init__(
        self,
        calls_per_minute: int = 60,
        *,
        burst: Optional[int] = None,
        name: str = "",
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if calls_per_minute <= 0:
            raise ValueError("calls_per_minute must be > 0")
        self.name = name
        self.per_second = calls_per_minute / 60.0
        self.capacity = float(burst or calls_per_minute)
        self._clock = clock or time.monotonic
        self._level = self.capacity
        self._stamp = self._clock()
        self._lock = asyncio.Lock()

    @property
    def available(self) -> float:
        self._top_up()
        return self._level

    def _top_up(self) -> None:
        now = self._clock()
        if now > self._stamp:
            self._level = min(self.capacity, self._level + (now - self._stamp) * self.per_second)
            self._stamp = now

    def _try_take(self, tokens: float) -> float:
        """Take ``tokens`` and return 0, or return seconds until they exist."""
        self._top_up()
        if self._level >= tokens:
            self._level -= tokens
            return 0.0
        return (tokens - self._level) / self.per_second

    async def wait(self, tokens: float = 1.0) -> None:
        if tokens <= 0:
            return
        throttled = False
        while True:
            async with self._lock:
                delay = self._try_take(tokens)
            if delay == 0.0:
                return
            if not throttled:
                throttled = True
                logger.debug("Outbound calls throttled", client=self.name, delay_sec=round(delay, 3))
            # Lock is released while sleeping
            await asyncio.sleep(max(0.001, delay))
