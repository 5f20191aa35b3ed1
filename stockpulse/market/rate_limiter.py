import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import structlog

from stockpulse.exceptions import QuotaExceededError
from stockpulse.market.clock import Clock

logger = structlog.get_logger()


@dataclass
class CallBudget:
    """Calls granted since process start. Never reset on a day boundary."""

    max_daily_calls: int
    calls_today: int = 0
    last_call_monotonic: float | None = None
    last_call_at: int | None = None  # epoch ms

    @property
    def remaining(self) -> int:
        return max(0, self.max_daily_calls - self.calls_today)

    @property
    def exhausted(self) -> bool:
        return self.calls_today >= self.max_daily_calls


class RateLimiter:
    """Serialises provider calls: minimum spacing plus a daily call cap.

    ``asyncio.Lock`` wakes waiters in arrival order, so callers are granted
    strictly FIFO, each measuring its delay from the previous grant.
    """

    def __init__(self, clock: Clock, min_interval_ms: int = 2000, max_daily_calls: int = 800) -> None:
        self._clock = clock
        self._min_interval = min_interval_ms / 1000
        self._budget = CallBudget(max_daily_calls=max_daily_calls)
        self._lock = asyncio.Lock()

    @property
    def budget(self) -> CallBudget:
        return self._budget

    @property
    def exhausted(self) -> bool:
        return self._budget.exhausted

    async def acquire(self) -> None:
        async with self._lock:
            await self._grant()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Acquire and keep the limiter held until the request completes."""
        async with self._lock:
            await self._grant()
            yield

    async def _grant(self) -> None:
        last = self._budget.last_call_monotonic
        if last is not None:
            wait = self._min_interval - (self._clock.monotonic() - last)
            if wait > 0:
                logger.debug("rate_limit_wait", wait_seconds=round(wait, 3))
                await self._clock.sleep(wait)

        if self._budget.exhausted:
            logger.warning(
                "quota_exceeded",
                calls_today=self._budget.calls_today,
                max_daily_calls=self._budget.max_daily_calls,
            )
            raise QuotaExceededError(self._budget.calls_today, self._budget.max_daily_calls)

        self._budget.calls_today += 1
        self._budget.last_call_monotonic = self._clock.monotonic()
        self._budget.last_call_at = self._clock.now_ms()
