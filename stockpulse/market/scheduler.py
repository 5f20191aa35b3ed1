"""Periodic quote refresh for the active symbol.

Two states: ``active`` (refresh timer armed) and ``paused`` (timer cancelled).
The market-open flag has its own timer and keeps running while paused.
"""

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

import structlog

from stockpulse.exceptions import QuotaExceededError
from stockpulse.market.clock import Clock, TimerHandle
from stockpulse.market.hours import is_market_open
from stockpulse.market.rate_limiter import RateLimiter
from stockpulse.market.schemas import Quote

logger = structlog.get_logger()


class RefreshState(StrEnum):
    active = "active"
    paused = "paused"


class RefreshScheduler:
    def __init__(
        self,
        clock: Clock,
        limiter: RateLimiter,
        active_symbol: Callable[[], str | None],
        refresh: Callable[[], Awaitable[Quote]],
        refresh_interval: float = 30.0,
        status_interval: float = 60.0,
        utc_offset_hours: int = -5,
    ) -> None:
        self._clock = clock
        self._limiter = limiter
        self._active_symbol = active_symbol
        self._refresh = refresh
        self._refresh_interval = refresh_interval
        self._status_interval = status_interval
        self._utc_offset_hours = utc_offset_hours

        self._state = RefreshState.active
        self._running = False
        self._refresh_timer: TimerHandle | None = None
        self._status_timer: TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()

        self.is_market_open = False
        self.market_checked_at = 0
        self.update_market_status()

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._schedule_status()
        if self._state is RefreshState.active:
            self._schedule_refresh()
        logger.info(
            "refresh_scheduler_started",
            state=self._state.value,
            refresh_interval=self._refresh_interval,
        )

    async def stop(self) -> None:
        self._running = False
        for timer in (self._refresh_timer, self._status_timer):
            if timer is not None:
                timer.cancel()
        self._refresh_timer = None
        self._status_timer = None
        await self.drain()
        logger.info("refresh_scheduler_stopped")

    def pause(self) -> bool:
        """Stop periodic refresh. Fetches already in flight still complete."""
        if self._state is RefreshState.paused:
            return False
        self._state = RefreshState.paused
        if self._refresh_timer is not None:
            self._refresh_timer.cancel()
            self._refresh_timer = None
        logger.info("refresh_paused")
        return True

    async def resume(self) -> Quote | None:
        """Re-arm the timer and refresh the active symbol straight away."""
        if self._state is RefreshState.active:
            return None
        self._state = RefreshState.active
        if self._running:
            self._schedule_refresh()
        logger.info("refresh_resumed", symbol=self._active_symbol())
        return await self.tick()

    async def tick(self) -> Quote | None:
        symbol = self._active_symbol()
        if symbol is None:
            return None
        if self._limiter.exhausted:
            logger.warning("refresh_skipped_quota", symbol=symbol)
            return None

        logger.info("refresh_tick", symbol=symbol)
        try:
            return await self._refresh()
        except QuotaExceededError as exc:
            logger.warning("refresh_skipped_quota", symbol=symbol, error=exc.message)
            return None

    def update_market_status(self) -> bool:
        now = self._clock.time()
        self.is_market_open = is_market_open(
            datetime.fromtimestamp(now, UTC), self._utc_offset_hours
        )
        self.market_checked_at = int(now * 1000)
        return self.is_market_open

    async def drain(self) -> None:
        """Wait for refreshes already spawned by the timer."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _schedule_refresh(self) -> None:
        self._refresh_timer = self._clock.call_later(self._refresh_interval, self._on_refresh_timer)

    def _schedule_status(self) -> None:
        self._status_timer = self._clock.call_later(self._status_interval, self._on_status_timer)

    def _on_refresh_timer(self) -> None:
        self._refresh_timer = None
        if not self._running or self._state is not RefreshState.active:
            return
        self._schedule_refresh()
        self._spawn(self.tick())

    def _on_status_timer(self) -> None:
        self._status_timer = None
        if not self._running:
            return
        self._schedule_status()
        self.update_market_status()

    def _spawn(self, coro: Coroutine[Any, Any, Quote | None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("refresh_task_failed", error=str(exc))
