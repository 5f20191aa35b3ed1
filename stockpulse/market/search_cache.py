from dataclasses import dataclass

import structlog

from stockpulse.market.clock import Clock, TimerHandle
from stockpulse.market.schemas import SearchResult

logger = structlog.get_logger()


@dataclass
class _Entry:
    results: list[SearchResult]
    expires_at: float
    timer: TimerHandle | None = None

    def cancel(self) -> None:
        if self.timer is not None:
            self.timer.cancel()


class SearchCache:
    """Query -> results memo. Each entry is dropped by its own timer once its TTL elapses."""

    def __init__(self, clock: Clock, ttl_seconds: float = 300.0) -> None:
        self._clock = clock
        self._ttl = ttl_seconds
        self._entries: dict[str, _Entry] = {}

    @staticmethod
    def key(query: str) -> str:
        return query.strip().lower()

    def get(self, query: str) -> list[SearchResult] | None:
        key = self.key(query)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock.monotonic() >= entry.expires_at:
            self._drop(key, entry)
            return None
        return list(entry.results)

    def put(self, query: str, results: list[SearchResult]) -> None:
        key = self.key(query)
        previous = self._entries.pop(key, None)
        if previous is not None:
            previous.cancel()

        entry = _Entry(results=list(results), expires_at=self._clock.monotonic() + self._ttl)
        entry.timer = self._clock.call_later(self._ttl, lambda: self._drop(key, entry))
        self._entries[key] = entry

    def clear(self) -> None:
        for entry in self._entries.values():
            entry.cancel()
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _drop(self, key: str, entry: _Entry) -> None:
        if self._entries.get(key) is entry:
            del self._entries[key]
            entry.cancel()
            logger.debug("search_cache_expired", key=key)
