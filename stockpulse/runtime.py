import random

import structlog

from stockpulse.config import Settings, settings
from stockpulse.market.client import ProviderClient
from stockpulse.market.clock import Clock, SystemClock
from stockpulse.market.fallback import FallbackGenerator
from stockpulse.market.providers.base import MarketDataProvider
from stockpulse.market.providers.twelve_data import TwelveDataProvider
from stockpulse.market.rate_limiter import RateLimiter
from stockpulse.market.scheduler import RefreshScheduler
from stockpulse.market.search_cache import SearchCache
from stockpulse.market.service import MarketService
from stockpulse.market.store import SymbolStore

logger = structlog.get_logger()

_service: MarketService | None = None


def build_market_service(
    config: Settings = settings,
    clock: Clock | None = None,
    provider: MarketDataProvider | None = None,
    limiter: RateLimiter | None = None,
    rng: random.Random | None = None,
) -> MarketService:
    clock = clock or SystemClock()
    limiter = limiter or RateLimiter(
        clock,
        min_interval_ms=config.rate_limit_delay_ms,
        max_daily_calls=config.max_daily_calls,
    )
    provider = provider or TwelveDataProvider(
        limiter,
        api_key=config.twelve_data_api_key,
        base_url=config.twelve_data_base_url,
    )
    client = ProviderClient(provider, FallbackGenerator(clock, rng))

    def make_scheduler(service: MarketService) -> RefreshScheduler:
        return RefreshScheduler(
            clock,
            limiter,
            active_symbol=lambda: service.active_symbol,
            refresh=service.refresh_active,
            refresh_interval=config.refresh_interval_seconds,
            status_interval=config.market_status_interval_seconds,
            utc_offset_hours=config.market_utc_offset_hours,
        )

    return MarketService(
        client,
        limiter,
        SymbolStore(clock),
        SearchCache(clock, ttl_seconds=config.search_cache_ttl_seconds),
        scheduler_factory=make_scheduler,
        series_interval=config.series_interval,
        series_outputsize=config.series_outputsize,
    )


async def init_market_service(
    service: MarketService | None = None, config: Settings = settings
) -> MarketService:
    global _service
    _service = service or build_market_service(config)
    _service.start()

    if config.default_symbol:
        try:
            await _service.select_symbol(config.default_symbol)
        except Exception as exc:
            logger.error("default_symbol_load_failed", symbol=config.default_symbol, error=str(exc))

    logger.info("market_service_initialized", default_symbol=config.default_symbol or None)
    return _service


async def close_market_service() -> None:
    global _service
    if _service is not None:
        await _service.close()
        _service = None
        logger.info("market_service_closed")


def get_market_service() -> MarketService:
    if _service is None:
        raise RuntimeError("Market service not initialized. Call init_market_service() first.")
    return _service
