from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stockpulse.config import settings
from stockpulse.dependencies import MarketServiceDep
from stockpulse.exception_handlers import register_exception_handlers
from stockpulse.logging_config import setup_logging
from stockpulse.market.router import router as market_router
from stockpulse.runtime import close_market_service, init_market_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await init_market_service()
    yield
    await close_market_service()


app = FastAPI(
    title="StockPulse",
    description="Rate-limited market data cache with technical indicators and price projections",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(market_router, prefix="/api/v1/market", tags=["market"])


@app.get("/api/v1/health")
async def health(service: MarketServiceDep):
    return {"status": "healthy", "refresh_state": service.scheduler.state.value}
