from fastapi import APIRouter, Query

from stockpulse.analytics.schemas import IndicatorSet, PredictionModel, PredictionResult
from stockpulse.dependencies import MarketServiceDep
from stockpulse.market.schemas import ApiUsage, MarketStatus, Quote, SearchResult, SymbolRecord

router = APIRouter()


@router.post("/symbols/{symbol}/select", response_model=SymbolRecord)
async def select_symbol(symbol: str, service: MarketServiceDep) -> SymbolRecord:
    return await service.select_symbol(symbol)


@router.get("/symbols/{symbol}", response_model=SymbolRecord)
async def get_symbol(symbol: str, service: MarketServiceDep) -> SymbolRecord:
    return service.get_record(symbol)


@router.get("/symbols/{symbol}/indicators", response_model=IndicatorSet)
async def get_indicators(symbol: str, service: MarketServiceDep) -> IndicatorSet:
    return service.indicators(symbol)


@router.get("/symbols/{symbol}/prediction", response_model=PredictionResult)
async def get_prediction(
    symbol: str,
    service: MarketServiceDep,
    model: PredictionModel = PredictionModel.linear,
    days: int = Query(default=7, ge=1, le=365),
) -> PredictionResult:
    return service.predict(symbol, model, days)


@router.get("/search", response_model=list[SearchResult])
async def search(service: MarketServiceDep, q: str = Query(default="")) -> list[SearchResult]:
    return await service.search(q)


@router.post("/refresh", response_model=Quote)
async def refresh_active(service: MarketServiceDep) -> Quote:
    return await service.refresh_active()


@router.post("/refresh/pause", response_model=MarketStatus)
async def pause_refresh(service: MarketServiceDep) -> MarketStatus:
    return service.pause_refresh()


@router.post("/refresh/resume", response_model=MarketStatus)
async def resume_refresh(service: MarketServiceDep) -> MarketStatus:
    return await service.resume_refresh()


@router.get("/status", response_model=MarketStatus)
async def market_status(service: MarketServiceDep) -> MarketStatus:
    return service.market_status()


@router.get("/usage", response_model=ApiUsage)
async def usage(service: MarketServiceDep) -> ApiUsage:
    return service.usage()
