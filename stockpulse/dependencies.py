from typing import Annotated

from fastapi import Depends

from stockpulse.market.service import MarketService
from stockpulse.runtime import get_market_service

MarketServiceDep = Annotated[MarketService, Depends(get_market_service)]
