"""Static reference data for well-known symbols."""

POPULAR_STOCKS: list[dict[str, str]] = [
    {"symbol": "AAPL", "name": "Apple Inc."},
    {"symbol": "MSFT", "name": "Microsoft Corporation"},
    {"symbol": "GOOGL", "name": "Alphabet Inc."},
    {"symbol": "TSLA", "name": "Tesla, Inc."},
    {"symbol": "NVDA", "name": "NVIDIA Corporation"},
    {"symbol": "AMZN", "name": "Amazon.com Inc."},
    {"symbol": "META", "name": "Meta Platforms, Inc."},
    {"symbol": "NFLX", "name": "Netflix, Inc."},
    {"symbol": "AMD", "name": "Advanced Micro Devices"},
    {"symbol": "INTC", "name": "Intel Corporation"},
]

# Rough reference prices used only to seed synthetic data.
BASE_PRICES: dict[str, float] = {
    "AAPL": 190.0,
    "MSFT": 420.0,
    "GOOGL": 165.0,
    "TSLA": 240.0,
    "NVDA": 120.0,
    "AMZN": 145.0,
    "META": 320.0,
    "NFLX": 450.0,
    "AMD": 140.0,
    "INTC": 25.0,
}
DEFAULT_BASE_PRICE = 100.0

# Shares outstanding, in billions.
ESTIMATED_SHARES_BN: dict[str, float] = {
    "AAPL": 15.7,
    "MSFT": 7.4,
    "GOOGL": 12.9,
    "TSLA": 3.2,
    "NVDA": 2.5,
    "AMZN": 10.6,
    "META": 2.7,
    "NFLX": 0.4,
    "AMD": 1.6,
    "INTC": 4.1,
}
DEFAULT_SHARES_BN = 5.0


def base_price(symbol: str) -> float:
    return BASE_PRICES.get(symbol.upper(), DEFAULT_BASE_PRICE)


def estimated_shares(symbol: str) -> float:
    return ESTIMATED_SHARES_BN.get(symbol.upper(), DEFAULT_SHARES_BN) * 1_000_000_000


def company_name(symbol: str) -> str:
    symbol = symbol.upper()
    for stock in POPULAR_STOCKS:
        if stock["symbol"] == symbol:
            return stock["name"]
    return f"{symbol} Corporation"


def match_popular(query: str) -> list[dict[str, str]]:
    """Popular stocks whose symbol or name contains ``query`` (case-insensitive)."""
    needle = query.strip().lower()
    if not needle:
        return []
    return [
        dict(stock)
        for stock in POPULAR_STOCKS
        if needle in stock["symbol"].lower() or needle in stock["name"].lower()
    ]
