from typing import Optional

from kynos.models.records import StockSeries
from kynos.services.polygon_client import PolygonClient
from kynos.services.series import last_n, normalize_days, summarize


def get_stock_series(market: PolygonClient, symbol: str, name: str, days: Optional[float],
                     default_days: int = 365) -> StockSeries:
    """Fetch daily bars, keep exactly the last `days` of them and attach the change summary."""
    n = normalize_days(days, default_days)
    bars = last_n(market.daily_bars(symbol, n), n)
    return StockSeries(
        ticker=symbol.strip().upper(),
        companyName=name,
        days=n,
        chartData=bars,
        summary=summarize(bars),
    )
