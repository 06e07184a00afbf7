from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, ValidationError

from kynos.core.errors import UpstreamError
from kynos.core.settings import settings
from kynos.models.records import PriceBar
from kynos.services.http import get_json

AGGS_URL = "https://api.polygon.io/v2/aggs/ticker/{ticker}/range/1/day/{start}/{end}"


class _AggBar(BaseModel):
    t: int  # epoch millis
    o: float
    h: float
    l: float
    c: float
    v: float

    model_config = ConfigDict(extra="ignore")


class _AggsResponse(BaseModel):
    results: List[_AggBar]

    model_config = ConfigDict(extra="ignore")


def _to_bar(a: _AggBar) -> PriceBar:
    day = datetime.fromtimestamp(a.t / 1000, tz=timezone.utc).date().isoformat()
    return PriceBar(date=day, open=a.o, high=a.h, low=a.l, close=a.c, volume=a.v)


class PolygonClient:
    def __init__(self, api_key: str, timeout_s: float, max_retries: int = 1,
                 client: Optional[httpx.Client] = None, backoff_s: float = 0.5):
        self.api_key = api_key
        self.max_retries = max_retries
        self.backoff_s = backoff_s
        self.client = client or httpx.Client(timeout=timeout_s)

    def close(self) -> None:
        self.client.close()

    def daily_bars(self, symbol: str, days: int, today: Optional[date] = None) -> List[PriceBar]:
        """Daily bars for the last `days` calendar days, oldest first."""
        if not self.api_key:
            raise UpstreamError("POLYGON_API_KEY missing")
        sym = symbol.strip().upper()
        end = today or date.today()
        start = end - timedelta(days=days)
        url = AGGS_URL.format(ticker=sym, start=start.isoformat(), end=end.isoformat())
        params = {"adjusted": "true", "sort": "asc", "limit": 50000, "apiKey": self.api_key}

        data = get_json(self.client, url, params, max_retries=self.max_retries,
                        backoff_s=self.backoff_s, label="Polygon API")
        # Shape: {"ticker": "...", "results": [{"t": ms, "o", "h", "l", "c", "v"}, ...], ...}
        try:
            parsed = _AggsResponse.model_validate(data)
        except ValidationError as e:
            logger.error(f"Polygon payload for {sym} malformed: {e.errors()[:1]}")
            raise UpstreamError("Failed to fetch stock data") from e
        bars = [_to_bar(a) for a in parsed.results]
        logger.info(f"Polygon {sym} {start}..{end} -> {len(bars)} bars")
        return bars


# Singleton accessor
_client: Optional[PolygonClient] = None


def get_polygon() -> PolygonClient:
    global _client
    if _client is None:
        _client = PolygonClient(
            api_key=settings.polygon_api_key,
            timeout_s=settings.http_timeout_s,
            max_retries=settings.http_max_retries,
        )
    return _client
