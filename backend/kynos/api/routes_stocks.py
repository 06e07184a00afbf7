import time
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response
from loguru import logger

from kynos.api.deps import get_search_service
from kynos.core.errors import KynosError, UpstreamError
from kynos.core.settings import settings
from kynos.models.records import StockRequest
from kynos.services.polygon_client import PolygonClient, get_polygon
from kynos.services.search import SearchService
from kynos.services.series import to_csv_bytes
from kynos.services.stocks import get_stock_series

router = APIRouter()


def _error(e: Exception) -> JSONResponse:
    if isinstance(e, KynosError):
        return JSONResponse(e.to_payload(), status_code=e.status_code)
    logger.exception(f"Error in stock route: {e}")
    return JSONResponse(UpstreamError(str(e) or e.__class__.__name__).to_payload(), status_code=500)


@router.get("/stocks")
def list_stocks(service: SearchService = Depends(get_search_service)) -> List[Dict[str, str]]:
    return [{"symbol": r.symbol, "name": r.name} for r in service.catalog]


@router.get("/stocks/search")
def search_stocks(
    q: str = Query("", description="Ticker or (partial) company name"),
    limit: Optional[int] = Query(None, ge=1, le=50),
    service: SearchService = Depends(get_search_service),
) -> Dict[str, Any]:
    results = service.search(q, limit)
    logger.info(f"Search '{q}' -> {len(results)} candidates")
    return {"query": q, "results": [c.model_dump() for c in results]}


@router.post("/stock")
def stock_series(payload: StockRequest, market: PolygonClient = Depends(get_polygon)):
    t0 = time.time()
    try:
        series = get_stock_series(market, payload.symbol, payload.name, payload.days, settings.default_days)
    except Exception as e:
        return _error(e)
    logger.info(f"Stock call completed in {int((time.time() - t0) * 1000)}ms")
    return series.model_dump()


@router.post("/stock/csv")
def stock_csv(payload: StockRequest, market: PolygonClient = Depends(get_polygon)):
    try:
        series = get_stock_series(market, payload.symbol, payload.name, payload.days, settings.default_days)
    except Exception as e:
        return _error(e)
    fname = f"{series.ticker}_{series.days}d.csv"
    return Response(
        content=to_csv_bytes(series.chartData),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{fname}"'},
    )
