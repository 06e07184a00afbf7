from __future__ import annotations

from typing import Any, Dict, Optional

import requests
from loguru import logger
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from kynos.core.errors import KynosError, UpstreamError
from kynos.core.settings import settings
from kynos.models.records import Catalog, TickerRecord
from kynos.services.cache import CATALOG_CACHE_KEY, CatalogCache
from kynos.services.catalog import build_catalog


def _session(max_retries: int) -> requests.Session:
    s = requests.Session()
    s.headers.update({"Accept": "application/json"})
    # GETs only; a repeated POST /openai would bill the model twice
    retry = Retry(total=max_retries, backoff_factor=0.5, status_forcelist=(429, 500, 502, 503, 504),
                  allowed_methods=frozenset({"GET"}), raise_on_status=False)
    adapter = HTTPAdapter(max_retries=retry)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    return s


class KynosClient:
    """
    Terminal-side client of the Kynos API.
    The catalog is fetched at most once and then served from the CatalogCache
    until that entry is invalidated (or expires, when a TTL is configured).
    """

    def __init__(self, base_url: str, cache: CatalogCache, timeout_s: float = 10.0,
                 max_retries: int = 1, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.cache = cache
        self.timeout_s = timeout_s
        self.session = session or _session(max_retries)

    def _call(self, method: str, path: str, **kw: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, timeout=self.timeout_s, **kw)
        except requests.RequestException as e:
            logger.error(f"HTTP error for {url}: {e}")
            raise UpstreamError(str(e)) from e
        try:
            body = r.json()
        except ValueError as e:
            raise UpstreamError(f"{url} returned HTTP {r.status_code} with a non-JSON body") from e
        if r.status_code >= 400 or (isinstance(body, dict) and body.get("error")):
            err = KynosError(str(body.get("error") if isinstance(body, dict) else body) or f"HTTP {r.status_code}")
            err.status_code = r.status_code
            raise err
        return body

    # ---- catalog ----
    def load_catalog(self) -> Catalog:
        cached = self.cache.get(CATALOG_CACHE_KEY)
        if cached is not None:
            return cached
        rows = self._call("GET", "/stocks")
        if not isinstance(rows, list):
            raise UpstreamError("/stocks did not return a list")
        catalog = build_catalog(
            TickerRecord.model_construct(symbol=str(r.get("symbol") or ""), name=str(r.get("name") or ""))
            for r in rows if isinstance(r, dict)
        )
        self.cache.put(CATALOG_CACHE_KEY, catalog)
        logger.info(f"Fetched {len(catalog)} tickers and cached them under '{CATALOG_CACHE_KEY}'")
        return catalog

    def refresh_catalog(self) -> Catalog:
        self.cache.invalidate(CATALOG_CACHE_KEY)
        return self.load_catalog()

    # ---- series ----
    def stock_series(self, symbol: str, name: str, days: int) -> Dict[str, Any]:
        return self._call("POST", "/stock", json={"symbol": symbol, "name": name, "days": days})

    def ask(self, prompt: str) -> Dict[str, Any]:
        return self._call("POST", "/openai", json={"prompt": prompt})


def default_client() -> KynosClient:
    return KynosClient(
        base_url=settings.api_url,
        cache=CatalogCache(settings.catalog_cache_path, ttl_s=settings.catalog_cache_ttl_s),
        timeout_s=settings.http_timeout_s,
        max_retries=settings.http_max_retries,
    )
