import json
import time
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from kynos.models.records import Catalog, TickerRecord
from kynos.services.catalog import build_catalog

CATALOG_CACHE_KEY = "stockSymbols"


class JsonCache:
    """Tiny key -> JSON value store kept in one file, written atomically."""

    def __init__(self, path: str):
        self.path = Path(path).expanduser()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self._write({})

    def _read(self) -> dict:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Cache file {self.path} unreadable, treating as empty: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        tmp = self.path.with_suffix(".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)
        tmp.replace(self.path)

    def get(self, key: str) -> Optional[Any]:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


class CatalogCache:
    """
    Client-side catalog store.
    With ttl_s=None an entry is trusted until invalidate() is called; a changed
    upstream ticker list is only picked up after an explicit clear.
    """

    def __init__(self, path: str, ttl_s: Optional[float] = None, clock=time.time):
        self.store = JsonCache(path)
        self.ttl_s = ttl_s
        self._clock = clock

    def get(self, key: str = CATALOG_CACHE_KEY) -> Optional[Catalog]:
        entry = self.store.get(key)
        if not isinstance(entry, dict) or not isinstance(entry.get("payload"), list):
            return None
        try:
            if self.ttl_s is not None:
                stored_at = float(entry.get("stored_at") or 0.0)
                if self._clock() - stored_at > self.ttl_s:
                    logger.info(f"Catalog cache entry '{key}' expired (ttl={self.ttl_s}s)")
                    return None
            return build_catalog(TickerRecord.model_construct(symbol=str(r.get("symbol") or ""), name=str(r.get("name") or ""))
                                 for r in entry["payload"] if isinstance(r, dict))
        except (TypeError, ValueError) as e:
            logger.warning(f"Catalog cache entry '{key}' malformed, ignoring: {e}")
            return None

    def put(self, key: str, catalog: Catalog) -> None:
        payload: Dict[str, Any] = {
            "stored_at": self._clock(),
            "payload": [{"symbol": r.symbol, "name": r.name} for r in catalog],
        }
        self.store.set(key, payload)

    def invalidate(self, key: str = CATALOG_CACHE_KEY) -> None:
        self.store.delete(key)
        logger.info(f"Catalog cache entry '{key}' invalidated")
