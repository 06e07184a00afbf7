# backend/kynos/core/settings.py
import os
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel
from dotenv import load_dotenv

# Resolve backend directory and load .env explicitly
BACKEND_DIR = Path(__file__).resolve().parents[2]  # .../backend
load_dotenv(BACKEND_DIR / ".env")  # do NOT set override=True; shell exports still win


def _optional_float(raw: Optional[str]) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    return float(raw)


class Settings(BaseModel):
    env: str = os.getenv("APP_ENV", "dev")
    port: int = int(os.getenv("PORT", "8000"))
    cors_origins: List[str] = [
        o.strip()
        for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
        if o.strip()
    ]

    # external services
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    polygon_api_key: str = os.getenv("POLYGON_API_KEY", "")
    http_timeout_s: float = float(os.getenv("HTTP_TIMEOUT_S", "10"))
    http_max_retries: int = int(os.getenv("HTTP_MAX_RETRIES", "1"))

    # catalog + search
    ticker_list_path: str = os.getenv("TICKER_LIST_PATH", str(BACKEND_DIR / "ticker-list.json"))
    search_result_limit: int = int(os.getenv("SEARCH_RESULT_LIMIT", "10"))
    search_threshold: float = float(os.getenv("SEARCH_THRESHOLD", "0.3"))
    default_days: int = int(os.getenv("DEFAULT_DAYS", "365"))

    # terminal client
    api_url: str = os.getenv("KYNOS_API_URL", "http://127.0.0.1:8000")
    catalog_cache_path: str = os.getenv("CATALOG_CACHE_PATH", str(Path.home() / ".kynos" / "catalog.json"))
    catalog_cache_ttl_s: Optional[float] = _optional_float(os.getenv("CATALOG_CACHE_TTL_S"))


settings = Settings()
