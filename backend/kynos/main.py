# backend/kynos/main.py
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from kynos.core.settings import settings
from kynos.models.records import Catalog
from kynos.services.catalog import load_catalog
from kynos.services.search import SearchService
from kynos.api.routes_stocks import router as stocks_router
from kynos.api.routes_openai import router as openai_router


def create_app(catalog: Optional[Catalog] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "search_service", None) is None:
            # CatalogLoadError here aborts startup
            app.state.search_service = SearchService(load_catalog(settings.ticker_list_path))
        logger.info(f"Serving {len(app.state.search_service.catalog)} tickers")
        yield

    app = FastAPI(title="Kynos Stock Chart API", version="0.1.0", lifespan=lifespan)
    app.state.search_service = SearchService(catalog) if catalog is not None else None

    # CORS for local dev frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(stocks_router, tags=["stocks"])
    app.include_router(openai_router, tags=["openai"])

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    @app.get("/health")
    def health():
        logger.info("Health check ok")
        return {"status": "ok", "env": settings.env}

    @app.get("/config/check")
    def config_check():
        return {
            "openai_key_present": bool(settings.openai_api_key),
            "polygon_key_present": bool(settings.polygon_api_key),
        }

    return app


app = create_app()
