from __future__ import annotations

import json
import time
from typing import Any, Dict, Optional, Sequence, Tuple

from loguru import logger
from openai import OpenAI, OpenAIError
from pydantic import BaseModel, ValidationError

from kynos.core.errors import CompanyNotFound, KynosError, Unprocessable, UpstreamError
from kynos.core.settings import settings
from kynos.services.polygon_client import PolygonClient
from kynos.services.search import SearchService
from kynos.services.series import normalize_days
from kynos.services.stocks import get_stock_series

FUNCTION_NAME = "get_stock_graph"

GET_STOCK_GRAPH_TOOL: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": FUNCTION_NAME,
        "description": "Get stock market data for a company",
        "parameters": {
            "type": "object",
            "properties": {
                "companyName": {
                    "type": "string",
                    "description": "The name of the company, exactly as written in the list of known companies",
                },
                "days": {
                    "type": "number",
                    "description": "Number of days of data to retrieve",
                },
            },
            "required": ["companyName"],
        },
    },
}

SYSTEM_PROMPT = (
    "You are an assistant that helps retrieve stock market data for S&P 500 companies. "
    "When asked about a company's stock, use the get_stock_graph function to fetch the data. "
    "Convert the timeframe to number of days. If no timeframe is specified, use the last year "
    "(365 days) as the default. Pass companyName exactly as it appears in this list of known "
    "companies:\n{names}"
)


class StockGraphArgs(BaseModel):
    companyName: str
    days: Optional[float] = None


# =============================================================================
# Intent resolver (OpenAI function calling)
# =============================================================================
class OpenAIIntentResolver:
    def __init__(self, api_key: str, model: str, timeout_s: float, max_retries: int = 1, client: Any = None):
        self.api_key = api_key
        self.model = model
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.api_key:
                raise UpstreamError("OPENAI_API_KEY missing")
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout_s, max_retries=self.max_retries)
        return self._client

    def extract(self, prompt: str, company_names: Sequence[str]) -> Optional[StockGraphArgs]:
        """Arguments of the get_stock_graph call, or None when the model answered in prose."""
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT.format(names="; ".join(company_names))},
                    {"role": "user", "content": prompt},
                ],
                tools=[GET_STOCK_GRAPH_TOOL],
                tool_choice="auto",
            )
        except OpenAIError as e:
            logger.error(f"OpenAI call failed: {e}")
            raise UpstreamError(str(e)) from e

        choices = getattr(resp, "choices", None) or []
        if not choices:
            raise UpstreamError("Intent resolver returned no choices")
        message = choices[0].message

        for call in getattr(message, "tool_calls", None) or []:
            fn = getattr(call, "function", None)
            if fn is None or fn.name != FUNCTION_NAME:
                continue
            try:
                return StockGraphArgs.model_validate(json.loads(fn.arguments or "{}"))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.error(f"Malformed {FUNCTION_NAME} arguments: {fn.arguments!r}")
                raise UpstreamError(f"Intent resolver returned malformed arguments for {FUNCTION_NAME}") from e
        return None


_resolver: Optional[OpenAIIntentResolver] = None


def get_intent_resolver() -> OpenAIIntentResolver:
    global _resolver
    if _resolver is None:
        _resolver = OpenAIIntentResolver(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout_s=settings.http_timeout_s,
            max_retries=settings.http_max_retries,
        )
    return _resolver


# =============================================================================
# Flow
# =============================================================================
class IntentFlow:
    """Free-text prompt -> resolved ticker -> trimmed price series."""

    def __init__(self, service: SearchService, resolver: OpenAIIntentResolver, market: PolygonClient,
                 default_days: Optional[int] = None):
        self.service = service
        self.resolver = resolver
        self.market = market
        self.default_days = default_days or settings.default_days

    def resolve(self, prompt: str) -> Tuple[str, str, int]:
        """(symbol, companyName as echoed by the model, days). Raises KynosError."""
        if not (prompt or "").strip():
            raise Unprocessable()
        names = [r.name for r in self.service.catalog]
        args = self.resolver.extract(prompt, names)
        if args is None:
            raise Unprocessable()
        symbol = self.service.resolve_by_name(args.companyName)
        if symbol is None:
            raise CompanyNotFound(args.companyName)
        return symbol, args.companyName, normalize_days(args.days, self.default_days)

    def execute(self, prompt: str) -> Dict[str, Any]:
        symbol, company, days = self.resolve(prompt)
        series = get_stock_series(self.market, symbol, company, days, self.default_days)
        return series.model_dump()

    def run(self, prompt: str) -> Tuple[Dict[str, Any], int]:
        """Never raises: (payload, http status), payload is {"error": ...} on failure."""
        t0 = time.time()
        try:
            return self.execute(prompt), 200
        except KynosError as e:
            logger.warning(f"Prompt not resolved: {e.message}")
            return e.to_payload(), e.status_code
        except Exception as e:
            logger.exception(f"Error in prompt flow: {e}")
            return UpstreamError(str(e) or e.__class__.__name__).to_payload(), 500
        finally:
            logger.info(f"Prompt flow completed in {int((time.time() - t0) * 1000)}ms")
