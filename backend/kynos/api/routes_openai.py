from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger

from kynos.api.deps import get_search_service
from kynos.models.records import PromptRequest
from kynos.services.intent import IntentFlow, OpenAIIntentResolver, get_intent_resolver
from kynos.services.polygon_client import PolygonClient, get_polygon
from kynos.services.search import SearchService

router = APIRouter()


@router.post("/openai")
def resolve_prompt(
    payload: PromptRequest,
    service: SearchService = Depends(get_search_service),
    resolver: OpenAIIntentResolver = Depends(get_intent_resolver),
    market: PolygonClient = Depends(get_polygon),
) -> JSONResponse:
    logger.info("OpenAI route called")
    body, status = IntentFlow(service, resolver, market).run(payload.prompt)
    return JSONResponse(body, status_code=status)
