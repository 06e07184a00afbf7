from fastapi import Request

from kynos.services.search import SearchService


def get_search_service(request: Request) -> SearchService:
    return request.app.state.search_service
