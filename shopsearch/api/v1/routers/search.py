# shopsearch/api/v1/routers/search.py
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from typing import Optional
import time
import logging

from shopsearch.api.deps import search_service, trending_repo
from shopsearch.api.v1.schemas.search import (
    ExactSearchRequest,
    SearchRequest,
    SearchResponse,
    SuggestionRequest,
)
from shopsearch.core.config import Settings, get_settings
from shopsearch.domain.models.search import SearchStatus
from shopsearch.domain.repositories.trending_repo import TrendingSearchRepo
from shopsearch.domain.services.search_svc import HybridSearchService
from shopsearch.domain.services.trending_svc import get_trending, record_search

logger = logging.getLogger(__name__)

router = APIRouter(tags=["search"])


def empty_query_response() -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "message": "Search query must not be empty"})


def server_error(message: str, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"success": False, "message": message, "error": str(exc)})


@router.post("/ai-search")
async def ai_search(
    body: SearchRequest,
    svc: HybridSearchService = Depends(search_service),
    trending: Optional[TrendingSearchRepo] = Depends(trending_repo),
):
    """
    Hybrid search: LLM-normalized keywords + query embedding, lexical and
    vector branches fused by intent weights, one LLM-recommended pick.
    Degraded branches still answer 200 with `status: degraded`.
    """
    query = (body.query or "").strip()
    if not query:
        return empty_query_response()

    logger.info(f"Request: ai_search query={query!r} limit={body.limit}")
    start_time = time.perf_counter()
    try:
        outcome = await svc.hybrid_search(query, body.limit, body.filters, recommend=True)
    except Exception as e:
        logger.exception(f"ai_search failed query={query!r}")
        return server_error("Search service temporarily unavailable", e)

    if outcome.status != SearchStatus.EMPTY:
        await record_search(trending, query)

    logger.info(
        f"Response: ai_search query={query!r} method={outcome.breakdown.search_method} "
        f"count={len(outcome.results)} elapsed_time={time.perf_counter() - start_time:.4f}s"
    )
    return SearchResponse.from_outcome(query, "hybrid", outcome).model_dump()


@router.post("/vector-search")
async def vector_search(
    body: SearchRequest,
    svc: HybridSearchService = Depends(search_service),
):
    """Semantic branch only (weights 1.0 / 0.0); no LLM normalization or recommendation."""
    query = (body.query or "").strip()
    if not query:
        return empty_query_response()

    logger.info(f"Request: vector_search query={query!r} limit={body.limit}")
    try:
        outcome = await svc.vector_only_search(query, body.limit, body.filters)
    except Exception as e:
        logger.exception(f"vector_search failed query={query!r}")
        return server_error("Vector search temporarily unavailable", e)

    return SearchResponse.from_outcome(query, "vector", outcome).model_dump()


@router.post("/exact-search")
async def exact_search(body: ExactSearchRequest, svc: HybridSearchService = Depends(search_service)):
    query = (body.query or "").strip()
    if not query:
        return {"success": True, "results": []}
    try:
        outcome = await svc.exact_search(query)
    except Exception as e:
        logger.exception(f"exact_search failed query={query!r}")
        return server_error("Exact search failed", e)

    return {
        "success": True,
        "results": [r.model_dump(mode="json") for r in outcome.results],
        "breakdown": {
            "search_method": outcome.breakdown.search_method,
            "total_results": len(outcome.results),
        },
    }


@router.post("/search-suggestions")
async def search_suggestions(body: SuggestionRequest, svc: HybridSearchService = Depends(search_service)):
    suggestions = await svc.suggestions(body.query or "", body.limit)
    return {"success": True, "suggestions": suggestions}


@router.get("/trending-searches")
async def trending_searches(
    limit: Optional[int] = Query(None, ge=1, le=50),
    trending: Optional[TrendingSearchRepo] = Depends(trending_repo),
    settings: Settings = Depends(get_settings),
):
    terms = await get_trending(trending, limit or settings.trending_limit)
    return {"success": True, "trending": terms}
