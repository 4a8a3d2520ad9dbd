"""
Search endpoints.
"""

from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from pulpit.dependencies import get_search_service
from pulpit.schemas import AdvancedSearchRequest, SearchFiltersOut, SearchResultOut
from pulpit.services.search import SearchService
from pulpit.shared.constants import DEFAULT_SEARCH_LIMIT, MAX_SEARCH_RESULTS

router = APIRouter(prefix="/search")


@router.get("", response_model=list[SearchResultOut])
def search(
    q: str = Query(..., max_length=200),
    type: Literal["all", "sermon", "article"] = Query("all"),
    categories: Optional[list[str]] = Query(None),
    tags: Optional[list[str]] = Query(None),
    featured: Optional[bool] = Query(None),
    limit: int = Query(DEFAULT_SEARCH_LIMIT, ge=1, le=MAX_SEARCH_RESULTS),
    search_service: SearchService = Depends(get_search_service),
):
    return search_service.search(
        q,
        type,
        categories=categories,
        tags=tags,
        featured=featured,
        limit=limit,
    )


@router.post("/advanced", response_model=list[SearchResultOut])
def advanced_search(
    payload: AdvancedSearchRequest,
    search_service: SearchService = Depends(get_search_service),
):
    return search_service.advanced_search(payload)


@router.get("/suggestions", response_model=list[str])
def suggestions(
    q: str = Query(..., max_length=200),
    limit: int = Query(10, ge=1, le=50),
    search_service: SearchService = Depends(get_search_service),
):
    return search_service.suggestions(q, limit)


@router.get("/filters", response_model=SearchFiltersOut)
def filters(search_service: SearchService = Depends(get_search_service)):
    return search_service.filters()


@router.get("/trending", response_model=list[str])
def trending(
    limit: int = Query(10, ge=1, le=50),
    search_service: SearchService = Depends(get_search_service),
):
    return search_service.trending(limit)
