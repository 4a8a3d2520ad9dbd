"""
Sermons, articles, dashboard content and the carousel.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from pulpit.db import UserRow
from pulpit.dependencies import (
    can_see_drafts,
    get_content_service,
    get_optional_user,
    require_permission,
)
from pulpit.listing import ContentQuery
from pulpit.schemas import (
    ArticleCreate,
    ArticleOut,
    ArticleUpdate,
    CarouselImageIn,
    CarouselImageOut,
    CarouselImageUpdate,
    ContentEventRequest,
    ContentStatsOut,
    CountResponse,
    FeaturedContentOut,
    IdsRequest,
    PageOut,
    SermonCreate,
    SermonOut,
    SermonUpdate,
    StatusResponse,
    to_page,
)
from pulpit.services.content import ContentService
from pulpit.shared.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from pulpit.shared.types import ContentType, SortField, SortOrder

router = APIRouter()


def content_query(
    query: Optional[str] = Query(None, max_length=200),
    category: Optional[str] = Query(None),
    tags: Optional[list[str]] = Query(None),
    topics: Optional[list[str]] = Query(None),
    series: Optional[str] = Query(None),
    featured: Optional[bool] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    sort_by: Optional[SortField] = Query(None),
    sort_order: SortOrder = Query(SortOrder.DESC),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> ContentQuery:
    return ContentQuery(
        query=query,
        category=category,
        tags=tags or [],
        topics=topics or [],
        series=series,
        featured=featured,
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )


def _with_drafts(params: ContentQuery, include_drafts: bool, user: Optional[UserRow]) -> ContentQuery:
    if include_drafts and can_see_drafts(user):
        return params.model_copy(update={"published": None})
    return params


# Sermons


@router.get("/sermons", response_model=PageOut[SermonOut])
def list_sermons(
    params: ContentQuery = Depends(content_query),
    include_drafts: bool = Query(False),
    user: Optional[UserRow] = Depends(get_optional_user),
    content: ContentService = Depends(get_content_service),
):
    page = content.list_sermons(_with_drafts(params, include_drafts, user))
    return to_page(page, SermonOut)


@router.get("/sermons/{sermon_id}", response_model=SermonOut)
def get_sermon(
    sermon_id: str,
    user: Optional[UserRow] = Depends(get_optional_user),
    content: ContentService = Depends(get_content_service),
):
    return content.get_sermon(sermon_id, include_drafts=can_see_drafts(user))


@router.post("/sermons", response_model=SermonOut, status_code=201)
def create_sermon(
    payload: SermonCreate,
    user: UserRow = Depends(require_permission("content.sermons.create")),
    content: ContentService = Depends(get_content_service),
):
    return content.create_sermon(payload, actor_id=user.id)


@router.patch("/sermons/{sermon_id}", response_model=SermonOut)
def update_sermon(
    sermon_id: str,
    payload: SermonUpdate,
    user: UserRow = Depends(require_permission("content.sermons.edit")),
    content: ContentService = Depends(get_content_service),
):
    return content.update_sermon(sermon_id, payload, actor_id=user.id)


@router.delete("/sermons/{sermon_id}", response_model=StatusResponse)
def delete_sermon(
    sermon_id: str,
    user: UserRow = Depends(require_permission("content.sermons.delete")),
    content: ContentService = Depends(get_content_service),
):
    content.delete_sermon(sermon_id, actor_id=user.id)
    return StatusResponse()


# Articles


@router.get("/articles", response_model=PageOut[ArticleOut])
def list_articles(
    params: ContentQuery = Depends(content_query),
    include_drafts: bool = Query(False),
    user: Optional[UserRow] = Depends(get_optional_user),
    content: ContentService = Depends(get_content_service),
):
    page = content.list_articles(_with_drafts(params, include_drafts, user))
    return to_page(page, ArticleOut)


@router.get("/articles/{article_id}", response_model=ArticleOut)
def get_article(
    article_id: str,
    user: Optional[UserRow] = Depends(get_optional_user),
    content: ContentService = Depends(get_content_service),
):
    return content.get_article(article_id, include_drafts=can_see_drafts(user))


@router.post("/articles", response_model=ArticleOut, status_code=201)
def create_article(
    payload: ArticleCreate,
    user: UserRow = Depends(require_permission("content.articles.create")),
    content: ContentService = Depends(get_content_service),
):
    return content.create_article(payload, actor_id=user.id)


@router.patch("/articles/{article_id}", response_model=ArticleOut)
def update_article(
    article_id: str,
    payload: ArticleUpdate,
    user: UserRow = Depends(require_permission("content.articles.edit")),
    content: ContentService = Depends(get_content_service),
):
    return content.update_article(article_id, payload, actor_id=user.id)


@router.delete("/articles/{article_id}", response_model=StatusResponse)
def delete_article(
    article_id: str,
    user: UserRow = Depends(require_permission("content.articles.delete")),
    content: ContentService = Depends(get_content_service),
):
    content.delete_article(article_id, actor_id=user.id)
    return StatusResponse()


# Engagement events


@router.post("/content/{content_type}/{content_id}/view", response_model=CountResponse)
def record_view(
    content_type: ContentType,
    content_id: str,
    user: Optional[UserRow] = Depends(get_optional_user),
    content: ContentService = Depends(get_content_service),
):
    views = content.record_view(content_type, content_id, user.id if user else None)
    return CountResponse(count=views)


@router.post("/content/{content_type}/{content_id}/download", response_model=CountResponse)
def record_download(
    content_type: ContentType,
    content_id: str,
    payload: Optional[ContentEventRequest] = None,
    user: Optional[UserRow] = Depends(get_optional_user),
    content: ContentService = Depends(get_content_service),
):
    downloads = content.record_download(
        content_type,
        content_id,
        user.id if user else None,
        payload.file_size if payload else None,
    )
    return CountResponse(count=downloads or 0)


@router.get("/content/featured", response_model=FeaturedContentOut)
def featured_content(content: ContentService = Depends(get_content_service)):
    return content.featured_content()


@router.get("/content/stats", response_model=ContentStatsOut)
def content_stats(content: ContentService = Depends(get_content_service)):
    return content.content_stats()


# Carousel


@router.get("/carousel", response_model=list[CarouselImageOut])
def list_carousel(content: ContentService = Depends(get_content_service)):
    return content.carousel_images()


@router.get("/carousel/all", response_model=list[CarouselImageOut])
def list_all_carousel(
    _: UserRow = Depends(require_permission("content.sermons.create")),
    content: ContentService = Depends(get_content_service),
):
    return content.carousel_images(active_only=False)


@router.post("/carousel", response_model=CarouselImageOut, status_code=201)
def create_carousel_image(
    payload: CarouselImageIn,
    _: UserRow = Depends(require_permission("content.sermons.create")),
    content: ContentService = Depends(get_content_service),
):
    return content.create_carousel_image(payload)


@router.put("/carousel/order", response_model=list[CarouselImageOut])
def reorder_carousel(
    payload: IdsRequest,
    _: UserRow = Depends(require_permission("content.sermons.create")),
    content: ContentService = Depends(get_content_service),
):
    return content.reorder_carousel_images(payload.ids)


@router.patch("/carousel/{image_id}", response_model=CarouselImageOut)
def update_carousel_image(
    image_id: str,
    payload: CarouselImageUpdate,
    _: UserRow = Depends(require_permission("content.sermons.create")),
    content: ContentService = Depends(get_content_service),
):
    return content.update_carousel_image(image_id, payload)


@router.delete("/carousel/{image_id}", response_model=StatusResponse)
def delete_carousel_image(
    image_id: str,
    _: UserRow = Depends(require_permission("content.sermons.create")),
    content: ContentService = Depends(get_content_service),
):
    content.delete_carousel_image(image_id)
    return StatusResponse()
