"""
Categories, tags, topics and series.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from pulpit.db import UserRow
from pulpit.dependencies import get_taxonomy_service, require_permission
from pulpit.schemas import (
    ArticleOut,
    AssignIdsRequest,
    AssignSeriesRequest,
    CategoryIn,
    CategoryOut,
    CategoryUpdate,
    SeriesCountOut,
    SeriesIn,
    SeriesOut,
    SeriesUpdate,
    SermonOut,
    StatusResponse,
    TagIn,
    TagOut,
    TagUpdate,
    TopicIn,
    TopicOut,
    TopicUpdate,
)
from pulpit.services.taxonomy import TaxonomyService
from pulpit.shared.types import ContentType

router = APIRouter()

# Categories and tags have no permission of their own; they are organised
# alongside topics.
_organise = require_permission("topics.manage")


# Categories


@router.get("/categories", response_model=list[CategoryOut])
def list_categories(
    include_inactive: bool = Query(False),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.list_categories(include_inactive)


@router.get("/categories/{category_id}", response_model=CategoryOut)
def get_category(category_id: str, taxonomy: TaxonomyService = Depends(get_taxonomy_service)):
    return taxonomy.get_category(category_id)


@router.post("/categories", response_model=CategoryOut, status_code=201)
def create_category(
    payload: CategoryIn,
    _: UserRow = Depends(_organise),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.create_category(payload)


@router.patch("/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: str,
    payload: CategoryUpdate,
    _: UserRow = Depends(_organise),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.update_category(category_id, payload)


@router.delete("/categories/{category_id}", response_model=StatusResponse)
def delete_category(
    category_id: str,
    _: UserRow = Depends(_organise),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    taxonomy.delete_category(category_id)
    return StatusResponse()


# Tags


@router.get("/tags", response_model=list[TagOut])
def list_tags(taxonomy: TaxonomyService = Depends(get_taxonomy_service)):
    return taxonomy.list_tags()


@router.post("/tags", response_model=TagOut, status_code=201)
def create_tag(
    payload: TagIn,
    _: UserRow = Depends(_organise),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.create_tag(payload)


@router.patch("/tags/{tag_id}", response_model=TagOut)
def update_tag(
    tag_id: str,
    payload: TagUpdate,
    _: UserRow = Depends(_organise),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.update_tag(tag_id, payload)


@router.delete("/tags/{tag_id}", response_model=StatusResponse)
def delete_tag(
    tag_id: str,
    _: UserRow = Depends(_organise),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    taxonomy.delete_tag(tag_id)
    return StatusResponse()


@router.get("/sermons/{sermon_id}/tags", response_model=list[TagOut])
def sermon_tags(sermon_id: str, taxonomy: TaxonomyService = Depends(get_taxonomy_service)):
    return taxonomy.tags_for(ContentType.SERMON, sermon_id)


@router.put("/sermons/{sermon_id}/tags", response_model=list[TagOut])
def assign_sermon_tags(
    sermon_id: str,
    payload: AssignIdsRequest,
    _: UserRow = Depends(require_permission("content.sermons.edit")),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.assign_tags(ContentType.SERMON, sermon_id, payload.ids)


@router.get("/articles/{article_id}/tags", response_model=list[TagOut])
def article_tags(article_id: str, taxonomy: TaxonomyService = Depends(get_taxonomy_service)):
    return taxonomy.tags_for(ContentType.ARTICLE, article_id)


@router.put("/articles/{article_id}/tags", response_model=list[TagOut])
def assign_article_tags(
    article_id: str,
    payload: AssignIdsRequest,
    _: UserRow = Depends(require_permission("content.articles.edit")),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.assign_tags(ContentType.ARTICLE, article_id, payload.ids)


# Topics


@router.get("/topics", response_model=list[TopicOut])
def list_topics(
    include_inactive: bool = Query(False),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.list_topics(include_inactive)


@router.get("/topics/sermons", response_model=list[SermonOut])
def sermons_by_topics(
    ids: list[str] = Query(..., min_length=1),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.sermons_by_topics(ids)


@router.get("/topics/articles", response_model=list[ArticleOut])
def articles_by_topics(
    ids: list[str] = Query(..., min_length=1),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.articles_by_topics(ids)


@router.get("/topics/{topic_id}", response_model=TopicOut)
def get_topic(topic_id: str, taxonomy: TaxonomyService = Depends(get_taxonomy_service)):
    return taxonomy.get_topic(topic_id)


@router.post("/topics", response_model=TopicOut, status_code=201)
def create_topic(
    payload: TopicIn,
    _: UserRow = Depends(require_permission("topics.create")),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.create_topic(payload)


@router.patch("/topics/{topic_id}", response_model=TopicOut)
def update_topic(
    topic_id: str,
    payload: TopicUpdate,
    _: UserRow = Depends(require_permission("topics.manage")),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.update_topic(topic_id, payload)


@router.delete("/topics/{topic_id}", response_model=StatusResponse)
def delete_topic(
    topic_id: str,
    _: UserRow = Depends(require_permission("topics.manage")),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    taxonomy.delete_topic(topic_id)
    return StatusResponse()


@router.get("/sermons/{sermon_id}/topics", response_model=list[TopicOut])
def sermon_topics(sermon_id: str, taxonomy: TaxonomyService = Depends(get_taxonomy_service)):
    return taxonomy.topics_for(ContentType.SERMON, sermon_id)


@router.put("/sermons/{sermon_id}/topics", response_model=list[TopicOut])
def assign_sermon_topics(
    sermon_id: str,
    payload: AssignIdsRequest,
    _: UserRow = Depends(require_permission("topics.manage")),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.assign_topics_to_sermon(sermon_id, payload.ids)


@router.get("/articles/{article_id}/topics", response_model=list[TopicOut])
def article_topics(article_id: str, taxonomy: TaxonomyService = Depends(get_taxonomy_service)):
    return taxonomy.topics_for(ContentType.ARTICLE, article_id)


@router.put("/articles/{article_id}/topics", response_model=list[TopicOut])
def assign_article_topics(
    article_id: str,
    payload: AssignIdsRequest,
    _: UserRow = Depends(require_permission("topics.manage")),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.assign_topics_to_article(article_id, payload.ids)


# Series


@router.get("/series", response_model=list[SeriesOut])
def list_series(
    include_inactive: bool = Query(False),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.list_series(include_inactive)


@router.get("/series/counts", response_model=list[SeriesCountOut])
def series_sermon_counts(
    include_inactive: bool = Query(False),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return [
        SeriesCountOut(series=SeriesOut.model_validate(series), sermon_count=count)
        for series, count in taxonomy.series_sermon_counts(include_inactive)
    ]


@router.get("/series/{series_id}", response_model=SeriesOut)
def get_series(series_id: str, taxonomy: TaxonomyService = Depends(get_taxonomy_service)):
    return taxonomy.get_series(series_id)


@router.get("/series/{series_id}/sermons", response_model=list[SermonOut])
def sermons_in_series(series_id: str, taxonomy: TaxonomyService = Depends(get_taxonomy_service)):
    return taxonomy.sermons_by_series(series_id)


@router.get("/series/{series_id}/articles", response_model=list[ArticleOut])
def articles_in_series(series_id: str, taxonomy: TaxonomyService = Depends(get_taxonomy_service)):
    return taxonomy.articles_by_series(series_id)


@router.post("/series", response_model=SeriesOut, status_code=201)
def create_series(
    payload: SeriesIn,
    _: UserRow = Depends(require_permission("series.create")),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.create_series(payload)


@router.patch("/series/{series_id}", response_model=SeriesOut)
def update_series(
    series_id: str,
    payload: SeriesUpdate,
    _: UserRow = Depends(require_permission("series.manage")),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.update_series(series_id, payload)


@router.delete("/series/{series_id}", response_model=StatusResponse)
def delete_series(
    series_id: str,
    _: UserRow = Depends(require_permission("series.manage")),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    taxonomy.delete_series(series_id)
    return StatusResponse()


@router.get("/articles/{article_id}/series", response_model=list[SeriesOut])
def article_series(article_id: str, taxonomy: TaxonomyService = Depends(get_taxonomy_service)):
    return taxonomy.series_for_article(article_id)


@router.put("/articles/{article_id}/series", response_model=list[SeriesOut])
def assign_article_series(
    article_id: str,
    payload: AssignIdsRequest,
    _: UserRow = Depends(require_permission("series.manage")),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.assign_series_to_article(article_id, payload.ids)


@router.put("/sermons/{sermon_id}/series", response_model=SermonOut)
def assign_sermon_series(
    sermon_id: str,
    payload: AssignSeriesRequest,
    _: UserRow = Depends(require_permission("series.manage")),
    taxonomy: TaxonomyService = Depends(get_taxonomy_service),
):
    return taxonomy.assign_sermon_to_series(sermon_id, payload.series_id)
