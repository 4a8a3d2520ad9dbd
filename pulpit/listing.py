"""
Search, filter, sort and paginate helpers shared by every content listing.

`apply_content_query` builds the SQL side for sermons and articles; the
`sort_items` / `paginate_list` pair gives lists assembled in Python (saved
content, mixed search results) the same `Page` contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar

from pydantic import BaseModel, Field
from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from pulpit.db import (
    ArticleRow,
    ArticleSeriesRow,
    ArticleTagRow,
    ArticleTopicRow,
    SermonRow,
    SermonTagRow,
    SermonTopicRow,
    TagRow,
)
from pulpit.shared.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from pulpit.shared.types import SortField, SortOrder
from pulpit.shared.utils import date_to_ts

T = TypeVar("T")

DAY_SECONDS = 24 * 60 * 60


class ContentQuery(BaseModel):
    query: Optional[str] = None
    category: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)
    series: Optional[str] = None
    featured: Optional[bool] = None
    # None means drafts and published content alike.
    published: Optional[bool] = True
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    # None means the listing's natural order: content date, or save time for a library.
    sort_by: Optional[SortField] = None
    sort_order: SortOrder = SortOrder.DESC
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)


@dataclass
class Page(Generic[T]):
    items: list[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    has_more: bool = False


def make_page(items: list[T], total: int, page: int, limit: int) -> Page[T]:
    return Page(items=items, total=total, page=page, limit=limit, has_more=page * limit < total)


@dataclass(frozen=True)
class _ContentColumns:
    searchable: tuple
    date_column: Any
    popularity: Any
    downloads: Any
    author: Any
    topic_link: Any
    topic_key: Any
    tag_link: Any
    tag_key: Any


def _columns_for(model) -> _ContentColumns:
    if model is SermonRow:
        return _ContentColumns(
            searchable=(SermonRow.title, SermonRow.description, SermonRow.preacher),
            date_column=SermonRow.date,
            popularity=SermonRow.downloads,
            downloads=SermonRow.downloads,
            author=SermonRow.preacher,
            topic_link=SermonTopicRow.topic_id,
            topic_key=SermonTopicRow.sermon_id,
            tag_link=SermonTagRow.tag_id,
            tag_key=SermonTagRow.sermon_id,
        )
    if model is ArticleRow:
        # Articles carry no download counter; views stand in.
        return _ContentColumns(
            searchable=(ArticleRow.title, ArticleRow.excerpt, ArticleRow.content, ArticleRow.author),
            date_column=ArticleRow.published_at,
            popularity=ArticleRow.views,
            downloads=ArticleRow.views,
            author=ArticleRow.author,
            topic_link=ArticleTopicRow.topic_id,
            topic_key=ArticleTopicRow.article_id,
            tag_link=ArticleTagRow.tag_id,
            tag_key=ArticleTagRow.article_id,
        )
    raise ValueError(f"Unsupported content model: {model!r}")


def _date_bounds(model, params: ContentQuery) -> list:
    cols = _columns_for(model)
    clauses = []
    if model is SermonRow:
        if params.date_from:
            clauses.append(cols.date_column >= params.date_from)
        if params.date_to:
            clauses.append(cols.date_column <= params.date_to)
    else:
        if params.date_from:
            clauses.append(cols.date_column >= date_to_ts(params.date_from))
        if params.date_to:
            clauses.append(cols.date_column < date_to_ts(params.date_to) + DAY_SECONDS)
    return clauses


def apply_content_query(stmt: Select, model, params: ContentQuery) -> Select:
    """Apply filters and ordering from `params` to a select over `model`."""
    cols = _columns_for(model)

    if params.query and params.query.strip():
        pattern = f"%{params.query.strip()}%"
        stmt = stmt.where(or_(*[column.ilike(pattern) for column in cols.searchable]))
    if params.category:
        stmt = stmt.where(model.category_id == params.category)
    if params.featured is not None:
        stmt = stmt.where(model.is_featured == params.featured)
    if params.published is not None:
        stmt = stmt.where(model.is_published == params.published)
    if params.tags:
        tag_ids = select(TagRow.id).where(
            or_(TagRow.id.in_(params.tags), TagRow.name.in_(params.tags))
        )
        stmt = stmt.where(
            model.id.in_(select(cols.tag_key).where(cols.tag_link.in_(tag_ids)))
        )
    if params.topics:
        stmt = stmt.where(
            model.id.in_(select(cols.topic_key).where(cols.topic_link.in_(params.topics)))
        )
    if params.series:
        if model is SermonRow:
            stmt = stmt.where(SermonRow.series_id == params.series)
        else:
            stmt = stmt.where(
                ArticleRow.id.in_(
                    select(ArticleSeriesRow.article_id).where(
                        ArticleSeriesRow.series_id == params.series
                    )
                )
            )
    for clause in _date_bounds(model, params):
        stmt = stmt.where(clause)

    return apply_sort(stmt, model, params.sort_by, params.sort_order)


def apply_sort(
    stmt: Select, model, sort_by: Optional[SortField], sort_order: SortOrder
) -> Select:
    cols = _columns_for(model)
    column = {
        SortField.DATE: cols.date_column,
        # Content lists have no save time of their own.
        SortField.SAVED_AT: cols.date_column,
        SortField.AUTHOR: cols.author,
        SortField.TITLE: model.title,
        SortField.POPULARITY: cols.popularity,
        SortField.VIEWS: model.views,
        SortField.DOWNLOADS: cols.downloads,
    }[SortField(sort_by or SortField.DATE)]
    ordered = column.asc() if sort_order == SortOrder.ASC else column.desc()
    return stmt.order_by(ordered, model.id.asc())


def paginate(session: Session, stmt: Select, page: int, limit: int) -> Page:
    """Run `stmt` for one page and count the unpaginated result."""
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = session.scalar(count_stmt) or 0
    items = list(session.scalars(stmt.offset((page - 1) * limit).limit(limit)).all())
    return make_page(items, total, page, limit)


def sort_items(
    items: Sequence[T],
    key: Callable[[T], Any],
    order: SortOrder = SortOrder.DESC,
) -> list[T]:
    """Stable sort with missing keys always last."""
    present = [item for item in items if key(item) is not None]
    missing = [item for item in items if key(item) is None]
    present.sort(key=key, reverse=order == SortOrder.DESC)
    return present + missing


def paginate_list(items: Sequence[T], page: int, limit: int) -> Page[T]:
    start = (page - 1) * limit
    return make_page(list(items[start : start + limit]), len(items), page, limit)
