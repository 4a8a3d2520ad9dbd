"""
Content search across sermons and articles.

Matching is a case-insensitive substring test; results are ranked with a
small additive relevance score rather than a full-text index.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional

from sqlalchemy import func, select

from pulpit.db import ArticleRow, CategoryRow, ContentViewRow, Database, SermonRow, TagRow, row_to_dict
from pulpit.listing import ContentQuery, apply_content_query
from pulpit.schemas import AdvancedSearchRequest
from pulpit.services.content import CONTENT_MODELS, content_date
from pulpit.services.notifications import truncate_text
from pulpit.services.taxonomy import tag_names_for
from pulpit.shared.constants import (
    DEFAULT_SEARCH_LIMIT,
    MAX_SEARCH_RESULTS,
    MIN_SEARCH_QUERY_LENGTH,
    TRENDING_FALLBACK_TERMS,
)
from pulpit.shared.types import ContentType, SortField, SortOrder
from pulpit.shared.utils import now_ts

logger = logging.getLogger(__name__)

TRENDING_WINDOW = timedelta(days=7)


@dataclass
class SearchResult:
    id: str
    type: ContentType
    title: str
    excerpt: str
    category_id: Optional[str]
    tags: list[str] = field(default_factory=list)
    relevance: int = 0
    data: dict = field(default_factory=dict)
    published_on: Optional[date] = None


def calculate_relevance(query: str, title: str, body: str, author: str, tags: Iterable[str]) -> int:
    needle = query.lower()
    title_hit = needle in (title or "").lower()
    body_hit = needle in (body or "").lower()
    author_hit = needle in (author or "").lower()
    tag_hits = sum(1 for tag in tags if needle in tag.lower())

    score = 0
    if title_hit:
        score += 10
        if (title or "").lower() == needle:
            score += 5
    if body_hit:
        score += 3
    if author_hit:
        score += 7
    score += 6 * tag_hits

    match_count = sum([title_hit, body_hit, author_hit, tag_hits > 0])
    if match_count > 1:
        score += match_count * 2
    return score


def _fields(content_type: ContentType, row) -> tuple[str, str, str]:
    """Returns (excerpt, body, author) for scoring and display."""
    if content_type == ContentType.SERMON:
        return row.description or "", row.description or "", row.preacher
    return row.excerpt or truncate_text(row.content, 200), row.content or "", row.author


def _popularity(result: SearchResult) -> int:
    if result.type == ContentType.SERMON:
        return result.data.get("downloads") or 0
    return result.data.get("views") or 0


class SearchService:
    def __init__(self, db: Database):
        self.db = db

    def _collect(
        self,
        content_type: str,
        params: ContentQuery,
        categories: list[str],
        query: Optional[str],
        limit: Optional[int],
    ) -> list[SearchResult]:
        types = [ContentType.SERMON, ContentType.ARTICLE] if content_type == "all" else [ContentType(content_type)]
        results: list[SearchResult] = []
        with self.db.Session() as session:
            for kind in types:
                model = CONTENT_MODELS[kind]
                stmt = apply_content_query(select(model), model, params)
                if categories:
                    stmt = stmt.where(model.category_id.in_(categories))
                if limit:
                    stmt = stmt.limit(limit)
                rows = list(session.scalars(stmt).all())
                tags = tag_names_for(session, kind, [row.id for row in rows])
                for row in rows:
                    excerpt, body, author = _fields(kind, row)
                    row_tags = tags.get(row.id, [])
                    relevance = (
                        calculate_relevance(query, row.title, body, author, row_tags) if query else 1
                    )
                    results.append(
                        SearchResult(
                            id=row.id,
                            type=kind,
                            title=row.title,
                            excerpt=excerpt,
                            category_id=row.category_id,
                            tags=row_tags,
                            relevance=relevance,
                            data=row_to_dict(row),
                            published_on=content_date(kind, row),
                        )
                    )
        return results

    def search(
        self,
        query: str,
        content_type: str = "all",
        *,
        categories: Optional[list[str]] = None,
        tags: Optional[list[str]] = None,
        featured: Optional[bool] = None,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> list[SearchResult]:
        """Published content matching `query`, best matches first."""
        query = (query or "").strip()
        if len(query) < MIN_SEARCH_QUERY_LENGTH:
            return []
        limit = max(1, min(limit, MAX_SEARCH_RESULTS))
        params = ContentQuery(query=query, tags=tags or [], featured=featured, published=True)
        results = self._collect(content_type, params, categories or [], query, limit)
        results.sort(key=lambda result: result.relevance, reverse=True)
        return results[:limit]

    def advanced_search(self, criteria: AdvancedSearchRequest) -> list[SearchResult]:
        query = (criteria.query or "").strip() or None
        limit = max(1, min(criteria.limit, MAX_SEARCH_RESULTS))
        params = ContentQuery(
            query=query,
            tags=criteria.tags,
            featured=criteria.featured,
            published=True,
            date_from=criteria.date_from,
            date_to=criteria.date_to,
        )
        results = self._collect(criteria.type, params, criteria.categories, query, None)

        reverse = criteria.sort_order == SortOrder.DESC
        if criteria.sort_by == "relevance" and query:
            results.sort(key=lambda result: result.relevance, reverse=True)
        elif criteria.sort_by == SortField.TITLE:
            results.sort(key=lambda result: result.title.lower(), reverse=reverse)
        elif criteria.sort_by == SortField.POPULARITY:
            results.sort(key=_popularity, reverse=reverse)
        else:
            # Date order, also used for relevance when there is nothing to score.
            results.sort(
                key=lambda result: result.published_on,
                reverse=reverse if criteria.sort_by == SortField.DATE else True,
            )
        return results[:limit]

    def suggestions(self, partial: str, limit: int = 10) -> list[str]:
        partial = (partial or "").strip()
        if len(partial) < MIN_SEARCH_QUERY_LENGTH:
            return []
        pattern = f"%{partial}%"
        suggestions: dict[str, None] = {}
        with self.db.Session() as session:
            for model in (SermonRow, ArticleRow):
                titles = session.scalars(
                    select(model.title)
                    .where(model.is_published.is_(True), model.title.ilike(pattern))
                    .order_by(model.title)
                    .limit(20)
                ).all()
                suggestions.update(dict.fromkeys(titles))
            names = session.scalars(
                select(TagRow.name).where(TagRow.name.ilike(pattern)).order_by(TagRow.name)
            ).all()
            suggestions.update(dict.fromkeys(names))
        return list(suggestions)[:limit]

    def filters(self) -> dict:
        with self.db.Session() as session:
            categories = session.scalars(
                select(CategoryRow.id)
                .where(CategoryRow.is_active.is_(True))
                .order_by(CategoryRow.sort_order, CategoryRow.name)
            ).all()
            tags = session.scalars(select(TagRow.name).order_by(TagRow.name)).all()
        return {"categories": list(categories), "tags": list(tags)}

    def trending(self, limit: int = 10) -> list[str]:
        """Titles of the most viewed content this week."""
        since = now_ts() - TRENDING_WINDOW.total_seconds()
        views = func.count(ContentViewRow.id).label("views")
        with self.db.Session() as session:
            rows = session.execute(
                select(ContentViewRow.content_type, ContentViewRow.content_id, views)
                .where(ContentViewRow.created_at >= since)
                .group_by(ContentViewRow.content_type, ContentViewRow.content_id)
                .order_by(views.desc(), ContentViewRow.content_id)
                .limit(limit * 2)
            ).all()
            titles: dict[str, None] = {}
            for content_type, content_id, _ in rows:
                model = CONTENT_MODELS.get(content_type)
                row = session.get(model, content_id) if model else None
                if row is not None and row.is_published:
                    titles[row.title] = None
        if not titles:
            return list(TRENDING_FALLBACK_TERMS[:limit])
        return list(titles)[:limit]

