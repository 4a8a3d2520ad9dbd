"""
Categories, series, topics and tags, and the junctions linking them to
sermons and articles.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from pulpit.db import (
    ArticleRow,
    ArticleSeriesRow,
    ArticleTagRow,
    ArticleTopicRow,
    CategoryRow,
    Database,
    SeriesRow,
    SermonRow,
    SermonTagRow,
    SermonTopicRow,
    TagRow,
    TopicRow,
)
from pulpit.errors import ConflictError, NotFoundError, ValidationFailed
from pulpit.schemas import (
    CategoryIn,
    CategoryUpdate,
    SeriesIn,
    SeriesUpdate,
    TagIn,
    TagUpdate,
    TopicIn,
    TopicUpdate,
)
from pulpit.shared.utils import now_ts

logger = logging.getLogger(__name__)

TOPIC_LINKS = {
    "sermon": (SermonTopicRow, "sermon_id"),
    "article": (ArticleTopicRow, "article_id"),
}
TAG_LINKS = {
    "sermon": (SermonTagRow, "sermon_id"),
    "article": (ArticleTagRow, "article_id"),
}


def require_ids(session: Session, model, ids: Optional[list[str]], label: str) -> list[str]:
    """Deduplicate `ids` and fail if any of them does not exist."""
    unique = list(dict.fromkeys(ids or []))
    if not unique:
        return []
    found = set(session.scalars(select(model.id).where(model.id.in_(unique))).all())
    missing = [value for value in unique if value not in found]
    if missing:
        raise ValidationFailed(f"Unknown {label}: {', '.join(missing)}")
    return unique


def replace_links(
    session: Session, link_model, owner_column: str, owner_id: str, target_column: str, target_ids: list[str]
) -> None:
    session.execute(delete(link_model).where(getattr(link_model, owner_column) == owner_id))
    for target_id in target_ids:
        session.add(link_model(**{owner_column: owner_id, target_column: target_id}))


def tag_names_for(session: Session, content_type: str, content_ids: list[str]) -> dict[str, list[str]]:
    """Map content id to its tag names."""
    link_model, owner_column = TAG_LINKS[content_type]
    owner = getattr(link_model, owner_column)
    if not content_ids:
        return {}
    rows = session.execute(
        select(owner, TagRow.name)
        .join(TagRow, TagRow.id == link_model.tag_id)
        .where(owner.in_(content_ids))
        .order_by(TagRow.name)
    ).all()
    names: dict[str, list[str]] = {}
    for content_id, name in rows:
        names.setdefault(content_id, []).append(name)
    return names


def _apply_changes(row, changes) -> None:
    for key, value in changes.model_dump(exclude_unset=True).items():
        setattr(row, key, value)
    row.updated_at = now_ts()


class TaxonomyService:
    def __init__(self, db: Database):
        self.db = db

    def _get(self, model, row_id: str, label: str):
        with self.db.Session() as session:
            row = session.get(model, row_id)
            if row is None:
                raise NotFoundError(f"{label} not found")
            return row

    def _list(self, model, include_inactive: bool, order):
        stmt = select(model)
        if not include_inactive:
            stmt = stmt.where(model.is_active.is_(True))
        with self.db.Session() as session:
            return list(session.scalars(stmt.order_by(*order)).all())

    def _ensure_unique_name(self, session: Session, model, name: str, exclude_id: Optional[str] = None):
        stmt = select(model.id).where(func.lower(model.name) == name.strip().lower())
        if exclude_id:
            stmt = stmt.where(model.id != exclude_id)
        if session.scalars(stmt.limit(1)).first():
            raise ConflictError(f"A {model.__tablename__[:-1]} named '{name}' already exists")

    # Categories

    def list_categories(self, include_inactive: bool = False) -> list[CategoryRow]:
        return self._list(CategoryRow, include_inactive, (CategoryRow.sort_order, CategoryRow.name))

    def get_category(self, category_id: str) -> CategoryRow:
        return self._get(CategoryRow, category_id, "Category")

    def create_category(self, data: CategoryIn) -> CategoryRow:
        with self.db.Session() as session:
            if data.parent_id:
                require_ids(session, CategoryRow, [data.parent_id], "parent category")
            row = CategoryRow(**data.model_dump())
            session.add(row)
            session.commit()
            return row

    def update_category(self, category_id: str, changes: CategoryUpdate) -> CategoryRow:
        with self.db.Session() as session:
            row = session.get(CategoryRow, category_id)
            if row is None:
                raise NotFoundError("Category not found")
            if changes.parent_id == category_id:
                raise ValidationFailed("A category cannot be its own parent")
            _apply_changes(row, changes)
            session.commit()
            return row

    def delete_category(self, category_id: str) -> None:
        with self.db.Session() as session:
            row = session.get(CategoryRow, category_id)
            if row is None:
                raise NotFoundError("Category not found")
            for model in (SermonRow, ArticleRow):
                session.execute(
                    update(model).where(model.category_id == category_id).values(category_id=None)
                )
            session.execute(
                update(CategoryRow).where(CategoryRow.parent_id == category_id).values(parent_id=None)
            )
            session.delete(row)
            session.commit()

    # Tags

    def list_tags(self) -> list[TagRow]:
        with self.db.Session() as session:
            return list(session.scalars(select(TagRow).order_by(TagRow.name)).all())

    def get_tag(self, tag_id: str) -> TagRow:
        return self._get(TagRow, tag_id, "Tag")

    def create_tag(self, data: TagIn) -> TagRow:
        with self.db.Session() as session:
            self._ensure_unique_name(session, TagRow, data.name)
            row = TagRow(**data.model_dump())
            session.add(row)
            session.commit()
            return row

    def update_tag(self, tag_id: str, changes: TagUpdate) -> TagRow:
        with self.db.Session() as session:
            row = session.get(TagRow, tag_id)
            if row is None:
                raise NotFoundError("Tag not found")
            if changes.name:
                self._ensure_unique_name(session, TagRow, changes.name, exclude_id=tag_id)
            _apply_changes(row, changes)
            session.commit()
            return row

    def delete_tag(self, tag_id: str) -> None:
        with self.db.Session() as session:
            row = session.get(TagRow, tag_id)
            if row is None:
                raise NotFoundError("Tag not found")
            session.execute(delete(SermonTagRow).where(SermonTagRow.tag_id == tag_id))
            session.execute(delete(ArticleTagRow).where(ArticleTagRow.tag_id == tag_id))
            session.delete(row)
            session.commit()

    def tags_for(self, content_type: str, content_id: str) -> list[TagRow]:
        link_model, owner_column = TAG_LINKS[content_type]
        with self.db.Session() as session:
            stmt = (
                select(TagRow)
                .join(link_model, link_model.tag_id == TagRow.id)
                .where(getattr(link_model, owner_column) == content_id)
                .order_by(TagRow.name)
            )
            return list(session.scalars(stmt).all())

    def assign_tags(self, content_type: str, content_id: str, tag_ids: list[str]) -> list[TagRow]:
        link_model, owner_column = TAG_LINKS[content_type]
        with self.db.Session() as session:
            tag_ids = require_ids(session, TagRow, tag_ids, "tags")
            replace_links(session, link_model, owner_column, content_id, "tag_id", tag_ids)
            session.commit()
        return self.tags_for(content_type, content_id)

    # Topics

    def list_topics(self, include_inactive: bool = False) -> list[TopicRow]:
        return self._list(TopicRow, include_inactive, (TopicRow.sort_order, TopicRow.name))

    def get_topic(self, topic_id: str) -> TopicRow:
        return self._get(TopicRow, topic_id, "Topic")

    def create_topic(self, data: TopicIn) -> TopicRow:
        with self.db.Session() as session:
            self._ensure_unique_name(session, TopicRow, data.name)
            row = TopicRow(**data.model_dump())
            session.add(row)
            session.commit()
            return row

    def update_topic(self, topic_id: str, changes: TopicUpdate) -> TopicRow:
        with self.db.Session() as session:
            row = session.get(TopicRow, topic_id)
            if row is None:
                raise NotFoundError("Topic not found")
            if changes.name:
                self._ensure_unique_name(session, TopicRow, changes.name, exclude_id=topic_id)
            _apply_changes(row, changes)
            session.commit()
            return row

    def delete_topic(self, topic_id: str) -> None:
        with self.db.Session() as session:
            row = session.get(TopicRow, topic_id)
            if row is None:
                raise NotFoundError("Topic not found")
            session.execute(delete(SermonTopicRow).where(SermonTopicRow.topic_id == topic_id))
            session.execute(delete(ArticleTopicRow).where(ArticleTopicRow.topic_id == topic_id))
            session.delete(row)
            session.commit()

    def topics_for(self, content_type: str, content_id: str) -> list[TopicRow]:
        link_model, owner_column = TOPIC_LINKS[content_type]
        with self.db.Session() as session:
            stmt = (
                select(TopicRow)
                .join(link_model, link_model.topic_id == TopicRow.id)
                .where(getattr(link_model, owner_column) == content_id)
                .order_by(TopicRow.sort_order, TopicRow.name)
            )
            return list(session.scalars(stmt).all())

    def assign_topics(self, content_type: str, content_id: str, topic_ids: list[str]) -> list[TopicRow]:
        """Replace the full topic set of a sermon or article."""
        link_model, owner_column = TOPIC_LINKS[content_type]
        content_model = SermonRow if content_type == "sermon" else ArticleRow
        with self.db.Session() as session:
            if session.get(content_model, content_id) is None:
                raise NotFoundError(f"{content_type.capitalize()} not found")
            topic_ids = require_ids(session, TopicRow, topic_ids, "topics")
            replace_links(session, link_model, owner_column, content_id, "topic_id", topic_ids)
            session.commit()
        return self.topics_for(content_type, content_id)

    def assign_topics_to_sermon(self, sermon_id: str, topic_ids: list[str]) -> list[TopicRow]:
        return self.assign_topics("sermon", sermon_id, topic_ids)

    def assign_topics_to_article(self, article_id: str, topic_ids: list[str]) -> list[TopicRow]:
        return self.assign_topics("article", article_id, topic_ids)

    def sermons_by_topics(self, topic_ids: list[str], published_only: bool = True) -> list[SermonRow]:
        """Sermons linked to any of the topics, each listed once."""
        if not topic_ids:
            return []
        stmt = select(SermonRow).where(
            SermonRow.id.in_(select(SermonTopicRow.sermon_id).where(SermonTopicRow.topic_id.in_(topic_ids)))
        )
        if published_only:
            stmt = stmt.where(SermonRow.is_published.is_(True))
        with self.db.Session() as session:
            return list(session.scalars(stmt.order_by(SermonRow.date.desc(), SermonRow.id)).all())

    def articles_by_topics(self, topic_ids: list[str], published_only: bool = True) -> list[ArticleRow]:
        if not topic_ids:
            return []
        stmt = select(ArticleRow).where(
            ArticleRow.id.in_(select(ArticleTopicRow.article_id).where(ArticleTopicRow.topic_id.in_(topic_ids)))
        )
        if published_only:
            stmt = stmt.where(ArticleRow.is_published.is_(True))
        with self.db.Session() as session:
            return list(session.scalars(stmt.order_by(ArticleRow.published_at.desc(), ArticleRow.id)).all())

    # Series

    def list_series(self, include_inactive: bool = False) -> list[SeriesRow]:
        return self._list(SeriesRow, include_inactive, (SeriesRow.sort_order, SeriesRow.name))

    def get_series(self, series_id: str) -> SeriesRow:
        return self._get(SeriesRow, series_id, "Series")

    def create_series(self, data: SeriesIn) -> SeriesRow:
        with self.db.Session() as session:
            row = SeriesRow(**data.model_dump())
            session.add(row)
            session.commit()
            return row

    def update_series(self, series_id: str, changes: SeriesUpdate) -> SeriesRow:
        with self.db.Session() as session:
            row = session.get(SeriesRow, series_id)
            if row is None:
                raise NotFoundError("Series not found")
            _apply_changes(row, changes)
            session.commit()
            return row

    def delete_series(self, series_id: str) -> None:
        with self.db.Session() as session:
            row = session.get(SeriesRow, series_id)
            if row is None:
                raise NotFoundError("Series not found")
            session.execute(
                update(SermonRow).where(SermonRow.series_id == series_id).values(series_id=None)
            )
            session.execute(delete(ArticleSeriesRow).where(ArticleSeriesRow.series_id == series_id))
            session.delete(row)
            session.commit()

    def sermons_by_series(self, series_id: str, published_only: bool = True) -> list[SermonRow]:
        stmt = select(SermonRow).where(SermonRow.series_id == series_id)
        if published_only:
            stmt = stmt.where(SermonRow.is_published.is_(True))
        with self.db.Session() as session:
            return list(session.scalars(stmt.order_by(SermonRow.date.desc(), SermonRow.id)).all())

    def articles_by_series(self, series_id: str, published_only: bool = True) -> list[ArticleRow]:
        stmt = select(ArticleRow).where(
            ArticleRow.id.in_(select(ArticleSeriesRow.article_id).where(ArticleSeriesRow.series_id == series_id))
        )
        if published_only:
            stmt = stmt.where(ArticleRow.is_published.is_(True))
        with self.db.Session() as session:
            return list(session.scalars(stmt.order_by(ArticleRow.published_at.desc(), ArticleRow.id)).all())

    def series_for_article(self, article_id: str) -> list[SeriesRow]:
        with self.db.Session() as session:
            stmt = (
                select(SeriesRow)
                .join(ArticleSeriesRow, ArticleSeriesRow.series_id == SeriesRow.id)
                .where(ArticleSeriesRow.article_id == article_id)
                .order_by(SeriesRow.sort_order, SeriesRow.name)
            )
            return list(session.scalars(stmt).all())

    def assign_series_to_article(self, article_id: str, series_ids: list[str]) -> list[SeriesRow]:
        with self.db.Session() as session:
            if session.get(ArticleRow, article_id) is None:
                raise NotFoundError("Article not found")
            series_ids = require_ids(session, SeriesRow, series_ids, "series")
            replace_links(session, ArticleSeriesRow, "article_id", article_id, "series_id", series_ids)
            session.commit()
        return self.series_for_article(article_id)

    def assign_sermon_to_series(self, sermon_id: str, series_id: Optional[str]) -> SermonRow:
        with self.db.Session() as session:
            sermon = session.get(SermonRow, sermon_id)
            if sermon is None:
                raise NotFoundError("Sermon not found")
            if series_id:
                require_ids(session, SeriesRow, [series_id], "series")
            sermon.series_id = series_id or None
            sermon.updated_at = now_ts()
            session.commit()
            return sermon

    def series_sermon_counts(self, include_inactive: bool = False) -> list[tuple[SeriesRow, int]]:
        counts_stmt = (
            select(SermonRow.series_id, func.count(SermonRow.id))
            .where(SermonRow.series_id.is_not(None), SermonRow.is_published.is_(True))
            .group_by(SermonRow.series_id)
        )
        with self.db.Session() as session:
            counts = dict(session.execute(counts_stmt).all())
        return [(series, counts.get(series.id, 0)) for series in self.list_series(include_inactive)]
