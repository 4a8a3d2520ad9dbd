"""
Sermons and articles: listing, CRUD, engagement counters, featured and
summary views.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from pulpit.db import (
    ArticleRow,
    ArticleSeriesRow,
    ArticleTagRow,
    ArticleTopicRow,
    CarouselImageRow,
    CategoryRow,
    ContentDownloadRow,
    ContentViewRow,
    Database,
    ReminderRow,
    SeriesRow,
    SermonRow,
    SermonTagRow,
    SermonTopicRow,
    TagRow,
    TopicRow,
    UserContentRow,
)
from pulpit.errors import NotFoundError, ValidationFailed
from pulpit.listing import ContentQuery, Page, apply_content_query, paginate
from pulpit.schemas import (
    ArticleCreate,
    ArticleUpdate,
    CarouselImageIn,
    CarouselImageUpdate,
    SermonCreate,
    SermonUpdate,
)
from pulpit.services.audit import AuditService
from pulpit.services.media import MediaService
from pulpit.services.notifications import NotificationService
from pulpit.services.taxonomy import replace_links, require_ids
from pulpit.shared.constants import FEATURED_LIMIT, RECENT_CONTENT_LIMIT
from pulpit.shared.types import AuditAction, ContentType
from pulpit.shared.utils import now_ts, ts_to_date

logger = logging.getLogger(__name__)

CONTENT_MODELS = {
    ContentType.SERMON: SermonRow,
    ContentType.ARTICLE: ArticleRow,
}

_LINK_FIELDS = ("topic_ids", "tag_ids", "series_ids")
_SERMON_MEDIA = ("audio_url", "thumbnail_url")
_ARTICLE_MEDIA = ("thumbnail_url",)


def content_model(content_type: str):
    try:
        return CONTENT_MODELS[ContentType(content_type)]
    except ValueError as exc:
        raise ValidationFailed(f"Unknown content type: {content_type}") from exc


def get_content_row(session: Session, content_type: str, content_id: str):
    row = session.get(content_model(content_type), content_id)
    if row is None:
        raise NotFoundError(f"{ContentType(content_type).capitalize()} not found")
    return row


def content_date(content_type: str, row):
    return row.date if content_type == ContentType.SERMON else ts_to_date(row.published_at)


class ContentService:
    def __init__(
        self,
        db: Database,
        notifications: NotificationService,
        audit: AuditService,
        media: MediaService,
    ):
        self.db = db
        self.notifications = notifications
        self.audit = audit
        self.media = media

    # Listing

    def list_sermons(self, params: ContentQuery) -> Page[SermonRow]:
        stmt = apply_content_query(select(SermonRow), SermonRow, params)
        with self.db.Session() as session:
            return paginate(session, stmt, params.page, params.limit)

    def list_articles(self, params: ContentQuery) -> Page[ArticleRow]:
        stmt = apply_content_query(select(ArticleRow), ArticleRow, params)
        with self.db.Session() as session:
            return paginate(session, stmt, params.page, params.limit)

    def get_sermon(self, sermon_id: str, include_drafts: bool = False) -> SermonRow:
        return self._get(ContentType.SERMON, sermon_id, include_drafts)

    def get_article(self, article_id: str, include_drafts: bool = False) -> ArticleRow:
        return self._get(ContentType.ARTICLE, article_id, include_drafts)

    def _get(self, content_type: ContentType, content_id: str, include_drafts: bool):
        with self.db.Session() as session:
            row = get_content_row(session, content_type, content_id)
        if not row.is_published and not include_drafts:
            raise NotFoundError(f"{content_type.capitalize()} not found")
        return row

    # Sermons

    def create_sermon(self, data: SermonCreate, actor_id: Optional[str] = None) -> SermonRow:
        fields = data.model_dump(exclude=set(_LINK_FIELDS))
        with self.db.Session() as session:
            self._check_references(session, fields.get("category_id"), fields.get("series_id"))
            row = SermonRow(**fields)
            session.add(row)
            session.flush()
            self._link_sermon(session, row.id, data.topic_ids, data.tag_ids)
            session.commit()

        logger.info("Created sermon %s (%s)", row.id, row.title)
        self.media.mark_used([row.audio_url, row.thumbnail_url])
        self._audit(actor_id, AuditAction.CONTENT_CREATED, f"Created sermon: {row.title}", "sermon", row.id)
        if row.is_published:
            self._announce_sermon(row)
        return row

    def update_sermon(
        self, sermon_id: str, changes: SermonUpdate, actor_id: Optional[str] = None
    ) -> SermonRow:
        values = changes.model_dump(exclude_unset=True, exclude=set(_LINK_FIELDS))
        if "thumbnail_url" in values and not (values["thumbnail_url"] or "").strip():
            # A blank thumbnail in an edit form means "keep the current one".
            values.pop("thumbnail_url")
        for required in ("title", "preacher", "audio_url", "date", "duration"):
            if required in values and values[required] is None:
                raise ValidationFailed(f"{required} cannot be empty")

        with self.db.Session() as session:
            row = session.get(SermonRow, sermon_id)
            if row is None:
                raise NotFoundError("Sermon not found")
            media_before = {key: getattr(row, key) for key in _SERMON_MEDIA}
            was_published, was_featured = row.is_published, row.is_featured
            self._check_references(session, values.get("category_id"), values.get("series_id"))
            for key, value in values.items():
                setattr(row, key, value)
            row.updated_at = now_ts()
            self._link_sermon(session, row.id, changes.topic_ids, changes.tag_ids)
            session.commit()

        self._swap_media(media_before, row)
        self._audit(actor_id, AuditAction.CONTENT_UPDATED, f"Updated sermon: {row.title}", "sermon", row.id)
        if row.is_published and not was_published:
            self._announce_sermon(row)
        elif row.is_published and row.is_featured and not was_featured:
            self._fan_out(self.notifications.notify_featured, "sermon", row)
        return row

    def delete_sermon(self, sermon_id: str, actor_id: Optional[str] = None) -> None:
        with self.db.Session() as session:
            row = session.get(SermonRow, sermon_id)
            if row is None:
                raise NotFoundError("Sermon not found")
            session.execute(delete(SermonTopicRow).where(SermonTopicRow.sermon_id == sermon_id))
            session.execute(delete(SermonTagRow).where(SermonTagRow.sermon_id == sermon_id))
            self._delete_user_rows(session, ContentType.SERMON, sermon_id)
            session.delete(row)
            session.commit()
        self.media.release([row.audio_url, row.thumbnail_url])
        self._audit(actor_id, AuditAction.CONTENT_DELETED, f"Deleted sermon: {row.title}", "sermon", sermon_id)

    def _link_sermon(self, session: Session, sermon_id: str, topic_ids, tag_ids) -> None:
        if topic_ids is not None:
            topic_ids = require_ids(session, TopicRow, topic_ids, "topics")
            replace_links(session, SermonTopicRow, "sermon_id", sermon_id, "topic_id", topic_ids)
        if tag_ids is not None:
            tag_ids = require_ids(session, TagRow, tag_ids, "tags")
            replace_links(session, SermonTagRow, "sermon_id", sermon_id, "tag_id", tag_ids)

    def _announce_sermon(self, row: SermonRow) -> None:
        series_name = None
        if row.series_id:
            with self.db.Session() as session:
                series = session.get(SeriesRow, row.series_id)
                series_name = series.name if series else None
        self._fan_out(self.notifications.notify_new_sermon, row, series_name)

    # Articles

    def create_article(self, data: ArticleCreate, actor_id: Optional[str] = None) -> ArticleRow:
        fields = data.model_dump(exclude=set(_LINK_FIELDS))
        if fields.get("published_at") is None:
            fields["published_at"] = now_ts()
        with self.db.Session() as session:
            self._check_references(session, fields.get("category_id"), None)
            row = ArticleRow(**fields)
            session.add(row)
            session.flush()
            self._link_article(session, row.id, data.topic_ids, data.tag_ids, data.series_ids)
            session.commit()

        logger.info("Created article %s (%s)", row.id, row.title)
        self.media.mark_used([row.thumbnail_url])
        self._audit(actor_id, AuditAction.CONTENT_CREATED, f"Created article: {row.title}", "article", row.id)
        if row.is_published:
            self._fan_out(self.notifications.notify_new_article, row)
        return row

    def update_article(
        self, article_id: str, changes: ArticleUpdate, actor_id: Optional[str] = None
    ) -> ArticleRow:
        values = changes.model_dump(exclude_unset=True, exclude=set(_LINK_FIELDS))
        if "thumbnail_url" in values and not (values["thumbnail_url"] or "").strip():
            values.pop("thumbnail_url")
        for required in ("title", "author", "content", "published_at"):
            if required in values and values[required] is None:
                raise ValidationFailed(f"{required} cannot be empty")

        with self.db.Session() as session:
            row = session.get(ArticleRow, article_id)
            if row is None:
                raise NotFoundError("Article not found")
            media_before = {key: getattr(row, key) for key in _ARTICLE_MEDIA}
            was_published, was_featured = row.is_published, row.is_featured
            self._check_references(session, values.get("category_id"), None)
            for key, value in values.items():
                setattr(row, key, value)
            row.updated_at = now_ts()
            self._link_article(session, row.id, changes.topic_ids, changes.tag_ids, changes.series_ids)
            session.commit()

        self._swap_media(media_before, row)
        self._audit(actor_id, AuditAction.CONTENT_UPDATED, f"Updated article: {row.title}", "article", row.id)
        if row.is_published and not was_published:
            self._fan_out(self.notifications.notify_new_article, row)
        elif row.is_published and row.is_featured and not was_featured:
            self._fan_out(self.notifications.notify_featured, "article", row)
        return row

    def delete_article(self, article_id: str, actor_id: Optional[str] = None) -> None:
        with self.db.Session() as session:
            row = session.get(ArticleRow, article_id)
            if row is None:
                raise NotFoundError("Article not found")
            session.execute(delete(ArticleTopicRow).where(ArticleTopicRow.article_id == article_id))
            session.execute(delete(ArticleTagRow).where(ArticleTagRow.article_id == article_id))
            session.execute(delete(ArticleSeriesRow).where(ArticleSeriesRow.article_id == article_id))
            self._delete_user_rows(session, ContentType.ARTICLE, article_id)
            session.delete(row)
            session.commit()
        self.media.release([row.thumbnail_url])
        self._audit(actor_id, AuditAction.CONTENT_DELETED, f"Deleted article: {row.title}", "article", article_id)

    def _link_article(self, session: Session, article_id: str, topic_ids, tag_ids, series_ids) -> None:
        if topic_ids is not None:
            topic_ids = require_ids(session, TopicRow, topic_ids, "topics")
            replace_links(session, ArticleTopicRow, "article_id", article_id, "topic_id", topic_ids)
        if tag_ids is not None:
            tag_ids = require_ids(session, TagRow, tag_ids, "tags")
            replace_links(session, ArticleTagRow, "article_id", article_id, "tag_id", tag_ids)
        if series_ids is not None:
            series_ids = require_ids(session, SeriesRow, series_ids, "series")
            replace_links(session, ArticleSeriesRow, "article_id", article_id, "series_id", series_ids)

    # Shared helpers

    def _check_references(self, session: Session, category_id, series_id) -> None:
        if category_id:
            require_ids(session, CategoryRow, [category_id], "category")
        if series_id:
            require_ids(session, SeriesRow, [series_id], "series")

    def _delete_user_rows(self, session: Session, content_type: ContentType, content_id: str) -> None:
        for model in (UserContentRow, ReminderRow):
            session.execute(
                delete(model).where(model.content_type == content_type, model.content_id == content_id)
            )

    def _swap_media(self, before: dict, row) -> None:
        """Move media usage from the URLs an edit replaced to the ones it set."""
        changed = [key for key, url in before.items() if getattr(row, key) != url]
        self.media.release([before[key] for key in changed])
        self.media.mark_used([getattr(row, key) for key in changed])

    def _audit(self, actor_id, action: AuditAction, description: str, content_type: str, content_id: str):
        self.audit.log_action(
            admin_user_id=actor_id,
            action_type=action,
            description=description,
            details={"contentType": content_type, "contentId": content_id},
        )

    def _fan_out(self, notify, *args) -> None:
        # Content changes are already committed; a failed fan-out is logged only.
        try:
            notify(*args)
        except Exception:
            logger.exception("Failed to queue content notification")

    # Engagement

    def record_view(self, content_type: str, content_id: str, user_id: Optional[str] = None) -> int:
        with self.db.Session() as session:
            row = get_content_row(session, content_type, content_id)
            session.add(ContentViewRow(user_id=user_id, content_type=str(content_type), content_id=content_id))
            row.views = (row.views or 0) + 1
            session.commit()
            return row.views

    def record_download(
        self,
        content_type: str,
        content_id: str,
        user_id: Optional[str] = None,
        file_size: Optional[int] = None,
    ) -> Optional[int]:
        """Log a download; only sermons keep a download counter."""
        with self.db.Session() as session:
            row = get_content_row(session, content_type, content_id)
            session.add(
                ContentDownloadRow(
                    user_id=user_id,
                    content_type=str(content_type),
                    content_id=content_id,
                    file_size=file_size,
                )
            )
            downloads = None
            if isinstance(row, SermonRow):
                row.downloads = (row.downloads or 0) + 1
                downloads = row.downloads
            session.commit()
            return downloads

    # Dashboard views

    def featured_content(self) -> dict:
        with self.db.Session() as session:
            sermons = session.scalars(
                select(SermonRow)
                .where(SermonRow.is_featured.is_(True), SermonRow.is_published.is_(True))
                .order_by(SermonRow.date.desc(), SermonRow.id)
                .limit(FEATURED_LIMIT)
            ).all()
            articles = session.scalars(
                select(ArticleRow)
                .where(ArticleRow.is_featured.is_(True), ArticleRow.is_published.is_(True))
                .order_by(ArticleRow.published_at.desc(), ArticleRow.id)
                .limit(FEATURED_LIMIT)
            ).all()
        return {"sermons": list(sermons), "articles": list(articles)}

    def content_stats(self) -> dict:
        with self.db.Session() as session:
            total_sermons = session.scalar(select(func.count()).select_from(SermonRow)) or 0
            total_articles = session.scalar(select(func.count()).select_from(ArticleRow)) or 0
            total_categories = session.scalar(select(func.count()).select_from(CategoryRow)) or 0
            sermon_views = session.scalar(select(func.coalesce(func.sum(SermonRow.views), 0))) or 0
            article_views = session.scalar(select(func.coalesce(func.sum(ArticleRow.views), 0))) or 0
            downloads = session.scalar(select(func.coalesce(func.sum(SermonRow.downloads), 0))) or 0
            recent_sermons = session.scalars(
                select(SermonRow).order_by(SermonRow.date.desc()).limit(RECENT_CONTENT_LIMIT)
            ).all()
            recent_articles = session.scalars(
                select(ArticleRow).order_by(ArticleRow.published_at.desc()).limit(RECENT_CONTENT_LIMIT)
            ).all()

        recent = [
            {"id": row.id, "type": ContentType.SERMON, "title": row.title, "date": row.date}
            for row in recent_sermons
        ] + [
            {"id": row.id, "type": ContentType.ARTICLE, "title": row.title, "date": ts_to_date(row.published_at)}
            for row in recent_articles
        ]
        recent.sort(key=lambda item: item["date"], reverse=True)
        return {
            "total_sermons": total_sermons,
            "total_articles": total_articles,
            "total_categories": total_categories,
            "total_views": int(sermon_views) + int(article_views),
            "total_downloads": int(downloads),
            "recent_content": recent[:RECENT_CONTENT_LIMIT],
        }

    # Carousel

    def carousel_images(self, active_only: bool = True) -> list[CarouselImageRow]:
        stmt = select(CarouselImageRow)
        if active_only:
            stmt = stmt.where(CarouselImageRow.is_active.is_(True))
        stmt = stmt.order_by(CarouselImageRow.display_order, CarouselImageRow.created_at)
        with self.db.Session() as session:
            return list(session.scalars(stmt).all())

    def create_carousel_image(self, data: CarouselImageIn) -> CarouselImageRow:
        with self.db.Session() as session:
            row = CarouselImageRow(**data.model_dump())
            session.add(row)
            session.commit()
        self.media.mark_used([row.image_url])
        return row

    def update_carousel_image(self, image_id: str, changes: CarouselImageUpdate) -> CarouselImageRow:
        with self.db.Session() as session:
            row = session.get(CarouselImageRow, image_id)
            if row is None:
                raise NotFoundError("Carousel image not found")
            media_before = {"image_url": row.image_url}
            for key, value in changes.model_dump(exclude_unset=True).items():
                setattr(row, key, value)
            row.updated_at = now_ts()
            session.commit()
        self._swap_media(media_before, row)
        return row

    def delete_carousel_image(self, image_id: str) -> None:
        with self.db.Session() as session:
            row = session.get(CarouselImageRow, image_id)
            if row is None:
                raise NotFoundError("Carousel image not found")
            session.delete(row)
            session.commit()
        self.media.release([row.image_url])

    def reorder_carousel_images(self, image_ids: list[str]) -> list[CarouselImageRow]:
        """Set `display_order` from the position of each id in `image_ids`."""
        with self.db.Session() as session:
            rows = {
                row.id: row
                for row in session.scalars(
                    select(CarouselImageRow).where(CarouselImageRow.id.in_(image_ids))
                )
            }
            missing = [image_id for image_id in image_ids if image_id not in rows]
            if missing:
                raise NotFoundError(f"Carousel image not found: {missing[0]}")
            for position, image_id in enumerate(image_ids):
                rows[image_id].display_order = position
                rows[image_id].updated_at = now_ts()
            session.commit()
        return self.carousel_images(active_only=False)
