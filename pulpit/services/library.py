"""
A member's saved content (bookmarks, favorites, likes).
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError

from pulpit.db import ArticleRow, Database, SermonRow, UserContentRow, row_to_dict
from pulpit.listing import ContentQuery, Page, apply_content_query, paginate_list, sort_items
from pulpit.services.content import content_date, get_content_row
from pulpit.shared.types import ActionType, ContentType, SortField


def _sort_key(sort_by: SortField):
    if sort_by == SortField.DATE:
        return lambda item: item["content_date"]
    if sort_by == SortField.TITLE:
        return lambda item: (item["content"]["title"] or "").lower()
    if sort_by == SortField.AUTHOR:
        def author(item):
            content = item["content"]
            field = "preacher" if item["content_type"] == ContentType.SERMON else "author"
            return (content.get(field) or "").lower()
        return author
    if sort_by in (SortField.VIEWS, SortField.POPULARITY, SortField.DOWNLOADS):
        def popularity(item):
            content = item["content"]
            if sort_by != SortField.VIEWS and item["content_type"] == ContentType.SERMON:
                return content.get("downloads") or 0
            return content.get("views") or 0
        return popularity
    raise ValueError(f"Unsupported sort for saved content: {sort_by}")


class LibraryService:
    def __init__(self, db: Database):
        self.db = db

    def save(
        self, user_id: str, content_type: str, content_id: str, action_type: str = ActionType.SAVE
    ) -> UserContentRow:
        """Save content for a user. Saving something already saved is a no-op."""
        with self.db.Session() as session:
            get_content_row(session, content_type, content_id)
            existing = self._find(session, user_id, content_type, content_id, action_type)
            if existing is not None:
                return existing
            row = UserContentRow(
                user_id=user_id,
                content_type=str(content_type),
                content_id=content_id,
                action_type=str(action_type),
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError:
                # Lost a race with a concurrent save of the same item.
                session.rollback()
                return self._find(session, user_id, content_type, content_id, action_type)
            return row

    def unsave(
        self, user_id: str, content_type: str, content_id: str, action_type: str = ActionType.SAVE
    ) -> bool:
        with self.db.Session() as session:
            result = session.execute(
                delete(UserContentRow).where(
                    UserContentRow.user_id == user_id,
                    UserContentRow.content_type == content_type,
                    UserContentRow.content_id == content_id,
                    UserContentRow.action_type == action_type,
                )
            )
            session.commit()
            return bool(result.rowcount)

    def is_saved(
        self, user_id: str, content_type: str, content_id: str, action_type: str = ActionType.SAVE
    ) -> bool:
        with self.db.Session() as session:
            return self._find(session, user_id, content_type, content_id, action_type) is not None

    def _find(self, session, user_id, content_type, content_id, action_type) -> Optional[UserContentRow]:
        return session.scalars(
            select(UserContentRow).where(
                UserContentRow.user_id == user_id,
                UserContentRow.content_type == content_type,
                UserContentRow.content_id == content_id,
                UserContentRow.action_type == action_type,
            )
        ).first()

    def list_saved(
        self,
        user_id: str,
        content_type: Optional[str] = None,
        action_type: str = ActionType.SAVE,
        params: Optional[ContentQuery] = None,
    ) -> Page[dict]:
        """
        Saved items, newest save first unless `params` sorts otherwise, each
        carrying its content. Items whose content has since been deleted are
        dropped.
        """
        params = params or ContentQuery(published=None)
        stmt = select(UserContentRow).where(
            UserContentRow.user_id == user_id, UserContentRow.action_type == action_type
        )
        if content_type:
            stmt = stmt.where(UserContentRow.content_type == content_type)
        stmt = stmt.order_by(UserContentRow.created_at.desc())

        with self.db.Session() as session:
            saved = list(session.scalars(stmt).all())
            wanted = {
                ContentType.SERMON: [r.content_id for r in saved if r.content_type == ContentType.SERMON],
                ContentType.ARTICLE: [r.content_id for r in saved if r.content_type == ContentType.ARTICLE],
            }
            # Filters run in SQL; ordering is applied to the assembled items below.
            filters = params.model_copy(update={"sort_by": None})
            rows = {}
            for kind, model in ((ContentType.SERMON, SermonRow), (ContentType.ARTICLE, ArticleRow)):
                if not wanted[kind]:
                    continue
                stmt = apply_content_query(select(model).where(model.id.in_(wanted[kind])), model, filters)
                rows.update({(kind, row.id): row for row in session.scalars(stmt)})

        items = []
        for entry in saved:
            content = rows.get((ContentType(entry.content_type), entry.content_id))
            if content is None:
                continue
            items.append(
                {
                    "content_type": entry.content_type,
                    "content_id": entry.content_id,
                    "action_type": entry.action_type,
                    "saved_at": entry.created_at,
                    "content_date": content_date(entry.content_type, content),
                    "content": row_to_dict(content),
                }
            )

        if params.sort_by not in (None, SortField.SAVED_AT):
            items = sort_items(items, _sort_key(params.sort_by), params.sort_order)
        elif params.sort_order != "desc":
            items = list(reversed(items))
        return paginate_list(items, params.page, params.limit)

    def saved_count(self, user_id: str) -> int:
        with self.db.Session() as session:
            return session.scalar(
                select(func.count()).select_from(UserContentRow).where(UserContentRow.user_id == user_id)
            ) or 0

