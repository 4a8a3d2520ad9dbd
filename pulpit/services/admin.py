"""
Admin dashboard reads and user role management.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, or_, select

from pulpit.db import (
    ArticleRow,
    CategoryRow,
    ContentDownloadRow,
    ContentViewRow,
    Database,
    SeriesRow,
    SermonRow,
    TopicRow,
    UserContentRow,
    UserRow,
)
from pulpit.errors import NotFoundError, ValidationFailed
from pulpit.listing import Page, make_page, paginate
from pulpit.services.audit import AuditService
from pulpit.shared.types import AuditAction, ContentType, UserRole

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5
RECENT_ACTIVITY_LIMIT = 10


def _count(session, model) -> int:
    return session.scalar(select(func.count()).select_from(model)) or 0


class AdminService:
    def __init__(self, db: Database, audit: AuditService):
        self.db = db
        self.audit = audit

    def admin_stats(self) -> dict:
        with self.db.Session() as session:
            stats = {
                "total_users": _count(session, UserRow),
                "total_sermons": _count(session, SermonRow),
                "total_articles": _count(session, ArticleRow),
                "total_topics": _count(session, TopicRow),
                "total_series": _count(session, SeriesRow),
                "total_categories": _count(session, CategoryRow),
                "recent_users": list(
                    session.scalars(
                        select(UserRow).order_by(UserRow.created_at.desc()).limit(RECENT_LIMIT)
                    ).all()
                ),
                "recent_sermons": list(
                    session.scalars(
                        select(SermonRow).order_by(SermonRow.created_at.desc()).limit(RECENT_LIMIT)
                    ).all()
                ),
                "recent_articles": list(
                    session.scalars(
                        select(ArticleRow).order_by(ArticleRow.created_at.desc()).limit(RECENT_LIMIT)
                    ).all()
                ),
            }
        stats["recent_activity"] = self.audit.recent(RECENT_ACTIVITY_LIMIT)
        return stats

    # Users

    def list_users(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        role: Optional[str] = None,
    ) -> Page[UserRow]:
        stmt = select(UserRow)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(
                    UserRow.first_name.ilike(pattern),
                    UserRow.last_name.ilike(pattern),
                    UserRow.email.ilike(pattern),
                )
            )
        if role:
            stmt = stmt.where(UserRow.role == role)
        stmt = stmt.order_by(UserRow.created_at.desc(), UserRow.id.asc())
        with self.db.Session() as session:
            return paginate(session, stmt, page, limit)

    def users_by_role(self, role: str, page: int = 1, limit: int = 20) -> Page[UserRow]:
        return self.list_users(page=page, limit=limit, role=role)

    def get_user(self, user_id: str) -> UserRow:
        with self.db.Session() as session:
            user = session.get(UserRow, user_id)
            if user is None:
                raise NotFoundError("User not found")
            return user

    def update_role(
        self,
        user_id: str,
        role: str,
        admin_role: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> UserRow:
        if role == UserRole.MEMBER and admin_role:
            raise ValidationFailed("Members cannot hold an admin role")
        with self.db.Session() as session:
            user = session.get(UserRow, user_id)
            if user is None:
                raise NotFoundError("User not found")
            old_role, old_admin_role = user.role, user.admin_role
            user.role = str(role)
            user.admin_role = str(admin_role) if admin_role else None
            session.commit()

        logger.info("Changed role of user %s from %s to %s", user_id, old_role, role)
        self.audit.log_action(
            admin_user_id=actor_id,
            action_type=AuditAction.USER_ROLE_CHANGED,
            description=f"Changed role of {user.full_name} from {old_role} to {role}",
            target_user_id=user.id,
            target_user_name=user.full_name,
            details={
                "oldRole": old_role,
                "newRole": role,
                "oldAdminRole": old_admin_role,
                "newAdminRole": admin_role,
            },
        )
        return user

    def bulk_update_roles(
        self,
        user_ids: list[str],
        role: str,
        admin_role: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> dict:
        updated: list[str] = []
        failed: dict[str, str] = {}
        for user_id in dict.fromkeys(user_ids):
            try:
                self.update_role(user_id, role, admin_role, actor_id)
            except (NotFoundError, ValidationFailed) as exc:
                failed[user_id] = exc.detail
            else:
                updated.append(user_id)
        return {"updated": updated, "failed": failed}

    # Engagement

    def engagement(self, user_id: str) -> dict:
        with self.db.Session() as session:
            if session.get(UserRow, user_id) is None:
                raise NotFoundError("User not found")
            viewed = dict(
                session.execute(
                    select(ContentViewRow.content_type, func.count(func.distinct(ContentViewRow.content_id)))
                    .where(ContentViewRow.user_id == user_id)
                    .group_by(ContentViewRow.content_type)
                ).all()
            )
            downloads = session.scalar(
                select(func.count()).select_from(ContentDownloadRow).where(
                    ContentDownloadRow.user_id == user_id
                )
            ) or 0
            saved = session.scalar(
                select(func.count()).select_from(UserContentRow).where(UserContentRow.user_id == user_id)
            ) or 0
            last_seen = [
                session.scalar(select(func.max(model.created_at)).where(model.user_id == user_id))
                for model in (ContentViewRow, ContentDownloadRow, UserContentRow)
            ]
        last_seen = [value for value in last_seen if value is not None]
        return {
            "user_id": user_id,
            "sermons_viewed": viewed.get(ContentType.SERMON, 0),
            "articles_read": viewed.get(ContentType.ARTICLE, 0),
            "downloads": downloads,
            "saved_items": saved,
            "last_activity": max(last_seen) if last_seen else None,
        }

    def users_with_engagement(self, page: int = 1, limit: int = 20) -> Page[dict]:
        users = self.list_users(page=page, limit=limit)
        items = [{"user": user, "engagement": self.engagement(user.id)} for user in users.items]
        return make_page(items, users.total, users.page, users.limit)

    # Content, drafts included

    def list_sermons(self, page: int = 1, limit: int = 20, search: Optional[str] = None) -> Page[SermonRow]:
        return self._list_content(SermonRow, page, limit, search)

    def list_articles(self, page: int = 1, limit: int = 20, search: Optional[str] = None) -> Page[ArticleRow]:
        return self._list_content(ArticleRow, page, limit, search)

    def _list_content(self, model, page: int, limit: int, search: Optional[str]) -> Page:
        stmt = select(model)
        if search and search.strip():
            stmt = stmt.where(model.title.ilike(f"%{search.strip()}%"))
        stmt = stmt.order_by(model.created_at.desc(), model.id.asc())
        with self.db.Session() as session:
            return paginate(session, stmt, page, limit)
