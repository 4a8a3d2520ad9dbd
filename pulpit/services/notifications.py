"""
Push tokens, notification fan-out and per-user notification history.

Sending never talks to the push gateway directly: each recipient gets a
`queued` history row whose id is pushed onto the job queue, and the worker
performs the delivery.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import delete, func, or_, select, update

from pulpit.db import (
    ArticleRow,
    Database,
    NotificationRow,
    PushTokenRow,
    SermonRow,
    UserPreferencesRow,
    UserRow,
)
from pulpit.deep_links import DeepLinks
from pulpit.errors import NotFoundError, ValidationFailed
from pulpit.listing import Page, paginate
from pulpit.queue import JobQueue
from pulpit.schemas import NotificationMessage
from pulpit.shared.constants import NOTIFICATION_DEDUPE_WINDOW
from pulpit.shared.types import DeliveryStatus, NotificationType
from pulpit.shared.utils import now_ts

logger = logging.getLogger(__name__)

PREFERENCE_COLUMNS = {
    "new_content": UserPreferencesRow.notify_new_content,
    "reminders": UserPreferencesRow.notify_reminders,
    "updates": UserPreferencesRow.notify_updates,
    "marketing": UserPreferencesRow.notify_marketing,
}

# What a user without a preferences row is assumed to want.
PREFERENCE_DEFAULTS = {
    "new_content": True,
    "reminders": True,
    "updates": True,
    "marketing": False,
}


@dataclass
class SendResult:
    queued: int = 0
    skipped: int = 0


def truncate_text(text: Optional[str], max_length: int) -> str:
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length].strip() + "..."


class NotificationService:
    def __init__(self, db: Database, queue: JobQueue, links: DeepLinks):
        self.db = db
        self.queue = queue
        self.links = links

    # Push tokens

    def register_token(
        self, user_id: str, token: str, platform: str, device_id: Optional[str] = None
    ) -> PushTokenRow:
        with self.db.Session() as session:
            stmt = select(PushTokenRow).where(PushTokenRow.user_id == user_id)
            if device_id:
                stmt = stmt.where(PushTokenRow.device_id == device_id)
            else:
                stmt = stmt.where(PushTokenRow.token == token)
            row = session.scalars(stmt.limit(1)).first()
            if row is None:
                row = PushTokenRow(
                    user_id=user_id, token=token, platform=str(platform), device_id=device_id
                )
                session.add(row)
            else:
                row.token = token
                row.platform = str(platform)
                row.is_active = True
                row.updated_at = now_ts()
            session.commit()
            logger.info("Registered push token for user %s", user_id)
            return row

    def unregister_token(self, user_id: str, token: str) -> int:
        with self.db.Session() as session:
            result = session.execute(
                update(PushTokenRow)
                .where(PushTokenRow.user_id == user_id, PushTokenRow.token == token)
                .values(is_active=False, updated_at=now_ts())
            )
            session.commit()
            return result.rowcount or 0

    def active_token(self, user_id: str) -> Optional[PushTokenRow]:
        with self.db.Session() as session:
            stmt = (
                select(PushTokenRow)
                .where(PushTokenRow.user_id == user_id, PushTokenRow.is_active.is_(True))
                .order_by(PushTokenRow.updated_at.desc())
                .limit(1)
            )
            return session.scalars(stmt).first()

    # Sending

    def send_to_user(self, user_id: str, message: NotificationMessage) -> SendResult:
        return self.send_to_users([user_id], message)

    def send_to_users(self, user_ids: Iterable[str], message: NotificationMessage) -> SendResult:
        recipients = list(dict.fromkeys(uid for uid in user_ids if uid))
        if not recipients:
            return SendResult()

        cutoff = now_ts() - NOTIFICATION_DEDUPE_WINDOW
        created: list[str] = []
        with self.db.Session() as session:
            known = set(
                session.scalars(
                    select(UserRow.id).where(UserRow.id.in_(recipients), UserRow.is_active.is_(True))
                ).all()
            )
            recent = set(
                session.scalars(
                    select(NotificationRow.user_id).where(
                        NotificationRow.user_id.in_(recipients),
                        NotificationRow.title == message.title,
                        NotificationRow.created_at >= cutoff,
                    )
                ).all()
            )
            for user_id in recipients:
                if user_id not in known or user_id in recent:
                    continue
                row = NotificationRow(
                    user_id=user_id,
                    title=message.title,
                    body=message.body,
                    type=str(message.type),
                    data=dict(message.data),
                    delivery_status=DeliveryStatus.QUEUED,
                )
                session.add(row)
                session.flush()
                created.append(row.id)
            session.commit()

        for notification_id in created:
            self.queue.enqueue(notification_id)
        result = SendResult(queued=len(created), skipped=len(recipients) - len(created))
        logger.info(
            "Queued notification %r for %d users (%d skipped)",
            message.title,
            result.queued,
            result.skipped,
        )
        return result

    def send_to_all(
        self, message: NotificationMessage, preference: Optional[str] = None
    ) -> SendResult:
        """Send to every active user, optionally only those who opted in."""
        stmt = (
            select(UserRow.id)
            .outerjoin(UserPreferencesRow, UserPreferencesRow.user_id == UserRow.id)
            .where(UserRow.is_active.is_(True))
        )
        if preference:
            if preference not in PREFERENCE_COLUMNS:
                raise ValidationFailed(f"Unknown notification preference: {preference}")
            condition = PREFERENCE_COLUMNS[preference].is_(True)
            if PREFERENCE_DEFAULTS[preference]:
                condition = or_(condition, UserPreferencesRow.user_id.is_(None))
            stmt = stmt.where(condition)
        with self.db.Session() as session:
            user_ids = list(session.scalars(stmt).all())
        return self.send_to_users(user_ids, message)

    def send_by_role(self, role: str, message: NotificationMessage) -> SendResult:
        with self.db.Session() as session:
            user_ids = list(
                session.scalars(
                    select(UserRow.id).where(UserRow.role == role, UserRow.is_active.is_(True))
                ).all()
            )
        return self.send_to_users(user_ids, message)

    # Content notifications

    def _content_message(
        self, title: str, body: str, content_type: str, content_id: str, data: dict,
        notification_type: NotificationType = NotificationType.NEW_CONTENT,
    ) -> NotificationMessage:
        payload = dict(data)
        payload.update(
            {
                "contentId": content_id,
                "contentType": content_type,
                "deepLink": self.links.generate(content_type, content_id),
            }
        )
        return NotificationMessage(title=title, body=body, type=notification_type, data=payload)

    def notify_new_sermon(self, sermon: SermonRow, series_name: Optional[str] = None) -> SendResult:
        series_text = f' from "{series_name}"' if series_name else ""
        preacher_text = f" by {sermon.preacher}" if sermon.preacher else ""
        message = self._content_message(
            f"New Sermon: {sermon.title}",
            f"Listen to the latest sermon{series_text}{preacher_text}. "
            f"{truncate_text(sermon.description, 100)}".strip(),
            "sermon",
            sermon.id,
            {
                "type": "new_sermon",
                "sermonId": sermon.id,
                "seriesId": sermon.series_id,
                "categoryId": sermon.category_id,
                "preacher": sermon.preacher,
            },
        )
        return self.send_to_all(message, "new_content")

    def notify_new_article(self, article: ArticleRow) -> SendResult:
        author_text = f" by {article.author}" if article.author else ""
        excerpt = article.excerpt or truncate_text(article.content, 100)
        message = self._content_message(
            f"New Article: {article.title}",
            f"{excerpt}{author_text}",
            "article",
            article.id,
            {
                "type": "new_article",
                "articleId": article.id,
                "categoryId": article.category_id,
                "author": article.author,
            },
        )
        return self.send_to_all(message, "new_content")

    def notify_featured(self, content_type: str, content) -> SendResult:
        is_sermon = content_type == "sermon"
        label = "Sermon" if is_sermon else "Article"
        action = "Listen" if is_sermon else "Read"
        description = content.description if is_sermon else (content.excerpt or content.content)
        message = self._content_message(
            f"Featured {label}: {content.title}",
            f"{action} this featured {label.lower()}. {truncate_text(description, 100)}".strip(),
            content_type,
            content.id,
            {
                "type": "featured_content",
                "contentType": content_type,
                "contentId": content.id,
                "categoryId": content.category_id,
            },
        )
        return self.send_to_all(message, "new_content")

    def notify_series_update(self, series_id: str, series_name: str, new_sermon_count: int) -> SendResult:
        plural = new_sermon_count > 1
        message = self._content_message(
            f"New {'Sermons' if plural else 'Sermon'} in {series_name}",
            f"Check out the latest {'sermons' if plural else 'sermon'} from the {series_name} series.",
            "series",
            series_id,
            {
                "type": "series_update",
                "seriesId": series_id,
                "seriesName": series_name,
                "newSermonCount": new_sermon_count,
            },
        )
        return self.send_to_all(message, "new_content")

    def notify_announcement(self, title: str, body: str) -> SendResult:
        message = NotificationMessage(
            title=f"Church Announcement: {title}",
            body=body,
            type=NotificationType.ANNOUNCEMENT,
            data={"type": "announcement", "title": title, "message": body},
        )
        return self.send_to_all(message, "updates")

    # History

    def get(self, user_id: str, notification_id: str) -> NotificationRow:
        with self.db.Session() as session:
            row = session.get(NotificationRow, notification_id)
            if row is None or row.user_id != user_id:
                raise NotFoundError("Notification not found")
            return row

    def list_history(
        self,
        user_id: str,
        *,
        notification_type: Optional[str] = None,
        is_read: Optional[bool] = None,
        archived: bool = False,
        search: Optional[str] = None,
        date_from: Optional[float] = None,
        date_to: Optional[float] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page[NotificationRow]:
        stmt = select(NotificationRow).where(
            NotificationRow.user_id == user_id, NotificationRow.is_archived.is_(archived)
        )
        if notification_type:
            stmt = stmt.where(NotificationRow.type == notification_type)
        if is_read is not None:
            stmt = stmt.where(NotificationRow.is_read.is_(is_read))
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(or_(NotificationRow.title.ilike(pattern), NotificationRow.body.ilike(pattern)))
        if date_from is not None:
            stmt = stmt.where(NotificationRow.created_at >= date_from)
        if date_to is not None:
            stmt = stmt.where(NotificationRow.created_at <= date_to)
        stmt = stmt.order_by(NotificationRow.created_at.desc(), NotificationRow.id.asc())
        with self.db.Session() as session:
            return paginate(session, stmt, page, limit)

    def stats(self, user_id: str) -> dict:
        with self.db.Session() as session:
            rows = session.execute(
                select(NotificationRow.type, NotificationRow.is_read, NotificationRow.is_archived).where(
                    NotificationRow.user_id == user_id
                )
            ).all()
        return {
            "total": len(rows),
            "unread": sum(1 for _, is_read, archived in rows if not is_read and not archived),
            "archived": sum(1 for _, _, archived in rows if archived),
            "by_type": dict(Counter(row_type for row_type, _, _ in rows)),
        }

    def unread_count(self, user_id: str) -> int:
        with self.db.Session() as session:
            return session.scalar(
                select(func.count()).select_from(NotificationRow).where(
                    NotificationRow.user_id == user_id,
                    NotificationRow.is_read.is_(False),
                    NotificationRow.is_archived.is_(False),
                )
            ) or 0

    def _update_owned(self, user_id: str, ids: list[str], **values) -> int:
        if not ids:
            return 0
        with self.db.Session() as session:
            result = session.execute(
                update(NotificationRow)
                .where(NotificationRow.user_id == user_id, NotificationRow.id.in_(ids))
                .values(**values)
            )
            session.commit()
            return result.rowcount or 0

    def mark_read(self, user_id: str, ids: list[str], read: bool = True) -> int:
        return self._update_owned(user_id, ids, is_read=read, read_at=now_ts() if read else None)

    def mark_all_read(self, user_id: str) -> int:
        with self.db.Session() as session:
            result = session.execute(
                update(NotificationRow)
                .where(NotificationRow.user_id == user_id, NotificationRow.is_read.is_(False))
                .values(is_read=True, read_at=now_ts())
            )
            session.commit()
            return result.rowcount or 0

    def set_archived(self, user_id: str, ids: list[str], archived: bool = True) -> int:
        return self._update_owned(user_id, ids, is_archived=archived)

    def delete(self, user_id: str, ids: list[str]) -> int:
        if not ids:
            return 0
        with self.db.Session() as session:
            result = session.execute(
                delete(NotificationRow).where(
                    NotificationRow.user_id == user_id, NotificationRow.id.in_(ids)
                )
            )
            session.commit()
            return result.rowcount or 0
