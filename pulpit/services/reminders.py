"""
Per-user content reminders and the due-reminder sweep run by the worker.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import delete, select

from pulpit.db import Database, ReminderRow
from pulpit.errors import ConflictError, NotFoundError, ValidationFailed
from pulpit.schemas import NotificationMessage, ReminderCreate, ReminderUpdate
from pulpit.services.content import get_content_row
from pulpit.services.notifications import NotificationService
from pulpit.shared.constants import MAX_TITLE_LENGTH, UPCOMING_REMINDERS_LIMIT
from pulpit.shared.types import NotificationType
from pulpit.shared.utils import now_ts

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60


class ReminderService:
    def __init__(self, db: Database, notifications: NotificationService):
        self.db = db
        self.notifications = notifications

    def create_reminder(self, user_id: str, data: ReminderCreate) -> ReminderRow:
        if data.reminder_time <= now_ts():
            raise ValidationFailed("Reminder time must be in the future")
        with self.db.Session() as session:
            get_content_row(session, data.content_type, data.content_id)
            existing = session.scalars(
                select(ReminderRow.id).where(
                    ReminderRow.user_id == user_id,
                    ReminderRow.content_type == data.content_type,
                    ReminderRow.content_id == data.content_id,
                    ReminderRow.is_active.is_(True),
                )
            ).first()
            if existing:
                raise ConflictError("Reminder already exists for this content")
            row = ReminderRow(
                user_id=user_id,
                content_type=str(data.content_type),
                content_id=data.content_id,
                reminder_time=data.reminder_time,
                message=data.message,
            )
            session.add(row)
            session.commit()
            return row

    def list_reminders(self, user_id: str, include_inactive: bool = False) -> list[ReminderRow]:
        stmt = select(ReminderRow).where(ReminderRow.user_id == user_id)
        if not include_inactive:
            stmt = stmt.where(ReminderRow.is_active.is_(True))
        stmt = stmt.order_by(ReminderRow.reminder_time.asc())
        with self.db.Session() as session:
            return list(session.scalars(stmt).all())

    def get(self, user_id: str, reminder_id: str) -> ReminderRow:
        with self.db.Session() as session:
            row = session.get(ReminderRow, reminder_id)
            if row is None or row.user_id != user_id:
                raise NotFoundError("Reminder not found")
            return row

    def get_by_content(self, user_id: str, content_type: str, content_id: str) -> Optional[ReminderRow]:
        with self.db.Session() as session:
            return session.scalars(
                select(ReminderRow).where(
                    ReminderRow.user_id == user_id,
                    ReminderRow.content_type == content_type,
                    ReminderRow.content_id == content_id,
                    ReminderRow.is_active.is_(True),
                )
            ).first()

    def update(self, user_id: str, reminder_id: str, changes: ReminderUpdate) -> ReminderRow:
        values = changes.model_dump(exclude_unset=True)
        if values.get("reminder_time") is not None and values["reminder_time"] <= now_ts():
            raise ValidationFailed("Reminder time must be in the future")
        with self.db.Session() as session:
            row = session.get(ReminderRow, reminder_id)
            if row is None or row.user_id != user_id:
                raise NotFoundError("Reminder not found")
            for key, value in values.items():
                if key in ("reminder_time", "is_active") and value is None:
                    continue
                setattr(row, key, value)
            row.updated_at = now_ts()
            session.commit()
            return row

    def cancel(self, user_id: str, reminder_id: str) -> ReminderRow:
        return self.update(user_id, reminder_id, ReminderUpdate(is_active=False))

    def delete(self, user_id: str, reminder_id: str) -> None:
        with self.db.Session() as session:
            row = session.get(ReminderRow, reminder_id)
            if row is None or row.user_id != user_id:
                raise NotFoundError("Reminder not found")
            session.delete(row)
            session.commit()

    def upcoming(self, user_id: str, limit: int = UPCOMING_REMINDERS_LIMIT) -> list[ReminderRow]:
        with self.db.Session() as session:
            return list(
                session.scalars(
                    select(ReminderRow)
                    .where(
                        ReminderRow.user_id == user_id,
                        ReminderRow.is_active.is_(True),
                        ReminderRow.reminder_time > now_ts(),
                    )
                    .order_by(ReminderRow.reminder_time.asc())
                    .limit(limit)
                ).all()
            )

    def stats(self, user_id: str) -> dict:
        with self.db.Session() as session:
            rows = session.execute(
                select(ReminderRow.is_active, ReminderRow.reminder_time).where(
                    ReminderRow.user_id == user_id
                )
            ).all()
        now = now_ts()
        upcoming = sum(1 for is_active, when in rows if is_active and when > now)
        return {
            "total": len(rows),
            "active": sum(1 for is_active, _ in rows if is_active),
            "upcoming": upcoming,
            "completed": len(rows) - upcoming,
        }

    def process_due_reminders(self, now: Optional[float] = None) -> dict:
        """
        Send every active reminder whose time has come and deactivate it.

        A reminder whose content has since disappeared counts as an error and
        is deactivated as well, so it is not retried forever.
        """
        now = now_ts() if now is None else now
        with self.db.Session() as session:
            due = list(
                session.scalars(
                    select(ReminderRow)
                    .where(ReminderRow.is_active.is_(True), ReminderRow.reminder_time <= now)
                    .order_by(ReminderRow.reminder_time.asc())
                ).all()
            )

        processed = errors = 0
        for reminder in due:
            try:
                self._send(reminder)
                processed += 1
            except NotFoundError:
                logger.warning("Reminder %s points at missing content", reminder.id)
                errors += 1
            except Exception:
                logger.exception("Failed to process reminder %s", reminder.id)
                errors += 1
                continue
            self._deactivate(reminder.id)

        if processed or errors:
            logger.info("Processed %d reminders, %d errors", processed, errors)
        return {"processed": processed, "errors": errors}

    def _send(self, reminder: ReminderRow) -> None:
        with self.db.Session() as session:
            content = get_content_row(session, reminder.content_type, reminder.content_id)
        message = NotificationMessage(
            title=f"Reminder: {content.title}"[:MAX_TITLE_LENGTH],
            body=reminder.message or f"Don't forget to check out this {reminder.content_type}.",
            type=NotificationType.REMINDER,
            data={
                "type": "reminder",
                "reminderId": reminder.id,
                "contentType": reminder.content_type,
                "contentId": reminder.content_id,
                "deepLink": self.notifications.links.generate(
                    reminder.content_type, reminder.content_id
                ),
            },
        )
        self.notifications.send_to_user(reminder.user_id, message)

    def _deactivate(self, reminder_id: str) -> None:
        with self.db.Session() as session:
            row = session.get(ReminderRow, reminder_id)
            if row is not None:
                row.is_active = False
                row.updated_at = now_ts()
                session.commit()

    def cleanup_old_reminders(self, days_old: int = 30) -> int:
        cutoff = now_ts() - days_old * DAY_SECONDS
        with self.db.Session() as session:
            result = session.execute(
                delete(ReminderRow).where(
                    ReminderRow.is_active.is_(False), ReminderRow.updated_at < cutoff
                )
            )
            session.commit()
        deleted = result.rowcount or 0
        logger.info("Cleaned up %d old reminders", deleted)
        return deleted
