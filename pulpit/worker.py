"""
Worker loop that delivers queued notifications through the push gateway
and sends reminders as they fall due.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from sqlalchemy import select

from pulpit.config import get_settings
from pulpit.db import Database, NotificationRow, PushTokenRow
from pulpit.dependencies import get_db, get_links, get_push_client, get_queue_client
from pulpit.push import PushClient, PushMessage
from pulpit.queue import JobQueue
from pulpit.services.notifications import NotificationService
from pulpit.services.reminders import ReminderService
from pulpit.shared.types import DeliveryStatus, NotificationType
from pulpit.shared.utils import now_ts

logger = logging.getLogger(__name__)

# Expo notification categories registered by the mobile app.
PUSH_CATEGORIES = {
    NotificationType.NEW_CONTENT: "content",
    NotificationType.REMINDER: "reminder",
}
DEFAULT_PUSH_CATEGORY = "general"


def push_category(notification_type: str) -> str:
    return PUSH_CATEGORIES.get(notification_type, DEFAULT_PUSH_CATEGORY)


def deliver(notification_id: str, db: Database, push: PushClient) -> Optional[str]:
    """
    Send one queued notification to its user's newest active device.
    Returns the resulting delivery status, or None if there was nothing to do.
    """
    with db.Session() as session:
        notification = session.get(NotificationRow, notification_id)
        if notification is None:
            logger.warning("Received notification %s from queue but no DB record found", notification_id)
            return None
        if notification.delivery_status != DeliveryStatus.QUEUED:
            logger.info("Notification %s already %s", notification_id, notification.delivery_status)
            return None

        token = session.scalars(
            select(PushTokenRow)
            .where(PushTokenRow.user_id == notification.user_id, PushTokenRow.is_active.is_(True))
            .order_by(PushTokenRow.updated_at.desc())
            .limit(1)
        ).first()
        if token is None:
            notification.delivery_status = DeliveryStatus.SKIPPED
            notification.error = "No active push token"
            session.commit()
            return DeliveryStatus.SKIPPED

        result = push.send(
            PushMessage(
                to=token.token,
                title=notification.title,
                body=notification.body,
                data=notification.data or {},
                category_id=push_category(notification.type),
            )
        )
        notification.sent_at = now_ts()
        if result.ok:
            notification.delivery_status = DeliveryStatus.DELIVERED
            notification.error = None
        else:
            notification.delivery_status = DeliveryStatus.FAILED
            notification.error = result.error
            if result.device_not_registered:
                token.is_active = False
                token.updated_at = now_ts()
                logger.info("Deactivated unregistered push token for user %s", notification.user_id)
        session.commit()
        status = notification.delivery_status

    logger.info("Notification %s %s", notification_id, status)
    return status


def process_next(
    *,
    db: Optional[Database] = None,
    queue: Optional[JobQueue] = None,
    push: Optional[PushClient] = None,
    block: bool = True,
    timeout: Optional[int] = None,
) -> bool:
    """
    Fetch and deliver one notification from the queue. Returns True if one was taken.
    """
    db = db or get_db()
    queue = queue or get_queue_client()
    push = push or get_push_client()

    notification_id = queue.dequeue(block=block, timeout=timeout)
    if not notification_id:
        return False
    deliver(notification_id, db, push)
    return True


def process_due_reminders(
    *, db: Optional[Database] = None, queue: Optional[JobQueue] = None
) -> dict:
    db = db or get_db()
    queue = queue or get_queue_client()
    reminders = ReminderService(db, NotificationService(db, queue, get_links()))
    return reminders.process_due_reminders()


def run_loop(poll_interval_seconds: float = 2.0, reminder_interval_seconds: float = 60.0) -> None:
    """
    Simple polling loop that blocks on the queue. Intended to be run under systemd/supervisor.
    """
    db = get_db()
    queue = get_queue_client()
    push = get_push_client()
    next_reminder_sweep = 0.0
    while True:
        if time.monotonic() >= next_reminder_sweep:
            try:
                counts = process_due_reminders(db=db, queue=queue)
                if counts["processed"] or counts["errors"]:
                    logger.info("Reminder sweep: %s", counts)
            except Exception:
                logger.exception("Reminder sweep failed")
            next_reminder_sweep = time.monotonic() + reminder_interval_seconds
        processed = process_next(
            db=db, queue=queue, push=push, block=True, timeout=int(poll_interval_seconds)
        )
        if not processed:
            time.sleep(poll_interval_seconds)


if __name__ == "__main__":
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
    )
    run_loop()
