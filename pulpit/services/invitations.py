"""
App invitations: members invite friends with a short code and a download
link, and the invitation's status follows the recipient's progress.
"""

from __future__ import annotations

import logging
import secrets
from collections import Counter
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from pulpit.db import Database, InvitationRow, UserRow
from pulpit.errors import NotFoundError
from pulpit.schemas import InvitationCreate
from pulpit.shared.constants import CHURCH_NAME, INVITATION_CODE_ALPHABET, INVITATION_CODE_LENGTH
from pulpit.shared.types import InvitationPlatform, InvitationStatus
from pulpit.shared.utils import now_ts

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60
MAX_CODE_ATTEMPTS = 10
RECENT_INVITATIONS_LIMIT = 10

# Statuses an invitation moves through; it never moves backwards.
STATUS_PROGRESSION = (
    InvitationStatus.PENDING,
    InvitationStatus.SENT,
    InvitationStatus.DELIVERED,
    InvitationStatus.OPENED,
    InvitationStatus.INSTALLED,
)

EVENT_STATUS = {
    "sent": InvitationStatus.SENT,
    "delivered": InvitationStatus.DELIVERED,
    "opened": InvitationStatus.OPENED,
    "clicked": InvitationStatus.OPENED,
    "installed": InvitationStatus.INSTALLED,
}


def generate_invitation_code() -> str:
    return "".join(secrets.choice(INVITATION_CODE_ALPHABET) for _ in range(INVITATION_CODE_LENGTH))


def download_link(base_url: str, platform: str) -> str:
    base_url = base_url.rstrip("/")
    if platform in (InvitationPlatform.IOS, InvitationPlatform.ANDROID, InvitationPlatform.WEB):
        return f"{base_url}/{platform}"
    return base_url


def is_status_progression(current: str, new: str) -> bool:
    if current not in STATUS_PROGRESSION or new not in STATUS_PROGRESSION:
        return False
    return STATUS_PROGRESSION.index(new) > STATUS_PROGRESSION.index(current)


def invitation_message(invitation: InvitationRow, custom_message: Optional[str] = None) -> str:
    return custom_message or (
        f"Hi! I'd like to invite you to join {CHURCH_NAME} through our mobile app. "
        "The app gives you access to sermons, articles, and church updates. "
        f"Download it here: {invitation.download_link}"
    )


class InvitationService:
    def __init__(self, db: Database, download_base_url: str, default_expiry_days: int = 30):
        self.db = db
        self.download_base_url = download_base_url
        self.default_expiry_days = default_expiry_days

    def _unused_code(self, session: Session) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_invitation_code()
            taken = session.scalars(
                select(InvitationRow.id).where(InvitationRow.invitation_code == code)
            ).first()
            if not taken:
                return code
        raise RuntimeError("Could not generate a unique invitation code")

    def create_invitation(self, inviter_id: str, data: InvitationCreate) -> InvitationRow:
        expiry_days = data.expires_in_days or self.default_expiry_days
        with self.db.Session() as session:
            inviter = session.get(UserRow, inviter_id)
            if inviter is None:
                raise NotFoundError("Inviter not found")
            row = InvitationRow(
                inviter_id=inviter_id,
                inviter_name=inviter.full_name,
                inviter_email=inviter.email,
                recipient_email=data.recipient_email,
                recipient_phone=data.recipient_phone,
                recipient_name=data.recipient_name,
                message=data.message,
                invitation_code=self._unused_code(session),
                download_link=download_link(self.download_base_url, data.platform),
                status=InvitationStatus.PENDING,
                platform=str(data.platform),
                campaign=data.campaign,
                expires_at=now_ts() + expiry_days * DAY_SECONDS,
            )
            session.add(row)
            session.commit()
        logger.info("Created invitation %s for inviter %s", row.invitation_code, inviter_id)
        return row

    def list_for_user(self, user_id: str) -> list[InvitationRow]:
        with self.db.Session() as session:
            return list(
                session.scalars(
                    select(InvitationRow)
                    .where(InvitationRow.inviter_id == user_id)
                    .order_by(InvitationRow.created_at.desc())
                ).all()
            )

    def get_by_code(self, code: str) -> InvitationRow:
        """Look up an invitation, expiring it on the way if its time is up."""
        with self.db.Session() as session:
            row = session.scalars(
                select(InvitationRow).where(InvitationRow.invitation_code == code.strip().upper())
            ).first()
            if row is None:
                raise NotFoundError("Invitation not found")
            if row.status == InvitationStatus.PENDING and row.expires_at < now_ts():
                row.status = InvitationStatus.EXPIRED
                row.updated_at = now_ts()
                session.commit()
            return row

    def update_status(self, invitation_id: str, status: str, inviter_id: Optional[str] = None) -> InvitationRow:
        with self.db.Session() as session:
            row = session.get(InvitationRow, invitation_id)
            if row is None or (inviter_id is not None and row.inviter_id != inviter_id):
                raise NotFoundError("Invitation not found")
            row.status = str(status)
            row.updated_at = now_ts()
            session.commit()
            return row

    def track_event(self, code: str, event: str) -> InvitationRow:
        row = self.get_by_code(code)
        new_status = EVENT_STATUS.get(event)
        if new_status is not None and is_status_progression(row.status, new_status):
            row = self.update_status(row.id, new_status)
        logger.info("Invitation %s event %s (status %s)", row.invitation_code, event, row.status)
        return row

    def accept(self, code: str, user_id: str) -> Optional[InvitationRow]:
        """Mark an invitation installed for a new account; unknown codes are ignored."""
        with self.db.Session() as session:
            row = session.scalars(
                select(InvitationRow).where(InvitationRow.invitation_code == code.strip().upper())
            ).first()
            if row is None or row.status == InvitationStatus.EXPIRED or row.expires_at < now_ts():
                return None
            row.status = InvitationStatus.INSTALLED
            row.accepted_user_id = user_id
            row.updated_at = now_ts()
            session.commit()
            return row

    def stats(self, user_id: str) -> dict:
        invitations = self.list_for_user(user_id)
        total = len(invitations)
        by_status = Counter(row.status for row in invitations)
        installed = by_status.get(InvitationStatus.INSTALLED, 0)
        return {
            "total": total,
            "by_status": {str(status): by_status.get(status, 0) for status in InvitationStatus},
            "by_platform": dict(Counter(row.platform for row in invitations)),
            "conversion_rate": round(installed / total * 100, 2) if total else 0.0,
            "recent": invitations[:RECENT_INVITATIONS_LIMIT],
        }
