"""
Insert the default categories, tags and topics, and optionally a super admin.

Rows are matched by name, so running the script again only adds what is missing.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy import select

from pulpit.config import get_settings
from pulpit.db import CategoryRow, TagRow, TopicRow, UserPreferencesRow, UserRow
from pulpit.dependencies import get_db
from pulpit.security import hash_password
from pulpit.services.users import DEFAULT_ONBOARDING, check_password_strength
from pulpit.shared.types import AdminRole, UserRole
from pulpit.shared.utils import normalize_email

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    ("Series", "Sermon series and multi-part teachings", "#1976D2", "book-series", 1),
    ("Topics", "Sermons organized by specific topics and themes", "#388E3C", "tag-multiple", 2),
    ("Articles", "Spiritual articles and devotionals", "#F57C00", "book-open", 3),
    ("Announcements", "Church announcements and updates", "#7B1FA2", "bullhorn", 4),
    ("Events", "Church events and activities", "#D32F2F", "calendar", 5),
    ("Ministries", "Information about church ministries", "#FF6F00", "account-group", 6),
]

DEFAULT_TAGS = [
    ("Faith", "Topics related to faith and belief", "#1976D2"),
    ("Family", "Family and relationships", "#388E3C"),
    ("Prayer", "Prayer and spiritual practices", "#F57C00"),
    ("Bible Study", "Biblical teachings and study", "#7B1FA2"),
    ("Worship", "Worship and praise", "#D32F2F"),
    ("Community", "Community and fellowship", "#FF6F00"),
    ("Leadership", "Leadership and service", "#8E24AA"),
    ("Youth", "Youth ministry and topics", "#43A047"),
]

DEFAULT_TOPICS = [
    ("Love", "Sermons about love, compassion, and relationships", "#E91E63", "heart", 1),
    ("Faith", "Sermons about faith, trust, and belief", "#9C27B0", "cross", 2),
    ("Hope", "Sermons about hope, encouragement, and future", "#3F51B5", "lightbulb", 3),
    ("Grace", "Sermons about God's grace and mercy", "#2196F3", "gift", 4),
    ("Prayer", "Sermons about prayer and communication with God", "#00BCD4", "pray", 5),
    ("Worship", "Sermons about worship and praise", "#4CAF50", "music", 6),
    ("Forgiveness", "Sermons about forgiveness and reconciliation", "#8BC34A", "handshake", 7),
    ("Salvation", "Sermons about salvation and eternal life", "#CDDC39", "star", 8),
    ("Healing", "Sermons about healing and restoration", "#FFEB3B", "medical-bag", 9),
    ("Wisdom", "Sermons about wisdom and understanding", "#FFC107", "book-open", 10),
]


def seed_taxonomy(session) -> dict[str, int]:
    added = {"categories": 0, "tags": 0, "topics": 0}

    existing = set(session.scalars(select(CategoryRow.name)).all())
    for name, description, color, icon, sort_order in DEFAULT_CATEGORIES:
        if name not in existing:
            session.add(
                CategoryRow(name=name, description=description, color=color, icon=icon, sort_order=sort_order)
            )
            added["categories"] += 1

    existing = set(session.scalars(select(TagRow.name)).all())
    for name, description, color in DEFAULT_TAGS:
        if name not in existing:
            session.add(TagRow(name=name, description=description, color=color))
            added["tags"] += 1

    existing = set(session.scalars(select(TopicRow.name)).all())
    for name, description, color, icon, sort_order in DEFAULT_TOPICS:
        if name not in existing:
            session.add(
                TopicRow(name=name, description=description, color=color, icon=icon, sort_order=sort_order)
            )
            added["topics"] += 1
    return added


def ensure_super_admin(session, email: str, password: str | None) -> UserRow:
    """Promote the account for `email`, creating it when `password` is given."""
    email = normalize_email(email)
    user = session.scalars(select(UserRow).where(UserRow.email == email)).first()
    if user is None:
        if not password:
            raise SystemExit(f"No account for {email}; pass --admin-password to create one")
        check_password_strength(password)
        user = UserRow(
            email=email,
            password_hash=hash_password(password),
            first_name="Church",
            last_name="Admin",
            is_email_verified=True,
            onboarding=dict(DEFAULT_ONBOARDING),
        )
        session.add(user)
        session.flush()
        session.add(UserPreferencesRow(user_id=user.id))
        logger.info("Created account %s", email)
    user.role = UserRole.ADMIN
    user.admin_role = AdminRole.SUPER_ADMIN
    return user


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed default taxonomy and an admin account")
    parser.add_argument("--admin-email", type=str, default=None, help="Make this account a super admin")
    parser.add_argument(
        "--admin-password",
        type=str,
        default=None,
        help="Password for the admin account if it does not exist yet",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=get_settings().log_level,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
    )

    db = get_db()
    with db.Session() as session:
        added = seed_taxonomy(session)
        if args.admin_email:
            ensure_super_admin(session, args.admin_email, args.admin_password)
        session.commit()

    logger.info(
        "Added %d categories, %d tags, %d topics",
        added["categories"],
        added["tags"],
        added["topics"],
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
