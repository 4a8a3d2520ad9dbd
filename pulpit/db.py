"""
Database engine wiring and table definitions.

Accepts any SQLAlchemy URL. Postgres is expected in production; tests and
the in-memory development mode use SQLite.
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from pulpit.shared.utils import get_unique_id, now_ts

IN_MEMORY_URL = "sqlite+pysqlite:///:memory:"


class Database:
    """
    Owns the engine and session factory. Services open short-lived sessions
    with ``with db.Session() as session``.
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("A database URL is required")
        engine_kwargs: dict = {"future": True}
        if database_url.startswith("sqlite"):
            # A single shared connection keeps in-memory data visible across
            # the threadpool used by sync endpoints.
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in database_url:
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_pre_ping"] = True
            engine_kwargs["pool_recycle"] = 1800
        self.url = database_url
        self.engine = create_engine(database_url, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def reset(self) -> None:
        """Drop and recreate every table (useful in tests)."""
        Base.metadata.drop_all(self.engine)
        Base.metadata.create_all(self.engine)


Base = declarative_base()


def _id_column():
    return Column(String, primary_key=True, default=get_unique_id)


def _created_column():
    return Column(Float, nullable=False, default=now_ts)


def _updated_column():
    return Column(Float, nullable=False, default=now_ts, onupdate=now_ts)


class UserRow(Base):
    __tablename__ = "users"

    id = _id_column()
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    avatar_url = Column(String, nullable=True)
    role = Column(String, nullable=False, default="member", index=True)
    admin_role = Column(String, nullable=True)
    is_email_verified = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    last_sign_in_at = Column(Float, nullable=True)
    onboarding = Column(JSON, nullable=False, default=dict)
    created_at = _created_column()
    updated_at = _updated_column()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class UserPreferencesRow(Base):
    __tablename__ = "user_preferences"

    user_id = Column(
        String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    theme = Column(String, nullable=False, default="auto")
    audio_quality = Column(String, nullable=False, default="medium")
    auto_download = Column(Boolean, nullable=False, default=False)
    language = Column(String, nullable=False, default="en")
    notify_new_content = Column(Boolean, nullable=False, default=True)
    notify_reminders = Column(Boolean, nullable=False, default=True)
    notify_updates = Column(Boolean, nullable=False, default=True)
    notify_marketing = Column(Boolean, nullable=False, default=False)
    created_at = _created_column()
    updated_at = _updated_column()


class AuthTokenRow(Base):
    __tablename__ = "auth_tokens"

    token_hash = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    purpose = Column(String, nullable=False)
    expires_at = Column(Float, nullable=False)
    used_at = Column(Float, nullable=True)
    created_at = _created_column()


class CategoryRow(Base):
    __tablename__ = "categories"

    id = _id_column()
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String, nullable=False, default="#1976D2")
    icon = Column(String, nullable=False, default="folder")
    parent_id = Column(String, nullable=True, index=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = _created_column()
    updated_at = _updated_column()


class TagRow(Base):
    __tablename__ = "tags"

    id = _id_column()
    name = Column(String, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    color = Column(String, nullable=False, default="#666666")
    created_at = _created_column()
    updated_at = _updated_column()


class TopicRow(Base):
    __tablename__ = "topics"

    id = _id_column()
    name = Column(String, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    color = Column(String, nullable=False, default="#FFA726")
    icon = Column(String, nullable=False, default="tag")
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = _created_column()
    updated_at = _updated_column()


class SeriesRow(Base):
    __tablename__ = "series"

    id = _id_column()
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String, nullable=False, default="#1976D2")
    icon = Column(String, nullable=False, default="book-series")
    thumbnail_url = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = _created_column()
    updated_at = _updated_column()


class SermonRow(Base):
    __tablename__ = "sermons"

    id = _id_column()
    title = Column(String, nullable=False)
    preacher = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    duration = Column(Integer, nullable=False, default=0)
    audio_url = Column(String, nullable=False)
    thumbnail_url = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    category_id = Column(String, nullable=True, index=True)
    series_id = Column(String, nullable=True, index=True)
    is_featured = Column(Boolean, nullable=False, default=False, index=True)
    is_published = Column(Boolean, nullable=False, default=False, index=True)
    downloads = Column(Integer, nullable=False, default=0)
    views = Column(Integer, nullable=False, default=0)
    created_at = _created_column()
    updated_at = _updated_column()


class ArticleRow(Base):
    __tablename__ = "articles"

    id = _id_column()
    title = Column(String, nullable=False)
    author = Column(String, nullable=False, index=True)
    content = Column(Text, nullable=False)
    excerpt = Column(Text, nullable=True)
    thumbnail_url = Column(String, nullable=True)
    category_id = Column(String, nullable=True, index=True)
    is_featured = Column(Boolean, nullable=False, default=False, index=True)
    is_published = Column(Boolean, nullable=False, default=False, index=True)
    views = Column(Integer, nullable=False, default=0)
    published_at = Column(Float, nullable=False, default=now_ts, index=True)
    created_at = _created_column()
    updated_at = _updated_column()


class SermonTopicRow(Base):
    __tablename__ = "sermon_topics"

    sermon_id = Column(String, primary_key=True)
    topic_id = Column(String, primary_key=True, index=True)
    created_at = _created_column()


class SermonTagRow(Base):
    __tablename__ = "sermon_tags"

    sermon_id = Column(String, primary_key=True)
    tag_id = Column(String, primary_key=True, index=True)


class ArticleTopicRow(Base):
    __tablename__ = "article_topics"

    article_id = Column(String, primary_key=True)
    topic_id = Column(String, primary_key=True, index=True)
    created_at = _created_column()


class ArticleTagRow(Base):
    __tablename__ = "article_tags"

    article_id = Column(String, primary_key=True)
    tag_id = Column(String, primary_key=True, index=True)


class ArticleSeriesRow(Base):
    __tablename__ = "article_series"

    article_id = Column(String, primary_key=True)
    series_id = Column(String, primary_key=True, index=True)
    created_at = _created_column()


class UserContentRow(Base):
    __tablename__ = "user_content"
    __table_args__ = (
        UniqueConstraint("user_id", "content_type", "content_id", "action_type"),
    )

    id = _id_column()
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    content_type = Column(String, nullable=False)
    content_id = Column(String, nullable=False, index=True)
    action_type = Column(String, nullable=False, default="save")
    created_at = _created_column()


class ReminderRow(Base):
    __tablename__ = "user_reminders"

    id = _id_column()
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    content_type = Column(String, nullable=False)
    content_id = Column(String, nullable=False)
    reminder_time = Column(Float, nullable=False, index=True)
    message = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = _created_column()
    updated_at = _updated_column()


class ContentViewRow(Base):
    __tablename__ = "content_views"

    id = _id_column()
    user_id = Column(String, nullable=True, index=True)
    content_type = Column(String, nullable=False)
    content_id = Column(String, nullable=False, index=True)
    created_at = _created_column()


class ContentDownloadRow(Base):
    __tablename__ = "content_downloads"

    id = _id_column()
    user_id = Column(String, nullable=True, index=True)
    content_type = Column(String, nullable=False)
    content_id = Column(String, nullable=False, index=True)
    file_size = Column(Integer, nullable=True)
    created_at = _created_column()


class PushTokenRow(Base):
    __tablename__ = "push_tokens"

    id = _id_column()
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    token = Column(String, nullable=False, index=True)
    platform = Column(String, nullable=False)
    device_id = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = _created_column()
    updated_at = _updated_column()


class NotificationRow(Base):
    __tablename__ = "notifications"

    id = _id_column()
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    title = Column(String, nullable=False)
    body = Column(Text, nullable=False)
    type = Column(String, nullable=False, index=True)
    data = Column(JSON, nullable=False, default=dict)
    delivery_status = Column(String, nullable=False, default="queued")
    error = Column(Text, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False, index=True)
    read_at = Column(Float, nullable=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    sent_at = Column(Float, nullable=True)
    created_at = _created_column()


class InvitationRow(Base):
    __tablename__ = "app_invitations"

    id = _id_column()
    inviter_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    inviter_name = Column(String, nullable=False)
    inviter_email = Column(String, nullable=False)
    recipient_email = Column(String, nullable=True)
    recipient_phone = Column(String, nullable=True)
    recipient_name = Column(String, nullable=True)
    message = Column(Text, nullable=True)
    invitation_code = Column(String, nullable=False, unique=True, index=True)
    download_link = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending", index=True)
    platform = Column(String, nullable=False, default="universal")
    campaign = Column(String, nullable=True)
    expires_at = Column(Float, nullable=False)
    accepted_user_id = Column(String, nullable=True)
    created_at = _created_column()
    updated_at = _updated_column()


class ShareEventRow(Base):
    __tablename__ = "share_events"

    id = _id_column()
    content_type = Column(String, nullable=False)
    content_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=True)
    method = Column(String, nullable=False)
    success = Column(Boolean, nullable=False, default=True)
    error = Column(Text, nullable=True)
    created_at = _created_column()


class AuditLogRow(Base):
    __tablename__ = "admin_audit_logs"

    id = _id_column()
    admin_user_id = Column(String, nullable=True, index=True)
    action_type = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False)
    target_user_id = Column(String, nullable=True, index=True)
    target_user_name = Column(String, nullable=True)
    details = Column("metadata", JSON, nullable=True)
    created_at = _created_column()


class MediaFileRow(Base):
    __tablename__ = "media_files"

    id = _id_column()
    filename = Column(String, nullable=False)
    original_name = Column(String, nullable=False)
    mime_type = Column(String, nullable=False)
    size = Column(Integer, nullable=False, default=0)
    storage_path = Column(String, nullable=False, unique=True)
    url = Column(String, nullable=False, index=True)
    thumbnail_url = Column(String, nullable=True)
    uploaded_by = Column(String, nullable=True, index=True)
    uploaded_at = Column(Float, nullable=False, default=now_ts)
    is_used = Column(Boolean, nullable=False, default=False)
    usage_count = Column(Integer, nullable=False, default=0)
    details = Column("metadata", JSON, nullable=True)
    updated_at = _updated_column()


class CarouselImageRow(Base):
    __tablename__ = "carousel_images"

    id = _id_column()
    image_url = Column(String, nullable=False)
    title = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    link_url = Column(String, nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = _created_column()
    updated_at = _updated_column()


def row_to_dict(row) -> dict:
    """Plain column values of a mapped row, keyed by attribute name."""
    return {column.key: getattr(row, column.key) for column in row.__mapper__.column_attrs}
