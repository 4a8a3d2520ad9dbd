"""
Pydantic schemas for the HTTP API.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from pulpit.shared.constants import (
    MAX_NAME_LENGTH,
    MAX_NOTIFICATION_BODY_LENGTH,
    MAX_PAGE_SIZE,
    MAX_TITLE_LENGTH,
    MIN_PASSWORD_LENGTH,
)
from pulpit.shared.types import (
    ActionType,
    AudioQuality,
    ContentType,
    InvitationPlatform,
    InvitationStatus,
    NotificationType,
    Platform,
    ShareMethod,
    Theme,
)

T = TypeVar("T")


class OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PageOut(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    limit: int
    has_more: bool


def to_page(page, schema: type[BaseModel]) -> dict:
    """Convert a listing `Page` of rows into a serializable page payload."""
    return {
        "items": [schema.model_validate(item, from_attributes=True) for item in page.items],
        "total": page.total,
        "page": page.page,
        "limit": page.limit,
        "has_more": page.has_more,
    }


class StatusResponse(BaseModel):
    status: Literal["ok"] = "ok"


class CountResponse(BaseModel):
    count: int


class IdsRequest(BaseModel):
    ids: list[str] = Field(..., min_length=1, max_length=MAX_PAGE_SIZE)


class SignUrlResponse(BaseModel):
    url: str


# Users & auth


class PreferencesOut(OrmModel):
    theme: Theme
    audio_quality: AudioQuality
    auto_download: bool
    language: str
    notify_new_content: bool
    notify_reminders: bool
    notify_updates: bool
    notify_marketing: bool


class PreferencesUpdate(BaseModel):
    theme: Optional[Theme] = None
    audio_quality: Optional[AudioQuality] = None
    auto_download: Optional[bool] = None
    language: Optional[str] = Field(default=None, max_length=16)
    notify_new_content: Optional[bool] = None
    notify_reminders: Optional[bool] = None
    notify_updates: Optional[bool] = None
    notify_marketing: Optional[bool] = None


class UserOut(OrmModel):
    id: str
    email: str
    first_name: str
    last_name: str
    avatar_url: Optional[str] = None
    role: str
    admin_role: Optional[str] = None
    is_email_verified: bool
    is_active: bool
    last_sign_in_at: Optional[float] = None
    created_at: float


class ProfileOut(BaseModel):
    user: UserOut
    preferences: PreferencesOut
    onboarding: dict


class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., max_length=256)
    first_name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    last_name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    accept_terms: bool = False
    invitation_code: Optional[str] = Field(default=None, max_length=16)


class SignInRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut


class SignUpResponse(BaseModel):
    message: str
    user: UserOut


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=256)


class TokenConfirm(BaseModel):
    token: str


class MessageResponse(BaseModel):
    message: str


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    avatar_url: Optional[str] = None
    preferences: Optional[PreferencesUpdate] = None


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=256)


class DeleteAccountRequest(BaseModel):
    password: str
    reason: Optional[str] = Field(default=None, max_length=1000)


class OnboardingUpdate(BaseModel):
    has_completed_onboarding: bool = False
    onboarding_step: int = Field(default=0, ge=0)
    preferences: Optional[PreferencesUpdate] = None


# Content


class SermonCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    preacher: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    date: dt.date
    duration: int = Field(default=0, ge=0)
    audio_url: str = Field(..., min_length=1)
    thumbnail_url: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[str] = None
    series_id: Optional[str] = None
    is_featured: bool = False
    is_published: bool = False
    topic_ids: Optional[list[str]] = None
    tag_ids: Optional[list[str]] = None


class SermonUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=MAX_TITLE_LENGTH)
    preacher: Optional[str] = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    date: Optional[dt.date] = None
    duration: Optional[int] = Field(default=None, ge=0)
    audio_url: Optional[str] = Field(default=None, min_length=1)
    thumbnail_url: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[str] = None
    series_id: Optional[str] = None
    is_featured: Optional[bool] = None
    is_published: Optional[bool] = None
    topic_ids: Optional[list[str]] = None
    tag_ids: Optional[list[str]] = None


class SermonOut(OrmModel):
    id: str
    title: str
    preacher: str
    date: dt.date
    duration: int
    audio_url: str
    thumbnail_url: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[str] = None
    series_id: Optional[str] = None
    is_featured: bool
    is_published: bool
    downloads: int
    views: int
    created_at: float
    updated_at: float


class ArticleCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    author: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    content: str = Field(..., min_length=1)
    excerpt: Optional[str] = None
    thumbnail_url: Optional[str] = None
    category_id: Optional[str] = None
    is_featured: bool = False
    is_published: bool = False
    published_at: Optional[float] = None
    topic_ids: Optional[list[str]] = None
    tag_ids: Optional[list[str]] = None
    series_ids: Optional[list[str]] = None


class ArticleUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=MAX_TITLE_LENGTH)
    author: Optional[str] = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    content: Optional[str] = Field(default=None, min_length=1)
    excerpt: Optional[str] = None
    thumbnail_url: Optional[str] = None
    category_id: Optional[str] = None
    is_featured: Optional[bool] = None
    is_published: Optional[bool] = None
    published_at: Optional[float] = None
    topic_ids: Optional[list[str]] = None
    tag_ids: Optional[list[str]] = None
    series_ids: Optional[list[str]] = None


class ArticleOut(OrmModel):
    id: str
    title: str
    author: str
    content: str
    excerpt: Optional[str] = None
    thumbnail_url: Optional[str] = None
    category_id: Optional[str] = None
    is_featured: bool
    is_published: bool
    views: int
    published_at: float
    created_at: float
    updated_at: float


class FeaturedContentOut(BaseModel):
    sermons: list[SermonOut]
    articles: list[ArticleOut]


class RecentContentOut(BaseModel):
    id: str
    type: ContentType
    title: str
    date: dt.date


class ContentStatsOut(BaseModel):
    total_sermons: int
    total_articles: int
    total_categories: int
    total_views: int
    total_downloads: int
    recent_content: list[RecentContentOut]


class ContentEventRequest(BaseModel):
    file_size: Optional[int] = Field(default=None, ge=0)


class CarouselImageOut(OrmModel):
    id: str
    image_url: str
    title: Optional[str] = None
    description: Optional[str] = None
    link_url: Optional[str] = None
    display_order: int
    is_active: bool


class CarouselImageIn(BaseModel):
    image_url: str = Field(..., min_length=1)
    title: Optional[str] = Field(default=None, max_length=MAX_TITLE_LENGTH)
    description: Optional[str] = None
    link_url: Optional[str] = None
    display_order: int = 0
    is_active: bool = True


class CarouselImageUpdate(BaseModel):
    image_url: Optional[str] = Field(default=None, min_length=1)
    title: Optional[str] = Field(default=None, max_length=MAX_TITLE_LENGTH)
    description: Optional[str] = None
    link_url: Optional[str] = None
    display_order: Optional[int] = None
    is_active: Optional[bool] = None


# Taxonomy


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    description: Optional[str] = None
    color: str = "#1976D2"
    icon: str = "folder"
    parent_id: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    parent_id: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryOut(OrmModel):
    id: str
    name: str
    description: Optional[str] = None
    color: str
    icon: str
    parent_id: Optional[str] = None
    sort_order: int
    is_active: bool


class TagIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    description: Optional[str] = None
    color: str = "#666666"


class TagUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    description: Optional[str] = None
    color: Optional[str] = None


class TagOut(OrmModel):
    id: str
    name: str
    description: Optional[str] = None
    color: str


class TopicIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    description: Optional[str] = None
    color: str = "#FFA726"
    icon: str = "tag"
    is_active: bool = True
    sort_order: int = 0


class TopicUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class TopicOut(OrmModel):
    id: str
    name: str
    description: Optional[str] = None
    color: str
    icon: str
    is_active: bool
    sort_order: int


class SeriesIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    description: Optional[str] = None
    color: str = "#1976D2"
    icon: str = "book-series"
    thumbnail_url: Optional[str] = None
    is_active: bool = True
    sort_order: int = 0


class SeriesUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    thumbnail_url: Optional[str] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class SeriesOut(OrmModel):
    id: str
    name: str
    description: Optional[str] = None
    color: str
    icon: str
    thumbnail_url: Optional[str] = None
    is_active: bool
    sort_order: int


class SeriesCountOut(BaseModel):
    series: SeriesOut
    sermon_count: int


class AssignIdsRequest(BaseModel):
    ids: list[str] = Field(default_factory=list)


class AssignSeriesRequest(BaseModel):
    series_id: Optional[str] = None


# Library


class SaveContentRequest(BaseModel):
    content_type: ContentType
    content_id: str
    action_type: ActionType = ActionType.SAVE


class SavedStateOut(BaseModel):
    saved: bool


class SavedItemOut(BaseModel):
    content_type: ContentType
    content_id: str
    action_type: ActionType
    saved_at: float
    content: dict[str, Any]


# Search


class SearchResultOut(OrmModel):
    id: str
    type: ContentType
    title: str
    excerpt: str
    category_id: Optional[str] = None
    tags: list[str]
    relevance: int
    data: dict[str, Any]


class AdvancedSearchRequest(BaseModel):
    query: Optional[str] = None
    categories: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None
    featured: Optional[bool] = None
    type: Literal["all", "sermon", "article"] = "all"
    sort_by: Literal["relevance", "date", "title", "popularity"] = "relevance"
    sort_order: Literal["asc", "desc"] = "desc"
    limit: int = Field(default=50, ge=1)


class SearchFiltersOut(BaseModel):
    categories: list[str]
    tags: list[str]


# Notifications


class PushTokenIn(BaseModel):
    token: str = Field(..., min_length=1, max_length=512)
    platform: Platform
    device_id: Optional[str] = Field(default=None, max_length=256)


class PushTokenOut(OrmModel):
    id: str
    token: str
    platform: str
    device_id: Optional[str] = None
    is_active: bool


class NotificationMessage(BaseModel):
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    body: str = Field(..., min_length=1, max_length=MAX_NOTIFICATION_BODY_LENGTH)
    type: NotificationType = NotificationType.ANNOUNCEMENT
    data: dict[str, Any] = Field(default_factory=dict)


class SendNotificationRequest(BaseModel):
    message: NotificationMessage
    user_ids: Optional[list[str]] = None
    role: Optional[str] = None
    preference: Optional[Literal["new_content", "reminders", "updates", "marketing"]] = None


class SendResultOut(BaseModel):
    queued: int
    skipped: int


class NotificationOut(OrmModel):
    id: str
    title: str
    body: str
    type: NotificationType
    data: dict[str, Any]
    delivery_status: str
    error: Optional[str] = None
    is_read: bool
    read_at: Optional[float] = None
    is_archived: bool
    sent_at: Optional[float] = None
    created_at: float


class NotificationStatsOut(BaseModel):
    total: int
    unread: int
    archived: int
    by_type: dict[str, int]


class AnnouncementRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    body: str = Field(..., min_length=1, max_length=MAX_NOTIFICATION_BODY_LENGTH)


# Reminders


class ReminderCreate(BaseModel):
    content_type: ContentType
    content_id: str
    reminder_time: float
    message: Optional[str] = Field(default=None, max_length=MAX_NOTIFICATION_BODY_LENGTH)


class ReminderUpdate(BaseModel):
    reminder_time: Optional[float] = None
    message: Optional[str] = Field(default=None, max_length=MAX_NOTIFICATION_BODY_LENGTH)
    is_active: Optional[bool] = None


class ReminderOut(OrmModel):
    id: str
    content_type: ContentType
    content_id: str
    reminder_time: float
    message: Optional[str] = None
    is_active: bool
    created_at: float


class ReminderStatsOut(BaseModel):
    total: int
    active: int
    upcoming: int
    completed: int


# Invitations


class InvitationCreate(BaseModel):
    recipient_email: Optional[EmailStr] = None
    recipient_phone: Optional[str] = Field(default=None, max_length=32)
    recipient_name: Optional[str] = Field(default=None, max_length=MAX_NAME_LENGTH)
    message: Optional[str] = Field(default=None, max_length=MAX_NOTIFICATION_BODY_LENGTH)
    platform: InvitationPlatform = InvitationPlatform.UNIVERSAL
    campaign: Optional[str] = Field(default=None, max_length=100)
    expires_in_days: int = Field(default=30, ge=1, le=365)


class InvitationOut(OrmModel):
    id: str
    inviter_id: str
    inviter_name: str
    recipient_email: Optional[str] = None
    recipient_phone: Optional[str] = None
    recipient_name: Optional[str] = None
    message: Optional[str] = None
    invitation_code: str
    download_link: str
    status: InvitationStatus
    platform: InvitationPlatform
    campaign: Optional[str] = None
    expires_at: float
    created_at: float


class InvitationStatusUpdate(BaseModel):
    status: InvitationStatus


class InvitationEventRequest(BaseModel):
    event: Literal["sent", "delivered", "opened", "clicked", "installed"]


class InvitationStatsOut(BaseModel):
    total: int
    by_status: dict[str, int]
    by_platform: dict[str, int]
    conversion_rate: float
    recent: list[InvitationOut]


# Sharing & deep links


class ShareRequest(BaseModel):
    content_type: ContentType
    content_id: str
    method: ShareMethod = ShareMethod.NATIVE
    campaign: Optional[str] = Field(default=None, max_length=100)
    custom_message: Optional[str] = Field(default=None, max_length=MAX_NOTIFICATION_BODY_LENGTH)


class ShareResultOut(BaseModel):
    success: bool
    method: ShareMethod
    message: str
    url: str
    share_url: Optional[str] = None


class ShareAnalyticsOut(BaseModel):
    total_shares: int
    by_method: dict[str, int]
    success_rate: float


class DeepLinkRequest(BaseModel):
    type: Literal["sermon", "article", "category", "invite", "share"]
    id: str = Field(..., min_length=1)
    params: dict[str, str] = Field(default_factory=dict)
    web_fallback: bool = False


class DeepLinkOut(BaseModel):
    url: str


class ParseDeepLinkRequest(BaseModel):
    url: str


class ParsedDeepLinkOut(BaseModel):
    screen: str
    params: dict[str, Any]
    metadata: dict[str, Any]


# Admin


class AdminStatsOut(BaseModel):
    total_users: int
    total_sermons: int
    total_articles: int
    total_topics: int
    total_series: int
    total_categories: int
    recent_users: list[UserOut]
    recent_sermons: list[SermonOut]
    recent_articles: list[ArticleOut]
    recent_activity: list["AuditLogOut"]


class RoleUpdate(BaseModel):
    role: Literal["member", "moderator", "admin"]
    admin_role: Optional[Literal["super_admin", "content_manager", "moderator"]] = None


class BulkRoleUpdate(RoleUpdate):
    user_ids: list[str] = Field(..., min_length=1, max_length=MAX_PAGE_SIZE)


class BulkRoleResultOut(BaseModel):
    updated: list[str]
    failed: dict[str, str]


class EngagementOut(BaseModel):
    user_id: str
    sermons_viewed: int
    articles_read: int
    downloads: int
    saved_items: int
    last_activity: Optional[float] = None


class UserWithEngagementOut(BaseModel):
    user: UserOut
    engagement: EngagementOut


class AuditLogOut(OrmModel):
    id: str
    admin_user_id: Optional[str] = None
    action_type: str
    description: str
    target_user_id: Optional[str] = None
    target_user_name: Optional[str] = None
    details: Optional[dict[str, Any]] = None
    created_at: float


class ActivitySummaryOut(BaseModel):
    days: int
    total: int
    by_action: dict[str, int]


class PermissionOut(BaseModel):
    id: str
    name: str
    description: str
    resource: str
    action: str


class AdminSectionOut(BaseModel):
    id: str
    title: str
    description: str
    icon: str
    permissions: list[str]


class AdminAccessOut(BaseModel):
    admin_role: Optional[str] = None
    permissions: list[PermissionOut]
    sections: list[AdminSectionOut]


# Media


class UploadRequest(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255)
    mime_type: str = Field(..., min_length=3, max_length=255)
    size: int = Field(..., ge=1)


class MediaFileOut(OrmModel):
    id: str
    filename: str
    original_name: str
    mime_type: str
    size: int
    storage_path: str
    url: str
    thumbnail_url: Optional[str] = None
    uploaded_by: Optional[str] = None
    uploaded_at: float
    is_used: bool
    usage_count: int
    details: Optional[dict[str, Any]] = None


class UploadTicketOut(BaseModel):
    file: MediaFileOut
    upload_url: str
    expires_in: int


class MediaMetadataUpdate(BaseModel):
    original_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    thumbnail_url: Optional[str] = None
    details: Optional[dict[str, Any]] = None


class BulkDeleteOut(BaseModel):
    deleted: list[str]
    failed: dict[str, str]
    storage_errors: list[str] = Field(default_factory=list)


class CleanupOut(BaseModel):
    dry_run: bool
    files: list[MediaFileOut]
    total_size: int
    deleted: int
    storage_errors: list[str] = Field(default_factory=list)


class MediaUsageStatsOut(BaseModel):
    total_files: int
    total_size: int
    used_files: int
    unused_files: int
    used_size: int
    unused_size: int
    by_type: dict[str, int]
    usage_rate: float


AdminStatsOut.model_rebuild()
