# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

from enum import StrEnum


class UserRole(StrEnum):
    MEMBER = "member"
    MODERATOR = "moderator"
    ADMIN = "admin"


class AdminRole(StrEnum):
    SUPER_ADMIN = "super_admin"
    CONTENT_MANAGER = "content_manager"
    MODERATOR = "moderator"


class ContentType(StrEnum):
    SERMON = "sermon"
    ARTICLE = "article"


class ActionType(StrEnum):
    SAVE = "save"
    FAVORITE = "favorite"
    LIKE = "like"


class Theme(StrEnum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


class AudioQuality(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Platform(StrEnum):
    IOS = "ios"
    ANDROID = "android"
    WEB = "web"


class InvitationPlatform(StrEnum):
    IOS = "ios"
    ANDROID = "android"
    WEB = "web"
    UNIVERSAL = "universal"


class InvitationStatus(StrEnum):
    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    OPENED = "opened"
    INSTALLED = "installed"
    EXPIRED = "expired"


class NotificationType(StrEnum):
    NEW_CONTENT = "new_content"
    REMINDER = "reminder"
    UPDATE = "update"
    MARKETING = "marketing"
    ANNOUNCEMENT = "announcement"


class DeliveryStatus(StrEnum):
    QUEUED = "queued"
    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED = "skipped"


class TokenPurpose(StrEnum):
    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"


class AuditAction(StrEnum):
    USER_ROLE_CHANGED = "user_role_changed"
    CONTENT_CREATED = "content_created"
    CONTENT_UPDATED = "content_updated"
    CONTENT_DELETED = "content_deleted"
    USER_CREATED = "user_created"
    USER_UPDATED = "user_updated"
    NOTIFICATION_SENT = "notification_sent"


class ShareMethod(StrEnum):
    NATIVE = "native"
    EMAIL = "email"
    SMS = "sms"
    WHATSAPP = "whatsapp"
    TELEGRAM = "telegram"
    TWITTER = "twitter"
    FACEBOOK = "facebook"
    COPY = "copy"


class SortField(StrEnum):
    DATE = "date"
    TITLE = "title"
    POPULARITY = "popularity"
    VIEWS = "views"
    DOWNLOADS = "downloads"
    AUTHOR = "author"
    SAVED_AT = "saved_at"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"
