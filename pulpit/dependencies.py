"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from pulpit.config import get_settings
from pulpit.db import IN_MEMORY_URL, Database, UserRow
from pulpit.deep_links import DeepLinks
from pulpit.errors import AuthenticationError, PermissionDeniedError
from pulpit.mailer import LoggingMailer, Mailer
from pulpit.permissions import effective_admin_role, has_permission, is_admin
from pulpit.push import ExpoPushClient, InMemoryPushClient, PushClient
from pulpit.queue import InMemoryJobQueue, JobQueue, RedisJobQueue
from pulpit.security import decode_access_token
from pulpit.services.admin import AdminService
from pulpit.services.audit import AuditService
from pulpit.services.content import ContentService
from pulpit.services.invitations import InvitationService
from pulpit.services.library import LibraryService
from pulpit.services.media import MediaService
from pulpit.services.notifications import NotificationService
from pulpit.services.reminders import ReminderService
from pulpit.services.search import SearchService
from pulpit.services.sharing import SharingService
from pulpit.services.taxonomy import TaxonomyService
from pulpit.services.users import AuthService, UserService
from pulpit.storage import InMemoryStorageClient, S3StorageClient, StorageClient

_db: Database | None = None
_storage_client: StorageClient | None = None
_queue_client: JobQueue | None = None
_push_client: PushClient | None = None
_mailer: Mailer | None = None

_bearer = HTTPBearer(auto_error=False)


def get_db() -> Database:
    """
    Return a singleton database so the engine and its pool are shared.
    """
    global _db
    if _db:
        return _db

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db = Database(IN_MEMORY_URL)
    else:
        _db = Database(settings.database_url)
    return _db


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.storage_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.storage_bucket,
            region=settings.storage_region or "",
            endpoint=settings.storage_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.storage_public_base_url,
        )
    return _storage_client


def get_queue_client() -> JobQueue:
    """
    Return a singleton queue client for handing notifications to the worker.
    """
    global _queue_client
    if _queue_client:
        return _queue_client

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _queue_client = RedisJobQueue(
            url=settings.redis_url,
            queue_key=settings.redis_queue_key,
        )
    else:
        _queue_client = InMemoryJobQueue()
    return _queue_client


def get_push_client() -> PushClient:
    global _push_client
    if _push_client:
        return _push_client

    settings = get_settings()
    if settings.use_fake_push or settings.use_in_memory_backends:
        _push_client = InMemoryPushClient()
    else:
        _push_client = ExpoPushClient(
            url=settings.expo_push_url,
            access_token=settings.expo_access_token,
        )
    return _push_client


def get_mailer() -> Mailer:
    global _mailer
    if _mailer is None:
        _mailer = LoggingMailer()
    return _mailer


def reset_dependencies() -> None:
    """Forget every singleton; tests call this between cases."""
    global _db, _storage_client, _queue_client, _push_client, _mailer
    _db = None
    _storage_client = None
    _queue_client = None
    _push_client = None
    _mailer = None
    get_settings.cache_clear()


# Services


def get_links() -> DeepLinks:
    settings = get_settings()
    return DeepLinks(app_scheme=settings.app_scheme, web_base_url=settings.web_base_url)


def get_audit_service(db: Database = Depends(get_db)) -> AuditService:
    return AuditService(db)


def get_notification_service(
    db: Database = Depends(get_db),
    queue: JobQueue = Depends(get_queue_client),
    links: DeepLinks = Depends(get_links),
) -> NotificationService:
    return NotificationService(db, queue, links)


def get_media_service(
    db: Database = Depends(get_db),
    storage: StorageClient = Depends(get_storage_client),
    audit: AuditService = Depends(get_audit_service),
) -> MediaService:
    return MediaService(db, storage, audit)


def get_content_service(
    db: Database = Depends(get_db),
    notifications: NotificationService = Depends(get_notification_service),
    audit: AuditService = Depends(get_audit_service),
    media: MediaService = Depends(get_media_service),
) -> ContentService:
    return ContentService(db, notifications, audit, media)


def get_taxonomy_service(db: Database = Depends(get_db)) -> TaxonomyService:
    return TaxonomyService(db)


def get_library_service(db: Database = Depends(get_db)) -> LibraryService:
    return LibraryService(db)


def get_search_service(db: Database = Depends(get_db)) -> SearchService:
    return SearchService(db)


def get_reminder_service(
    db: Database = Depends(get_db),
    notifications: NotificationService = Depends(get_notification_service),
) -> ReminderService:
    return ReminderService(db, notifications)


def get_invitation_service(db: Database = Depends(get_db)) -> InvitationService:
    settings = get_settings()
    return InvitationService(db, settings.download_base_url, settings.invitation_expiry_days)


def get_sharing_service(
    db: Database = Depends(get_db), links: DeepLinks = Depends(get_links)
) -> SharingService:
    return SharingService(db, links)


def get_auth_service(
    db: Database = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    invitations: InvitationService = Depends(get_invitation_service),
) -> AuthService:
    return AuthService(db, get_settings(), mailer, invitations)


def get_user_service(db: Database = Depends(get_db)) -> UserService:
    return UserService(db)


def get_admin_service(
    db: Database = Depends(get_db), audit: AuditService = Depends(get_audit_service)
) -> AdminService:
    return AdminService(db, audit)


# Authentication


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    db: Database = Depends(get_db),
) -> Optional[UserRow]:
    """The signed-in user, or None for anonymous requests."""
    if credentials is None:
        return None
    settings = get_settings()
    claims = decode_access_token(
        credentials.credentials,
        secret=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    with db.Session() as session:
        user = session.get(UserRow, claims["sub"])
    if user is None or not user.is_active:
        raise AuthenticationError("Invalid token")
    return user


def get_current_user(user: Optional[UserRow] = Depends(get_optional_user)) -> UserRow:
    if user is None:
        raise AuthenticationError("Not authenticated")
    return user


def require_admin(user: UserRow = Depends(get_current_user)) -> UserRow:
    if not is_admin(user.role):
        raise PermissionDeniedError("Admin access required")
    return user


def require_permission(permission_id: str) -> Callable[..., UserRow]:
    """Dependency factory: the current user, if their admin role grants `permission_id`."""

    def dependency(user: UserRow = Depends(get_current_user)) -> UserRow:
        role = effective_admin_role(user.role, user.admin_role)
        if not has_permission(role, permission_id):
            raise PermissionDeniedError(f"Missing permission: {permission_id}")
        return user

    return dependency


def can_see_drafts(user: Optional[UserRow]) -> bool:
    """Content editors may read unpublished sermons and articles."""
    if user is None:
        return False
    role = effective_admin_role(user.role, user.admin_role)
    return has_permission(role, "content.sermons.edit") or has_permission(role, "content.articles.edit")
