"""
Admin roles, the permission catalogue, and the dashboard sections each role
can reach.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pulpit.shared.types import AdminRole, UserRole


@dataclass(frozen=True)
class Permission:
    id: str
    name: str
    description: str
    resource: str
    action: str


@dataclass(frozen=True)
class AdminSection:
    id: str
    title: str
    description: str
    icon: str
    permissions: tuple[str, ...]


def _perm(pid: str, name: str, description: str, resource: str, action: str) -> Permission:
    return Permission(id=pid, name=name, description=description, resource=resource, action=action)


PERMISSIONS: dict[str, Permission] = {
    p.id: p
    for p in (
        # Content
        _perm("content.sermons.create", "Create Sermons", "Create new sermon content", "sermons", "create"),
        _perm("content.sermons.edit", "Edit Sermons", "Edit existing sermon content", "sermons", "update"),
        _perm("content.sermons.delete", "Delete Sermons", "Delete sermon content", "sermons", "delete"),
        _perm("content.articles.create", "Create Articles", "Create new article content", "articles", "create"),
        _perm("content.articles.edit", "Edit Articles", "Edit existing article content", "articles", "update"),
        _perm("content.articles.delete", "Delete Articles", "Delete article content", "articles", "delete"),
        # Topics & series
        _perm("topics.create", "Create Topics", "Create new content topics", "topics", "create"),
        _perm("topics.manage", "Manage Topics", "Edit and delete topics", "topics", "manage"),
        _perm("series.create", "Create Series", "Create new content series", "series", "create"),
        _perm("series.manage", "Manage Series", "Edit and delete series", "series", "manage"),
        # Users
        _perm("users.view", "View Users", "View user list and details", "users", "read"),
        _perm("users.manage_roles", "Manage User Roles", "Assign and modify user roles", "users", "manage_roles"),
        _perm("users.send_notifications", "Send Notifications", "Send notifications to users", "users", "notify"),
        _perm("notifications.manage", "Manage Notifications", "Create and manage notifications", "notifications", "manage"),
        # Media
        _perm("media.upload", "Upload Media", "Upload media files", "media", "create"),
        _perm("media.manage", "Manage Media", "Delete and organize media files", "media", "manage"),
        # Analytics
        _perm("analytics.view", "View Analytics", "View user engagement analytics", "analytics", "read"),
    )
}

ROLE_PERMISSIONS: dict[AdminRole, tuple[str, ...]] = {
    AdminRole.SUPER_ADMIN: tuple(PERMISSIONS),
    AdminRole.CONTENT_MANAGER: (
        "content.sermons.create",
        "content.sermons.edit",
        "content.sermons.delete",
        "content.articles.create",
        "content.articles.edit",
        "content.articles.delete",
        "topics.create",
        "topics.manage",
        "series.create",
        "series.manage",
        "media.upload",
        "media.manage",
        "analytics.view",
    ),
    AdminRole.MODERATOR: (
        "content.sermons.edit",
        "content.articles.edit",
        "users.view",
        "users.send_notifications",
        "notifications.manage",
        "analytics.view",
    ),
}

SECTIONS: tuple[AdminSection, ...] = (
    AdminSection("overview", "Overview", "System overview and statistics", "dashboard", ("analytics.view",)),
    AdminSection(
        "content",
        "Content Management",
        "Manage sermons and articles",
        "description",
        ("content.sermons.create", "content.articles.create"),
    ),
    AdminSection(
        "topics-series",
        "Topics & Series",
        "Organize content with topics and series",
        "label",
        ("topics.create", "series.create"),
    ),
    AdminSection("users", "User Management", "Manage users and their roles", "people", ("users.view",)),
    AdminSection(
        "analytics",
        "Analytics",
        "View user engagement and content performance",
        "trending-up",
        ("analytics.view",),
    ),
    AdminSection(
        "notifications",
        "Notifications",
        "Send and manage user notifications",
        "notifications",
        ("notifications.manage",),
    ),
    # Carousel editing rides on the sermon create permission.
    AdminSection(
        "carousel",
        "Carousel Management",
        "Manage dashboard carousel images",
        "image",
        ("content.sermons.create",),
    ),
)


def effective_admin_role(role: str, admin_role: Optional[str]) -> Optional[AdminRole]:
    """Resolve the admin role that governs a user's permissions."""
    if admin_role:
        return AdminRole(admin_role)
    if role == UserRole.ADMIN:
        return AdminRole.SUPER_ADMIN
    if role == UserRole.MODERATOR:
        return AdminRole.MODERATOR
    return None


def is_admin(role: str) -> bool:
    return role in (UserRole.ADMIN, UserRole.MODERATOR)


def has_permission(role: Optional[AdminRole], permission_id: str) -> bool:
    if role is None:
        return False
    return permission_id in ROLE_PERMISSIONS.get(role, ())


def role_permissions(role: Optional[AdminRole]) -> list[Permission]:
    if role is None:
        return []
    return [PERMISSIONS[pid] for pid in ROLE_PERMISSIONS.get(role, ()) if pid in PERMISSIONS]


def can_access_section(role: Optional[AdminRole], required: tuple[str, ...] | list[str]) -> bool:
    return all(has_permission(role, pid) for pid in required)


def available_sections(role: Optional[AdminRole]) -> list[AdminSection]:
    return [section for section in SECTIONS if can_access_section(role, section.permissions)]
