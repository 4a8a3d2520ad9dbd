"""
Admin dashboard: statistics, user roles, engagement, audit trail and
draft-inclusive content lists.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from pulpit.db import UserRow
from pulpit.dependencies import get_admin_service, get_audit_service, require_permission
from pulpit.schemas import (
    ActivitySummaryOut,
    AdminStatsOut,
    ArticleOut,
    AuditLogOut,
    BulkRoleResultOut,
    BulkRoleUpdate,
    EngagementOut,
    PageOut,
    RoleUpdate,
    SermonOut,
    UserOut,
    UserWithEngagementOut,
    to_page,
)
from pulpit.services.admin import AdminService
from pulpit.services.audit import AuditService
from pulpit.shared.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter(prefix="/admin")


@router.get("/stats", response_model=AdminStatsOut)
def admin_stats(
    _: UserRow = Depends(require_permission("analytics.view")),
    admin: AdminService = Depends(get_admin_service),
):
    return admin.admin_stats()


# Users


@router.get("/users", response_model=PageOut[UserOut])
def list_users(
    search: Optional[str] = Query(None, max_length=200),
    role: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    _: UserRow = Depends(require_permission("users.view")),
    admin: AdminService = Depends(get_admin_service),
):
    return to_page(admin.list_users(page=page, limit=limit, search=search, role=role), UserOut)


@router.get("/users/engagement", response_model=PageOut[UserWithEngagementOut])
def users_with_engagement(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    _: UserRow = Depends(require_permission("analytics.view")),
    admin: AdminService = Depends(get_admin_service),
):
    return to_page(admin.users_with_engagement(page, limit), UserWithEngagementOut)


@router.get("/users/by-role/{role}", response_model=PageOut[UserOut])
def users_by_role(
    role: str,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    _: UserRow = Depends(require_permission("users.view")),
    admin: AdminService = Depends(get_admin_service),
):
    return to_page(admin.users_by_role(role, page, limit), UserOut)


@router.post("/users/roles", response_model=BulkRoleResultOut)
def bulk_update_roles(
    payload: BulkRoleUpdate,
    actor: UserRow = Depends(require_permission("users.manage_roles")),
    admin: AdminService = Depends(get_admin_service),
):
    return admin.bulk_update_roles(payload.user_ids, payload.role, payload.admin_role, actor.id)


@router.get("/users/{user_id}", response_model=UserOut)
def get_user(
    user_id: str,
    _: UserRow = Depends(require_permission("users.view")),
    admin: AdminService = Depends(get_admin_service),
):
    return admin.get_user(user_id)


@router.put("/users/{user_id}/role", response_model=UserOut)
def update_role(
    user_id: str,
    payload: RoleUpdate,
    actor: UserRow = Depends(require_permission("users.manage_roles")),
    admin: AdminService = Depends(get_admin_service),
):
    return admin.update_role(user_id, payload.role, payload.admin_role, actor.id)


@router.get("/users/{user_id}/engagement", response_model=EngagementOut)
def user_engagement(
    user_id: str,
    _: UserRow = Depends(require_permission("analytics.view")),
    admin: AdminService = Depends(get_admin_service),
):
    return admin.engagement(user_id)


# Audit trail


@router.get("/audit-logs", response_model=PageOut[AuditLogOut])
def list_audit_logs(
    action_type: Optional[str] = Query(None),
    admin_user_id: Optional[str] = Query(None),
    target_user_id: Optional[str] = Query(None),
    date_from: Optional[float] = Query(None),
    date_to: Optional[float] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    _: UserRow = Depends(require_permission("analytics.view")),
    audit: AuditService = Depends(get_audit_service),
):
    logs = audit.list_logs(
        page=page,
        limit=limit,
        action_type=action_type,
        admin_user_id=admin_user_id,
        target_user_id=target_user_id,
        date_from=date_from,
        date_to=date_to,
    )
    return to_page(logs, AuditLogOut)


@router.get("/activity", response_model=ActivitySummaryOut)
def activity_summary(
    days: int = Query(7, ge=1, le=365),
    _: UserRow = Depends(require_permission("analytics.view")),
    audit: AuditService = Depends(get_audit_service),
):
    return audit.activity_summary(days)


# Content, drafts included


@router.get("/sermons", response_model=PageOut[SermonOut])
def admin_sermons(
    search: Optional[str] = Query(None, max_length=200),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    _: UserRow = Depends(require_permission("content.sermons.edit")),
    admin: AdminService = Depends(get_admin_service),
):
    return to_page(admin.list_sermons(page, limit, search), SermonOut)


@router.get("/articles", response_model=PageOut[ArticleOut])
def admin_articles(
    search: Optional[str] = Query(None, max_length=200),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    _: UserRow = Depends(require_permission("content.articles.edit")),
    admin: AdminService = Depends(get_admin_service),
):
    return to_page(admin.list_articles(page, limit, search), ArticleOut)
