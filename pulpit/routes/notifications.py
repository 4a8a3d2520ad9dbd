"""
Push tokens, sending, and the signed-in member's notification history.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from pulpit.db import UserRow
from pulpit.dependencies import get_current_user, get_notification_service, require_permission
from pulpit.schemas import (
    AnnouncementRequest,
    CountResponse,
    IdsRequest,
    NotificationOut,
    NotificationStatsOut,
    PageOut,
    PushTokenIn,
    PushTokenOut,
    SendNotificationRequest,
    SendResultOut,
    to_page,
)
from pulpit.services.notifications import NotificationService
from pulpit.shared.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from pulpit.shared.types import NotificationType

router = APIRouter(prefix="/notifications")


# Push tokens


@router.post("/tokens", response_model=PushTokenOut)
def register_token(
    payload: PushTokenIn,
    user: UserRow = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    return notifications.register_token(user.id, payload.token, payload.platform, payload.device_id)


@router.delete("/tokens", response_model=CountResponse)
def unregister_token(
    token: str = Query(..., min_length=1),
    user: UserRow = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    return CountResponse(count=notifications.unregister_token(user.id, token))


# Sending


@router.post("/send", response_model=SendResultOut, status_code=202)
def send_notification(
    payload: SendNotificationRequest,
    _: UserRow = Depends(require_permission("users.send_notifications")),
    notifications: NotificationService = Depends(get_notification_service),
):
    """
    Queue a notification for explicit users, everyone with a role, or every
    member (optionally only those who opted into a preference).
    """
    if payload.user_ids and payload.role:
        raise HTTPException(status_code=400, detail="Choose either user_ids or role")
    if payload.user_ids:
        return notifications.send_to_users(payload.user_ids, payload.message)
    if payload.role:
        return notifications.send_by_role(payload.role, payload.message)
    return notifications.send_to_all(payload.message, payload.preference)


@router.post("/announcements", response_model=SendResultOut, status_code=202)
def send_announcement(
    payload: AnnouncementRequest,
    _: UserRow = Depends(require_permission("notifications.manage")),
    notifications: NotificationService = Depends(get_notification_service),
):
    return notifications.notify_announcement(payload.title, payload.body)


# History


@router.get("", response_model=PageOut[NotificationOut])
def list_notifications(
    type: Optional[NotificationType] = Query(None),
    is_read: Optional[bool] = Query(None),
    archived: bool = Query(False),
    search: Optional[str] = Query(None, max_length=200),
    date_from: Optional[float] = Query(None),
    date_to: Optional[float] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user: UserRow = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    result = notifications.list_history(
        user.id,
        notification_type=type,
        is_read=is_read,
        archived=archived,
        search=search,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    return to_page(result, NotificationOut)


@router.get("/stats", response_model=NotificationStatsOut)
def notification_stats(
    user: UserRow = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    return notifications.stats(user.id)


@router.get("/unread-count", response_model=CountResponse)
def unread_count(
    user: UserRow = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    return CountResponse(count=notifications.unread_count(user.id))


@router.post("/read", response_model=CountResponse)
def mark_read(
    payload: IdsRequest,
    user: UserRow = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    return CountResponse(count=notifications.mark_read(user.id, payload.ids))


@router.post("/unread", response_model=CountResponse)
def mark_unread(
    payload: IdsRequest,
    user: UserRow = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    return CountResponse(count=notifications.mark_read(user.id, payload.ids, read=False))


@router.post("/read-all", response_model=CountResponse)
def mark_all_read(
    user: UserRow = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    return CountResponse(count=notifications.mark_all_read(user.id))


@router.post("/archive", response_model=CountResponse)
def archive(
    payload: IdsRequest,
    user: UserRow = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    return CountResponse(count=notifications.set_archived(user.id, payload.ids))


@router.post("/restore", response_model=CountResponse)
def restore(
    payload: IdsRequest,
    user: UserRow = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    return CountResponse(count=notifications.set_archived(user.id, payload.ids, archived=False))


@router.post("/delete", response_model=CountResponse)
def delete_many(
    payload: IdsRequest,
    user: UserRow = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    return CountResponse(count=notifications.delete(user.id, payload.ids))


@router.get("/{notification_id}", response_model=NotificationOut)
def get_notification(
    notification_id: str,
    user: UserRow = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    return notifications.get(user.id, notification_id)


@router.delete("/{notification_id}", response_model=CountResponse)
def delete_notification(
    notification_id: str,
    user: UserRow = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    notifications.get(user.id, notification_id)
    return CountResponse(count=notifications.delete(user.id, [notification_id]))
