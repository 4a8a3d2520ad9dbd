"""
Content reminders for the signed-in member.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from pulpit.db import UserRow
from pulpit.dependencies import get_current_user, get_reminder_service
from pulpit.schemas import ReminderCreate, ReminderOut, ReminderStatsOut, ReminderUpdate, StatusResponse
from pulpit.services.reminders import ReminderService
from pulpit.shared.types import ContentType

router = APIRouter(prefix="/reminders")


@router.get("", response_model=list[ReminderOut])
def list_reminders(
    include_inactive: bool = Query(False),
    user: UserRow = Depends(get_current_user),
    reminders: ReminderService = Depends(get_reminder_service),
):
    return reminders.list_reminders(user.id, include_inactive)


@router.post("", response_model=ReminderOut, status_code=201)
def create_reminder(
    payload: ReminderCreate,
    user: UserRow = Depends(get_current_user),
    reminders: ReminderService = Depends(get_reminder_service),
):
    return reminders.create_reminder(user.id, payload)


@router.get("/upcoming", response_model=list[ReminderOut])
def upcoming_reminders(
    limit: int = Query(10, ge=1, le=50),
    user: UserRow = Depends(get_current_user),
    reminders: ReminderService = Depends(get_reminder_service),
):
    return reminders.upcoming(user.id, limit)


@router.get("/stats", response_model=ReminderStatsOut)
def reminder_stats(
    user: UserRow = Depends(get_current_user),
    reminders: ReminderService = Depends(get_reminder_service),
):
    return reminders.stats(user.id)


@router.get("/by-content", response_model=Optional[ReminderOut])
def reminder_for_content(
    content_type: ContentType = Query(...),
    content_id: str = Query(...),
    user: UserRow = Depends(get_current_user),
    reminders: ReminderService = Depends(get_reminder_service),
):
    return reminders.get_by_content(user.id, content_type, content_id)


@router.get("/{reminder_id}", response_model=ReminderOut)
def get_reminder(
    reminder_id: str,
    user: UserRow = Depends(get_current_user),
    reminders: ReminderService = Depends(get_reminder_service),
):
    return reminders.get(user.id, reminder_id)


@router.patch("/{reminder_id}", response_model=ReminderOut)
def update_reminder(
    reminder_id: str,
    payload: ReminderUpdate,
    user: UserRow = Depends(get_current_user),
    reminders: ReminderService = Depends(get_reminder_service),
):
    return reminders.update(user.id, reminder_id, payload)


@router.post("/{reminder_id}/cancel", response_model=ReminderOut)
def cancel_reminder(
    reminder_id: str,
    user: UserRow = Depends(get_current_user),
    reminders: ReminderService = Depends(get_reminder_service),
):
    return reminders.cancel(user.id, reminder_id)


@router.delete("/{reminder_id}", response_model=StatusResponse)
def delete_reminder(
    reminder_id: str,
    user: UserRow = Depends(get_current_user),
    reminders: ReminderService = Depends(get_reminder_service),
):
    reminders.delete(user.id, reminder_id)
    return StatusResponse()
