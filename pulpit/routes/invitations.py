"""
App invitations. Looking up and tracking a code is public so the landing
page and the freshly installed app can report progress.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from pulpit.db import UserRow
from pulpit.dependencies import get_current_user, get_invitation_service
from pulpit.schemas import (
    InvitationCreate,
    InvitationEventRequest,
    InvitationOut,
    InvitationStatsOut,
    InvitationStatusUpdate,
    MessageResponse,
)
from pulpit.services.invitations import InvitationService, invitation_message

router = APIRouter(prefix="/invitations")


@router.post("", response_model=InvitationOut, status_code=201)
def create_invitation(
    payload: InvitationCreate,
    user: UserRow = Depends(get_current_user),
    invitations: InvitationService = Depends(get_invitation_service),
):
    return invitations.create_invitation(user.id, payload)


@router.get("", response_model=list[InvitationOut])
def list_invitations(
    user: UserRow = Depends(get_current_user),
    invitations: InvitationService = Depends(get_invitation_service),
):
    return invitations.list_for_user(user.id)


@router.get("/stats", response_model=InvitationStatsOut)
def invitation_stats(
    user: UserRow = Depends(get_current_user),
    invitations: InvitationService = Depends(get_invitation_service),
):
    return invitations.stats(user.id)


@router.get("/code/{code}", response_model=InvitationOut)
def get_invitation(code: str, invitations: InvitationService = Depends(get_invitation_service)):
    return invitations.get_by_code(code)


@router.get("/code/{code}/message", response_model=MessageResponse)
def get_invitation_message(code: str, invitations: InvitationService = Depends(get_invitation_service)):
    invitation = invitations.get_by_code(code)
    return MessageResponse(message=invitation_message(invitation, invitation.message))


@router.post("/code/{code}/events", response_model=InvitationOut)
def track_invitation_event(
    code: str,
    payload: InvitationEventRequest,
    invitations: InvitationService = Depends(get_invitation_service),
):
    return invitations.track_event(code, payload.event)


@router.patch("/{invitation_id}", response_model=InvitationOut)
def update_invitation_status(
    invitation_id: str,
    payload: InvitationStatusUpdate,
    user: UserRow = Depends(get_current_user),
    invitations: InvitationService = Depends(get_invitation_service),
):
    return invitations.update_status(invitation_id, payload.status, inviter_id=user.id)
