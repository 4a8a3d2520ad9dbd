"""
The signed-in member's profile, preferences and account.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from pulpit.db import UserRow
from pulpit.dependencies import get_current_user, get_user_service
from pulpit.permissions import available_sections, effective_admin_role, role_permissions
from pulpit.schemas import (
    AdminAccessOut,
    AdminSectionOut,
    ChangePasswordRequest,
    DeleteAccountRequest,
    OnboardingUpdate,
    PermissionOut,
    PreferencesOut,
    PreferencesUpdate,
    ProfileOut,
    ProfileUpdate,
    StatusResponse,
)
from pulpit.services.users import UserService

router = APIRouter(prefix="/users/me")


@router.get("", response_model=ProfileOut)
def get_profile(
    user: UserRow = Depends(get_current_user), users: UserService = Depends(get_user_service)
):
    return users.get_profile(user.id)


@router.patch("", response_model=ProfileOut)
def update_profile(
    payload: ProfileUpdate,
    user: UserRow = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    return users.update_profile(user.id, payload)


@router.delete("", response_model=StatusResponse)
def delete_account(
    payload: DeleteAccountRequest,
    user: UserRow = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    users.delete_account(user.id, payload.password, payload.reason)
    return StatusResponse()


@router.get("/preferences", response_model=PreferencesOut)
def get_preferences(
    user: UserRow = Depends(get_current_user), users: UserService = Depends(get_user_service)
):
    return users.get_preferences(user.id)


@router.patch("/preferences", response_model=PreferencesOut)
def update_preferences(
    payload: PreferencesUpdate,
    user: UserRow = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    return users.update_preferences(user.id, payload)


@router.post("/password", response_model=StatusResponse)
def change_password(
    payload: ChangePasswordRequest,
    user: UserRow = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    users.change_password(user.id, payload.current_password, payload.new_password)
    return StatusResponse()


@router.put("/onboarding", response_model=dict)
def update_onboarding(
    payload: OnboardingUpdate,
    user: UserRow = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    return users.update_onboarding(user.id, payload)


@router.get("/access", response_model=AdminAccessOut)
def admin_access(user: UserRow = Depends(get_current_user)):
    """Permissions and dashboard sections the caller's admin role grants."""
    role = effective_admin_role(user.role, user.admin_role)
    return AdminAccessOut(
        admin_role=role.value if role else None,
        permissions=[
            PermissionOut(
                id=p.id, name=p.name, description=p.description, resource=p.resource, action=p.action
            )
            for p in role_permissions(role)
        ],
        sections=[
            AdminSectionOut(
                id=s.id,
                title=s.title,
                description=s.description,
                icon=s.icon,
                permissions=list(s.permissions),
            )
            for s in available_sections(role)
        ],
    )
