"""
Account sign-up, sign-in and the one-time e-mail token flows.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from pulpit.config import get_settings
from pulpit.db import UserRow
from pulpit.dependencies import get_auth_service, get_current_user
from pulpit.schemas import (
    MessageResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    SignInRequest,
    SignUpRequest,
    SignUpResponse,
    TokenConfirm,
    TokenResponse,
    UserOut,
)
from pulpit.services.users import AuthService

router = APIRouter(prefix="/auth")


@router.post("/sign-up", response_model=SignUpResponse, status_code=201)
def sign_up(payload: SignUpRequest, auth: AuthService = Depends(get_auth_service)):
    user = auth.sign_up(payload)
    return SignUpResponse(
        message="Account created. Check your email to verify your address.",
        user=UserOut.model_validate(user),
    )


@router.post("/sign-in", response_model=TokenResponse)
def sign_in(payload: SignInRequest, auth: AuthService = Depends(get_auth_service)):
    token, user = auth.sign_in(payload.email, payload.password)
    return TokenResponse(
        access_token=token,
        expires_in=get_settings().access_token_exp_minutes * 60,
        user=UserOut.model_validate(user),
    )


@router.get("/me", response_model=UserOut)
def current_user(user: UserRow = Depends(get_current_user)):
    return user


@router.post("/password-reset", response_model=MessageResponse, status_code=202)
def request_password_reset(
    payload: PasswordResetRequest, auth: AuthService = Depends(get_auth_service)
):
    auth.request_password_reset(payload.email)
    return MessageResponse(message="If an account exists for that email, a reset link is on its way.")


@router.post("/password-reset/confirm", response_model=MessageResponse)
def confirm_password_reset(
    payload: PasswordResetConfirm, auth: AuthService = Depends(get_auth_service)
):
    auth.confirm_password_reset(payload.token, payload.new_password)
    return MessageResponse(message="Password updated.")


@router.post("/verify-email", response_model=MessageResponse, status_code=202)
def request_email_verification(
    user: UserRow = Depends(get_current_user), auth: AuthService = Depends(get_auth_service)
):
    auth.request_email_verification(user.id)
    return MessageResponse(message="Verification email sent.")


@router.post("/verify-email/confirm", response_model=UserOut)
def confirm_email(payload: TokenConfirm, auth: AuthService = Depends(get_auth_service)):
    return auth.confirm_email(payload.token)
