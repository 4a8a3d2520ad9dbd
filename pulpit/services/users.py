"""
Accounts: sign-up and sign-in, one-time e-mail tokens, profiles,
preferences and onboarding state.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pulpit.config import Settings
from pulpit.db import (
    AuthTokenRow,
    Database,
    InvitationRow,
    NotificationRow,
    PushTokenRow,
    ReminderRow,
    UserContentRow,
    UserPreferencesRow,
    UserRow,
)
from pulpit.errors import AuthenticationError, ConflictError, NotFoundError, ValidationFailed
from pulpit.mailer import Mailer
from pulpit.schemas import OnboardingUpdate, PreferencesUpdate, ProfileUpdate, SignUpRequest
from pulpit.security import (
    create_access_token,
    hash_opaque_token,
    hash_password,
    mint_opaque_token,
    verify_password,
)
from pulpit.services.invitations import InvitationService
from pulpit.shared.constants import (
    EMAIL_VERIFICATION_TTL_SECONDS,
    MIN_PASSWORD_LENGTH,
    PASSWORD_RESET_TTL_SECONDS,
)
from pulpit.shared.types import TokenPurpose, UserRole
from pulpit.shared.utils import normalize_email, now_ts

logger = logging.getLogger(__name__)

DEFAULT_ONBOARDING = {"has_completed_onboarding": False, "onboarding_step": 0, "preferences": {}}

_TOKEN_TTL = {
    TokenPurpose.EMAIL_VERIFICATION: EMAIL_VERIFICATION_TTL_SECONDS,
    TokenPurpose.PASSWORD_RESET: PASSWORD_RESET_TTL_SECONDS,
}


def check_password_strength(password: str) -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def load_preferences(session: Session, user_id: str) -> UserPreferencesRow:
    """The user's preferences, created with defaults on first access."""
    prefs = session.get(UserPreferencesRow, user_id)
    if prefs is None:
        prefs = UserPreferencesRow(user_id=user_id)
        session.add(prefs)
        session.flush()
    return prefs


def apply_preferences(prefs: UserPreferencesRow, changes: Optional[PreferencesUpdate]) -> None:
    if changes is None:
        return
    for key, value in changes.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(prefs, key, str(value) if key in ("theme", "audio_quality") else value)
    prefs.updated_at = now_ts()


def issue_token(session: Session, user_id: str, purpose: TokenPurpose) -> str:
    token = mint_opaque_token()
    session.add(
        AuthTokenRow(
            token_hash=hash_opaque_token(token),
            user_id=user_id,
            purpose=str(purpose),
            expires_at=now_ts() + _TOKEN_TTL[purpose],
        )
    )
    return token


def consume_token(session: Session, token: str, purpose: TokenPurpose) -> AuthTokenRow:
    row = session.get(AuthTokenRow, hash_opaque_token(token or ""))
    if row is None or row.purpose != purpose or row.used_at is not None or row.expires_at < now_ts():
        raise ValidationFailed("Invalid or expired token")
    row.used_at = now_ts()
    return row


class AuthService:
    def __init__(
        self,
        db: Database,
        settings: Settings,
        mailer: Mailer,
        invitations: Optional[InvitationService] = None,
    ):
        self.db = db
        self.settings = settings
        self.mailer = mailer
        self.invitations = invitations

    def sign_up(self, data: SignUpRequest) -> UserRow:
        if not data.accept_terms:
            raise ValidationFailed("You must accept the terms and conditions")
        check_password_strength(data.password)
        email = normalize_email(data.email)

        with self.db.Session() as session:
            if session.scalars(select(UserRow.id).where(UserRow.email == email)).first():
                raise ConflictError("An account with this email already exists")
            user = UserRow(
                email=email,
                password_hash=hash_password(data.password),
                first_name=data.first_name.strip(),
                last_name=data.last_name.strip(),
                role=UserRole.MEMBER,
                is_email_verified=False,
                onboarding=dict(DEFAULT_ONBOARDING),
            )
            session.add(user)
            try:
                session.flush()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("An account with this email already exists") from exc
            session.add(UserPreferencesRow(user_id=user.id))
            token = issue_token(session, user.id, TokenPurpose.EMAIL_VERIFICATION)
            session.commit()

        logger.info("Created account %s", user.id)
        self.mailer.send_verification(user.email, token)
        if data.invitation_code and self.invitations is not None:
            self.invitations.accept(data.invitation_code, user.id)
        return user

    def sign_in(self, email: str, password: str) -> tuple[str, UserRow]:
        with self.db.Session() as session:
            user = session.scalars(select(UserRow).where(UserRow.email == normalize_email(email))).first()
            if user is None or not verify_password(password, user.password_hash):
                raise AuthenticationError("Invalid email or password")
            if not user.is_active:
                raise AuthenticationError("Account is disabled")
            user.last_sign_in_at = now_ts()
            session.commit()

        token = create_access_token(
            user_id=user.id,
            email=user.email,
            role=user.role,
            secret=self.settings.jwt_secret_key,
            algorithm=self.settings.jwt_algorithm,
            expires_minutes=self.settings.access_token_exp_minutes,
        )
        return token, user

    def get_user(self, user_id: str) -> UserRow:
        with self.db.Session() as session:
            user = session.get(UserRow, user_id)
            if user is None:
                raise NotFoundError("User not found")
            return user

    def request_password_reset(self, email: str) -> None:
        """Send a reset link if the account exists; callers never learn which."""
        with self.db.Session() as session:
            user = session.scalars(select(UserRow).where(UserRow.email == normalize_email(email))).first()
            if user is None or not user.is_active:
                logger.info("Password reset requested for unknown account")
                return
            token = issue_token(session, user.id, TokenPurpose.PASSWORD_RESET)
            session.commit()
        self.mailer.send_password_reset(user.email, token)

    def confirm_password_reset(self, token: str, new_password: str) -> UserRow:
        check_password_strength(new_password)
        with self.db.Session() as session:
            row = consume_token(session, token, TokenPurpose.PASSWORD_RESET)
            user = session.get(UserRow, row.user_id)
            if user is None:
                raise ValidationFailed("Invalid or expired token")
            user.password_hash = hash_password(new_password)
            user.updated_at = now_ts()
            session.commit()
        logger.info("Password reset for user %s", user.id)
        return user

    def request_email_verification(self, user_id: str) -> None:
        with self.db.Session() as session:
            user = session.get(UserRow, user_id)
            if user is None:
                raise NotFoundError("User not found")
            if user.is_email_verified:
                return
            token = issue_token(session, user.id, TokenPurpose.EMAIL_VERIFICATION)
            session.commit()
        self.mailer.send_verification(user.email, token)

    def confirm_email(self, token: str) -> UserRow:
        with self.db.Session() as session:
            row = consume_token(session, token, TokenPurpose.EMAIL_VERIFICATION)
            user = session.get(UserRow, row.user_id)
            if user is None:
                raise ValidationFailed("Invalid or expired token")
            user.is_email_verified = True
            user.updated_at = now_ts()
            session.commit()
            return user


class UserService:
    def __init__(self, db: Database):
        self.db = db

    def get_profile(self, user_id: str) -> dict:
        with self.db.Session() as session:
            user = session.get(UserRow, user_id)
            if user is None:
                raise NotFoundError("User not found")
            prefs = load_preferences(session, user_id)
            session.commit()
            return {"user": user, "preferences": prefs, "onboarding": user.onboarding or {}}

    def update_profile(self, user_id: str, changes: ProfileUpdate) -> dict:
        with self.db.Session() as session:
            user = session.get(UserRow, user_id)
            if user is None:
                raise NotFoundError("User not found")
            values = changes.model_dump(exclude_unset=True, exclude={"preferences"})
            for key in ("first_name", "last_name"):
                if values.get(key):
                    setattr(user, key, values[key].strip())
            if "avatar_url" in values:
                user.avatar_url = values["avatar_url"] or None
            user.updated_at = now_ts()
            prefs = load_preferences(session, user_id)
            apply_preferences(prefs, changes.preferences)
            session.commit()
            return {"user": user, "preferences": prefs, "onboarding": user.onboarding or {}}

    def get_preferences(self, user_id: str) -> UserPreferencesRow:
        with self.db.Session() as session:
            prefs = load_preferences(session, user_id)
            session.commit()
            return prefs

    def update_preferences(self, user_id: str, changes: PreferencesUpdate) -> UserPreferencesRow:
        with self.db.Session() as session:
            if session.get(UserRow, user_id) is None:
                raise NotFoundError("User not found")
            prefs = load_preferences(session, user_id)
            apply_preferences(prefs, changes)
            session.commit()
            return prefs

    def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        check_password_strength(new_password)
        with self.db.Session() as session:
            user = session.get(UserRow, user_id)
            if user is None:
                raise NotFoundError("User not found")
            if not verify_password(current_password, user.password_hash):
                raise AuthenticationError("Current password is incorrect")
            user.password_hash = hash_password(new_password)
            user.updated_at = now_ts()
            session.commit()
        logger.info("Password changed for user %s", user_id)

    def delete_account(self, user_id: str, password: str, reason: Optional[str] = None) -> None:
        with self.db.Session() as session:
            user = session.get(UserRow, user_id)
            if user is None:
                raise NotFoundError("User not found")
            if not verify_password(password, user.password_hash):
                raise AuthenticationError("Password is incorrect")
            for model in (
                UserPreferencesRow,
                AuthTokenRow,
                UserContentRow,
                ReminderRow,
                PushTokenRow,
                NotificationRow,
            ):
                session.execute(delete(model).where(model.user_id == user_id))
            session.execute(delete(InvitationRow).where(InvitationRow.inviter_id == user_id))
            session.delete(user)
            session.commit()
        logger.info("Deleted account %s (reason: %s)", user_id, reason or "none given")

    def update_onboarding(self, user_id: str, data: OnboardingUpdate) -> dict:
        with self.db.Session() as session:
            user = session.get(UserRow, user_id)
            if user is None:
                raise NotFoundError("User not found")
            onboarding = {
                "has_completed_onboarding": data.has_completed_onboarding,
                "onboarding_step": data.onboarding_step,
                "preferences": (
                    data.preferences.model_dump(exclude_none=True, mode="json") if data.preferences else {}
                ),
            }
            user.onboarding = onboarding
            user.updated_at = now_ts()
            if data.preferences is not None:
                apply_preferences(load_preferences(session, user_id), data.preferences)
            session.commit()
            return onboarding
