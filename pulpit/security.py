"""
Password hashing, access tokens and one-time tokens.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
import time
from hmac import compare_digest
from typing import Any

import jwt

from pulpit.errors import AuthenticationError

_SALT_BYTES = 16
_KEY_LEN = 32
_SCRYPT_N = 2 ** 14
_SCRYPT_R = 8
_SCRYPT_P = 1


def _encode(value: bytes) -> str:
    return base64.urlsafe_b64encode(value).decode("ascii").rstrip("=")


def _decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def hash_password(password: str) -> str:
    """Return an scrypt hash for the supplied password."""
    if not password or not password.strip():
        raise ValueError("Password must not be empty")

    salt = secrets.token_bytes(_SALT_BYTES)
    key = hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt,
        n=_SCRYPT_N,
        r=_SCRYPT_R,
        p=_SCRYPT_P,
        dklen=_KEY_LEN,
    )
    return "scrypt$%d$%d$%d$%s$%s" % (
        _SCRYPT_N,
        _SCRYPT_R,
        _SCRYPT_P,
        _encode(salt),
        _encode(key),
    )


def verify_password(password: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        _, n_str, r_str, p_str, salt_b64, key_b64 = hashed.split("$", 5)
        salt = _decode(salt_b64)
        expected = _decode(key_b64)
        candidate = hashlib.scrypt(
            password.encode("utf-8"),
            salt=salt,
            n=int(n_str),
            r=int(r_str),
            p=int(p_str),
            dklen=len(expected),
        )
    except (ValueError, TypeError):
        return False
    return compare_digest(candidate, expected)


def create_access_token(
    *,
    user_id: str,
    email: str,
    role: str,
    secret: str,
    algorithm: str,
    expires_minutes: int,
) -> str:
    issued_at = int(time.time())
    payload = {
        "sub": user_id,
        "email": email,
        "role": role,
        "iat": issued_at,
        "exp": issued_at + expires_minutes * 60,
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(token: str, *, secret: str, algorithm: str) -> dict[str, Any]:
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError("Invalid token") from exc


def mint_opaque_token(length: int = 32) -> str:
    """Return a random token for one-time links (reset, verification)."""
    return secrets.token_urlsafe(length)


def hash_opaque_token(token: str) -> str:
    digest = hashlib.sha256(token.encode("utf-8")).digest()
    return _encode(digest)
