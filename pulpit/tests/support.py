"""
Shared fixtures for the API and service tests.
"""

import os
from datetime import date

os.environ.setdefault("USE_IN_MEMORY_BACKENDS", "true")

import unittest

from fastapi.testclient import TestClient

from pulpit.app import create_app
from pulpit.config import get_settings
from pulpit.db import ArticleRow, SermonRow, UserRow
from pulpit.dependencies import get_db, reset_dependencies
from pulpit.security import create_access_token, hash_password
from pulpit.shared.types import UserRole

PASSWORD = "password123"


def make_user(db, email="member@example.com", role=UserRole.MEMBER, admin_role=None, **fields) -> UserRow:
    with db.Session() as session:
        user = UserRow(
            email=email,
            password_hash=hash_password(fields.pop("password", PASSWORD)),
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", "User"),
            role=str(role),
            admin_role=str(admin_role) if admin_role else None,
            **fields,
        )
        session.add(user)
        session.commit()
        return user


def make_sermon(db, title="Walking in Faith", **fields) -> SermonRow:
    values = {
        "preacher": "Pastor James",
        "date": date(2025, 1, 5),
        "duration": 1800,
        "audio_url": "https://cdn.example.test/audio/sermon.mp3",
        "is_published": True,
    }
    values.update(fields)
    with db.Session() as session:
        row = SermonRow(title=title, **values)
        session.add(row)
        session.commit()
        return row


def make_article(db, title="Living Hope", **fields) -> ArticleRow:
    values = {
        "author": "Sarah Lee",
        "content": "A reflection on hope in hard seasons.",
        "is_published": True,
    }
    values.update(fields)
    with db.Session() as session:
        row = ArticleRow(title=title, **values)
        session.add(row)
        session.commit()
        return row


def auth_headers(user: UserRow) -> dict:
    settings = get_settings()
    token = create_access_token(
        user_id=user.id,
        email=user.email,
        role=user.role,
        secret=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_minutes=5,
    )
    return {"Authorization": f"Bearer {token}"}


class ApiTestCase(unittest.TestCase):
    """Fresh in-memory backends and a test client for every test."""

    def setUp(self):
        reset_dependencies()
        self.db = get_db()
        self.client = TestClient(create_app())

    def tearDown(self):
        reset_dependencies()
