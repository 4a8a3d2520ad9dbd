import tomllib
import unittest
from pathlib import Path

from pulpit.dependencies import get_mailer
from pulpit.shared.types import AdminRole, UserRole
from pulpit.tests.support import PASSWORD, ApiTestCase, auth_headers, make_user


class SystemApiTests(ApiTestCase):
    def test_health(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_sign_url_uses_storage_client(self):
        user = make_user(self.db)
        response = self.client.get(
            "/api/sign-url", params={"path": "foo/bar.png"}, headers=auth_headers(user)
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn("foo/bar.png", response.json()["url"])

    def test_sign_url_put_needs_upload_permission(self):
        member = make_user(self.db)
        params = {"path": "uploads/x.png", "op": "put"}
        response = self.client.get("/api/sign-url", params=params, headers=auth_headers(member))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["detail"], "Missing permission: media.upload")

        manager = make_user(
            self.db, email="cm@example.com", role=UserRole.ADMIN, admin_role=AdminRole.CONTENT_MANAGER
        )
        response = self.client.get("/api/sign-url", params=params, headers=auth_headers(manager))
        self.assertEqual(response.status_code, 200)
        self.assertIn("op=put", response.json()["url"])

    def test_sign_url_requires_sign_in(self):
        response = self.client.get("/api/sign-url", params={"path": "foo/bar.png"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"], "Not authenticated")

    def test_domain_errors_become_json(self):
        response = self.client.get("/api/sermons/does-not-exist")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"detail": "Sermon not found"})

    def test_bad_token_is_rejected(self):
        response = self.client.get("/api/auth/me", headers={"Authorization": "Bearer nonsense"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"], "Invalid token")


class AuthApiTests(ApiTestCase):
    def sign_up(self, **overrides):
        payload = {
            "email": "New.Member@Example.com",
            "password": PASSWORD,
            "first_name": "New",
            "last_name": "Member",
            "accept_terms": True,
        }
        payload.update(overrides)
        return self.client.post("/api/auth/sign-up", json=payload)

    def test_sign_up_and_sign_in(self):
        response = self.sign_up()
        self.assertEqual(response.status_code, 201)
        user = response.json()["user"]
        self.assertEqual(user["email"], "new.member@example.com")
        self.assertEqual(user["role"], "member")
        self.assertFalse(user["is_email_verified"])

        response = self.client.post(
            "/api/auth/sign-in", json={"email": "new.member@example.com", "password": PASSWORD}
        )
        self.assertEqual(response.status_code, 200)
        token = response.json()["access_token"]

        me = self.client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["id"], user["id"])

    def test_sign_up_requires_terms(self):
        response = self.sign_up(accept_terms=False)
        self.assertEqual(response.status_code, 422)

    def test_duplicate_email_conflicts(self):
        self.sign_up()
        response = self.sign_up(email="new.member@example.com")
        self.assertEqual(response.status_code, 409)

    def test_wrong_password(self):
        self.sign_up()
        response = self.client.post(
            "/api/auth/sign-in", json={"email": "new.member@example.com", "password": "wrong-password"}
        )
        self.assertEqual(response.status_code, 401)

    def test_email_verification(self):
        self.sign_up()
        purpose, email, token = get_mailer().outbox[-1]
        self.assertEqual(purpose, "email_verification")
        self.assertEqual(email, "new.member@example.com")

        response = self.client.post("/api/auth/verify-email/confirm", json={"token": token})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["is_email_verified"])

        # Tokens are single use.
        response = self.client.post("/api/auth/verify-email/confirm", json={"token": token})
        self.assertEqual(response.status_code, 422)

    def test_password_reset(self):
        self.sign_up()
        response = self.client.post("/api/auth/password-reset", json={"email": "new.member@example.com"})
        self.assertEqual(response.status_code, 202)
        purpose, _, token = get_mailer().outbox[-1]
        self.assertEqual(purpose, "password_reset")

        response = self.client.post(
            "/api/auth/password-reset/confirm", json={"token": token, "new_password": "another-secret"}
        )
        self.assertEqual(response.status_code, 200)
        response = self.client.post(
            "/api/auth/sign-in", json={"email": "new.member@example.com", "password": "another-secret"}
        )
        self.assertEqual(response.status_code, 200)

    def test_password_reset_for_unknown_email_looks_the_same(self):
        response = self.client.post("/api/auth/password-reset", json={"email": "nobody@example.com"})
        self.assertEqual(response.status_code, 202)
        self.assertEqual(get_mailer().outbox, [])


class ProfileApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.user = make_user(self.db)
        self.headers = auth_headers(self.user)

    def test_profile_has_default_preferences(self):
        response = self.client.get("/api/users/me", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        prefs = response.json()["preferences"]
        self.assertEqual(prefs["theme"], "auto")
        self.assertTrue(prefs["notify_new_content"])
        self.assertFalse(prefs["notify_marketing"])

    def test_update_preferences(self):
        response = self.client.patch(
            "/api/users/me/preferences",
            json={"theme": "dark", "notify_marketing": True},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["theme"], "dark")
        self.assertTrue(response.json()["notify_marketing"])

    def test_change_password_checks_current(self):
        response = self.client.post(
            "/api/users/me/password",
            json={"current_password": "not-my-password", "new_password": "brand-new-pass"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 401)

    def test_delete_account(self):
        response = self.client.request(
            "DELETE", "/api/users/me", json={"password": PASSWORD}, headers=self.headers
        )
        self.assertEqual(response.status_code, 200)
        response = self.client.get("/api/users/me", headers=self.headers)
        self.assertEqual(response.status_code, 401)

    def test_onboarding(self):
        response = self.client.put(
            "/api/users/me/onboarding",
            json={"has_completed_onboarding": True, "onboarding_step": 3, "preferences": {"theme": "light"}},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["has_completed_onboarding"])
        prefs = self.client.get("/api/users/me/preferences", headers=self.headers).json()
        self.assertEqual(prefs["theme"], "light")


class PackagingTests(unittest.TestCase):
    def test_readme_points_at_existing_file(self):
        pyproject = Path(__file__).resolve().parents[2] / "pyproject.toml"
        if not pyproject.exists():
            self.skipTest("not running from a source checkout")
        project = tomllib.loads(pyproject.read_text())["project"]
        readme = project.get("readme")
        if readme is not None:
            self.assertTrue((pyproject.parent / readme).exists())
            self.assertTrue(readme.startswith("README"))


if __name__ == "__main__":
    unittest.main()
