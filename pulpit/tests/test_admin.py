import unittest

from pulpit.db import IN_MEMORY_URL, ContentDownloadRow, ContentViewRow, Database
from pulpit.errors import NotFoundError, ValidationFailed
from pulpit.services.admin import AdminService
from pulpit.services.audit import AuditService
from pulpit.services.library import LibraryService
from pulpit.shared.types import AdminRole, AuditAction, UserRole
from pulpit.tests.support import ApiTestCase, auth_headers, make_article, make_sermon, make_user


class AdminServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = Database(IN_MEMORY_URL)
        self.audit = AuditService(self.db)
        self.admin = AdminService(self.db, self.audit)
        self.actor = make_user(self.db, email="boss@example.com", role=UserRole.ADMIN, admin_role=AdminRole.SUPER_ADMIN)
        self.member = make_user(self.db, first_name="Ruth", last_name="Moss")

    def test_update_role_writes_audit_entry(self):
        user = self.admin.update_role(self.member.id, "moderator", "moderator", self.actor.id)
        self.assertEqual((user.role, user.admin_role), ("moderator", "moderator"))

        entry = self.audit.recent(1)[0]
        self.assertEqual(entry.action_type, AuditAction.USER_ROLE_CHANGED)
        self.assertEqual(entry.admin_user_id, self.actor.id)
        self.assertEqual(entry.target_user_name, "Ruth Moss")
        self.assertEqual(entry.details["oldRole"], "member")
        self.assertEqual(entry.details["newAdminRole"], "moderator")
        self.assertEqual(self.audit.activity_summary()["by_action"], {"user_role_changed": 1})

    def test_member_cannot_hold_admin_role(self):
        with self.assertRaises(ValidationFailed):
            self.admin.update_role(self.member.id, "member", "content_manager")
        with self.assertRaises(NotFoundError):
            self.admin.update_role("missing", "moderator")
        self.assertEqual(self.audit.recent(), [])

    def test_bulk_update_reports_failures(self):
        other = make_user(self.db, email="other@example.com")
        result = self.admin.bulk_update_roles([self.member.id, "missing", other.id], "moderator")
        self.assertEqual(result["updated"], [self.member.id, other.id])
        self.assertEqual(result["failed"], {"missing": "User not found"})

    def test_engagement(self):
        sermon = make_sermon(self.db)
        article = make_article(self.db)
        with self.db.Session() as session:
            session.add_all(
                [
                    ContentViewRow(user_id=self.member.id, content_type="sermon", content_id=sermon.id),
                    ContentViewRow(user_id=self.member.id, content_type="sermon", content_id=sermon.id),
                    ContentViewRow(user_id=self.member.id, content_type="article", content_id=article.id),
                    ContentDownloadRow(user_id=self.member.id, content_type="sermon", content_id=sermon.id),
                ]
            )
            session.commit()
        LibraryService(self.db).save(self.member.id, "article", article.id)

        engagement = self.admin.engagement(self.member.id)
        self.assertEqual(engagement["sermons_viewed"], 1)
        self.assertEqual(engagement["articles_read"], 1)
        self.assertEqual(engagement["downloads"], 1)
        self.assertEqual(engagement["saved_items"], 1)
        self.assertIsNotNone(engagement["last_activity"])

        idle = self.admin.engagement(self.actor.id)
        self.assertEqual(idle["sermons_viewed"], 0)
        self.assertIsNone(idle["last_activity"])

    def test_list_users_search_and_stats(self):
        self.assertEqual(self.admin.list_users(search="ruth").total, 1)
        self.assertEqual(self.admin.users_by_role("admin").items[0].id, self.actor.id)

        make_sermon(self.db, is_published=False)
        stats = self.admin.admin_stats()
        self.assertEqual(stats["total_users"], 2)
        self.assertEqual(stats["total_sermons"], 1)
        self.assertEqual(len(stats["recent_sermons"]), 1)


class AdminApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.super_admin = make_user(
            self.db, email="boss@example.com", role=UserRole.ADMIN, admin_role=AdminRole.SUPER_ADMIN
        )
        self.manager = make_user(
            self.db, email="cm@example.com", role=UserRole.ADMIN, admin_role=AdminRole.CONTENT_MANAGER
        )
        self.member = make_user(self.db)

    def test_role_change_requires_super_admin(self):
        url = f"/api/admin/users/{self.member.id}/role"
        payload = {"role": "moderator", "admin_role": "moderator"}
        self.assertEqual(self.client.put(url, json=payload, headers=auth_headers(self.manager)).status_code, 403)

        response = self.client.put(url, json=payload, headers=auth_headers(self.super_admin))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["role"], "moderator")

        logs = self.client.get("/api/admin/audit-logs", headers=auth_headers(self.super_admin)).json()
        self.assertEqual(logs["total"], 1)
        self.assertEqual(logs["items"][0]["target_user_id"], self.member.id)

    def test_invalid_role_combination(self):
        response = self.client.put(
            f"/api/admin/users/{self.member.id}/role",
            json={"role": "member", "admin_role": "super_admin"},
            headers=auth_headers(self.super_admin),
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json(), {"detail": "Members cannot hold an admin role"})

    def test_bulk_roles(self):
        response = self.client.post(
            "/api/admin/users/roles",
            json={"user_ids": [self.member.id, "missing"], "role": "moderator"},
            headers=auth_headers(self.super_admin),
        )
        self.assertEqual(response.json(), {"updated": [self.member.id], "failed": {"missing": "User not found"}})

    def test_stats_and_engagement(self):
        stats = self.client.get("/api/admin/stats", headers=auth_headers(self.manager))
        self.assertEqual(stats.status_code, 200)
        self.assertEqual(stats.json()["total_users"], 3)

        engagement = self.client.get(
            f"/api/admin/users/{self.member.id}/engagement", headers=auth_headers(self.manager)
        )
        self.assertEqual(engagement.json()["downloads"], 0)
        self.assertEqual(self.client.get("/api/admin/stats", headers=auth_headers(self.member)).status_code, 403)


if __name__ == "__main__":
    unittest.main()
